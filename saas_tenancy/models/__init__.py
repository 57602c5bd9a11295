"""
SaaS Tenancy 数据模型
"""

from .organization import Organization, Membership, Role, Invitation
from .audit import AuditLog

__all__ = [
    'Organization',
    'Membership',
    'Role',
    'Invitation',
    'AuditLog'
]
