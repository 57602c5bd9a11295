"""
SaaS Tenancy 业务逻辑服务
"""

from .resolver import OrganizationResolver
from .role_service import RoleRegistry
from .membership_service import MembershipDirectory
from .permission_service import PermissionEvaluator, permission_evaluator
from .organization_service import OrganizationService
from .invitation_service import InvitationService

__all__ = [
    'OrganizationResolver',
    'RoleRegistry',
    'MembershipDirectory',
    'PermissionEvaluator',
    'permission_evaluator',
    'OrganizationService',
    'InvitationService'
]
