"""
SaaS Tenancy 常量定义

权限键是一个封闭枚举，在代码层面约束，不在数据库层面约束
"""

from enum import Enum
from typing import Dict, FrozenSet


class Permission(str, Enum):
    """权限键，格式为 resource:action"""

    ORG_VIEW = 'org:view'
    ORG_MANAGE = 'org:manage'

    MEMBERS_VIEW = 'members:view'
    MEMBERS_INVITE = 'members:invite'
    MEMBERS_UPDATE = 'members:update'
    MEMBERS_REMOVE = 'members:remove'

    ROLES_VIEW = 'roles:view'
    ROLES_CREATE = 'roles:create'
    ROLES_EDIT = 'roles:edit'
    ROLES_DELETE = 'roles:delete'

    BILLING_VIEW = 'billing:view'
    BILLING_MANAGE = 'billing:manage'

    SETTINGS_VIEW = 'settings:view'
    SETTINGS_MANAGE = 'settings:manage'

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value):
        """把字符串解析为权限键，无法识别时返回 None"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class OverrideEffect(str, Enum):
    """成员级权限覆盖：allow 增加权限，deny 移除权限"""

    ALLOW = 'allow'
    DENY = 'deny'

    def __str__(self):
        return self.value


# 所有可用的权限键
AVAILABLE_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

# 内置角色
ROLE_OWNER = 'owner'
ROLE_ADMIN = 'admin'
ROLE_MEMBER = 'member'
ROLE_GUEST = 'guest'

# 内置角色权限定义 (代码层面，不存储在数据库)
BUILTIN_ROLE_PERMISSIONS: Dict[str, FrozenSet[Permission]] = {
    ROLE_OWNER: AVAILABLE_PERMISSIONS,
    ROLE_ADMIN: AVAILABLE_PERMISSIONS - {
        Permission.ORG_MANAGE,
        Permission.BILLING_MANAGE,
    },
    ROLE_MEMBER: frozenset({
        Permission.ORG_VIEW,
        Permission.MEMBERS_VIEW,
        Permission.ROLES_VIEW,
        Permission.SETTINGS_VIEW,
    }),
    ROLE_GUEST: frozenset({
        Permission.ORG_VIEW,
    }),
}

BUILTIN_ROLES = tuple(BUILTIN_ROLE_PERMISSIONS)

# 邀请状态
INVITATION_STATUS = {
    'PENDING': 'pending',
    'ACCEPTED': 'accepted',
    'EXPIRED': 'expired',
    'REVOKED': 'revoked',
}

# 默认设置
DEFAULT_INVITE_TOKEN_LIFETIME = 60 * 60 * 24 * 7  # 7天
DEFAULT_MAX_CUSTOM_ROLES = 50
ORGANIZATION_HEADER = 'HTTP_X_ORGANIZATION_ID'
SESSION_ORGANIZATION_KEY = 'saas_tenancy.current_organization'

# 审计动作类型
AUDIT_ACTIONS = {
    'ORGANIZATION_CREATED': 'organization_created',
    'MEMBER_ADDED': 'member_added',
    'MEMBER_UPDATED': 'member_updated',
    'MEMBER_REMOVED': 'member_removed',
    'ROLE_CREATED': 'role_created',
    'ROLE_UPDATED': 'role_updated',
    'ROLE_DELETED': 'role_deleted',
    'DEFAULT_ROLE_CHANGED': 'default_role_changed',
    'INVITATION_CREATED': 'invitation_created',
    'INVITATION_ACCEPTED': 'invitation_accepted',
    'INVITATION_REVOKED': 'invitation_revoked',
}


# HTTP 状态码
class HttpStatus:
    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500


# 错误代码
class ErrorCode:
    # 认证错误
    UNAUTHENTICATED = 'UNAUTHENTICATED'

    # 租户解析错误
    ORGANIZATION_NOT_RESOLVED = 'ORGANIZATION_NOT_RESOLVED'
    ORGANIZATION_NOT_FOUND = 'ORGANIZATION_NOT_FOUND'
    MEMBERSHIP_NOT_FOUND = 'MEMBERSHIP_NOT_FOUND'
    ROLE_NOT_FOUND = 'ROLE_NOT_FOUND'

    # 权限错误
    PERMISSION_DENIED = 'PERMISSION_DENIED'

    # 不变量错误
    ROLE_IN_USE = 'ROLE_IN_USE'
    ORPHANED_OWNER = 'ORPHANED_OWNER'

    # 验证错误
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    INVITE_TOKEN_INVALID = 'INVITE_TOKEN_INVALID'
    INVITE_TOKEN_EXPIRED = 'INVITE_TOKEN_EXPIRED'

    INTERNAL_ERROR = 'INTERNAL_ERROR'
