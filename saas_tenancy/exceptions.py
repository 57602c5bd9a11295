"""
SaaS Tenancy 自定义异常
"""

from typing import Optional

from .constants import ErrorCode, HttpStatus


class TenancyError(Exception):
    """SaaS Tenancy 基础异常"""

    default_error_code = ErrorCode.INTERNAL_ERROR
    status_code = HttpStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or self.default_error_code
        super().__init__(message)


class Unauthenticated(TenancyError):
    """没有已认证的会话"""
    default_error_code = ErrorCode.UNAUTHENTICATED
    status_code = HttpStatus.UNAUTHORIZED


class OrganizationNotResolved(TenancyError):
    """会话有效，但请求没有指定组织"""
    default_error_code = ErrorCode.ORGANIZATION_NOT_RESOLVED
    status_code = HttpStatus.BAD_REQUEST


class NotFoundError(TenancyError):
    """资源不存在错误基类"""
    status_code = HttpStatus.NOT_FOUND


class OrganizationNotFoundError(NotFoundError):
    """组织不存在错误"""
    default_error_code = ErrorCode.ORGANIZATION_NOT_FOUND


class MembershipNotFoundError(NotFoundError):
    """成员关系不存在错误"""
    default_error_code = ErrorCode.MEMBERSHIP_NOT_FOUND


class RoleNotFoundError(NotFoundError):
    """角色不存在错误"""
    default_error_code = ErrorCode.ROLE_NOT_FOUND


class PermissionDenied(TenancyError):
    """权限被拒绝错误"""
    default_error_code = ErrorCode.PERMISSION_DENIED
    status_code = HttpStatus.FORBIDDEN


class InvariantError(TenancyError):
    """写入前检测到的不变量冲突"""
    status_code = HttpStatus.CONFLICT


class RoleInUseError(InvariantError):
    """角色仍被成员使用，不能删除"""
    default_error_code = ErrorCode.ROLE_IN_USE


class OrphanedOwnerError(InvariantError):
    """操作会让组织失去最后一个 owner"""
    default_error_code = ErrorCode.ORPHANED_OWNER


class ValidationError(TenancyError):
    """验证错误"""
    default_error_code = ErrorCode.VALIDATION_ERROR
    status_code = HttpStatus.BAD_REQUEST


class InvitationInvalidError(ValidationError):
    """邀请令牌无效"""
    default_error_code = ErrorCode.INVITE_TOKEN_INVALID


class InvitationExpiredError(ValidationError):
    """邀请令牌过期"""
    default_error_code = ErrorCode.INVITE_TOKEN_EXPIRED


class InternalError(TenancyError):
    """存储或其他内部错误，绝不当作权限拒绝处理"""
    pass
