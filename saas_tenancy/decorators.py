"""
SaaS Tenancy 装饰器 - 极简权限检查
"""

import logging
from functools import wraps

from django.http import JsonResponse

from .constants import ErrorCode, HttpStatus, Permission
from .context import tenant_context_builder
from .exceptions import PermissionDenied, Unauthenticated


logger = logging.getLogger(__name__)


def require_permission(permission):
    """
    权限检查装饰器 - 极简API

    优先使用中间件挂载的 request.tenant_context；没有时现场构建一次

    Args:
        permission: 权限键
            - Permission.BILLING_MANAGE 或 'billing:manage'

    使用示例:
        @require_permission(Permission.BILLING_MANAGE)
        def billing_portal(request):
            # 有权限才执行这里
            context = request.tenant_context
    """
    if Permission.parse(permission) is None:
        raise ValueError(f"Invalid permission key: {permission}")

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            try:
                context = _get_or_build_context(request)

                if not context.can(permission):
                    return JsonResponse({
                        'error': f'Permission denied for action: {permission}',
                        'code': ErrorCode.PERMISSION_DENIED
                    }, status=HttpStatus.FORBIDDEN)

            except Unauthenticated:
                return JsonResponse({
                    'error': 'Authentication required',
                    'code': ErrorCode.UNAUTHENTICATED
                }, status=HttpStatus.UNAUTHORIZED)
            except PermissionDenied:
                return JsonResponse({
                    'error': f'Permission denied for action: {permission}',
                    'code': ErrorCode.PERMISSION_DENIED
                }, status=HttpStatus.FORBIDDEN)
            except Exception:
                logger.exception(f"Permission check failed: permission={permission}")
                return JsonResponse({
                    'error': 'Internal server error',
                    'code': ErrorCode.INTERNAL_ERROR
                }, status=HttpStatus.INTERNAL_SERVER_ERROR)

            # 权限检查通过，执行视图函数
            return view_func(request, *args, **kwargs)

        return wrapper
    return decorator


def _get_or_build_context(request):
    """获取租户上下文，没有中间件时现场构建"""
    context = getattr(request, 'tenant_context', None)
    if context is not None:
        return context

    context = tenant_context_builder.build(getattr(request, 'user', None), request)
    request.tenant_context = context
    return context


# 便捷装饰器别名
def require_org_manage():
    """组织管理权限检查"""
    return require_permission(Permission.ORG_MANAGE)


def require_billing_manage():
    """账单管理权限检查"""
    return require_permission(Permission.BILLING_MANAGE)


def require_members_view():
    """成员查看权限检查"""
    return require_permission(Permission.MEMBERS_VIEW)
