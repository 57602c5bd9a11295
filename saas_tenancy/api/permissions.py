"""
DRF 权限类 - 基于 TenantContext 的权限检查
"""

import logging

from rest_framework.permissions import BasePermission

from ..constants import Permission
from ..context import tenant_context_builder
from ..exceptions import OrganizationNotResolved


logger = logging.getLogger(__name__)


def get_request_context(request):
    """
    获取 DRF 请求的租户上下文

    DRF 认证出来的用户可能与中间件看到的用户不同 (Token、强制认证)，
    用户不一致时按 DRF 的 request.user 重新构建
    """
    context = getattr(request, 'tenant_context', None)
    if context is not None and str(context.user_id) == str(request.user.pk):
        return context

    context = tenant_context_builder.build(request.user, request)
    request.tenant_context = context
    return context


class HasTenantPermission(BasePermission):
    """
    按 HTTP 方法检查租户权限

    视图上声明:
        required_permissions = {
            'GET': Permission.MEMBERS_VIEW,
            'POST': Permission.MEMBERS_INVITE,
        }

    没有声明的方法只要求已认证；声明了权限但请求没有指定组织时返回 400
    """

    message = 'Permission denied'

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False

        context = get_request_context(request)

        required = getattr(view, 'required_permissions', {}).get(request.method)
        if required is None:
            return True

        if context.requested_organization_id is None and not context.organization_bound:
            raise OrganizationNotResolved("Request does not specify an organization")

        if not context.can(required):
            self.message = f'Permission denied for action: {Permission.parse(required)}'
            logger.info(
                f"Tenant permission denied: user={context.user_id}, "
                f"organization={context.requested_organization_id}, permission={required}"
            )
            return False

        return True
