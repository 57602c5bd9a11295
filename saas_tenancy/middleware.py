"""
SaaS Tenancy 中间件 - 每个请求构建一次 TenantContext
"""

import logging

from .context import tenant_context_builder


logger = logging.getLogger(__name__)


class TenantContextMiddleware:
    """
    把 TenantContext 挂载到 request.tenant_context

    必须放在 AuthenticationMiddleware 之后。匿名请求得到 None；
    存储错误直接向上抛出，不会被当作权限拒绝
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            request.tenant_context = tenant_context_builder.build(user, request)
        else:
            request.tenant_context = None
        return self.get_response(request)
