"""
租户上下文 - 每个请求构建一次，显式传递给处理函数

构建顺序：组织解析 -> 成员目录 -> 角色注册表 -> 权限评估
"""

import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from asgiref.sync import sync_to_async

from .constants import OverrideEffect, Permission
from .exceptions import PermissionDenied, Unauthenticated
from .services.membership_service import MembershipDirectory
from .services.permission_service import PermissionEvaluator, permission_evaluator
from .services.resolver import OrganizationResolver
from .services.role_service import RoleRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    """请求级租户上下文，构建后不可修改"""

    user_id: object
    organization_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    base_permissions: FrozenSet[Permission] = frozenset()
    overrides: Mapping[Permission, OverrideEffect] = field(default_factory=lambda: MappingProxyType({}))
    permissions: FrozenSet[Permission] = frozenset()
    requested_organization_id: Optional[uuid.UUID] = None
    evaluator: PermissionEvaluator = field(default=permission_evaluator, compare=False, repr=False)

    @classmethod
    def unbound(cls, user_id, requested_organization_id=None, evaluator=None) -> 'TenantContext':
        """已认证但没有绑定组织的上下文，所有租户权限检查都返回 False"""
        return cls(
            user_id=user_id,
            requested_organization_id=requested_organization_id,
            evaluator=evaluator or permission_evaluator,
        )

    @property
    def organization_bound(self) -> bool:
        return self.organization_id is not None

    @property
    def is_member(self) -> bool:
        return self.organization_bound and self.role is not None

    def can(self, permission) -> bool:
        """检查是否具有特定权限"""
        return self.evaluator.can(self, permission)

    def check_many(self, permissions: Iterable) -> Dict[str, bool]:
        """批量权限检查"""
        return self.evaluator.check_many(self, permissions)

    def require(self, permission) -> None:
        """没有权限时抛出 PermissionDenied"""
        if not self.can(permission):
            raise PermissionDenied(f"Permission denied for action: {permission}")

    def to_dict(self) -> Dict:
        return {
            'user_id': str(self.user_id),
            'organization_id': str(self.organization_id) if self.organization_id else None,
            'requested_organization_id': (
                str(self.requested_organization_id) if self.requested_organization_id else None
            ),
            'role': self.role,
            'permissions': sorted(str(p) for p in self.permissions),
            'overrides': {str(k): str(v) for k, v in self.overrides.items()},
        }


class TenantContextBuilder:
    """租户上下文构建器"""

    def __init__(
        self,
        resolver: Optional[OrganizationResolver] = None,
        directory: Optional[MembershipDirectory] = None,
        registry: Optional[RoleRegistry] = None,
        evaluator: Optional[PermissionEvaluator] = None
    ):
        self.resolver = resolver or OrganizationResolver()
        self.registry = registry or RoleRegistry()
        self.directory = directory or MembershipDirectory(self.registry)
        self.evaluator = evaluator or permission_evaluator

    def build(self, user, request) -> TenantContext:
        """
        为请求构建租户上下文

        Args:
            user: 已认证用户 (request.user)
            request: Django request对象

        Returns:
            TenantContext: 不可变的租户上下文

        Raises:
            Unauthenticated: 没有已认证的会话
        """
        if user is None or not getattr(user, 'is_authenticated', False):
            raise Unauthenticated("Authentication required")

        organization_id = self.resolver.resolve(request)
        return self.build_for(user.pk, organization_id)

    def build_for(self, user_id, organization_id) -> TenantContext:
        """
        为 (用户, 组织) 构建上下文 - 最多两次查询 (成员关系，然后是自定义角色)
        """
        if organization_id is None:
            return TenantContext.unbound(user_id, evaluator=self.evaluator)

        membership = self.directory.lookup(user_id, organization_id)
        if membership is None:
            logger.debug(f"No membership, context left unbound: user={user_id}, organization={organization_id}")
            return TenantContext.unbound(
                user_id, requested_organization_id=organization_id, evaluator=self.evaluator
            )

        base = self.registry.permissions_for(membership.organization_id, membership.role)
        overrides = membership.get_overrides()

        return TenantContext(
            user_id=user_id,
            organization_id=membership.organization_id,
            role=membership.role,
            base_permissions=base,
            overrides=MappingProxyType(dict(overrides)),
            permissions=self.evaluator.merge(base, overrides),
            requested_organization_id=organization_id,
            evaluator=self.evaluator,
        )

    async def abuild(self, user, request) -> TenantContext:
        """build 的异步版本"""
        return await sync_to_async(self.build)(user, request)


# 全局构建器实例
tenant_context_builder = TenantContextBuilder()


def build_tenant_context(user, request) -> TenantContext:
    """便捷函数：构建租户上下文"""
    return tenant_context_builder.build(user, request)


def get_tenant_context(request) -> Optional[TenantContext]:
    """便捷函数：获取中间件挂载的租户上下文"""
    return getattr(request, 'tenant_context', None)
