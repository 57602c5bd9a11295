"""
权限评估服务 - 角色基础权限 + 成员级覆盖

评估过程不访问数据库，只使用已经解析好的 TenantContext
"""

import logging
from typing import Dict, FrozenSet, Iterable, Mapping, Union

from ..constants import OverrideEffect, Permission


logger = logging.getLogger(__name__)


PermissionLike = Union[Permission, str]


class PermissionEvaluator:
    """极简权限评估器"""

    def merge(
        self,
        base: Iterable[Permission],
        overrides: Mapping[Permission, OverrideEffect]
    ) -> FrozenSet[Permission]:
        """
        合并角色基础权限和成员级覆盖

        覆盖是最后一层：deny 移除权限 (即使角色授予)，allow 增加权限 (即使角色没有)

        Args:
            base: 角色基础权限
            overrides: 权限覆盖 {Permission: OverrideEffect}

        Returns:
            FrozenSet[Permission]: 最终权限集合
        """
        effective = set(base)
        for key, effect in (overrides or {}).items():
            permission = Permission.parse(key)
            if permission is None:
                continue
            if effect == OverrideEffect.ALLOW:
                effective.add(permission)
            else:
                effective.discard(permission)
        return frozenset(effective)

    def can(self, context, permission: PermissionLike) -> bool:
        """
        权限检查 - 无组织或无成员关系时一律拒绝

        Args:
            context: TenantContext
            permission: 权限键 ('billing:manage' 或 Permission.BILLING_MANAGE)

        Returns:
            bool: 是否有权限
        """
        if context is None or context.organization_id is None or context.role is None:
            return False

        key = Permission.parse(permission)
        if key is None:
            logger.debug(f"Unknown permission key checked: {permission!r}")
            return False

        return key in context.permissions

    def check_many(self, context, permissions: Iterable[PermissionLike]) -> Dict[str, bool]:
        """
        批量权限检查

        Returns:
            Dict[str, bool]: 权限检查结果
        """
        return {str(permission): self.can(context, permission) for permission in permissions}


# 评估器无状态，全局共享一个实例
permission_evaluator = PermissionEvaluator()
