"""
成员目录服务 - (用户, 组织) -> 成员关系
"""

import logging
from typing import Dict, Mapping, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from ..conf import tenancy_settings
from ..constants import AUDIT_ACTIONS, ROLE_OWNER, OverrideEffect, Permission
from ..exceptions import (
    MembershipNotFoundError,
    OrphanedOwnerError,
    PermissionDenied,
    ValidationError,
)
from ..models import AuditLog, Membership, Organization
from .role_service import RoleRegistry


logger = logging.getLogger(__name__)


class MembershipDirectory:
    """成员目录"""

    def __init__(self, role_registry: Optional[RoleRegistry] = None):
        self.role_registry = role_registry or RoleRegistry()

    def lookup(self, user_id, organization_id) -> Optional[Membership]:
        """
        查找成员关系 - 一次查询

        Args:
            user_id: 用户ID
            organization_id: 组织ID

        Returns:
            Optional[Membership]: None 表示不是成员 (与任何角色都不同)
        """
        if user_id is None or organization_id is None:
            return None
        try:
            return Membership.objects.filter(
                user_id=user_id,
                organization_id=organization_id
            ).first()
        except (ValueError, DjangoValidationError):
            # ID格式无效，不可能存在对应的成员关系
            return None

    def get(self, user_id, organization_id) -> Membership:
        """获取成员关系，不存在时抛出 MembershipNotFoundError"""
        membership = self.lookup(user_id, organization_id)
        if membership is None:
            raise MembershipNotFoundError(
                f"Membership not found: user={user_id}, organization={organization_id}"
            )
        return membership

    def owner_count(self, organization_id) -> int:
        """组织 owner 数量"""
        return Membership.objects.filter(organization_id=organization_id, role=ROLE_OWNER).count()

    def upsert(
        self,
        user_id,
        organization_id,
        role: Optional[str] = None,
        overrides: Optional[Mapping[str, str]] = None,
        acting_user_id=None
    ) -> Membership:
        """
        创建或更新成员关系 - 一次操作完成

        Args:
            user_id: 用户ID
            organization_id: 组织ID
            role: 角色名称；None 表示新成员使用组织默认角色，已有成员保持不变
            overrides: 权限覆盖 {'billing:manage': 'allow' | 'deny'}；None 表示不修改
            acting_user_id: 操作人ID (审计日志)

        Returns:
            Membership: 成员关系

        Raises:
            ValidationError: 角色或覆盖无效
            OrphanedOwnerError: 会降级组织最后一个 owner
        """
        clean_overrides = self._validate_overrides(overrides) if overrides is not None else None

        with transaction.atomic():
            # 锁住组织行，串行化同一组织的成员变更
            organization = Organization.objects.get_by_id(organization_id, lock=True)

            membership = Membership.objects.filter(
                user_id=user_id,
                organization=organization
            ).first()
            created = membership is None

            if role is None:
                role = organization.default_role if created else membership.role

            if not self.role_registry.role_exists(organization.id, role):
                raise ValidationError(f"Invalid role: {role}")

            if created:
                self._check_member_limit(organization)
                try:
                    membership = Membership.objects.create(
                        user_id=user_id,
                        organization=organization,
                        role=role,
                        permissions=clean_overrides or {},
                    )
                except DjangoValidationError as e:
                    raise ValidationError(f"Invalid membership: {e}")
                previous_role = None
            else:
                previous_role = membership.role
                if previous_role == ROLE_OWNER and role != ROLE_OWNER:
                    self._ensure_other_owner(organization, membership)

                membership.role = role
                update_fields = ['role', 'updated_at']
                if clean_overrides is not None:
                    membership.permissions = clean_overrides
                    update_fields.append('permissions')
                membership.save(update_fields=update_fields)

            AuditLog.log_action(
                action=AUDIT_ACTIONS['MEMBER_ADDED' if created else 'MEMBER_UPDATED'],
                user_id=acting_user_id,
                organization_id=organization.id,
                resource_type='membership',
                resource_id=membership.id,
                metadata={
                    'member': str(user_id),
                    'role': role,
                    'previous_role': previous_role,
                    'overrides': membership.permissions,
                }
            )

        logger.info(
            f"Membership {'created' if created else 'updated'}: user={user_id}, "
            f"organization={organization.id}, role={role}"
        )
        return membership

    def remove(self, user_id, organization_id, acting_user_id=None) -> bool:
        """
        移除成员关系

        Returns:
            bool: 是否成功移除；成员关系不存在时返回 False

        Raises:
            OrphanedOwnerError: 移除组织最后一个 owner
        """
        with transaction.atomic():
            organization = Organization.objects.get_by_id(organization_id, lock=True)

            membership = Membership.objects.filter(
                user_id=user_id,
                organization=organization
            ).first()
            if membership is None:
                logger.warning(f"Membership not found to remove: user={user_id}, organization={organization_id}")
                return False

            if membership.is_owner:
                self._ensure_other_owner(organization, membership)

            AuditLog.log_action(
                action=AUDIT_ACTIONS['MEMBER_REMOVED'],
                user_id=acting_user_id,
                organization_id=organization.id,
                resource_type='membership',
                resource_id=membership.id,
                metadata={'member': str(user_id), 'role': membership.role}
            )
            membership.delete()

        logger.info(f"Membership removed: user={user_id}, organization={organization_id}")
        return True

    def change_role(self, context, user_id, role: str) -> Membership:
        """修改成员角色 - 需要 members:update 权限"""
        return self.update_member(context, user_id, role=role)

    def update_member(
        self,
        context,
        user_id,
        role: Optional[str] = None,
        overrides: Optional[Mapping[str, str]] = None
    ) -> Membership:
        """
        修改成员角色和/或权限覆盖 - 需要 members:update 权限，一次写入

        Args:
            context: 操作人的 TenantContext
            user_id: 目标用户ID
            role: 新角色名称，None 表示不修改
            overrides: 新的权限覆盖，None 表示不修改

        Raises:
            PermissionDenied: 没有权限，或要授予超出操作人自身的权限
        """
        if not context.can(Permission.MEMBERS_UPDATE):
            raise PermissionDenied(f"Permission denied for action: {Permission.MEMBERS_UPDATE}")

        target = self.get(user_id, context.organization_id)
        self.check_role_assignable(context, target.role)
        if role is not None:
            self.check_role_assignable(context, role)
        if overrides is not None:
            self.check_overrides_assignable(context, target.role, overrides)

        return self.upsert(
            user_id,
            context.organization_id,
            role=role,
            overrides=overrides,
            acting_user_id=context.user_id
        )

    def check_role_assignable(self, context, role: str) -> None:
        """
        检查操作人能否授予、收回或移除某个角色

        只有 owner 可以处理 owner 角色；owner 不受自身覆盖限制，
        其他操作人只能处理权限不超出自身有效权限的角色
        """
        if role == ROLE_OWNER and context.role != ROLE_OWNER:
            raise PermissionDenied("Only owners can grant or revoke the owner role")
        if context.role == ROLE_OWNER:
            return

        granted = self.role_registry.permissions_for(context.organization_id, role)
        missing = granted - context.permissions
        if missing:
            raise PermissionDenied(
                f"Role {role} grants permissions the acting user lacks: "
                f"{', '.join(sorted(str(p) for p in missing))}"
            )

    def check_overrides_assignable(self, context, target_role: str, overrides: Mapping[str, str]) -> None:
        """
        检查操作人能否写入权限覆盖

        目标角色必须是操作人可以处理的角色；allow 只能授予操作人自身拥有的权限
        """
        self.check_role_assignable(context, target_role)

        for key, value in self._validate_overrides(overrides).items():
            if value == OverrideEffect.ALLOW.value and context.role != ROLE_OWNER and not context.can(key):
                raise PermissionDenied(f"Cannot grant a permission the acting user lacks: {key}")

    def list_members(self, organization_id, page: int = 1, limit: int = 20) -> Dict:
        """
        获取组织成员列表

        Returns:
            Dict: 包含成员列表和分页信息
        """
        queryset = Membership.objects.filter(organization_id=organization_id)

        total = queryset.count()
        offset = (page - 1) * limit
        members = queryset.select_related('user').order_by('-joined_at')[offset:offset + limit]

        return {
            'members': list(members),
            'total': total,
            'page': page,
            'limit': limit,
            'pages': (total + limit - 1) // limit
        }

    def _ensure_other_owner(self, organization: Organization, membership: Membership):
        """确保除当前成员外还有其他 owner"""
        other_owners = Membership.objects.filter(
            organization=organization,
            role=ROLE_OWNER
        ).exclude(id=membership.id)

        if not other_owners.exists():
            logger.warning(
                f"Rejected change orphaning organization: organization={organization.id}, user={membership.user_id}"
            )
            raise OrphanedOwnerError(
                f"Organization {organization.slug} must retain at least one owner"
            )

    def _check_member_limit(self, organization: Organization):
        """检查组织成员数量限制"""
        max_members = tenancy_settings.MAX_MEMBERS_PER_ORGANIZATION
        if max_members is not None and organization.member_count >= max_members:
            raise ValidationError(f"Organization cannot have more than {max_members} members")

    def _validate_overrides(self, overrides: Mapping[str, str]) -> Dict[str, str]:
        """验证权限覆盖，只接受枚举内的权限键和 allow/deny"""
        if not isinstance(overrides, Mapping):
            raise ValidationError("Permission overrides must be a mapping")

        clean = {}
        for key, value in overrides.items():
            permission = Permission.parse(key)
            if permission is None:
                raise ValidationError(f"Invalid permission key: {key}")
            try:
                effect = OverrideEffect(value)
            except ValueError:
                raise ValidationError(f"Invalid override value for {key}: {value!r} (expected 'allow' or 'deny')")
            clean[permission.value] = effect.value
        return clean
