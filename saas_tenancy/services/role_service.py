"""
角色注册表 - 内置角色 + 组织自定义角色
"""

import logging
import re
from typing import Dict, FrozenSet, Iterable, List, Optional

from django.db import IntegrityError, transaction

from ..conf import tenancy_settings
from ..constants import (
    AUDIT_ACTIONS,
    BUILTIN_ROLE_PERMISSIONS,
    BUILTIN_ROLES,
    INVITATION_STATUS,
    ROLE_OWNER,
    Permission,
)
from ..exceptions import PermissionDenied, RoleInUseError, RoleNotFoundError, ValidationError
from ..models import AuditLog, Invitation, Membership, Organization, Role


logger = logging.getLogger(__name__)


ROLE_NAME_PATTERN = re.compile(r'^[a-z][a-z0-9_-]{1,99}$')


class RoleRegistry:
    """角色注册表"""

    def permissions_for(self, organization_id, role_name: Optional[str]) -> FrozenSet[Permission]:
        """
        获取角色的基础权限

        内置角色与组织无关；自定义角色从组织自己的角色定义读取。
        无法识别的角色返回空集合 (fail-closed)，不是错误

        Args:
            organization_id: 组织ID
            role_name: 角色名称

        Returns:
            FrozenSet[Permission]: 基础权限集合
        """
        if role_name in BUILTIN_ROLE_PERMISSIONS:
            return BUILTIN_ROLE_PERMISSIONS[role_name]

        if organization_id is None or not role_name:
            return frozenset()

        role = Role.objects.filter(organization_id=organization_id, name=role_name).first()
        if role is None:
            logger.warning(f"Unknown role resolves to no permissions: organization={organization_id}, role={role_name}")
            return frozenset()

        return role.get_permissions()

    def is_builtin(self, role_name: str) -> bool:
        return role_name in BUILTIN_ROLE_PERMISSIONS

    def role_exists(self, organization_id, role_name: str) -> bool:
        """角色是否存在 (内置或组织自定义)"""
        if self.is_builtin(role_name):
            return True
        return Role.objects.filter(organization_id=organization_id, name=role_name).exists()

    def list_roles(self, organization_id) -> List[Dict]:
        """
        获取组织可用的角色列表

        Returns:
            List[Dict]: 内置角色在前，自定义角色按名称排序
        """
        organization = Organization.objects.get_by_id(organization_id)

        roles = []
        for name in BUILTIN_ROLES:
            roles.append({
                'name': name,
                'description': '',
                'permissions': sorted(str(p) for p in BUILTIN_ROLE_PERMISSIONS[name]),
                'builtin': True,
                'is_default': organization.default_role == name,
            })

        for role in Role.objects.filter(organization=organization).order_by('name'):
            roles.append({
                'name': role.name,
                'description': role.description,
                'permissions': sorted(str(p) for p in role.get_permissions()),
                'builtin': False,
                'is_default': organization.default_role == role.name,
            })

        return roles

    def get_role(self, organization_id, role_name: str) -> Role:
        """获取自定义角色"""
        try:
            return Role.objects.get(organization_id=organization_id, name=role_name)
        except Role.DoesNotExist:
            raise RoleNotFoundError(f"Role not found: {role_name}")

    def create_role(
        self,
        organization_id,
        name: str,
        permissions: Iterable[str],
        description: str = '',
        created_by=None,
        context=None
    ) -> Role:
        """
        创建自定义角色

        Args:
            organization_id: 组织ID
            name: 角色名称 (不能与内置角色重名)
            permissions: 权限键列表
            description: 角色描述
            created_by: 操作人ID
            context: 操作人的 TenantContext；给出时角色权限不能超出操作人自身的权限

        Returns:
            Role: 创建的角色

        Raises:
            PermissionDenied: 角色包含操作人没有的权限
        """
        self._validate_role_name(name)
        keys = self._validate_permissions(permissions)
        if context is not None:
            self._check_grantable(context, keys)

        with transaction.atomic():
            organization = Organization.objects.get_by_id(organization_id, lock=True)

            max_roles = tenancy_settings.MAX_CUSTOM_ROLES_PER_ORGANIZATION
            if Role.objects.filter(organization=organization).count() >= max_roles:
                raise ValidationError(f"Organization cannot have more than {max_roles} custom roles")

            if Role.objects.filter(organization=organization, name=name).exists():
                raise ValidationError(f"Role already exists: {name}")

            try:
                with transaction.atomic():
                    role = Role.objects.create(
                        organization=organization,
                        name=name,
                        description=description or '',
                        permissions=keys,
                    )
            except IntegrityError:
                raise ValidationError(f"Role already exists: {name}")

            AuditLog.log_action(
                action=AUDIT_ACTIONS['ROLE_CREATED'],
                user_id=created_by,
                organization_id=organization.id,
                resource_type='role',
                resource_id=role.id,
                metadata={'name': name, 'permissions': keys}
            )

        logger.info(f"Role created: organization={organization.id}, role={name}, permissions={keys}")
        return role

    def update_role(
        self,
        organization_id,
        name: str,
        permissions: Optional[Iterable[str]] = None,
        description: Optional[str] = None,
        updated_by=None,
        context=None
    ) -> Role:
        """
        更新自定义角色的权限或描述，内置角色不可修改

        给出 context 时，操作人只能修改权限不超出自身的角色，新权限也不能超出自身
        """
        if self.is_builtin(name):
            raise ValidationError(f"Built-in role cannot be modified: {name}")

        keys = self._validate_permissions(permissions) if permissions is not None else None

        with transaction.atomic():
            role = self.get_role(organization_id, name)
            previous = list(role.permissions or [])

            if context is not None:
                self._check_grantable(context, previous)
                if keys is not None:
                    self._check_grantable(context, keys)

            update_fields = ['updated_at']
            if keys is not None:
                role.permissions = keys
                update_fields.append('permissions')
            if description is not None:
                role.description = description
                update_fields.append('description')
            role.save(update_fields=update_fields)

            AuditLog.log_action(
                action=AUDIT_ACTIONS['ROLE_UPDATED'],
                user_id=updated_by,
                organization_id=role.organization_id,
                resource_type='role',
                resource_id=role.id,
                metadata={'name': name, 'previous_permissions': previous, 'permissions': role.permissions}
            )

        logger.info(f"Role updated: organization={role.organization_id}, role={name}")
        return role

    def delete_role(self, organization_id, name: str, deleted_by=None) -> None:
        """
        删除自定义角色

        仍被成员、待处理邀请使用，或是组织默认角色时，删除失败且不做任何修改

        Raises:
            RoleInUseError: 角色正在使用
            RoleNotFoundError: 角色不存在
        """
        if self.is_builtin(name):
            raise ValidationError(f"Built-in role cannot be deleted: {name}")

        with transaction.atomic():
            organization = Organization.objects.get_by_id(organization_id, lock=True)
            role = self.get_role(organization.id, name)

            member_count = Membership.objects.filter(organization=organization, role=name).count()
            if member_count:
                raise RoleInUseError(f"Role {name} is assigned to {member_count} membership(s)")

            if organization.default_role == name:
                raise RoleInUseError(f"Role {name} is the organization's default role")

            if Invitation.objects.filter(
                organization=organization,
                role=name,
                status=INVITATION_STATUS['PENDING']
            ).exists():
                raise RoleInUseError(f"Role {name} is referenced by pending invitations")

            role_id = role.id
            role.delete()

            AuditLog.log_action(
                action=AUDIT_ACTIONS['ROLE_DELETED'],
                user_id=deleted_by,
                organization_id=organization.id,
                resource_type='role',
                resource_id=role_id,
                metadata={'name': name}
            )

        logger.info(f"Role deleted: organization={organization.id}, role={name}")

    def get_default_role(self, organization_id) -> str:
        """获取组织新成员的默认角色"""
        return Organization.objects.get_by_id(organization_id).default_role

    def set_default_role(self, organization_id, name: str, changed_by=None) -> Organization:
        """设置组织默认角色，角色必须存在"""
        with transaction.atomic():
            organization = Organization.objects.get_by_id(organization_id, lock=True)
            if not self.role_exists(organization.id, name):
                raise RoleNotFoundError(f"Role not found: {name}")

            previous = organization.default_role
            organization.default_role = name
            organization.save(update_fields=['default_role', 'updated_at'])

            AuditLog.log_action(
                action=AUDIT_ACTIONS['DEFAULT_ROLE_CHANGED'],
                user_id=changed_by,
                organization_id=organization.id,
                resource_type='organization',
                resource_id=organization.id,
                metadata={'previous': previous, 'default_role': name}
            )

        logger.info(f"Default role changed: organization={organization.id}, from={previous}, to={name}")
        return organization

    def _validate_role_name(self, name: str):
        """验证角色名称"""
        if not name or not ROLE_NAME_PATTERN.match(name):
            raise ValidationError(
                "Role name must start with a lowercase letter and contain only "
                "lowercase letters, numbers, hyphens and underscores (2-100 characters)"
            )

        if self.is_builtin(name):
            raise ValidationError(f"Role name is reserved: {name}")

    def _check_grantable(self, context, keys: Iterable[str]):
        """角色权限必须是操作人有效权限的子集，owner 不受自身覆盖限制"""
        if context.role == ROLE_OWNER:
            return
        missing = sorted(key for key in keys if not context.can(key))
        if missing:
            logger.warning(
                f"Rejected role permissions beyond acting user: organization={context.organization_id}, "
                f"user={context.user_id}, missing={missing}"
            )
            raise PermissionDenied(f"Cannot grant permissions the acting user lacks: {', '.join(missing)}")

    def _validate_permissions(self, permissions: Iterable[str]) -> List[str]:
        """验证权限键有效性，返回去重排序后的列表"""
        if isinstance(permissions, str):
            permissions = [permissions]

        keys = set()
        for key in permissions:
            permission = Permission.parse(key)
            if permission is None:
                raise ValidationError(f"Invalid permission key: {key}")
            keys.add(permission.value)
        return sorted(keys)
