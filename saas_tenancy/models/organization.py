"""
组织相关模型
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.utils import timezone

from .base import BaseModel
from ..exceptions import OrganizationNotFoundError
from ..constants import (
    INVITATION_STATUS,
    ROLE_MEMBER,
    ROLE_OWNER,
    OverrideEffect,
    Permission,
)


logger = logging.getLogger(__name__)


class OrganizationManager(models.Manager):
    """组织管理器"""

    def get_by_id(self, organization_id, lock=False):
        """
        按ID获取组织

        Args:
            organization_id: 组织ID (UUID 或字符串)
            lock: 是否在当前事务中加行锁 (select_for_update)

        Raises:
            OrganizationNotFoundError: 组织不存在或ID格式无效
        """
        queryset = self.select_for_update() if lock else self.all()
        try:
            return queryset.get(id=organization_id)
        except (self.model.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise OrganizationNotFoundError(f"Organization not found: {organization_id}")


class Organization(BaseModel):
    """组织模型 - 租户边界"""

    name = models.CharField(
        max_length=255,
        help_text="组织名称"
    )
    slug = models.SlugField(
        max_length=255,
        unique=True,
        help_text="组织slug，用于URL"
    )
    logo = models.URLField(
        max_length=500,
        blank=True,
        null=True,
        help_text="组织logo"
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="扩展属性"
    )
    default_role = models.CharField(
        max_length=100,
        default=ROLE_MEMBER,
        help_text="新成员的默认角色 (内置角色或自定义角色)"
    )

    objects = OrganizationManager()

    class Meta:
        db_table = 'organizations'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.slug})"

    @property
    def member_count(self):
        """组织成员数量"""
        return self.memberships.count()


class Membership(BaseModel):
    """成员关系模型 - 用户与组织的唯一关联"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tenant_memberships',
        help_text="成员用户"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='memberships',
        help_text="所属组织"
    )
    role = models.CharField(
        max_length=100,
        default=ROLE_MEMBER,
        db_index=True,
        help_text="角色名称"
    )
    permissions = models.JSONField(
        default=dict,
        blank=True,
        help_text="细粒度权限覆盖 {'billing:manage': 'allow' | 'deny'}"
    )
    joined_at = models.DateTimeField(
        default=timezone.now,
        help_text="加入时间"
    )

    class Meta:
        db_table = 'memberships'
        ordering = ['-joined_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'organization'],
                name='memberships_user_org_uniq',
            ),
        ]
        indexes = [
            models.Index(fields=['organization', 'role'], name='memberships_organiz_6b1f0c_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.organization_id} ({self.role})"

    @property
    def is_owner(self):
        """是否是组织所有者"""
        return self.role == ROLE_OWNER

    def get_overrides(self):
        """
        解析权限覆盖

        无法识别的权限键被忽略；无法识别的覆盖值按 deny 处理 (fail-closed)

        Returns:
            Dict[Permission, OverrideEffect]
        """
        overrides = {}
        for key, value in (self.permissions or {}).items():
            permission = Permission.parse(key)
            if permission is None:
                logger.warning(f"Ignoring unknown permission override: membership={self.id}, key={key}")
                continue
            try:
                overrides[permission] = OverrideEffect(value)
            except ValueError:
                logger.warning(
                    f"Unrecognized override value treated as deny: membership={self.id}, key={key}, value={value!r}"
                )
                overrides[permission] = OverrideEffect.DENY
        return overrides


class Role(BaseModel):
    """组织自定义角色"""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='roles',
        help_text="所属组织"
    )
    name = models.CharField(
        max_length=100,
        help_text="角色名称"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="角色描述"
    )
    permissions = models.JSONField(
        default=list,
        help_text="权限键列表 ['org:view', 'members:view']"
    )

    class Meta:
        db_table = 'roles'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'name'],
                name='roles_org_name_uniq',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.organization_id})"

    def get_permissions(self):
        """获取有效的权限集合，忽略枚举之外的键"""
        valid = set()
        for key in self.permissions or []:
            permission = Permission.parse(key)
            if permission is None:
                logger.warning(f"Ignoring unknown permission in role: role={self.name}, key={key}")
                continue
            valid.add(permission)
        return frozenset(valid)


class Invitation(BaseModel):
    """组织邀请"""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='invitations',
        help_text="目标组织"
    )
    email = models.EmailField(
        max_length=255,
        db_index=True,
        help_text="被邀请人邮箱"
    )
    role = models.CharField(
        max_length=100,
        default=ROLE_MEMBER,
        help_text="接受邀请后获得的角色"
    )
    inviter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sent_tenant_invitations',
        help_text="邀请人"
    )
    token = models.CharField(
        max_length=128,
        unique=True,
        help_text="邀请令牌"
    )
    status = models.CharField(
        max_length=20,
        choices=[(v, k) for k, v in INVITATION_STATUS.items()],
        default=INVITATION_STATUS['PENDING'],
        help_text="pending | accepted | expired | revoked"
    )
    expires_at = models.DateTimeField(
        help_text="过期时间"
    )

    class Meta:
        db_table = 'invitations'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} -> {self.organization_id} ({self.status})"

    @property
    def is_expired(self):
        """邀请是否过期"""
        return timezone.now() > self.expires_at

    @property
    def is_pending(self):
        return self.status == INVITATION_STATUS['PENDING']
