"""
审计日志模型
"""

from django.conf import settings
from django.db import models

from .base import BaseModel


class AuditLog(BaseModel):
    """审计日志模型"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tenant_audit_logs',
        help_text="操作用户"
    )
    organization = models.ForeignKey(
        'Organization',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="所属组织"
    )
    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="操作类型"
    )
    resource_type = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="资源类型"
    )
    resource_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="资源ID"
    )
    metadata = models.JSONField(
        default=dict,
        help_text="附加元数据"
    )

    class Meta:
        db_table = 'audit_log'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'action'], name='audit_log_organiz_2c7d4e_idx'),
            models.Index(fields=['resource_type', 'resource_id'], name='audit_log_resourc_9a3e51_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.action} - {self.created_at}"

    @classmethod
    def log_action(
        cls,
        action,
        user_id=None,
        organization_id=None,
        resource_type=None,
        resource_id=None,
        metadata=None
    ):
        """记录操作日志，ENABLE_AUDIT_LOG 关闭时不写入"""
        from ..conf import is_feature_enabled

        if not is_feature_enabled('audit_log'):
            return None

        return cls.objects.create(
            user_id=user_id,
            organization_id=organization_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            metadata=metadata or {},
        )

    @classmethod
    def get_organization_logs(cls, organization_id, limit=50, action=None):
        """获取组织操作日志"""
        queryset = cls.objects.filter(organization_id=organization_id)

        if action:
            queryset = queryset.filter(action=action)

        return queryset.order_by('-created_at')[:limit]
