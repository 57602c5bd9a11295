"""
组织管理服务
"""

import logging
import re
from typing import Dict, Optional

from django.db import IntegrityError, transaction

from ..conf import tenancy_settings
from ..constants import AUDIT_ACTIONS, ROLE_OWNER
from ..exceptions import ValidationError
from ..models import AuditLog, Membership, Organization


logger = logging.getLogger(__name__)


SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')


class OrganizationService:
    """组织管理服务"""

    def create_organization(
        self,
        creator,
        name: str,
        slug: str,
        logo: Optional[str] = None,
        metadata: Optional[Dict] = None
    ) -> Organization:
        """
        创建组织，创建者成为 owner

        Args:
            creator: 创建者用户
            name: 组织名称
            slug: 组织slug
            logo: logo URL
            metadata: 扩展属性

        Returns:
            Organization: 创建的组织
        """
        self._validate_organization_params(name, slug)

        with transaction.atomic():
            try:
                with transaction.atomic():
                    organization = Organization.objects.create(
                        name=name.strip(),
                        slug=slug,
                        logo=logo,
                        metadata=metadata or {},
                        default_role=tenancy_settings.DEFAULT_MEMBER_ROLE,
                    )
            except IntegrityError:
                # 并发创建同一 slug
                raise ValidationError("Organization slug already exists")

            Membership.objects.create(
                user=creator,
                organization=organization,
                role=ROLE_OWNER,
            )

            AuditLog.log_action(
                action=AUDIT_ACTIONS['ORGANIZATION_CREATED'],
                user_id=creator.pk,
                organization_id=organization.id,
                resource_type='organization',
                resource_id=organization.id,
                metadata={'name': organization.name, 'slug': slug}
            )

        logger.info(f"Organization created: {organization.id} ({slug}) by user={creator.pk}")
        return organization

    def get_user_organizations(self, user, page: int = 1, limit: int = 20) -> Dict:
        """
        获取用户所属的组织列表

        Returns:
            Dict: 包含组织列表和分页信息
        """
        queryset = Membership.objects.filter(user=user).select_related('organization')

        total = queryset.count()
        offset = (page - 1) * limit
        memberships = queryset.order_by('-joined_at')[offset:offset + limit]

        organizations = [
            {
                'organization': membership.organization,
                'role': membership.role,
                'joined_at': membership.joined_at,
                'is_owner': membership.is_owner,
            }
            for membership in memberships
        ]

        return {
            'organizations': organizations,
            'total': total,
            'page': page,
            'limit': limit,
            'pages': (total + limit - 1) // limit
        }

    def _validate_organization_params(self, name: str, slug: str):
        """验证组织参数"""
        if not name or len(name.strip()) < 2:
            raise ValidationError("Organization name must be at least 2 characters")

        if not slug or len(slug.strip()) < 2:
            raise ValidationError("Organization slug must be at least 2 characters")

        if not SLUG_PATTERN.match(slug):
            raise ValidationError("Organization slug can only contain lowercase letters, numbers and hyphens")

        if Organization.objects.filter(slug=slug).exists():
            raise ValidationError("Organization slug already exists")
