"""
邀请服务 - 创建和接受组织邀请 (不发送邮件)
"""

import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from ..conf import tenancy_settings
from ..constants import AUDIT_ACTIONS, INVITATION_STATUS, Permission
from ..exceptions import (
    InvitationExpiredError,
    InvitationInvalidError,
    PermissionDenied,
    ValidationError,
)
from ..models import AuditLog, Invitation, Membership, Organization
from .membership_service import MembershipDirectory


logger = logging.getLogger(__name__)


class InvitationService:
    """邀请服务"""

    def __init__(self, directory: Optional[MembershipDirectory] = None):
        self.directory = directory or MembershipDirectory()
        self.invite_token_lifetime = tenancy_settings.INVITE_TOKEN_LIFETIME

    def create_invitation(self, context, email: str, role: Optional[str] = None) -> Invitation:
        """
        邀请用户加入当前组织 - 需要 members:invite 权限

        Args:
            context: 邀请人的 TenantContext
            email: 被邀请人邮箱
            role: 角色名称，None 表示组织默认角色

        Returns:
            Invitation: 邀请对象
        """
        if not context.can(Permission.MEMBERS_INVITE):
            raise PermissionDenied(f"Permission denied for action: {Permission.MEMBERS_INVITE}")

        if not email or '@' not in email:
            raise ValidationError(f"Invalid email: {email}")
        email = email.strip().lower()

        organization = Organization.objects.get_by_id(context.organization_id)
        role = role or organization.default_role

        if not self.directory.role_registry.role_exists(organization.id, role):
            raise ValidationError(f"Invalid role: {role}")
        self.directory.check_role_assignable(context, role)

        if Membership.objects.filter(organization=organization, user__email__iexact=email).exists():
            raise ValidationError(f"User {email} is already a member")

        with transaction.atomic():
            invitation = Invitation.objects.create(
                organization=organization,
                email=email,
                role=role,
                inviter_id=context.user_id,
                token=secrets.token_urlsafe(32),
                expires_at=timezone.now() + timedelta(seconds=self.invite_token_lifetime),
            )

            AuditLog.log_action(
                action=AUDIT_ACTIONS['INVITATION_CREATED'],
                user_id=context.user_id,
                organization_id=organization.id,
                resource_type='invitation',
                resource_id=invitation.id,
                metadata={'email': email, 'role': role}
            )

        logger.info(f"Invitation created: organization={organization.id}, email={email}, role={role}")
        return invitation

    def accept_invitation(self, user, token: str) -> Membership:
        """
        接受邀请，创建成员关系

        Args:
            user: 接受邀请的用户 (邮箱必须与邀请一致)
            token: 邀请令牌

        Returns:
            Membership: 新的成员关系
        """
        invitation = Invitation.objects.filter(token=token).select_related('organization').first()
        if invitation is None or not invitation.is_pending:
            raise InvitationInvalidError("Invitation token is invalid")

        if invitation.is_expired:
            invitation.status = INVITATION_STATUS['EXPIRED']
            invitation.save(update_fields=['status', 'updated_at'])
            raise InvitationExpiredError("Invitation token has expired")

        if (getattr(user, 'email', '') or '').lower() != invitation.email.lower():
            logger.warning(f"Invitation email mismatch: invitation={invitation.id}, user={user.pk}")
            raise InvitationInvalidError("Invitation was issued for a different email address")

        with transaction.atomic():
            # 锁住邀请行，同一令牌只能被接受一次
            invitation = Invitation.objects.select_for_update().get(id=invitation.id)
            if not invitation.is_pending:
                raise InvitationInvalidError("Invitation token is invalid")

            if self.directory.lookup(user.pk, invitation.organization_id) is not None:
                raise ValidationError("User is already a member of this organization")

            membership = self.directory.upsert(
                user.pk,
                invitation.organization_id,
                role=invitation.role,
                acting_user_id=user.pk
            )

            invitation.status = INVITATION_STATUS['ACCEPTED']
            invitation.save(update_fields=['status', 'updated_at'])

            AuditLog.log_action(
                action=AUDIT_ACTIONS['INVITATION_ACCEPTED'],
                user_id=user.pk,
                organization_id=invitation.organization_id,
                resource_type='invitation',
                resource_id=invitation.id,
                metadata={'email': invitation.email, 'role': invitation.role}
            )

        logger.info(f"Invitation accepted: organization={invitation.organization_id}, user={user.pk}")
        return membership

    def revoke_invitation(self, context, invitation_id) -> Invitation:
        """撤销待处理的邀请 - 需要 members:invite 权限"""
        if not context.can(Permission.MEMBERS_INVITE):
            raise PermissionDenied(f"Permission denied for action: {Permission.MEMBERS_INVITE}")

        invitation = Invitation.objects.filter(
            id=invitation_id,
            organization_id=context.organization_id
        ).first()
        if invitation is None or not invitation.is_pending:
            raise InvitationInvalidError(f"Pending invitation not found: {invitation_id}")

        invitation.status = INVITATION_STATUS['REVOKED']
        invitation.save(update_fields=['status', 'updated_at'])

        AuditLog.log_action(
            action=AUDIT_ACTIONS['INVITATION_REVOKED'],
            user_id=context.user_id,
            organization_id=context.organization_id,
            resource_type='invitation',
            resource_id=invitation.id,
            metadata={'email': invitation.email}
        )

        logger.info(f"Invitation revoked: {invitation.id}")
        return invitation

    def list_pending(self, organization_id) -> List[Invitation]:
        """获取组织待处理的邀请"""
        return list(Invitation.objects.filter(
            organization_id=organization_id,
            status=INVITATION_STATUS['PENDING']
        ).order_by('-created_at'))
