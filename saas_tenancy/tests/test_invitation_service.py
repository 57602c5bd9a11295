"""
测试邀请服务
"""

from datetime import timedelta
from unittest import mock

from django.utils import timezone

from ..constants import ROLE_ADMIN, ROLE_GUEST, ROLE_MEMBER, ROLE_OWNER
from ..context import tenant_context_builder
from ..exceptions import (
    InvitationExpiredError,
    InvitationInvalidError,
    PermissionDenied,
    ValidationError,
)
from ..models import AuditLog, Invitation, Membership
from ..services import InvitationService
from .base import TenancyTestCase, create_user


class InvitationServiceTest(TenancyTestCase):
    """测试邀请流程"""

    def setUp(self):
        super().setUp()
        self.service = InvitationService(self.directory)
        self.admin = create_user("admin@example.com")
        self.directory.upsert(self.admin.pk, self.organization.id, role=ROLE_ADMIN)

    def context_for(self, user):
        return tenant_context_builder.build_for(user.pk, self.organization.id)

    def test_create_invitation(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), "New@Example.com")

        self.assertEqual(invitation.email, "new@example.com")
        self.assertEqual(invitation.role, ROLE_MEMBER)
        self.assertTrue(invitation.is_pending)
        self.assertGreater(invitation.expires_at, timezone.now())
        self.assertTrue(AuditLog.objects.filter(action='invitation_created').exists())

    def test_create_invitation_with_role(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), "new@example.com", role=ROLE_GUEST)
        self.assertEqual(invitation.role, ROLE_GUEST)

    def test_member_cannot_invite(self):
        """没有 members:invite 权限"""
        with self.assertRaises(PermissionDenied):
            self.service.create_invitation(self.context_for(self.user), "new@example.com")

    def test_non_member_cannot_invite(self):
        with self.assertRaises(PermissionDenied):
            self.service.create_invitation(self.context_for(self.outsider), "new@example.com")

    def test_admin_cannot_invite_owner(self):
        with self.assertRaises(PermissionDenied):
            self.service.create_invitation(self.context_for(self.admin), "new@example.com", role=ROLE_OWNER)

    def test_owner_can_invite_owner(self):
        invitation = self.service.create_invitation(self.context_for(self.owner), "new@example.com", role=ROLE_OWNER)
        self.assertEqual(invitation.role, ROLE_OWNER)

    def test_invalid_role(self):
        with self.assertRaises(ValidationError):
            self.service.create_invitation(self.context_for(self.admin), "new@example.com", role='ghost')

    def test_invalid_email(self):
        with self.assertRaises(ValidationError):
            self.service.create_invitation(self.context_for(self.admin), "not-an-email")

    def test_existing_member(self):
        with self.assertRaises(ValidationError):
            self.service.create_invitation(self.context_for(self.admin), self.user.email)

    def test_accept_invitation(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email, role=ROLE_GUEST)
        membership = self.service.accept_invitation(self.outsider, invitation.token)

        self.assertEqual(membership.role, ROLE_GUEST)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'accepted')

    def test_accept_twice(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email)
        self.service.accept_invitation(self.outsider, invitation.token)

        with self.assertRaises(InvitationInvalidError):
            self.service.accept_invitation(self.outsider, invitation.token)

    def test_accept_concurrently_accepted(self):
        """锁住邀请后重新检查状态：另一个请求已接受时不再创建成员关系"""
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email)

        def accepted_elsewhere():
            Invitation.objects.filter(id=invitation.id).update(status='accepted')
            return False

        with mock.patch.object(
            Invitation, 'is_expired', new_callable=mock.PropertyMock, side_effect=accepted_elsewhere
        ):
            with self.assertRaises(InvitationInvalidError):
                self.service.accept_invitation(self.outsider, invitation.token)

        self.assertFalse(Membership.objects.filter(user=self.outsider, organization=self.organization).exists())
        self.assertFalse(AuditLog.objects.filter(action='invitation_accepted').exists())

    def test_admin_cannot_invite_with_broader_role(self):
        """邀请的角色同样不能超出邀请人自身的权限"""
        self.registry.create_role(self.organization.id, 'superadmin', ['billing:manage'])

        with self.assertRaises(PermissionDenied):
            self.service.create_invitation(self.context_for(self.admin), self.outsider.email, role='superadmin')
        self.assertFalse(Invitation.objects.exists())

    def test_accept_expired(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email)
        Invitation.objects.filter(id=invitation.id).update(expires_at=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(InvitationExpiredError):
            self.service.accept_invitation(self.outsider, invitation.token)

        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'expired')
        self.assertIsNone(self.directory.lookup(self.outsider.pk, self.organization.id))

    def test_accept_with_other_email(self):
        """邀请只能由对应邮箱的用户接受"""
        invitation = self.service.create_invitation(self.context_for(self.admin), "someone@example.com")

        with self.assertRaises(InvitationInvalidError):
            self.service.accept_invitation(self.outsider, invitation.token)

    def test_accept_unknown_token(self):
        with self.assertRaises(InvitationInvalidError):
            self.service.accept_invitation(self.outsider, "missing")

    def test_revoke(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email)
        self.service.revoke_invitation(self.context_for(self.admin), invitation.id)

        with self.assertRaises(InvitationInvalidError):
            self.service.accept_invitation(self.outsider, invitation.token)
        self.assertEqual(self.service.list_pending(self.organization.id), [])

    def test_revoke_requires_permission(self):
        invitation = self.service.create_invitation(self.context_for(self.admin), self.outsider.email)
        with self.assertRaises(PermissionDenied):
            self.service.revoke_invitation(self.context_for(self.user), invitation.id)

    def test_list_pending(self):
        self.service.create_invitation(self.context_for(self.admin), "a@example.com")
        self.service.create_invitation(self.context_for(self.admin), "b@example.com")

        pending = self.service.list_pending(self.organization.id)
        self.assertEqual({i.email for i in pending}, {"a@example.com", "b@example.com"})
