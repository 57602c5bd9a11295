"""
测试管理命令
"""

from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError

from ..models import Membership, Organization
from .base import TenancyTestCase


class CreateOrganizationCommandTest(TenancyTestCase):
    """测试 create_organization"""

    def test_create(self):
        out = StringIO()
        call_command(
            'create_organization',
            owner_email="outsider@example.com",
            name="Beta Inc",
            slug="beta-inc",
            stdout=out
        )

        organization = Organization.objects.get(slug="beta-inc")
        self.assertTrue(Membership.objects.filter(user=self.outsider, organization=organization, role='owner').exists())
        self.assertIn("beta-inc", out.getvalue())

    def test_unknown_owner(self):
        with self.assertRaises(CommandError):
            call_command('create_organization', owner_email="nobody@example.com", name="Beta", slug="beta")

    def test_duplicate_slug(self):
        with self.assertRaises(CommandError):
            call_command('create_organization', owner_email="outsider@example.com", name="Acme", slug="acme-corp")


class CheckPermissionCommandTest(TenancyTestCase):
    """测试 check_permission"""

    def run_command(self, user, *permissions):
        out = StringIO()
        args = ['--user-id', str(user.pk), '--organization-id', str(self.organization.id)]
        for permission in permissions:
            args.extend(['--permission', permission])
        call_command('check_permission', *args, stdout=out)
        return out.getvalue()

    def test_member_permissions(self):
        output = self.run_command(self.user, 'org:view', 'org:manage')

        self.assertIn("Role: member", output)
        self.assertIn("✅ org:view", output)
        self.assertIn("❌ org:manage", output)

    def test_all_permissions_listed_by_default(self):
        output = self.run_command(self.owner)
        self.assertIn("✅ billing:manage", output)
        self.assertIn("✅ settings:manage", output)

    def test_non_member(self):
        output = self.run_command(self.outsider, 'org:view')
        self.assertIn("not a member", output)
        self.assertIn("❌ org:view", output)

    def test_invalid_permission(self):
        with self.assertRaises(CommandError):
            self.run_command(self.user, 'projects:delete')

    def test_unknown_organization(self):
        with self.assertRaises(CommandError):
            call_command(
                'check_permission',
                '--user-id', str(self.user.pk),
                '--organization-id', "00000000-0000-0000-0000-000000000000",
                stdout=StringIO()
            )
