"""
检查用户在组织中的权限
"""

from django.core.management.base import BaseCommand, CommandError

from ...constants import Permission
from ...context import tenant_context_builder
from ...exceptions import OrganizationNotFoundError
from ...models import Organization


class Command(BaseCommand):
    help = 'Check the effective permissions of a user in an organization'

    def add_arguments(self, parser):
        parser.add_argument('--user-id', required=True, help='用户ID')
        parser.add_argument('--organization-id', required=True, help='组织ID')
        parser.add_argument(
            '--permission',
            action='append',
            help='权限键，可以重复；不指定时列出全部权限'
        )

    def handle(self, *args, **options):
        """执行检查"""
        permissions = options.get('permission') or [p.value for p in Permission]
        invalid = [p for p in permissions if Permission.parse(p) is None]
        if invalid:
            raise CommandError(f"Invalid permission keys: {', '.join(invalid)}")

        try:
            organization = Organization.objects.get_by_id(options['organization_id'])
        except OrganizationNotFoundError as e:
            raise CommandError(e.message)

        context = tenant_context_builder.build_for(options['user_id'], organization.id)
        if context.is_member:
            self.stdout.write(f"👤 Role: {context.role}")
        else:
            self.stdout.write(self.style.WARNING(
                f"⚠️ User {options['user_id']} is not a member of {organization.slug}; every permission is denied"
            ))

        for permission, allowed in context.check_many(permissions).items():
            marker = '✅' if allowed else '❌'
            self.stdout.write(f"  {marker} {permission}")
