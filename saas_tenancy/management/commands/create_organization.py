"""
创建组织，指定用户成为 owner
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from ...exceptions import TenancyError
from ...services import OrganizationService


class Command(BaseCommand):
    help = 'Create an organization owned by an existing user'

    def add_arguments(self, parser):
        parser.add_argument(
            '--owner-email',
            required=True,
            help='Email of the user who becomes the owner'
        )
        parser.add_argument(
            '--name',
            required=True,
            help='Organization name'
        )
        parser.add_argument(
            '--slug',
            required=True,
            help='Organization slug (lowercase letters, numbers and hyphens)'
        )

    def handle(self, *args, **options):
        """执行创建"""
        User = get_user_model()
        owner = User.objects.filter(email__iexact=options['owner_email']).first()
        if owner is None:
            raise CommandError(f"User not found: {options['owner_email']}")

        try:
            organization = OrganizationService().create_organization(
                owner,
                name=options['name'],
                slug=options['slug']
            )
        except TenancyError as e:
            raise CommandError(f"Failed to create organization: {e.message}")

        self.stdout.write(self.style.SUCCESS('✅ Organization created successfully!'))
        self.stdout.write(f"   ID: {organization.id}")
        self.stdout.write(f"   Slug: {organization.slug}")
        self.stdout.write(f"   Owner: {owner.email}")
