"""
Initialize System Command.

Creates default roles, admin user, and system settings.
"""

from django.core.management.base import BaseCommand
from django.db import transaction


class Command(BaseCommand):
    help = 'Initialize system with default data (roles, admin user, settings)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--admin-password',
            type=str,
            default=None,
            help='Password for admin user (defaults to DEFAULT_USER_PASSWORD)'
        )
        parser.add_argument(
            '--skip-roles',
            action='store_true',
            help='Skip creating default roles'
        )
        parser.add_argument(
            '--skip-admin',
            action='store_true',
            help='Skip creating admin user'
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            if not options['skip_roles']:
                self._create_default_roles()

            if not options['skip_admin']:
                self._create_admin_user(options['admin_password'])

            self._create_system_settings()

        self.stdout.write(
            self.style.SUCCESS('System initialization completed!')
        )

    def _create_default_roles(self):
        """Create the built-in roles."""
        from application.services.user_service import sync_roles

        created = sync_roles()
        self.stdout.write(f'Created {created} role(s)')

    def _create_admin_user(self, password):
        """Create admin user if not exists."""
        from django.conf import settings
        from django.contrib.auth import get_user_model
        from application.services.user_service import EMAIL_DOMAIN, permissions_for_role

        User = get_user_model()
        password = password or settings.DEFAULT_USER_PASSWORD

        admin_user, created = User.objects.get_or_create(
            username='admin',
            defaults={
                'email': f'admin@{EMAIL_DOMAIN}',
                'first_name': 'System',
                'last_name': 'Admin',
                'role': 'admin',
                'permissions': permissions_for_role('admin'),
                'is_staff': True,
                'is_superuser': True,
            }
        )

        if created:
            admin_user.set_password(password)
            admin_user.save()

            self.stdout.write(
                self.style.SUCCESS('Created admin user')
            )
        else:
            self.stdout.write('Admin user already exists')

    def _create_system_settings(self):
        """Create default system settings."""
        from application.services.business_settings import default_settings
        from infrastructure.persistence.models import SystemSetting

        for key, value, description in default_settings():
            setting, created = SystemSetting.objects.get_or_create(
                key=key,
                defaults={'value': value, 'description': description}
            )
            if created:
                self.stdout.write(f'Created setting: {setting.key}')
