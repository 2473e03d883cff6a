"""
Seed Users Command.

Creates the company's default accounts, one per person, with the
default password.
"""

from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Create the default company users'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            type=str,
            default=None,
            help='Password for new users (defaults to DEFAULT_USER_PASSWORD)'
        )
        parser.add_argument(
            '--reset-passwords',
            action='store_true',
            help='Reset password and role of users that already exist'
        )

    def handle(self, *args, **options):
        from application.services.user_service import seed_users, sync_roles

        sync_roles()
        report = seed_users(
            password=options['password'],
            reset_passwords=options['reset_passwords'],
        )

        for email in report.created:
            self.stdout.write(self.style.SUCCESS(f'Created: {email}'))
        for email in report.updated:
            self.stdout.write(self.style.WARNING(f'Reset: {email}'))
        for email in report.skipped:
            self.stdout.write(f'Skipped (exists): {email}')

        self.stdout.write(
            self.style.SUCCESS(
                f'Done: {len(report.created)} created, '
                f'{len(report.updated)} updated, {len(report.skipped)} skipped'
            )
        )
