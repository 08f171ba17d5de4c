"""
Management command to ensure the first administrator exists (for Docker startup).

Reads ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME and ADMIN_NATIONAL_ID from the
environment. Idempotent: an existing account is promoted to admin, never
overwritten.
"""
import os

from django.core.management.base import BaseCommand, CommandError

from apps.authz.models import RoleChoices, User


class Command(BaseCommand):
    help = 'Create the administrator account if it does not exist'

    def add_arguments(self, parser):
        parser.add_argument('--email', default=os.environ.get('ADMIN_EMAIL', 'admin@sindangrasa.desa.id'))
        parser.add_argument('--name', default=os.environ.get('ADMIN_NAME', 'Administrator'))
        parser.add_argument('--national-id', default=os.environ.get('ADMIN_NATIONAL_ID', '3207000000000001'))

    def handle(self, *args, **options):
        email = User.objects.normalize_email(options['email'])
        password = os.environ.get('ADMIN_PASSWORD')

        user = User.objects.filter(email=email).first()
        if user is not None:
            if user.role != RoleChoices.ADMIN or not user.is_staff:
                user.role = RoleChoices.ADMIN
                user.is_staff = True
                user.save(update_fields=['role', 'is_staff', 'updated_at'])
                self.stdout.write(self.style.SUCCESS(f'Promoted "{email}" to admin'))
            else:
                self.stdout.write(self.style.WARNING(f'Admin "{email}" already exists'))
            return

        if not password:
            raise CommandError('ADMIN_PASSWORD must be set to create the administrator')

        User.objects.create_superuser(
            email=email,
            password=password,
            name=options['name'],
            national_id=options['national_id'],
        )
        self.stdout.write(self.style.SUCCESS(f'Admin "{email}" created successfully'))
