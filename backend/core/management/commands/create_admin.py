"""
Django management command granting the admin role to an existing user.

The admin endpoints only accept callers that are already admins, so the
first admin of a deployment is created with this command.

Usage:
    python manage.py create_admin <user_id>
    python manage.py create_admin --email someone@example.com
"""
from django.core.management.base import BaseCommand, CommandError
from backend.core.models import User
from backend.parties.models import Admin


class Command(BaseCommand):
    help = 'Grant the admin role to an existing user'

    def add_arguments(self, parser):
        parser.add_argument(
            'user_id',
            nargs='?',
            help='Id of the user to promote',
        )
        parser.add_argument(
            '--email',
            help='Email of the user to promote (instead of the id)',
        )

    def handle(self, *args, **options):
        user_id = options.get('user_id')
        email = options.get('email')
        if not user_id and not email:
            raise CommandError('Provide a user id or --email.')

        if user_id:
            user = User.objects.filter(pk=user_id).first()
        else:
            user = User.objects.filter(email__iexact=email).first()
        if user is None:
            raise CommandError(f'User not found: {user_id or email}')

        admin, created = Admin.objects.get_or_create(user=user)
        if created:
            self.stdout.write(self.style.SUCCESS(f'✓ Granted admin role to {user.pk} ({user.email or user.name})'))
        else:
            self.stdout.write(f'  {user.pk} is already an admin')
