import getpass

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

User = get_user_model()


class Command(BaseCommand):
    help = 'Create a verified super_admin account (prompts for anything not passed as a flag)'

    def add_arguments(self, parser):
        parser.add_argument('--email', help='E-mail address of the new admin')
        parser.add_argument('--password', help='Password (prompted when omitted)')
        parser.add_argument('--name', default='', help='Display name')
        parser.add_argument('--promote', action='store_true',
                            help='Promote the account to super_admin if the e-mail already exists')

    def handle(self, *args, **options):
        email = (options['email'] or input('Email: ')).strip().lower()
        if not email:
            raise CommandError('An e-mail address is required')

        existing = User.objects.filter(email=email).first()
        if existing:
            if not options['promote']:
                raise CommandError(f'{email} already exists. Use --promote to make it a super admin.')
            existing.role = 'super_admin'
            existing.status = 'active'
            existing.email_verified = True
            existing.is_staff = True
            existing.is_superuser = True
            existing.is_active = True
            existing.save()
            self.stdout.write(self.style.SUCCESS(f'✓ Promoted {email} to super_admin'))
            return

        password = options['password']
        if not password:
            password = getpass.getpass('Password: ')
            if password != getpass.getpass('Password (again): '):
                raise CommandError('Passwords do not match')
        try:
            validate_password(password)
        except ValidationError as e:
            raise CommandError(' '.join(e.messages))

        User.objects.create_superuser(email=email, password=password, name=options['name'], status='active')
        self.stdout.write(self.style.SUCCESS(f'✓ Created super_admin {email}'))
