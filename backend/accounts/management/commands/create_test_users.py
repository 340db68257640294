from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from accounts.models import CustomUser


class Command(BaseCommand):
    help = 'Create one test user per leasing role'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='lease_password', help='Password for every created user')

    def handle(self, *args, **options):
        created = 0
        for role, label in CustomUser.ROLE_CHOICES:
            username = f"{role}_user"
            if CustomUser.objects.filter(username=username).exists():
                self.stdout.write(self.style.WARNING(f"User {username} already exists"))
                continue

            CustomUser.objects.create(
                username=username,
                password=make_password(options['password']),
                role=role,
                is_staff=role == 'system_admin',
            )
            created += 1
            self.stdout.write(self.style.SUCCESS(f"Created {label} user: {username}"))

        self.stdout.write(self.style.SUCCESS(f"{created} test user(s) created."))
