from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from modules.core.identity import Roles


class Command(BaseCommand):
    help = "Create the User/Admin/SuperAdmin role groups and, optionally, a SuperAdmin account."

    def add_arguments(self, parser):
        parser.add_argument("--email", help="Email of the SuperAdmin account to create.")
        parser.add_argument("--password", help="Password for the SuperAdmin account.")

    @transaction.atomic
    def handle(self, *args, **options):
        email = options.get("email")
        password = options.get("password")
        if bool(email) != bool(password):
            raise CommandError("--email and --password must be given together.")

        created_groups = 0
        for name in (Roles.USER, Roles.ADMIN, Roles.SUPER_ADMIN):
            _, created = Group.objects.get_or_create(name=name)
            created_groups += int(created)

        self.stdout.write(f"Role groups created: {created_groups}")

        if email:
            self._ensure_super_admin(email, password)

    def _ensure_super_admin(self, email: str, password: str) -> None:
        User = get_user_model()
        user = User.objects.filter(email=email).first()
        if user is None:
            user = User.objects.create_user(username=email, email=email, password=password)
            self.stdout.write(f"Created user {email}")
        user.groups.add(*Group.objects.filter(name__in=[Roles.USER, Roles.SUPER_ADMIN]))
        self.stdout.write(self.style.SUCCESS(f"{email} is a {Roles.SUPER_ADMIN}"))
