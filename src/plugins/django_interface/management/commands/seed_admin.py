from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand

from care_consent.adapters.security.hash_service import HashService
from plugins.django_interface.models import User


class Command(BaseCommand):
    """
    Creates or updates the administrator account. Idempotent.
    """
    help = "Create or update the admin user."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--email", type=str, required=True, help="Login e-mail.")
        parser.add_argument("--password", type=str, required=True, help="Password.")
        parser.add_argument("--name", type=str, default="Admin", help="Display name.")

    def handle(self, *args: Any, **opt: Any) -> None:
        user, created = User.objects.update_or_create(
            email=opt["email"].lower(),
            defaults={
                "name": opt["name"],
                "role": User.Role.ADMIN,
                "password_hash": HashService.hash_password(opt["password"]),
                "is_active": True,
            },
        )
        verb = "created" if created else "updated"
        self.stdout.write(self.style.SUCCESS(f"✅ Admin '{user.email}' {verb}. ID: {user.id}"))
