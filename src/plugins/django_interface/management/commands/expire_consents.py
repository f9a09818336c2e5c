from django.conf import settings
from django.core.management.base import BaseCommand

from care_consent.adapters.config.composition_root import setup_di_container_from_settings
from care_consent.core.application.commands.consent_commands import ExpireStaleConsentsCommand


class Command(BaseCommand):
    help = "Expire lapsed OTP ceremonies and grants, and deactivate elapsed assignments (same as the beat task)."

    def handle(self, *args, **opts):
        bus = setup_di_container_from_settings(settings).command_bus()
        report = bus.dispatch(ExpireStaleConsentsCommand())
        self.stdout.write(self.style.SUCCESS(
            f"Expired pending: {report.expired_pending} · expired grants: {report.expired_grants} "
            f"· deactivated: {report.deactivated}"
        ))
