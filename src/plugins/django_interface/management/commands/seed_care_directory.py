from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from care_consent.adapters.security.hash_service import HashService
from plugins.django_interface.models import Assignment, Organization, Patient, Provider, User


class Command(BaseCommand):
    help = (
        "Seed a small care directory for local testing: two organizations, a primary doctor, "
        "a same-org specialist, an external HSP and one patient with a primary assignment."
    )

    def add_arguments(self, parser):
        parser.add_argument("--password", default="changeme123", help="Password set on every seeded user.")
        parser.add_argument("--patient-email", default="patient@example.com")
        parser.add_argument("--patient-phone", default=None, help="E.164 phone for SMS OTP tests.")

    @transaction.atomic
    def handle(self, *args, **options):
        if User.objects.filter(email="primary.doctor@example.com").exists():
            raise CommandError("❌ Directory already seeded.")

        password_hash = HashService.hash_password(options["password"])

        def user(email, name, role):
            return User.objects.create(email=email, name=name, role=role, password_hash=password_hash)

        clinic = Organization.objects.create(name="Downtown Clinic")
        lab = Organization.objects.create(name="Northside Physio")

        primary = Provider.objects.create(
            user=user("primary.doctor@example.com", "Dr. Primary", User.Role.DOCTOR),
            kind=Provider.Kind.DOCTOR, name="Dr. Primary", organization=clinic,
        )
        Provider.objects.create(
            user=user("specialist@example.com", "Dr. Specialist", User.Role.DOCTOR),
            kind=Provider.Kind.DOCTOR, name="Dr. Specialist", organization=clinic,
        )
        Provider.objects.create(
            user=user("physio@example.com", "Physio HSP", User.Role.HSP),
            kind=Provider.Kind.HSP, name="Physio HSP", organization=lab,
        )
        patient = Patient.objects.create(
            user=user(options["patient_email"], "Pat Example", User.Role.PATIENT),
            name="Pat Example", email=options["patient_email"], phone=options["patient_phone"],
        )
        Assignment.objects.create(
            patient=patient,
            primary_provider=primary,
            assignment_type=Assignment.Type.PRIMARY,
            requires_consent=False,
            consent_status=Assignment.ConsentStatus.NOT_REQUIRED,
            access_granted=True,
            assignment_reason="Primary care provider",
        )
        self.stdout.write(self.style.SUCCESS(f"🌱 Seeded directory. Patient id: {patient.id}"))
