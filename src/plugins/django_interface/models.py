"""
Domain → ORM for care assignments and the consent ceremony.

⚑ Identity tables (Organization/User/Provider/Patient) hold only what the
  consent state machine reads
⚑ Uniqueness lives in partial unique constraints (active primary,
  active secondary pair)
⚑ OTP rows are never deleted; codes are stored as keyed digests
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import CheckConstraint, Index, Q, UniqueConstraint
from django.db.models.functions import Lower
from django.utils import timezone


# ╭──────────────────────────────────────────────╮
# │ 1. Identity / directory                      │
# ╰──────────────────────────────────────────────╯
class Organization(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "organizations"
        constraints = [
            UniqueConstraint(Lower("name"), name="uq_organization_name_lower"),
        ]

    def __str__(self) -> str:
        return self.name


class User(models.Model):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        DOCTOR = "doctor", "Doctor"
        HSP = "hsp", "Health Service Provider"
        PATIENT = "patient", "Patient"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=128)
    password_hash = models.CharField(max_length=128, blank=True, default="")
    name = models.CharField(max_length=100)
    role = models.CharField(max_length=20, choices=Role.choices, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        indexes = [
            Index(Lower("email"), name="user_email_lower_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class Provider(models.Model):
    class Kind(models.TextChoices):
        DOCTOR = "doctor", "Doctor"
        HSP = "hsp", "Health Service Provider"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="provider")
    kind = models.CharField(max_length=10, choices=Kind.choices)
    name = models.CharField(max_length=200)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="providers",
    )
    email = models.EmailField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "providers"
        indexes = [Index(fields=["organization", "kind"])]

    def __str__(self) -> str:
        return f"{self.name} ({self.kind})"


class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        User, on_delete=models.SET_NULL, blank=True, null=True, related_name="patient"
    )
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, null=True, db_index=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "patients"

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 2. Care assignments                          │
# ╰──────────────────────────────────────────────╯
class Assignment(models.Model):
    class Type(models.TextChoices):
        PRIMARY = "primary", "Primary"
        SPECIALIST = "specialist", "Specialist"
        SUBSTITUTE = "substitute", "Substitute"
        TRANSFERRED = "transferred", "Transferred"

    class ConsentStatus(models.TextChoices):
        NOT_REQUIRED = "not_required", "Not required"
        PENDING = "pending", "Pending"
        GRANTED = "granted", "Granted"
        DENIED = "denied", "Denied"
        EXPIRED = "expired", "Expired"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="assignments")
    primary_provider = models.ForeignKey(
        Provider,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="primary_assignments",
    )
    secondary_provider = models.ForeignKey(
        Provider,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="secondary_assignments",
    )
    secondary_provider_kind = models.CharField(
        max_length=10, choices=Provider.Kind.choices, blank=True, null=True
    )
    assignment_type = models.CharField(max_length=20, choices=Type.choices, db_index=True)

    requires_consent = models.BooleanField(default=False)
    consent_status = models.CharField(
        max_length=20, choices=ConsentStatus.choices, default=ConsentStatus.NOT_REQUIRED, db_index=True
    )
    access_granted = models.BooleanField(default=False)
    consent_granted_at = models.DateTimeField(blank=True, null=True)
    consent_granted_by = models.UUIDField(blank=True, null=True)

    expires_at = models.DateTimeField(blank=True, null=True, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    deactivated_at = models.DateTimeField(blank=True, null=True)
    created_by = models.UUIDField(blank=True, null=True)

    assignment_reason = models.TextField(blank=True, default="")
    specialty_focus = models.JSONField(default=list, blank=True)
    care_plan_ids = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "care_assignments"
        ordering = ["-created_at"]
        indexes = [
            Index(fields=["patient", "is_active"]),
            Index(fields=["secondary_provider", "is_active"]),
        ]
        constraints = [
            UniqueConstraint(
                fields=["patient"],
                condition=Q(is_active=True, assignment_type="primary"),
                name="uq_active_primary_per_patient",
            ),
            UniqueConstraint(
                fields=["patient", "secondary_provider"],
                condition=Q(is_active=True, secondary_provider__isnull=False),
                name="uq_active_secondary_per_patient",
            ),
            CheckConstraint(
                condition=(
                    Q(assignment_type="primary", secondary_provider__isnull=True, secondary_provider_kind__isnull=True)
                    | (
                        ~Q(assignment_type="primary")
                        & Q(secondary_provider__isnull=False, secondary_provider_kind__isnull=False)
                    )
                ),
                name="ck_assignment_secondary_reference",
            ),
            CheckConstraint(
                condition=Q(is_active=True) | Q(access_granted=False),
                name="ck_inactive_assignment_no_access",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.assignment_type} → {self.patient_id} ({self.consent_status})"


# ╭──────────────────────────────────────────────╮
# │ 3. Consent ceremony                          │
# ╰──────────────────────────────────────────────╯
class ConsentOtp(models.Model):
    class Method(models.TextChoices):
        SMS_OTP = "sms_otp", "SMS"
        EMAIL_OTP = "email_otp", "E-mail"
        IN_PERSON = "in_person", "In person"
        PHONE_CALL = "phone_call", "Phone call"

    class DeliveryStatus(models.TextChoices):
        QUEUED = "queued", "Queued"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"
        SKIPPED = "skipped", "Skipped"

    class BlockedReason(models.TextChoices):
        MAX_ATTEMPTS = "max_attempts", "Max attempts"
        RESEND_INVALIDATED = "resend_invalidated", "Invalidated by resend"
        CONSENT_DENIED = "consent_denied", "Consent denied"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="consent_otps")
    code_digest = models.CharField(max_length=64)
    delivery_method = models.CharField(max_length=20, choices=Method.choices)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    verification_attempts = models.PositiveSmallIntegerField(default=0)
    max_attempts = models.PositiveSmallIntegerField(default=3)
    is_verified = models.BooleanField(default=False)
    is_blocked = models.BooleanField(default=False)
    blocked_reason = models.CharField(max_length=30, choices=BlockedReason.choices, blank=True, null=True)
    verified_at = models.DateTimeField(blank=True, null=True)
    verified_by = models.UUIDField(blank=True, null=True)
    verification_role = models.CharField(max_length=20, blank=True, null=True)
    requested_by = models.UUIDField(blank=True, null=True)
    custom_message = models.TextField(blank=True, null=True)
    delivery_status = models.CharField(
        max_length=10, choices=DeliveryStatus.choices, default=DeliveryStatus.QUEUED
    )
    delivery_error = models.TextField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "consent_otps"
        ordering = ["-created_at"]
        indexes = [
            Index(fields=["assignment", "-created_at"]),
            Index(
                fields=["assignment", "expires_at"],
                condition=Q(is_verified=False, is_blocked=False),
                name="consent_otp_unresolved_idx",
            ),
        ]
        constraints = [
            CheckConstraint(
                condition=Q(verification_attempts__lte=models.F("max_attempts")),
                name="ck_otp_attempts_bounded",
            ),
            CheckConstraint(
                condition=~Q(is_verified=True, is_blocked=True),
                name="ck_otp_verified_xor_blocked",
            ),
        ]

    def __str__(self) -> str:
        return f"OTP {self.id} ({self.delivery_method})"


class ConsentOtpIssuance(models.Model):
    """One row per committed OTP generation; drives the rate-limit window."""

    class Kind(models.TextChoices):
        REQUEST = "request", "Request"
        RESEND = "resend", "Resend"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="otp_issuances")
    otp = models.ForeignKey(ConsentOtp, on_delete=models.CASCADE, related_name="issuances")
    kind = models.CharField(max_length=10, choices=Kind.choices)
    issued_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "consent_otp_issuances"
        indexes = [Index(fields=["assignment", "issued_at"])]


# ╭──────────────────────────────────────────────╮
# │ 4. Audit trail                               │
# ╰──────────────────────────────────────────────╯
class AuditEvent(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor_id = models.UUIDField(blank=True, null=True, db_index=True)
    action = models.CharField(max_length=64, db_index=True)
    resource_type = models.CharField(max_length=32, default="assignment")
    resource_id = models.UUIDField(blank=True, null=True, db_index=True)
    outcome = models.CharField(max_length=32)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "audit_events"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.action} {self.resource_id} → {self.outcome}"
