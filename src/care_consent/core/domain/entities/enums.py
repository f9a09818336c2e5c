from __future__ import annotations

from enum import Enum


class AssignmentType(str, Enum):
    PRIMARY = "primary"
    SPECIALIST = "specialist"
    SUBSTITUTE = "substitute"
    TRANSFERRED = "transferred"


class ConsentStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"
    EXPIRED = "expired"


class ProviderKind(str, Enum):
    DOCTOR = "doctor"
    HSP = "hsp"


class DeliveryMethod(str, Enum):
    SMS_OTP = "sms_otp"
    EMAIL_OTP = "email_otp"
    IN_PERSON = "in_person"
    PHONE_CALL = "phone_call"

    @property
    def is_remote(self) -> bool:
        return self in (DeliveryMethod.SMS_OTP, DeliveryMethod.EMAIL_OTP)


class DeliveryStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class BlockedReason(str, Enum):
    MAX_ATTEMPTS = "max_attempts"
    RESEND_INVALIDATED = "resend_invalidated"
    CONSENT_DENIED = "consent_denied"


class IssuanceKind(str, Enum):
    REQUEST = "request"
    RESEND = "resend"


class VerifierRole(str, Enum):
    PATIENT = "patient"
    PROVIDER = "provider"


class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    HSP = "hsp"
    PATIENT = "patient"

    @property
    def is_provider(self) -> bool:
        return self in (UserRole.DOCTOR, UserRole.HSP)
