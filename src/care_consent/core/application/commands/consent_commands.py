from __future__ import annotations

import uuid
from dataclasses import dataclass

from care_consent.core.application.cqrs import CommandDTO
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.enums import DeliveryMethod, VerifierRole


@dataclass(frozen=True)
class RequestConsentOtpCommand(CommandDTO):
    patient_id: uuid.UUID
    actor: Actor
    consent_method: DeliveryMethod = DeliveryMethod.EMAIL_OTP
    assignment_id: uuid.UUID | None = None
    message: str | None = None

@dataclass(frozen=True)
class ResendConsentOtpCommand(CommandDTO):
    patient_id: uuid.UUID
    actor: Actor
    reason: str = "OTP resend requested"
    consent_method: DeliveryMethod | None = None
    assignment_id: uuid.UUID | None = None

@dataclass(frozen=True)
class VerifyConsentOtpCommand(CommandDTO):
    patient_id: uuid.UUID
    actor: Actor
    code: str
    verified_by: VerifierRole | None = None
    assignment_id: uuid.UUID | None = None

@dataclass(frozen=True)
class DenyConsentCommand(CommandDTO):
    patient_id: uuid.UUID
    actor: Actor
    assignment_id: uuid.UUID | None = None

@dataclass(frozen=True)
class ExpireStaleConsentsCommand(CommandDTO):
    pass
