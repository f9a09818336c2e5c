from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


# ───────────────────────────────────────────────
# Event Base
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

# ╭──────────────────────────────────────────────╮
# │ 1. Assignments                               │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class AssignmentCreatedEvent(DomainEvent):
    assignment_id: uuid.UUID
    patient_id: uuid.UUID
    assignment_type: str
    requires_consent: bool
    created_by: uuid.UUID | None

@dataclass(frozen=True, kw_only=True)
class AssignmentRevokedEvent(DomainEvent):
    assignment_id: uuid.UUID
    revoked_by: uuid.UUID | None

# ╭──────────────────────────────────────────────╮
# │ 2. Consent ceremony                          │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class OtpIssuedEvent(DomainEvent):
    assignment_id: uuid.UUID
    otp_id: uuid.UUID
    kind: str
    delivery_method: str
    expires_at: datetime

@dataclass(frozen=True, kw_only=True)
class OtpBlockedEvent(DomainEvent):
    assignment_id: uuid.UUID
    otp_id: uuid.UUID
    reason: str

@dataclass(frozen=True, kw_only=True)
class ConsentGrantedEvent(DomainEvent):
    assignment_id: uuid.UUID
    otp_id: uuid.UUID
    verified_by: uuid.UUID
    granted_at: datetime

@dataclass(frozen=True, kw_only=True)
class ConsentDeniedEvent(DomainEvent):
    assignment_id: uuid.UUID
    denied_by: uuid.UUID

@dataclass(frozen=True, kw_only=True)
class ConsentExpiredEvent(DomainEvent):
    assignment_id: uuid.UUID
    previous_status: str

@dataclass(frozen=True, kw_only=True)
class OtpVerificationFailedEvent(DomainEvent):
    assignment_id: uuid.UUID
    otp_id: uuid.UUID | None
    outcome: str
    attempts_remaining: int = 0

@dataclass(frozen=True, kw_only=True)
class OtpRateLimitedEvent(DomainEvent):
    assignment_id: uuid.UUID
    retry_after_seconds: int
