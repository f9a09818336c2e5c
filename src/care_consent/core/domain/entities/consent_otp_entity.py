from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from care_consent.core.domain.entities._base import EntityMixin
from care_consent.core.domain.entities.enums import BlockedReason, DeliveryMethod, DeliveryStatus, IssuanceKind


@dataclass(slots=True)
class ConsentOtpEntity(EntityMixin):
    id: uuid.UUID
    assignment_id: uuid.UUID
    code_digest: str
    delivery_method: DeliveryMethod
    created_at: datetime
    expires_at: datetime
    verification_attempts: int = 0
    max_attempts: int = 3
    is_verified: bool = False
    is_blocked: bool = False
    blocked_reason: BlockedReason | None = None
    verified_at: datetime | None = None
    verified_by: uuid.UUID | None = None
    verification_role: str | None = None
    requested_by: uuid.UUID | None = None
    custom_message: str | None = None
    delivery_status: DeliveryStatus = DeliveryStatus.QUEUED
    delivery_error: str | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.delivery_method = DeliveryMethod(self.delivery_method)
        self.delivery_status = DeliveryStatus(self.delivery_status)
        if self.blocked_reason is not None:
            self.blocked_reason = BlockedReason(self.blocked_reason)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_unresolved(self) -> bool:
        return not self.is_verified and not self.is_blocked

    def is_live(self, now: datetime) -> bool:
        return self.is_unresolved() and not self.is_expired(now)

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.verification_attempts)

    def state(self, now: datetime) -> str:
        if self.is_verified:
            return "verified"
        if self.is_blocked:
            return "blocked"
        if self.is_expired(now):
            return "expired"
        return "pending"


@dataclass(slots=True)
class OtpIssuanceEntity(EntityMixin):
    id: uuid.UUID
    assignment_id: uuid.UUID
    otp_id: uuid.UUID
    kind: IssuanceKind
    issued_at: datetime

    def __post_init__(self):
        self.kind = IssuanceKind(self.kind)
