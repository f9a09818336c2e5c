"""
Outbound ports consumed by the consent ceremony: out-of-band delivery of
the plaintext code and the compliance audit trail.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from care_consent.core.domain.entities.enums import DeliveryMethod, DeliveryStatus


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    status: DeliveryStatus
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status is DeliveryStatus.FAILED


class ConsentDeliveryPort(ABC):
    @abstractmethod
    def deliver(  # noqa: PLR0913
        self,
        *,
        assignment_id: uuid.UUID,
        otp_id: uuid.UUID,
        code: str,
        method: DeliveryMethod,
        recipient: str | None,
        message: str | None = None,
    ) -> DeliveryResult:
        """Fire-and-forget; a failure only flags the OTP delivery status."""
        ...


class AuditTrailPort(ABC):
    @abstractmethod
    def audit(
        self,
        *,
        actor: uuid.UUID | None,
        action: str,
        resource_id: uuid.UUID | None,
        outcome: str,
        **detail: Any,
    ) -> None:
        ...
