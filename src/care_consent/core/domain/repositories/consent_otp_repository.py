from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from care_consent.core.domain.entities.consent_otp_entity import ConsentOtpEntity, OtpIssuanceEntity
from care_consent.core.domain.entities.enums import BlockedReason, DeliveryMethod, DeliveryStatus


class ConsentOtpRepository(ABC):
    # ────────────────────────────────── #
    # Writes
    # ────────────────────────────────── #
    @abstractmethod
    def create(self, otp: ConsentOtpEntity) -> ConsentOtpEntity:
        ...

    @abstractmethod
    def rotate(  # noqa: PLR0913
        self,
        otp_id: uuid.UUID,
        *,
        code_digest: str,
        delivery_method: DeliveryMethod,
        issued_at: datetime,
        expires_at: datetime,
        requested_by: uuid.UUID | None,
        custom_message: str | None,
    ) -> ConsentOtpEntity:
        """Replaces the code of an unresolved OTP in place, resetting attempts."""
        ...

    @abstractmethod
    def record_failed_attempt(self, otp_id: uuid.UUID, at: datetime) -> ConsentOtpEntity:
        """Increments attempts and blocks the OTP once `max_attempts` is reached."""
        ...

    @abstractmethod
    def mark_verified(  # noqa: PLR0913
        self, otp_id: uuid.UUID, code_digest: str, at: datetime, verified_by: uuid.UUID, role: str
    ) -> bool:
        """
        Conditional update `is_verified: False → True`, applied only while the
        row is unblocked, unexpired at `at` and still carries `code_digest`.
        Returns False when the row changed since it was read.
        """
        ...

    @abstractmethod
    def block_unresolved(self, assignment_id: uuid.UUID, reason: BlockedReason, at: datetime) -> list[uuid.UUID]:
        """Blocks every not-verified, not-blocked OTP of the assignment. Returns the ids touched."""
        ...

    @abstractmethod
    def set_delivery_status(self, otp_id: uuid.UUID, status: DeliveryStatus, error: str | None = None) -> None:
        ...

    # ────────────────────────────────── #
    # Reads
    # ────────────────────────────────── #
    @abstractmethod
    def find_by_id(self, otp_id: uuid.UUID) -> ConsentOtpEntity | None:
        ...

    @abstractmethod
    def find_live(self, assignment_id: uuid.UUID, now: datetime) -> ConsentOtpEntity | None:
        """The OTP with `¬verified ∧ ¬blocked ∧ expires_at > now`, if any."""
        ...

    @abstractmethod
    def find_latest(self, assignment_id: uuid.UUID) -> ConsentOtpEntity | None:
        ...

    @abstractmethod
    def latest_by_assignment(self, assignment_ids: list[uuid.UUID]) -> dict[uuid.UUID, ConsentOtpEntity]:
        ...

    # ────────────────────────────────── #
    # Rate-limit ledger
    # ────────────────────────────────── #
    @abstractmethod
    def record_issuance(self, issuance: OtpIssuanceEntity) -> None:
        ...

    @abstractmethod
    def issuances_since(self, assignment_id: uuid.UUID, since: datetime) -> list[datetime]:
        """Issue timestamps (ascending) of committed generations at or after `since`."""
        ...
