from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.enums import ConsentStatus


class AssignmentRepository(ABC):
    @abstractmethod
    def create(self, assignment: AssignmentEntity) -> AssignmentEntity:
        """
        Persists a new assignment.

        Raises `Conflict` when the patient already has an active assignment for
        the same secondary provider, when a second active primary would exist,
        or when the secondary-provider reference is malformed.
        """
        ...

    @abstractmethod
    def find_by_id(self, assignment_id: uuid.UUID) -> AssignmentEntity | None:
        ...

    @abstractmethod
    def lock_for_update(self, assignment_id: uuid.UUID) -> AssignmentEntity | None:
        """Reads the row holding a write lock until the surrounding unit of work ends."""
        ...

    @abstractmethod
    def find_active_for_patient(self, patient_id: uuid.UUID, provider_id: uuid.UUID) -> AssignmentEntity | None:
        """Most recent active assignment where `provider_id` is primary or secondary."""
        ...

    @abstractmethod
    def find_active_primary(self, patient_id: uuid.UUID) -> AssignmentEntity | None:
        ...

    @abstractmethod
    def find_latest_awaiting_consent(
        self, patient_id: uuid.UUID, secondary_provider_id: uuid.UUID | None = None
    ) -> AssignmentEntity | None:
        """Most recent active assignment still requiring consent (pending or expired)."""
        ...

    @abstractmethod
    def list_for_patient(self, patient_id: uuid.UUID, provider_id: uuid.UUID | None = None) -> list[AssignmentEntity]:
        ...

    @abstractmethod
    def list_for_secondary_provider(
        self, provider_id: uuid.UUID, page: int, page_size: int
    ) -> tuple[list[AssignmentEntity], int]:
        ...

    @abstractmethod
    def deactivate(self, assignment_id: uuid.UUID, at: datetime) -> bool:
        """Marks the assignment inactive and voids access. Returns False if already inactive."""
        ...

    @abstractmethod
    def apply_consent_grant(self, assignment_id: uuid.UUID, at: datetime, granted_by: uuid.UUID) -> None:
        """Only called by the consent ceremony inside its unit of work."""
        ...

    @abstractmethod
    def set_consent_status(self, assignment_id: uuid.UUID, status: ConsentStatus) -> None:
        """Moves a consent-requiring assignment between pending/denied/expired; access is always voided."""
        ...

    @abstractmethod
    def list_elapsed(self, now: datetime) -> list[AssignmentEntity]:
        """Active assignments whose `expires_at` is in the past."""
        ...

    @abstractmethod
    def list_granted_before(self, cutoff: datetime) -> list[AssignmentEntity]:
        """Active consent-requiring assignments granted at or before `cutoff`."""
        ...

    @abstractmethod
    def list_pending(self) -> list[AssignmentEntity]:
        """Active assignments with consent status `pending`."""
        ...
