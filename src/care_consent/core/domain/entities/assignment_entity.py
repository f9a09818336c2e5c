from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from care_consent.core.domain.entities._base import EntityMixin
from care_consent.core.domain.entities.enums import AssignmentType, ConsentStatus, ProviderKind


@dataclass(slots=True)
class AssignmentEntity(EntityMixin):
    id: uuid.UUID
    patient_id: uuid.UUID
    primary_provider_id: uuid.UUID | None
    assignment_type: AssignmentType
    created_by: uuid.UUID | None

    # --- secondary provider --- #
    secondary_provider_id: uuid.UUID | None = None
    secondary_provider_kind: ProviderKind | None = None

    # --- consent fields --- #
    requires_consent: bool = False
    consent_status: ConsentStatus = ConsentStatus.NOT_REQUIRED
    access_granted: bool = False
    consent_granted_at: datetime | None = None
    consent_granted_by: uuid.UUID | None = None

    # --- lifecycle --- #
    expires_at: datetime | None = None
    is_active: bool = True
    deactivated_at: datetime | None = None

    # --- context --- #
    assignment_reason: str = ""
    specialty_focus: list[str] = field(default_factory=list)
    care_plan_ids: list[uuid.UUID] = field(default_factory=list)
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.assignment_type = AssignmentType(self.assignment_type)
        self.consent_status = ConsentStatus(self.consent_status)
        if self.secondary_provider_kind is not None:
            self.secondary_provider_kind = ProviderKind(self.secondary_provider_kind)
        self.specialty_focus = list(self.specialty_focus or [])
        self.care_plan_ids = [uuid.UUID(str(c)) for c in (self.care_plan_ids or [])]

    # ----------------------------------------------------------------------
    @property
    def is_primary(self) -> bool:
        return self.assignment_type is AssignmentType.PRIMARY

    @property
    def secondary_doctor_id(self) -> uuid.UUID | None:
        if self.secondary_provider_kind is ProviderKind.DOCTOR:
            return self.secondary_provider_id
        return None

    @property
    def secondary_hsp_id(self) -> uuid.UUID | None:
        if self.secondary_provider_kind is ProviderKind.HSP:
            return self.secondary_provider_id
        return None

    def involves(self, provider_id: uuid.UUID) -> bool:
        return provider_id in (self.primary_provider_id, self.secondary_provider_id)

    def has_elapsed(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def consent_lapsed(self, consent_cutoff: datetime | None) -> bool:
        """A grant given at or before `consent_cutoff` no longer counts, swept or not."""
        return (
            consent_cutoff is not None
            and self.requires_consent
            and self.consent_status is ConsentStatus.GRANTED
            and self.consent_granted_at is not None
            and self.consent_granted_at <= consent_cutoff
        )

    def effective_status(self, consent_cutoff: datetime | None = None) -> ConsentStatus:
        return ConsentStatus.EXPIRED if self.consent_lapsed(consent_cutoff) else self.consent_status

    def effective_access(self, now: datetime, consent_cutoff: datetime | None = None) -> bool:
        """Access as seen by a reader at `now`; inactive, elapsed or lapsed rows never grant."""
        return (
            self.is_active
            and not self.has_elapsed(now)
            and self.access_granted
            and not self.consent_lapsed(consent_cutoff)
        )
