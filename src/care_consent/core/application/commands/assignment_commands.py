from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from care_consent.core.application.cqrs import CommandDTO
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.enums import AssignmentType


@dataclass(frozen=True)
class CreatePrimaryAssignmentCommand(CommandDTO):
    patient_id: uuid.UUID
    provider_id: uuid.UUID
    actor: Actor

@dataclass(frozen=True)
class CreateAssignmentCommand(CommandDTO):
    patient_id: uuid.UUID
    actor: Actor
    assignment_reason: str
    secondary_doctor_id: uuid.UUID | None = None
    secondary_hsp_id: uuid.UUID | None = None
    assignment_type: AssignmentType = AssignmentType.SPECIALIST
    specialty_focus: list[str] = field(default_factory=list)
    care_plan_ids: list[uuid.UUID] = field(default_factory=list)
    requires_consent: bool | None = None
    expires_in_days: int | None = None
    notes: str | None = None

@dataclass(frozen=True)
class RevokeAssignmentCommand(CommandDTO):
    assignment_id: uuid.UUID
    actor: Actor
