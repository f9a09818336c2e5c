from __future__ import annotations

import uuid
from dataclasses import dataclass

from care_consent.core.application.cqrs import QueryDTO
from care_consent.core.domain.entities.actor import Actor


@dataclass(frozen=True)
class ConsentStatusQuery(QueryDTO):
    patient_id: uuid.UUID
    actor: Actor

@dataclass(frozen=True)
class CheckAccessQuery(QueryDTO):
    patient_id: uuid.UUID
    actor: Actor
    provider_id: uuid.UUID | None = None

@dataclass(frozen=True)
class ListSecondaryPatientsQuery(QueryDTO):
    actor: Actor
    page: int = 1
    page_size: int = 50
