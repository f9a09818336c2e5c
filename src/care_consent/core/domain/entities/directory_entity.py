from __future__ import annotations

import uuid
from dataclasses import dataclass

from care_consent.core.domain.entities._base import EntityMixin
from care_consent.core.domain.entities.enums import ProviderKind


@dataclass(slots=True)
class ProviderEntity(EntityMixin):
    id: uuid.UUID
    user_id: uuid.UUID
    kind: ProviderKind
    name: str
    organization_id: uuid.UUID | None = None
    email: str | None = None
    is_active: bool = True

    def __post_init__(self):
        self.kind = ProviderKind(self.kind)

    def same_organization_as(self, other: ProviderEntity | None) -> bool:
        return bool(
            other is not None
            and self.organization_id is not None
            and self.organization_id == other.organization_id
        )


@dataclass(slots=True)
class PatientEntity(EntityMixin):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    email: str | None = None
    phone: str | None = None
