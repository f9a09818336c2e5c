from __future__ import annotations

import uuid
from dataclasses import dataclass

from care_consent.core.domain.entities.enums import UserRole, VerifierRole


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated caller, resolved against the care directory."""
    user_id: uuid.UUID
    role: UserRole
    provider_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None

    def __post_init__(self):
        object.__setattr__(self, "role", UserRole(self.role))

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @property
    def is_provider(self) -> bool:
        return self.role.is_provider and self.provider_id is not None

    def is_patient(self, patient_id: uuid.UUID) -> bool:
        return self.role is UserRole.PATIENT and self.patient_id == patient_id

    def verifier_role(self) -> VerifierRole:
        return VerifierRole.PATIENT if self.role is UserRole.PATIENT else VerifierRole.PROVIDER
