import uuid
from abc import ABC, abstractmethod

from care_consent.core.domain.entities.directory_entity import PatientEntity, ProviderEntity


class CareDirectoryRepository(ABC):
    """Read-only view over patients and providers owned by other subsystems."""

    @abstractmethod
    def find_provider(self, provider_id: uuid.UUID) -> ProviderEntity | None:
        ...

    @abstractmethod
    def find_patient(self, patient_id: uuid.UUID) -> PatientEntity | None:
        ...
