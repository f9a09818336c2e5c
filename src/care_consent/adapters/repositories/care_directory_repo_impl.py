from uuid import UUID

from care_consent.core.domain.entities.directory_entity import PatientEntity, ProviderEntity
from care_consent.core.domain.repositories.care_directory_repository import CareDirectoryRepository
from plugins.django_interface.models import Patient, Provider


class CareDirectoryRepoImpl(CareDirectoryRepository):
    def find_provider(self, provider_id: UUID) -> ProviderEntity | None:
        model = Provider.objects.filter(id=provider_id).first()
        return ProviderEntity.from_model(model) if model else None

    def find_patient(self, patient_id: UUID) -> PatientEntity | None:
        model = Patient.objects.filter(id=patient_id).first()
        return PatientEntity.from_model(model) if model else None
