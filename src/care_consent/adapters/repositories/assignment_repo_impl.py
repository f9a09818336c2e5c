from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.enums import AssignmentType, ConsentStatus
from care_consent.core.domain.errors import Conflict
from care_consent.core.domain.repositories.assignment_repository import AssignmentRepository
from plugins.django_interface.models import Assignment as AssignmentModel

log = structlog.get_logger(__name__)

AWAITING_CONSENT = (ConsentStatus.PENDING.value, ConsentStatus.EXPIRED.value)


class AssignmentRepoImpl(AssignmentRepository):
    """Persistence of care assignments; no business rules besides uniqueness."""

    @staticmethod
    def _to_entity(model: AssignmentModel) -> AssignmentEntity:
        return AssignmentEntity.from_model(model)

    @staticmethod
    def _active() -> QuerySet[AssignmentModel]:
        return AssignmentModel.objects.filter(is_active=True)

    # ───────────────────────── persistence ──────────────────────────

    def create(self, assignment: AssignmentEntity) -> AssignmentEntity:
        if assignment.assignment_type is AssignmentType.PRIMARY:
            if assignment.secondary_provider_id is not None:
                raise Conflict("Primary assignments cannot reference a secondary provider.")
            if self._active().filter(patient_id=assignment.patient_id, assignment_type="primary").exists():
                raise Conflict("Patient already has an active primary provider.")
        else:
            if assignment.secondary_provider_id is None or assignment.secondary_provider_kind is None:
                raise Conflict("Secondary assignments need exactly one secondary provider.")
            if self._active().filter(
                patient_id=assignment.patient_id,
                secondary_provider_id=assignment.secondary_provider_id,
            ).exists():
                raise Conflict("An active assignment already exists for this provider and patient.")

        model = AssignmentModel(
            id=assignment.id,
            patient_id=assignment.patient_id,
            primary_provider_id=assignment.primary_provider_id,
            secondary_provider_id=assignment.secondary_provider_id,
            secondary_provider_kind=(
                assignment.secondary_provider_kind.value if assignment.secondary_provider_kind else None
            ),
            assignment_type=assignment.assignment_type.value,
            requires_consent=assignment.requires_consent,
            consent_status=assignment.consent_status.value,
            access_granted=assignment.access_granted,
            consent_granted_at=assignment.consent_granted_at,
            consent_granted_by=assignment.consent_granted_by,
            expires_at=assignment.expires_at,
            is_active=assignment.is_active,
            created_by=assignment.created_by,
            assignment_reason=assignment.assignment_reason,
            specialty_focus=list(assignment.specialty_focus),
            care_plan_ids=[str(c) for c in assignment.care_plan_ids],
            notes=assignment.notes,
        )
        if assignment.created_at is not None:
            model.created_at = assignment.created_at
        try:
            with transaction.atomic():
                model.save(force_insert=True)
        except IntegrityError as exc:
            log.warning("assignment.create_conflict", patient_id=str(assignment.patient_id), error=str(exc))
            raise Conflict("Assignment conflicts with an existing active assignment.") from exc
        return self._to_entity(model)

    def deactivate(self, assignment_id: UUID, at: datetime) -> bool:
        updated = self._active().filter(id=assignment_id).update(
            is_active=False,
            access_granted=False,
            deactivated_at=at,
            updated_at=timezone.now(),
        )
        return updated == 1

    def apply_consent_grant(self, assignment_id: UUID, at: datetime, granted_by: UUID) -> None:
        self._active().filter(id=assignment_id).update(
            consent_status=ConsentStatus.GRANTED.value,
            access_granted=True,
            consent_granted_at=at,
            consent_granted_by=granted_by,
            updated_at=timezone.now(),
        )

    def set_consent_status(self, assignment_id: UUID, status: ConsentStatus) -> None:
        AssignmentModel.objects.filter(id=assignment_id, requires_consent=True).update(
            consent_status=ConsentStatus(status).value,
            access_granted=False,
            updated_at=timezone.now(),
        )

    # ───────────────────────── lookups ──────────────────────────

    def find_by_id(self, assignment_id: UUID) -> AssignmentEntity | None:
        model = AssignmentModel.objects.filter(id=assignment_id).first()
        return self._to_entity(model) if model else None

    def lock_for_update(self, assignment_id: UUID) -> AssignmentEntity | None:
        model = AssignmentModel.objects.select_for_update().filter(id=assignment_id).first()
        return self._to_entity(model) if model else None

    def find_active_for_patient(self, patient_id: UUID, provider_id: UUID) -> AssignmentEntity | None:
        model = (
            self._active()
            .filter(patient_id=patient_id)
            .filter(Q(primary_provider_id=provider_id) | Q(secondary_provider_id=provider_id))
            .order_by("-created_at")
            .first()
        )
        return self._to_entity(model) if model else None

    def find_active_primary(self, patient_id: UUID) -> AssignmentEntity | None:
        model = self._active().filter(patient_id=patient_id, assignment_type="primary").first()
        return self._to_entity(model) if model else None

    def find_latest_awaiting_consent(
        self, patient_id: UUID, secondary_provider_id: UUID | None = None
    ) -> AssignmentEntity | None:
        qs = self._active().filter(
            patient_id=patient_id,
            requires_consent=True,
            consent_status__in=AWAITING_CONSENT,
        )
        if secondary_provider_id is not None:
            qs = qs.filter(secondary_provider_id=secondary_provider_id)
        model = qs.order_by("-created_at").first()
        return self._to_entity(model) if model else None

    def list_for_patient(self, patient_id: UUID, provider_id: UUID | None = None) -> list[AssignmentEntity]:
        qs = self._active().filter(patient_id=patient_id)
        if provider_id is not None:
            qs = qs.filter(Q(primary_provider_id=provider_id) | Q(secondary_provider_id=provider_id))
        return [self._to_entity(m) for m in qs.order_by("-created_at")]

    def list_for_secondary_provider(
        self, provider_id: UUID, page: int, page_size: int
    ) -> tuple[list[AssignmentEntity], int]:
        qs = self._active().filter(secondary_provider_id=provider_id).order_by("-created_at")
        total = qs.count()
        offset = (max(page, 1) - 1) * page_size
        return [self._to_entity(m) for m in qs[offset : offset + page_size]], total

    def list_elapsed(self, now: datetime) -> list[AssignmentEntity]:
        qs = self._active().filter(expires_at__isnull=False, expires_at__lte=now)
        return [self._to_entity(m) for m in qs]

    def list_granted_before(self, cutoff: datetime) -> list[AssignmentEntity]:
        qs = self._active().filter(
            requires_consent=True,
            consent_status=ConsentStatus.GRANTED.value,
            consent_granted_at__lte=cutoff,
        )
        return [self._to_entity(m) for m in qs]

    def list_pending(self) -> list[AssignmentEntity]:
        qs = self._active().filter(requires_consent=True, consent_status=ConsentStatus.PENDING.value)
        return [self._to_entity(m) for m in qs]
