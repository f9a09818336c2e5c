from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta

import structlog

from care_consent.core.application.consent_settings import ConsentSettings
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.directory_entity import ProviderEntity
from care_consent.core.domain.entities.enums import AssignmentType, ProviderKind
from care_consent.core.domain.errors import Conflict, Forbidden, NotFound, ValidationError
from care_consent.core.domain.events.events import AssignmentCreatedEvent, AssignmentRevokedEvent
from care_consent.core.domain.repositories.assignment_repository import AssignmentRepository
from care_consent.core.domain.repositories.care_directory_repository import CareDirectoryRepository
from care_consent.core.domain.repositories.unit_of_work import UnitOfWork
from care_consent.core.domain.services.access_policy import AccessDecision, evaluate_access_policy
from care_consent.core.domain.services.clock import Clock
from care_consent.core.domain.services.event_dispatcher import EventDispatcher
from care_consent.core.domain.services.ports import AuditTrailPort

logger = structlog.get_logger(__name__)

MIN_REASON_LENGTH = 10
MAX_ASSIGNMENT_DAYS = 365


@dataclass(frozen=True)
class CreatedAssignment:
    assignment: AssignmentEntity
    decision: AccessDecision


class AssignmentService:
    """Creates and revokes care assignments; consent fields come from the access policy."""

    def __init__(  # noqa: PLR0913
        self,
        assignment_repo: AssignmentRepository,
        directory: CareDirectoryRepository,
        uow: UnitOfWork,
        audit: AuditTrailPort,
        clock: Clock,
        settings: ConsentSettings,
        dispatcher: EventDispatcher,
    ) -> None:
        self.assignment_repo = assignment_repo
        self.directory = directory
        self.uow = uow
        self.audit = audit
        self.clock = clock
        self.settings = settings
        self.dispatcher = dispatcher

    def create_primary(self, patient_id: uuid.UUID, provider_id: uuid.UUID, actor: Actor) -> CreatedAssignment:
        if not actor.is_admin:
            raise Forbidden("Only administrators can set a primary provider.")
        self._patient(patient_id)
        provider = self._provider(provider_id, ProviderKind.DOCTOR)

        decision = evaluate_access_policy(
            provider.organization_id, provider.organization_id, assignment_type=AssignmentType.PRIMARY
        )
        entity = AssignmentEntity(
            id=uuid.uuid4(),
            patient_id=patient_id,
            primary_provider_id=provider.id,
            assignment_type=AssignmentType.PRIMARY,
            created_by=actor.user_id,
            requires_consent=decision.requires_consent,
            consent_status=decision.consent_status,
            access_granted=decision.access_granted,
            assignment_reason="Primary care provider",
        )
        return self._persist(entity, decision, actor)

    def create_secondary(  # noqa: PLR0913
        self,
        patient_id: uuid.UUID,
        actor: Actor,
        *,
        secondary_doctor_id: uuid.UUID | None = None,
        secondary_hsp_id: uuid.UUID | None = None,
        assignment_type: AssignmentType = AssignmentType.SPECIALIST,
        assignment_reason: str = "",
        specialty_focus: list[str] | None = None,
        care_plan_ids: list[uuid.UUID] | None = None,
        requires_consent: bool | None = None,
        expires_in_days: int | None = None,
        notes: str | None = None,
    ) -> CreatedAssignment:
        assignment_type = AssignmentType(assignment_type)
        if assignment_type is AssignmentType.PRIMARY:
            raise ValidationError("Use the primary assignment endpoint to set a primary provider.")
        if (secondary_doctor_id is None) == (secondary_hsp_id is None):
            raise ValidationError("Exactly one of secondaryDoctorId or secondaryHspId must be provided.")
        if len((assignment_reason or "").strip()) < MIN_REASON_LENGTH:
            raise ValidationError(f"Assignment reason must be at least {MIN_REASON_LENGTH} characters.")
        days = self.settings.default_assignment_days if expires_in_days is None else expires_in_days
        if not 1 <= days <= MAX_ASSIGNMENT_DAYS:
            raise ValidationError(f"expiresInDays must be between 1 and {MAX_ASSIGNMENT_DAYS}.")

        self._patient(patient_id)
        primary = self.assignment_repo.find_active_primary(patient_id)
        if primary is None:
            raise Conflict("Patient has no active primary provider.")
        if not actor.is_admin and actor.provider_id != primary.primary_provider_id:
            raise Forbidden("Only the patient's primary provider can create secondary assignments.")

        if secondary_doctor_id is not None:
            secondary = self._provider(secondary_doctor_id, ProviderKind.DOCTOR)
        else:
            secondary = self._provider(secondary_hsp_id, ProviderKind.HSP)
        if secondary.id == primary.primary_provider_id:
            raise ValidationError("The primary provider cannot be assigned as secondary provider.")

        primary_provider = self.directory.find_provider(primary.primary_provider_id)
        decision = evaluate_access_policy(
            primary_provider.organization_id if primary_provider else None,
            secondary.organization_id,
            override=requires_consent,
            assignment_type=assignment_type,
        )

        entity = AssignmentEntity(
            id=uuid.uuid4(),
            patient_id=patient_id,
            primary_provider_id=primary.primary_provider_id,
            assignment_type=assignment_type,
            created_by=actor.user_id,
            secondary_provider_id=secondary.id,
            secondary_provider_kind=secondary.kind,
            requires_consent=decision.requires_consent,
            consent_status=decision.consent_status,
            access_granted=decision.access_granted,
            expires_at=self.clock.now() + timedelta(days=days),
            assignment_reason=assignment_reason.strip(),
            specialty_focus=specialty_focus or [],
            care_plan_ids=care_plan_ids or [],
            notes=notes,
        )
        return self._persist(entity, decision, actor)

    def revoke(self, assignment_id: uuid.UUID, actor: Actor) -> AssignmentEntity:
        now = self.clock.now()
        with self.uow.atomic():
            assignment = self.assignment_repo.lock_for_update(assignment_id)
            if assignment is None or not assignment.is_active:
                raise NotFound("Assignment not found.")
            allowed = (
                actor.is_admin
                or actor.user_id == assignment.created_by
                or (actor.provider_id is not None and actor.provider_id == assignment.primary_provider_id)
            )
            if not allowed:
                raise Forbidden("Not allowed to revoke this assignment.")
            self.assignment_repo.deactivate(assignment.id, now)
            self.audit.audit(actor=actor.user_id, action="assignment.revoked", resource_id=assignment.id, outcome="revoked")
            event = AssignmentRevokedEvent(assignment_id=assignment.id, revoked_by=actor.user_id)
            self.uow.on_commit(lambda: self.dispatcher.dispatch(event))

        logger.info("assignment.revoked", assignment_id=str(assignment.id))
        return self.assignment_repo.find_by_id(assignment.id) or assignment

    # ─────────────────────────  helpers  ────────────────────────── #

    def _persist(self, entity: AssignmentEntity, decision: AccessDecision, actor: Actor) -> CreatedAssignment:
        with self.uow.atomic():
            saved = self.assignment_repo.create(entity)
            self.audit.audit(
                actor=actor.user_id,
                action="assignment.created",
                resource_id=saved.id,
                outcome=saved.consent_status.value,
                assignment_type=saved.assignment_type.value,
                requires_consent=saved.requires_consent,
                same_organization=decision.same_organization,
            )
            event = AssignmentCreatedEvent(
                assignment_id=saved.id,
                patient_id=saved.patient_id,
                assignment_type=saved.assignment_type.value,
                requires_consent=saved.requires_consent,
                created_by=actor.user_id,
            )
            self.uow.on_commit(lambda: self.dispatcher.dispatch(event))

        logger.info(
            "assignment.created",
            assignment_id=str(saved.id),
            assignment_type=saved.assignment_type.value,
            requires_consent=saved.requires_consent,
        )
        return CreatedAssignment(assignment=saved, decision=decision)

    def _patient(self, patient_id: uuid.UUID) -> None:
        if self.directory.find_patient(patient_id) is None:
            raise NotFound("Patient not found.")

    def _provider(self, provider_id: uuid.UUID, kind: ProviderKind) -> ProviderEntity:
        provider = self.directory.find_provider(provider_id)
        if provider is None or provider.kind is not kind or not provider.is_active:
            raise NotFound(f"Active {kind.value} provider not found.")
        return provider
