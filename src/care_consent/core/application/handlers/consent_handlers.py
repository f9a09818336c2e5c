from __future__ import annotations

import uuid

from care_consent.core.application.commands.consent_commands import (
    DenyConsentCommand,
    ExpireStaleConsentsCommand,
    RequestConsentOtpCommand,
    ResendConsentOtpCommand,
    VerifyConsentOtpCommand,
)
from care_consent.core.application.consent_settings import ConsentSettings
from care_consent.core.application.cqrs import CommandHandler
from care_consent.core.application.dtos.consent_dto import ConsentDeniedDTO, ConsentGrantedDTO, OtpIssuedDTO
from care_consent.core.application.services.consent_ceremony_service import (
    ConsentCeremonyService,
    IssuedOtp,
    SweepReport,
)
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.enums import ConsentStatus, VerifierRole
from care_consent.core.domain.errors import Forbidden, NotFound
from care_consent.core.domain.repositories.assignment_repository import AssignmentRepository


def resolve_consent_target(
    repo: AssignmentRepository,
    patient_id: uuid.UUID,
    actor: Actor,
    assignment_id: uuid.UUID | None,
) -> AssignmentEntity:
    """
    Explicit `assignment_id` wins; otherwise the latest assignment awaiting
    consent, preferring one where the caller is the secondary provider.
    """
    if assignment_id is not None:
        assignment = repo.find_by_id(assignment_id)
        if assignment is None or assignment.patient_id != patient_id or not assignment.is_active:
            raise NotFound("Assignment not found.")
        return assignment

    assignment = None
    if actor.is_provider:
        assignment = repo.find_latest_awaiting_consent(patient_id, actor.provider_id)
    if assignment is None:
        assignment = repo.find_latest_awaiting_consent(patient_id)
    if assignment is None:
        raise NotFound("No assignment awaiting consent for this patient.")
    return assignment


def _is_party(actor: Actor, assignment: AssignmentEntity) -> bool:
    return actor.is_provider and assignment.involves(actor.provider_id)


class _CeremonyHandler:
    def __init__(
        self,
        ceremony: ConsentCeremonyService,
        assignment_repo: AssignmentRepository,
        settings: ConsentSettings,
    ):
        self.ceremony = ceremony
        self.assignment_repo = assignment_repo
        self.settings = settings

    def _issuer_target(self, patient_id, actor, assignment_id) -> AssignmentEntity:
        assignment = resolve_consent_target(self.assignment_repo, patient_id, actor, assignment_id)
        if not (actor.is_admin or actor.is_patient(patient_id) or _is_party(actor, assignment)):
            raise Forbidden("Not allowed to request consent for this assignment.")
        return assignment

    def _issued(self, issued: IssuedOtp, message: str) -> OtpIssuedDTO:
        return OtpIssuedDTO(
            assignment_id=str(issued.assignment.id),
            expires_at=issued.otp.expires_at,
            attempts_remaining=issued.otp.attempts_remaining,
            consent_method=issued.otp.delivery_method.value,
            delivery_status=issued.delivery_status.value,
            invalidated_count=issued.invalidated or None,
            code=issued.code if self.settings.expose_code else None,
            message=message,
        )


class RequestConsentOtpHandler(_CeremonyHandler, CommandHandler[RequestConsentOtpCommand]):
    def handle(self, cmd: RequestConsentOtpCommand) -> OtpIssuedDTO:
        assignment = self._issuer_target(cmd.patient_id, cmd.actor, cmd.assignment_id)
        issued = self.ceremony.request_otp(assignment.id, cmd.consent_method, cmd.actor.user_id, cmd.message)
        return self._issued(issued, "OTP generated successfully.")


class ResendConsentOtpHandler(_CeremonyHandler, CommandHandler[ResendConsentOtpCommand]):
    def handle(self, cmd: ResendConsentOtpCommand) -> OtpIssuedDTO:
        assignment = self._issuer_target(cmd.patient_id, cmd.actor, cmd.assignment_id)
        issued = self.ceremony.resend_otp(assignment.id, cmd.reason, cmd.actor.user_id, cmd.consent_method)
        return self._issued(issued, "New OTP generated; previous codes were invalidated.")


class VerifyConsentOtpHandler(_CeremonyHandler, CommandHandler[VerifyConsentOtpCommand]):
    """Only the patient themself or a provider party to the assignment may verify."""

    def handle(self, cmd: VerifyConsentOtpCommand) -> ConsentGrantedDTO:
        actor = cmd.actor
        assignment = resolve_consent_target(self.assignment_repo, cmd.patient_id, actor, cmd.assignment_id)
        if not (actor.is_patient(cmd.patient_id) or _is_party(actor, assignment)):
            raise Forbidden("Only the patient or a provider on this assignment can verify consent.")

        role = VerifierRole(cmd.verified_by) if cmd.verified_by else actor.verifier_role()
        if role is VerifierRole.PATIENT and not actor.is_patient(cmd.patient_id):
            raise Forbidden("Only the patient can verify as patient.")
        if role is VerifierRole.PROVIDER and not _is_party(actor, assignment):
            raise Forbidden("Only a provider on this assignment can verify as provider.")

        granted = self.ceremony.verify_otp(assignment.id, cmd.code, actor.user_id, role)
        return ConsentGrantedDTO(
            assignment_id=str(granted.assignment_id),
            consent_status=ConsentStatus.GRANTED.value,
            access_granted=True,
            verified_at=granted.verified_at,
        )


class DenyConsentHandler(_CeremonyHandler, CommandHandler[DenyConsentCommand]):
    def handle(self, cmd: DenyConsentCommand) -> ConsentDeniedDTO:
        actor = cmd.actor
        if not (actor.is_admin or actor.is_patient(cmd.patient_id)):
            raise Forbidden("Only the patient can deny consent.")
        assignment = resolve_consent_target(self.assignment_repo, cmd.patient_id, actor, cmd.assignment_id)
        denied = self.ceremony.deny_consent(assignment.id, actor.user_id)
        return ConsentDeniedDTO(assignment_id=str(denied.id), consent_status=denied.consent_status.value)


class ExpireStaleConsentsHandler(CommandHandler[ExpireStaleConsentsCommand]):
    def __init__(self, ceremony: ConsentCeremonyService):
        self.ceremony = ceremony

    def handle(self, cmd: ExpireStaleConsentsCommand) -> SweepReport:
        return self.ceremony.expire_stale_consents()
