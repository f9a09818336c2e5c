from care_consent.core.application.commands.assignment_commands import (
    CreateAssignmentCommand,
    CreatePrimaryAssignmentCommand,
    RevokeAssignmentCommand,
)
from care_consent.core.application.cqrs import CommandHandler
from care_consent.core.application.dtos.consent_dto import AssignmentCreatedDTO, AssignmentRevokedDTO
from care_consent.core.application.services.assignment_service import AssignmentService, CreatedAssignment


def _created(result: CreatedAssignment) -> AssignmentCreatedDTO:
    a = result.assignment
    return AssignmentCreatedDTO(
        assignment_id=str(a.id),
        assignment_type=a.assignment_type.value,
        requires_consent=a.requires_consent,
        consent_status=a.consent_status.value,
        access_granted=a.access_granted,
        same_organization=result.decision.same_organization,
        expires_at=a.expires_at,
        message=result.decision.reason,
    )


class CreatePrimaryAssignmentHandler(CommandHandler[CreatePrimaryAssignmentCommand]):
    def __init__(self, assignment_service: AssignmentService):
        self.assignment_service = assignment_service

    def handle(self, cmd: CreatePrimaryAssignmentCommand) -> AssignmentCreatedDTO:
        return _created(self.assignment_service.create_primary(cmd.patient_id, cmd.provider_id, cmd.actor))


class CreateAssignmentHandler(CommandHandler[CreateAssignmentCommand]):
    """Creates a secondary assignment; consent requirement follows the access policy."""
    def __init__(self, assignment_service: AssignmentService):
        self.assignment_service = assignment_service

    def handle(self, cmd: CreateAssignmentCommand) -> AssignmentCreatedDTO:
        result = self.assignment_service.create_secondary(
            cmd.patient_id,
            cmd.actor,
            secondary_doctor_id=cmd.secondary_doctor_id,
            secondary_hsp_id=cmd.secondary_hsp_id,
            assignment_type=cmd.assignment_type,
            assignment_reason=cmd.assignment_reason,
            specialty_focus=list(cmd.specialty_focus),
            care_plan_ids=list(cmd.care_plan_ids),
            requires_consent=cmd.requires_consent,
            expires_in_days=cmd.expires_in_days,
            notes=cmd.notes,
        )
        return _created(result)


class RevokeAssignmentHandler(CommandHandler[RevokeAssignmentCommand]):
    def __init__(self, assignment_service: AssignmentService):
        self.assignment_service = assignment_service

    def handle(self, cmd: RevokeAssignmentCommand) -> AssignmentRevokedDTO:
        a = self.assignment_service.revoke(cmd.assignment_id, cmd.actor)
        return AssignmentRevokedDTO(assignment_id=str(a.id), is_active=a.is_active, deactivated_at=a.deactivated_at)
