from care_consent.core.application.consent_settings import ConsentSettings
from care_consent.core.application.cqrs import PagedResult, QueryHandler
from care_consent.core.application.dtos.consent_dto import (
    AccessCheckDTO,
    AssignmentConsentDTO,
    ConsentStatusDTO,
)
from care_consent.core.application.queries.consent_queries import (
    CheckAccessQuery,
    ConsentStatusQuery,
    ListSecondaryPatientsQuery,
)
from care_consent.core.application.services.consent_projection import (
    assignment_consent,
    consent_summary,
    effective_permissions,
)
from care_consent.core.domain.errors import Forbidden, ValidationError
from care_consent.core.domain.repositories.assignment_repository import AssignmentRepository
from care_consent.core.domain.repositories.consent_otp_repository import ConsentOtpRepository
from care_consent.core.domain.services.clock import Clock
from care_consent.core.domain.services.permission_matrix import NONE


class ConsentStatusHandler(QueryHandler[ConsentStatusQuery, ConsentStatusDTO]):
    """
    Consent overview for a patient. Admins and the patient see every active
    assignment; providers only the ones they take part in.
    """
    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        otp_repo: ConsentOtpRepository,
        clock: Clock,
        settings: ConsentSettings | None = None,
    ):
        self.assignment_repo = assignment_repo
        self.otp_repo = otp_repo
        self.clock = clock
        self.settings = settings or ConsentSettings()

    def handle(self, query: ConsentStatusQuery) -> ConsentStatusDTO:
        actor = query.actor
        if actor.is_admin or actor.is_patient(query.patient_id):
            scope = None
        elif actor.is_provider:
            scope = actor.provider_id
        else:
            raise Forbidden("Not allowed to read this patient's consent status.")

        now = self.clock.now()
        cutoff = self.settings.consent_cutoff(now)
        assignments = self.assignment_repo.list_for_patient(query.patient_id, scope)
        latest = self.otp_repo.latest_by_assignment([a.id for a in assignments])
        return ConsentStatusDTO(
            patient_id=str(query.patient_id),
            assignments=[assignment_consent(a, now, latest.get(a.id), cutoff) for a in assignments],
            summary=consent_summary(assignments, now, cutoff),
        )


class CheckAccessHandler(QueryHandler[CheckAccessQuery, AccessCheckDTO]):
    def __init__(self, assignment_repo: AssignmentRepository, clock: Clock, settings: ConsentSettings | None = None):
        self.assignment_repo = assignment_repo
        self.clock = clock
        self.settings = settings or ConsentSettings()

    def handle(self, query: CheckAccessQuery) -> AccessCheckDTO:
        actor = query.actor
        provider_id = query.provider_id or actor.provider_id
        if provider_id is None:
            raise ValidationError("providerId is required.")
        if not (actor.is_admin or actor.is_patient(query.patient_id) or actor.provider_id == provider_id):
            raise Forbidden("Not allowed to check access for another provider.")

        now = self.clock.now()
        cutoff = self.settings.consent_cutoff(now)
        assignment = self.assignment_repo.find_active_for_patient(query.patient_id, provider_id)
        if assignment is None:
            return AccessCheckDTO(
                patient_id=str(query.patient_id),
                provider_id=str(provider_id),
                has_access=False,
                reason="No active assignment for this provider.",
                permissions=NONE.to_dict(),
            )

        perms = effective_permissions(assignment, now, cutoff)
        if perms.grants_anything:
            reason = "Access granted."
        elif assignment.has_elapsed(now):
            reason = "Assignment has expired."
        else:
            reason = f"Consent {assignment.effective_status(cutoff).value}."
        return AccessCheckDTO(
            patient_id=str(query.patient_id),
            provider_id=str(provider_id),
            has_access=perms.grants_anything,
            assignment_id=str(assignment.id),
            assignment_type=assignment.assignment_type.value,
            consent_status=assignment.effective_status(cutoff).value,
            reason=reason,
            permissions=perms.to_dict(),
        )


class ListSecondaryPatientsHandler(QueryHandler[ListSecondaryPatientsQuery, PagedResult[AssignmentConsentDTO]]):
    def __init__(self, assignment_repo: AssignmentRepository, clock: Clock, settings: ConsentSettings | None = None):
        self.assignment_repo = assignment_repo
        self.clock = clock
        self.settings = settings or ConsentSettings()

    def handle(self, query: ListSecondaryPatientsQuery) -> PagedResult[AssignmentConsentDTO]:
        if not query.actor.is_provider:
            raise Forbidden("Only providers have secondary patients.")
        items, total = self.assignment_repo.list_for_secondary_provider(
            query.actor.provider_id, query.page, query.page_size
        )
        now = self.clock.now()
        cutoff = self.settings.consent_cutoff(now)
        return PagedResult(
            items=[assignment_consent(a, now, consent_cutoff=cutoff) for a in items],
            total=total,
            page=query.page,
            page_size=query.page_size,
        )
