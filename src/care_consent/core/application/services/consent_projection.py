from __future__ import annotations

from datetime import datetime

from care_consent.core.application.dtos.consent_dto import (
    AssignmentConsentDTO,
    ConsentSummaryDTO,
    OtpSummaryDTO,
)
from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.consent_otp_entity import ConsentOtpEntity
from care_consent.core.domain.entities.enums import ConsentStatus
from care_consent.core.domain.services.permission_matrix import NONE, CapabilitySet, permissions_for


def _str(value) -> str | None:
    return str(value) if value is not None else None


def effective_permissions(
    assignment: AssignmentEntity, now: datetime, consent_cutoff: datetime | None = None
) -> CapabilitySet:
    if not assignment.effective_access(now, consent_cutoff):
        return NONE
    return permissions_for(assignment.assignment_type, assignment.consent_status)


def otp_summary(otp: ConsentOtpEntity, now: datetime) -> OtpSummaryDTO:
    return OtpSummaryDTO(
        otp_id=str(otp.id),
        status=otp.state(now),
        delivery_method=otp.delivery_method.value,
        delivery_status=otp.delivery_status.value,
        created_at=otp.created_at,
        expires_at=otp.expires_at,
        verification_attempts=otp.verification_attempts,
        attempts_remaining=otp.attempts_remaining,
        verified_at=otp.verified_at,
        blocked_reason=otp.blocked_reason.value if otp.blocked_reason else None,
    )


def assignment_consent(
    assignment: AssignmentEntity,
    now: datetime,
    latest_otp: ConsentOtpEntity | None = None,
    consent_cutoff: datetime | None = None,
) -> AssignmentConsentDTO:
    return AssignmentConsentDTO(
        assignment_id=str(assignment.id),
        assignment_type=assignment.assignment_type.value,
        primary_provider_id=_str(assignment.primary_provider_id),
        secondary_doctor_id=_str(assignment.secondary_doctor_id),
        secondary_hsp_id=_str(assignment.secondary_hsp_id),
        requires_consent=assignment.requires_consent,
        consent_status=assignment.effective_status(consent_cutoff).value,
        access_granted=assignment.effective_access(now, consent_cutoff),
        consent_granted_at=assignment.consent_granted_at,
        expires_at=assignment.expires_at,
        is_active=assignment.is_active,
        permissions=effective_permissions(assignment, now, consent_cutoff).to_dict(),
        latest_otp=otp_summary(latest_otp, now) if latest_otp else None,
    )


def consent_summary(
    assignments: list[AssignmentEntity], now: datetime, consent_cutoff: datetime | None = None
) -> ConsentSummaryDTO:
    def count(status: ConsentStatus) -> int:
        return sum(1 for a in assignments if a.effective_status(consent_cutoff) is status)

    return ConsentSummaryDTO(
        total=len(assignments),
        granted=count(ConsentStatus.GRANTED) + count(ConsentStatus.NOT_REQUIRED),
        pending=count(ConsentStatus.PENDING),
        denied=count(ConsentStatus.DENIED),
        expired=count(ConsentStatus.EXPIRED),
        with_access=sum(1 for a in assignments if a.effective_access(now, consent_cutoff)),
    )
