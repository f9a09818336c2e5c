"""
Access policy evaluator.

Decides, at assignment creation, whether the secondary provider needs the
patient's consent and what the initial consent/access fields look like.
Pure: takes organization ids, returns an `AccessDecision`.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from care_consent.core.domain.entities.enums import AssignmentType, ConsentStatus


@dataclass(frozen=True, slots=True)
class AccessDecision:
    requires_consent: bool
    consent_status: ConsentStatus
    access_granted: bool
    same_organization: bool

    @property
    def reason(self) -> str:
        if not self.requires_consent:
            if self.same_organization:
                return "Same organization - automatic access granted"
            return "Consent not required - access granted"
        if self.same_organization:
            return "Patient consent required for this assignment"
        return "Different organization - patient consent required"


def same_organization(primary_org_id: uuid.UUID | None, secondary_org_id: uuid.UUID | None) -> bool:
    return primary_org_id is not None and secondary_org_id is not None and primary_org_id == secondary_org_id


def evaluate_access_policy(
    primary_org_id: uuid.UUID | None,
    secondary_org_id: uuid.UUID | None,
    *,
    override: bool | None = None,
    assignment_type: AssignmentType = AssignmentType.SPECIALIST,
) -> AccessDecision:
    shared = same_organization(primary_org_id, secondary_org_id)

    if override is not None:
        requires = override
    elif assignment_type is AssignmentType.PRIMARY:
        requires = False
    elif assignment_type is AssignmentType.TRANSFERRED:
        requires = True
    else:
        requires = not shared

    if requires:
        return AccessDecision(True, ConsentStatus.PENDING, False, shared)
    return AccessDecision(False, ConsentStatus.GRANTED, True, shared)
