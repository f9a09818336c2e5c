from __future__ import annotations

from dataclasses import asdict, dataclass

from care_consent.core.domain.entities.enums import AssignmentType, ConsentStatus


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    view: bool = False
    create_care_plan: bool = False
    modify_care_plan: bool = False
    prescribe: bool = False
    order_tests: bool = False
    full_history: bool = False

    @property
    def grants_anything(self) -> bool:
        return any(asdict(self).values())

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


FULL = CapabilitySet(True, True, True, True, True, True)
NONE = CapabilitySet()

# transferred is resolved against the consent status, see `permissions_for`
PERMISSION_MATRIX: dict[AssignmentType, CapabilitySet] = {
    AssignmentType.PRIMARY: FULL,
    AssignmentType.SPECIALIST: FULL,
    AssignmentType.SUBSTITUTE: CapabilitySet(
        view=True,
        create_care_plan=False,
        modify_care_plan=True,
        prescribe=True,
        order_tests=True,
        full_history=True,
    ),
    AssignmentType.TRANSFERRED: FULL,
}


def permissions_for(assignment_type: AssignmentType, consent_status: ConsentStatus) -> CapabilitySet:
    assignment_type = AssignmentType(assignment_type)
    if assignment_type is AssignmentType.TRANSFERRED and ConsentStatus(consent_status) is not ConsentStatus.GRANTED:
        return NONE
    return PERMISSION_MATRIX[assignment_type]
