"""
Read models returned by the consent handlers. Field names are snake_case;
the HTTP edge dumps them with camelCase aliases.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class AssignmentCreatedDTO(_CamelModel):
    assignment_id: str
    assignment_type: str
    requires_consent: bool
    consent_status: str
    access_granted: bool
    same_organization: bool
    expires_at: datetime | None = None
    message: str


class OtpIssuedDTO(_CamelModel):
    assignment_id: str
    otp_exists: bool = True
    expires_at: datetime
    attempts_remaining: int
    consent_method: str
    delivery_status: str
    invalidated_count: int | None = None
    code: str | None = None
    message: str


class ConsentGrantedDTO(_CamelModel):
    assignment_id: str
    consent_status: str
    access_granted: bool
    verified_at: datetime
    message: str = "Consent granted successfully."


class ConsentDeniedDTO(_CamelModel):
    assignment_id: str
    consent_status: str
    access_granted: bool = False


class AssignmentRevokedDTO(_CamelModel):
    assignment_id: str
    is_active: bool = False
    deactivated_at: datetime | None = None


class OtpSummaryDTO(_CamelModel):
    otp_id: str
    status: str
    delivery_method: str
    delivery_status: str
    created_at: datetime
    expires_at: datetime
    verification_attempts: int
    attempts_remaining: int
    verified_at: datetime | None = None
    blocked_reason: str | None = None


class AssignmentConsentDTO(_CamelModel):
    assignment_id: str
    assignment_type: str
    primary_provider_id: str | None = None
    secondary_doctor_id: str | None = None
    secondary_hsp_id: str | None = None
    requires_consent: bool
    consent_status: str
    access_granted: bool
    consent_granted_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool
    permissions: dict[str, bool]
    latest_otp: OtpSummaryDTO | None = None


class ConsentSummaryDTO(_CamelModel):
    total: int
    granted: int
    pending: int
    denied: int
    expired: int
    with_access: int


class ConsentStatusDTO(_CamelModel):
    patient_id: str
    assignments: list[AssignmentConsentDTO] = Field(default_factory=list)
    summary: ConsentSummaryDTO


class AccessCheckDTO(_CamelModel):
    patient_id: str
    provider_id: str
    has_access: bool
    assignment_id: str | None = None
    assignment_type: str | None = None
    consent_status: str | None = None
    reason: str
    permissions: dict[str, bool]
