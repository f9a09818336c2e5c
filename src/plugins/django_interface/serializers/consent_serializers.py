# =========================================================
# Request bodies for the consent endpoints. Keys are camelCase
# on the wire; `source=` maps them to the snake_case names the
# commands use.
# =========================================================
from rest_framework import serializers

from care_consent.core.application.services.assignment_service import MAX_ASSIGNMENT_DAYS, MIN_REASON_LENGTH
from care_consent.core.domain.entities.enums import AssignmentType, DeliveryMethod, VerifierRole

SECONDARY_TYPES = [t.value for t in AssignmentType if t is not AssignmentType.PRIMARY]


# ───────────────────────────────────────────────
# Assignments
# ───────────────────────────────────────────────
class CreateAssignmentSerializer(serializers.Serializer):
    secondaryDoctorId = serializers.UUIDField(source="secondary_doctor_id", required=False, allow_null=True)  # noqa: N815
    secondaryHspId    = serializers.UUIDField(source="secondary_hsp_id", required=False, allow_null=True)  # noqa: N815
    assignmentReason  = serializers.CharField(source="assignment_reason", min_length=MIN_REASON_LENGTH, trim_whitespace=True)  # noqa: N815
    assignmentType    = serializers.ChoiceField(source="assignment_type", choices=SECONDARY_TYPES, default=AssignmentType.SPECIALIST.value)  # noqa: N815
    specialtyFocus    = serializers.ListField(source="specialty_focus", child=serializers.CharField(max_length=100), required=False, default=list)  # noqa: N815
    carePlanIds       = serializers.ListField(source="care_plan_ids", child=serializers.UUIDField(), required=False, default=list)  # noqa: N815
    requiresConsent   = serializers.BooleanField(source="requires_consent", required=False, allow_null=True, default=None)  # noqa: N815
    expiresInDays     = serializers.IntegerField(source="expires_in_days", min_value=1, max_value=MAX_ASSIGNMENT_DAYS, required=False, default=None, allow_null=True)  # noqa: N815
    notes             = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate(self, attrs):
        doctor, hsp = attrs.get("secondary_doctor_id"), attrs.get("secondary_hsp_id")
        if bool(doctor) == bool(hsp):
            raise serializers.ValidationError("Exactly one of secondaryDoctorId or secondaryHspId is required.")
        attrs["assignment_type"] = AssignmentType(attrs["assignment_type"])
        return attrs


class CreatePrimaryAssignmentSerializer(serializers.Serializer):
    providerId = serializers.UUIDField(source="provider_id")  # noqa: N815


# ───────────────────────────────────────────────
# Consent ceremony
# ───────────────────────────────────────────────
class RequestOtpSerializer(serializers.Serializer):
    consentMethod = serializers.ChoiceField(source="consent_method", choices=[m.value for m in DeliveryMethod], default=DeliveryMethod.EMAIL_OTP.value)  # noqa: N815
    assignmentId  = serializers.UUIDField(source="assignment_id", required=False, allow_null=True, default=None)  # noqa: N815
    message       = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500, default=None)

    def validate_consentMethod(self, value):  # noqa: N802
        return DeliveryMethod(value)


class ResendOtpSerializer(serializers.Serializer):
    consentMethod = serializers.ChoiceField(source="consent_method", choices=[m.value for m in DeliveryMethod], required=False, allow_null=True, default=None)  # noqa: N815
    assignmentId  = serializers.UUIDField(source="assignment_id", required=False, allow_null=True, default=None)  # noqa: N815
    reason        = serializers.CharField(min_length=5, max_length=500, default="OTP resend requested")

    def validate_consentMethod(self, value):  # noqa: N802
        return DeliveryMethod(value) if value else None


class VerifyOtpSerializer(serializers.Serializer):
    code         = serializers.RegexField(r"^\d{6}$", error_messages={"invalid": "Code must be exactly 6 digits."})
    assignmentId = serializers.UUIDField(source="assignment_id", required=False, allow_null=True, default=None)  # noqa: N815
    verifiedBy   = serializers.ChoiceField(source="verified_by", choices=[r.value for r in VerifierRole], required=False, allow_null=True, default=None)  # noqa: N815

    def validate_verifiedBy(self, value):  # noqa: N802
        return VerifierRole(value) if value else None


class DenyConsentSerializer(serializers.Serializer):
    assignmentId = serializers.UUIDField(source="assignment_id", required=False, allow_null=True, default=None)  # noqa: N815


# ───────────────────────────────────────────────
# Auth & listing
# ───────────────────────────────────────────────
class LoginSerializer(serializers.Serializer):
    email    = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class PaginationSerializer(serializers.Serializer):
    page     = serializers.IntegerField(min_value=1, default=1)
    pageSize = serializers.IntegerField(source="page_size", min_value=1, max_value=200, default=50)  # noqa: N815


class AccessCheckSerializer(serializers.Serializer):
    providerId = serializers.UUIDField(source="provider_id", required=False, allow_null=True, default=None)  # noqa: N815
