"""Access policy, permission matrix and calendar helpers."""
import uuid
from datetime import UTC, datetime

from django.test import SimpleTestCase

from care_consent.core.domain.entities.enums import AssignmentType, ConsentStatus
from care_consent.core.domain.services.access_policy import evaluate_access_policy
from care_consent.core.domain.services.clock import subtract_months
from care_consent.core.domain.services.otp_codes import OtpCodec
from care_consent.core.domain.services.permission_matrix import FULL, NONE, permissions_for


class AccessPolicyTests(SimpleTestCase):
    def setUp(self) -> None:
        self.org_a = uuid.uuid4()
        self.org_b = uuid.uuid4()

    def test_same_organization_grants_immediately(self) -> None:
        decision = evaluate_access_policy(self.org_a, self.org_a)
        self.assertFalse(decision.requires_consent)
        self.assertIs(decision.consent_status, ConsentStatus.GRANTED)
        self.assertTrue(decision.access_granted)
        self.assertTrue(decision.same_organization)

    def test_cross_organization_requires_consent(self) -> None:
        decision = evaluate_access_policy(self.org_a, self.org_b)
        self.assertTrue(decision.requires_consent)
        self.assertIs(decision.consent_status, ConsentStatus.PENDING)
        self.assertFalse(decision.access_granted)
        self.assertEqual(decision.reason, "Different organization - patient consent required")

    def test_missing_organization_is_never_same(self) -> None:
        self.assertTrue(evaluate_access_policy(None, None).requires_consent)
        self.assertTrue(evaluate_access_policy(self.org_a, None).requires_consent)

    def test_override_wins_over_organization(self) -> None:
        self.assertTrue(evaluate_access_policy(self.org_a, self.org_a, override=True).requires_consent)
        self.assertFalse(evaluate_access_policy(self.org_a, self.org_b, override=False).requires_consent)

    def test_transferred_always_requires_consent(self) -> None:
        decision = evaluate_access_policy(self.org_a, self.org_a, assignment_type=AssignmentType.TRANSFERRED)
        self.assertTrue(decision.requires_consent)
        self.assertEqual(decision.reason, "Patient consent required for this assignment")

    def test_primary_never_requires_consent(self) -> None:
        decision = evaluate_access_policy(None, None, assignment_type=AssignmentType.PRIMARY)
        self.assertFalse(decision.requires_consent)
        self.assertTrue(decision.access_granted)

    def test_access_flag_follows_consent(self) -> None:
        for primary, secondary, override in [
            (self.org_a, self.org_a, None),
            (self.org_a, self.org_b, None),
            (self.org_a, self.org_a, True),
            (self.org_a, self.org_b, False),
        ]:
            d = evaluate_access_policy(primary, secondary, override=override)
            self.assertEqual(d.access_granted, (not d.requires_consent) or d.consent_status is ConsentStatus.GRANTED)


class PermissionMatrixTests(SimpleTestCase):
    def test_every_assignment_type_has_a_row(self) -> None:
        for t in AssignmentType:
            permissions_for(t, ConsentStatus.GRANTED)

    def test_substitute_cannot_create_care_plans(self) -> None:
        perms = permissions_for(AssignmentType.SUBSTITUTE, ConsentStatus.GRANTED)
        self.assertFalse(perms.create_care_plan)
        self.assertTrue(perms.modify_care_plan)
        self.assertTrue(perms.prescribe)

    def test_transferred_is_empty_until_granted(self) -> None:
        self.assertEqual(permissions_for(AssignmentType.TRANSFERRED, ConsentStatus.PENDING), NONE)
        self.assertEqual(permissions_for(AssignmentType.TRANSFERRED, ConsentStatus.GRANTED), FULL)

    def test_specialist_has_full_capabilities(self) -> None:
        perms = permissions_for(AssignmentType.SPECIALIST, ConsentStatus.NOT_REQUIRED)
        self.assertTrue(all(perms.to_dict().values()))


class ClockAndCodecTests(SimpleTestCase):
    def test_subtract_months_clamps_day(self) -> None:
        value = datetime(2025, 8, 31, 9, 30, tzinfo=UTC)
        self.assertEqual(subtract_months(value, 6), datetime(2025, 2, 28, 9, 30, tzinfo=UTC))
        self.assertEqual(subtract_months(datetime(2025, 3, 15, tzinfo=UTC), 6), datetime(2024, 9, 15, tzinfo=UTC))

    def test_codes_are_six_digits_and_digest_is_keyed(self) -> None:
        codec = OtpCodec(secret="one")
        code = codec.generate()
        self.assertRegex(code, r"^\d{6}$")
        self.assertTrue(codec.matches(code, codec.digest(code)))
        self.assertNotEqual(codec.digest(code), OtpCodec(secret="two").digest(code))

    def test_malformed_code_never_matches(self) -> None:
        codec = OtpCodec(secret="one")
        self.assertFalse(codec.matches("12345", codec.digest("12345")))
        self.assertFalse(codec.matches("", codec.digest("")))

    def test_codec_requires_secret(self) -> None:
        with self.assertRaises(ValueError):
            OtpCodec(secret="")
