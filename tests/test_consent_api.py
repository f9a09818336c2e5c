"""HTTP surface of the consent endpoints, end to end through the DI container."""
from unittest.mock import patch

from django.urls import reverse
from rest_framework.test import APITestCase

from plugins.django_interface.models import Assignment, ConsentOtp
from tests.helpers.factories import make_organization, make_patient, make_provider, make_user, token_for

DELAY = "care_consent.adapters.message_broker.consent_delivery.deliver_consent_otp.delay"


class ConsentApiTestCase(APITestCase):
    def setUp(self) -> None:
        self.org = make_organization()
        self.admin = make_user("admin")
        self.patient = make_patient()
        self.primary = make_provider("doctor", self.org)
        self.specialist = make_provider("doctor", make_organization())
        self.colleague = make_provider("doctor", self.org)

        resp = self.post("primary-assignment", self.admin, {"providerId": str(self.primary.id)})
        self.assertEqual(resp.status_code, 201, resp.data)

    # ---- plumbing ---- #
    def url(self, name, **kw):
        if name != "secondary-patients" and "assignment_id" not in kw:
            kw.setdefault("patient_id", self.patient.id)
        return reverse(name, kwargs=kw)

    def auth(self, user):
        return {"HTTP_AUTHORIZATION": f"Bearer {token_for(user)}"}

    def post(self, name, user, body=None, **kw):
        return self.client.post(self.url(name, **kw), body or {}, format="json", **self.auth(user))

    def get(self, name, user, params=None, **kw):
        return self.client.get(self.url(name, **kw), params or {}, **self.auth(user))

    def assign(self, provider, **body):
        body = {"secondaryDoctorId": str(provider.id), "assignmentReason": "Cardiology follow-up", **body}
        return self.post("assignment-create", self.primary.user, body)

    def issue(self, user, name="consent-request-otp", **body):
        """Runs the issuing call and returns the response plus the code handed to the delivery task."""
        with patch(DELAY) as delay, self.captureOnCommitCallbacks(execute=True):
            resp = self.post(name, user, body)
        code = delay.call_args.args[3] if delay.called else None
        return resp, code


class AssignmentApiTests(ConsentApiTestCase):
    def test_same_organization_is_granted_without_otp(self) -> None:
        resp = self.assign(self.colleague)

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["consentStatus"], "granted")
        self.assertTrue(resp.data["accessGranted"])
        self.assertTrue(resp.data["sameOrganization"])
        self.assertFalse(ConsentOtp.objects.exists())

    def test_cross_organization_is_pending(self) -> None:
        resp = self.assign(self.specialist)

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["consentStatus"], "pending")
        self.assertTrue(resp.data["requiresConsent"])
        self.assertFalse(resp.data["accessGranted"])
        self.assertEqual(resp.data["message"], "Different organization - patient consent required")

    def test_doctor_and_hsp_are_mutually_exclusive(self) -> None:
        hsp = make_provider("hsp", self.org)
        resp = self.assign(self.specialist, secondaryHspId=str(hsp.id))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["error"]["code"], "validation_error")

    def test_duplicate_assignment_conflicts(self) -> None:
        self.assign(self.specialist)
        resp = self.assign(self.specialist)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["error"]["code"], "conflict")

    def test_patient_cannot_create_assignments(self) -> None:
        resp = self.post(
            "assignment-create",
            self.patient.user,
            {"secondaryDoctorId": str(self.specialist.id), "assignmentReason": "Cardiology follow-up"},
        )
        self.assertEqual(resp.status_code, 403)

    def test_revoke(self) -> None:
        assignment_id = self.assign(self.colleague).data["assignmentId"]
        url = reverse("assignment-detail", kwargs={"assignment_id": assignment_id})

        resp = self.client.delete(url, **self.auth(self.primary.user))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.data["isActive"])
        self.assertFalse(Assignment.objects.get(id=assignment_id).access_granted)

        again = self.client.delete(url, **self.auth(self.primary.user))
        self.assertEqual(again.status_code, 404)


class ConsentCeremonyApiTests(ConsentApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.assignment_id = self.assign(self.specialist).data["assignmentId"]

    def test_request_and_verify_grants_access(self) -> None:
        resp, code = self.issue(self.specialist.user)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["assignmentId"], self.assignment_id)
        self.assertEqual(resp.data["attemptsRemaining"], 3)
        self.assertEqual(resp.data["deliveryStatus"], "queued")
        self.assertRegex(code, r"^\d{6}$")

        resp = self.post("consent-verify-otp", self.patient.user, {"code": code})
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["consentStatus"], "granted")
        self.assertTrue(resp.data["accessGranted"])

        access = self.get("patient-access", self.specialist.user, {"providerId": str(self.specialist.id)})
        self.assertEqual(access.status_code, 200)
        self.assertTrue(access.data["hasAccess"])
        self.assertTrue(access.data["permissions"]["full_history"])

        again = self.post(
            "consent-verify-otp", self.patient.user, {"code": code, "assignmentId": self.assignment_id}
        )
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.data["error"]["code"], "already_granted")

    def test_wrong_code_reports_attempts_remaining(self) -> None:
        self.issue(self.specialist.user)
        resp = self.post("consent-verify-otp", self.patient.user, {"code": "000000"})

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["error"]["code"], "incorrect_code")
        self.assertEqual(resp.data["error"]["attemptsRemaining"], 2)

    def test_malformed_code_is_a_validation_error(self) -> None:
        resp = self.post("consent-verify-otp", self.patient.user, {"code": "12ab"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["error"]["code"], "validation_error")
        self.assertIn("code", resp.data["error"]["fields"])

    def test_fourth_issue_is_rate_limited(self) -> None:
        for _ in range(3):
            resp, _ = self.issue(self.specialist.user)
            self.assertEqual(resp.status_code, 200)

        resp, code = self.issue(self.specialist.user, name="consent-resend-otp", reason="code not received")

        self.assertEqual(resp.status_code, 429)
        self.assertIsNone(code)
        self.assertEqual(resp.data["error"]["code"], "rate_limited")
        self.assertGreater(resp.data["error"]["retryAfterSeconds"], 0)
        self.assertEqual(resp["Retry-After"], str(resp.data["error"]["retryAfterSeconds"]))

    def test_resend_invalidates_previous_code(self) -> None:
        _, first = self.issue(self.specialist.user)
        resp, second = self.issue(self.patient.user, name="consent-resend-otp", reason="code not received")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["invalidatedCount"], 1)
        live = ConsentOtp.objects.filter(assignment_id=self.assignment_id, is_verified=False, is_blocked=False)
        self.assertEqual(live.count(), 1)
        if first != second:
            resp = self.post("consent-verify-otp", self.patient.user, {"code": first})
            self.assertEqual(resp.data["error"]["code"], "incorrect_code")

    def test_patient_denies(self) -> None:
        self.issue(self.specialist.user)
        resp = self.post("consent-deny", self.patient.user)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["consentStatus"], "denied")
        resend, _ = self.issue(self.specialist.user, name="consent-resend-otp")
        self.assertEqual(resend.status_code, 404)

    def test_provider_cannot_deny(self) -> None:
        resp = self.post("consent-deny", self.specialist.user)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["error"]["code"], "forbidden")

    def test_status_read(self) -> None:
        self.issue(self.specialist.user)
        resp = self.get("consent-status", self.patient.user)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["summary"]["total"], 2)
        self.assertEqual(resp.data["summary"]["pending"], 1)
        pending = next(a for a in resp.data["assignments"] if a["assignmentId"] == self.assignment_id)
        self.assertEqual(pending["latestOtp"]["status"], "pending")
        self.assertNotIn("codeDigest", pending["latestOtp"])

    def test_secondary_patients(self) -> None:
        resp = self.get("secondary-patients", self.specialist.user, {"pageSize": 10})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["total"], 1)
        self.assertEqual(resp.data["results"][0]["assignmentId"], self.assignment_id)

        forbidden = self.get("secondary-patients", self.patient.user)
        self.assertEqual(forbidden.status_code, 403)


class ApiEnvelopeTests(APITestCase):
    def test_unauthenticated_gets_401_envelope(self) -> None:
        patient = make_patient()
        resp = self.client.get(reverse("consent-status", kwargs={"patient_id": patient.id}))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["error"]["code"], "not_authenticated")

    def test_healthz_echoes_request_id(self) -> None:
        resp = self.client.get(reverse("healthz"), HTTP_X_REQUEST_ID="req-123")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["X-Request-ID"], "req-123")
