"""Tests for authentication and JWT tokens."""

from django.conf import settings
from django.test import TestCase
from django.urls import reverse

from care_consent.adapters.security.hash_service import HashService
from care_consent.adapters.security.jwt_service import JWTService
from tests.helpers.factories import DEFAULT_PASSWORD, make_patient, make_user


class AuthTokenTests(TestCase):
    def test_login_returns_token_and_cookie(self) -> None:
        user = make_user("doctor", email="doctor@example.com")

        resp = self.client.post(reverse("login"), {"email": user.email, "password": DEFAULT_PASSWORD})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["role"], "doctor")
        cookie = resp.cookies.get(settings.AUTH_COOKIE_NAME)
        self.assertIsNotNone(cookie, "JWT cookie not set")
        self.assertEqual(cookie.value, resp.data["token"])
        payload = JWTService.decode_token(cookie.value)
        self.assertEqual(payload["sub"], str(user.id))
        self.assertEqual(payload["role"], "doctor")

    def test_wrong_password_is_rejected(self) -> None:
        user = make_user("admin")

        resp = self.client.post(reverse("login"), {"email": user.email, "password": "not-the-password"})

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["error"]["code"], "invalid_credentials")
        self.assertNotIn(settings.AUTH_COOKIE_NAME, resp.cookies)

    def test_inactive_user_cannot_log_in(self) -> None:
        user = make_user("admin")
        user.is_active = False
        user.save(update_fields=["is_active"])

        resp = self.client.post(reverse("login"), {"email": user.email, "password": DEFAULT_PASSWORD})
        self.assertEqual(resp.status_code, 401)

    def test_cookie_authenticates_follow_up_requests(self) -> None:
        patient = make_patient()
        self.client.post(reverse("login"), {"email": patient.user.email, "password": DEFAULT_PASSWORD})

        resp = self.client.get(reverse("consent-status", kwargs={"patient_id": patient.id}))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["patientId"], str(patient.id))

    def test_tampered_token_is_rejected(self) -> None:
        patient = make_patient()
        token = JWTService.create_token(subject=str(patient.user.id), expires_in=60, role="patient")

        resp = self.client.get(
            reverse("consent-status", kwargs={"patient_id": patient.id}),
            HTTP_AUTHORIZATION=f"Bearer {token[:-2]}xx",
        )
        self.assertEqual(resp.status_code, 401)

    def test_logout_clears_cookie(self) -> None:
        user = make_user("admin")
        self.client.post(reverse("login"), {"email": user.email, "password": DEFAULT_PASSWORD})

        resp = self.client.post(reverse("logout"))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.cookies[settings.AUTH_COOKIE_NAME].value, "")


class HashServiceTests(TestCase):
    def test_verify(self) -> None:
        hashed = HashService.hash_password("s3cret")
        self.assertTrue(HashService.verify("s3cret", hashed))
        self.assertFalse(HashService.verify("other", hashed))
        self.assertFalse(HashService.verify("s3cret", "not-a-bcrypt-hash"))
