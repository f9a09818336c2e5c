"""Brevo e-mail/SMS notifiers and the notifier registry, with httpx mocked."""
from unittest.mock import patch

import httpx
from django.test import SimpleTestCase

from care_consent.adapters.notifiers.base import NotifierError
from care_consent.adapters.notifiers.email.brevo import BrevoEmail
from care_consent.adapters.notifiers.registry import get_notifier
from care_consent.adapters.notifiers.sms.brevo_sms import BrevoSMS, normalize_phone
from care_consent.adapters.notifiers.templates import render_otp_message
from care_consent.core.domain.entities.enums import DeliveryMethod

HTTPX_REQUEST = "care_consent.adapters.notifiers.base.httpx.request"


def _response(status: int, url: str, **kw) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url), **kw)


class BrevoEmailTests(SimpleTestCase):
    def setUp(self) -> None:
        self.notifier = BrevoEmail(api_key="key-123", from_email="care@example.com", sender_name="Care Team")

    def test_posts_transactional_email(self) -> None:
        with patch(HTTPX_REQUEST, return_value=_response(201, BrevoEmail.ENDPOINT, json={"messageId": "x"})) as req:
            self.notifier.send("ana@example.com", "Your code", "<p>123456</p>")

        method, url = req.call_args.args
        self.assertEqual((method, url), ("POST", BrevoEmail.ENDPOINT))
        payload = req.call_args.kwargs["json"]
        self.assertEqual(payload["to"], [{"email": "ana@example.com"}])
        self.assertEqual(payload["sender"]["email"], "care@example.com")
        self.assertEqual(req.call_args.kwargs["headers"]["api-key"], "key-123")

    def test_rejection_raises_notifier_error(self) -> None:
        resp = _response(400, BrevoEmail.ENDPOINT, json={"code": "invalid_parameter"})
        with patch(HTTPX_REQUEST, return_value=resp), self.assertRaises(NotifierError) as ctx:
            self.notifier.send("ana@example.com", "Your code", "body")
        self.assertIn("HTTP 400", str(ctx.exception))

    def test_missing_api_key(self) -> None:
        with patch(HTTPX_REQUEST) as req, self.assertRaises(NotifierError):
            BrevoEmail(api_key=None, from_email="care@example.com").send("ana@example.com", "s", "b")
        req.assert_not_called()


class BrevoSmsTests(SimpleTestCase):
    def test_sends_e164_without_plus(self) -> None:
        notifier = BrevoSMS(api_key="key-123", sender="CareTeamClinicNorth")
        with patch(HTTPX_REQUEST, return_value=_response(201, BrevoSMS.ENDPOINT, json={})) as req:
            notifier.send("(415) 555-0132", "Your code", "Code 123456")

        payload = req.call_args.kwargs["json"]
        self.assertEqual(payload["recipient"], "14155550132")
        self.assertEqual(payload["sender"], "CareTeamCli")
        self.assertEqual(payload["type"], "transactional")

    def test_invalid_phone(self) -> None:
        with patch(HTTPX_REQUEST) as req, self.assertRaises(NotifierError):
            BrevoSMS(api_key="key-123", sender=None).send("12", "s", "b")
        req.assert_not_called()

    def test_normalize_phone(self) -> None:
        self.assertEqual(normalize_phone("+44 20 7946 0958"), "+442079460958")
        self.assertIsNone(normalize_phone(""))
        self.assertIsNone(normalize_phone("not a phone"))


class RegistryAndTemplateTests(SimpleTestCase):
    def test_registry(self) -> None:
        self.assertIsInstance(get_notifier(DeliveryMethod.EMAIL_OTP), BrevoEmail)
        self.assertIsInstance(get_notifier(DeliveryMethod.SMS_OTP), BrevoSMS)
        self.assertIsNone(get_notifier(DeliveryMethod.IN_PERSON))
        self.assertIsNone(get_notifier(DeliveryMethod.PHONE_CALL))

    def test_message_carries_code_and_ttl(self) -> None:
        sms = render_otp_message("482913", DeliveryMethod.SMS_OTP, 15, "Dr. Lee requests access.")
        self.assertTrue(sms.startswith("Dr. Lee requests access."))
        self.assertIn("482913", sms)
        self.assertIn("15 min", sms)
        self.assertIn("<b>482913</b>", render_otp_message("482913", DeliveryMethod.EMAIL_OTP, 15))
