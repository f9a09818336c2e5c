"""Celery delivery and sweep tasks against the ORM, with the notifiers mocked."""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.conf import settings
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from care_consent.adapters.config.composition_root import setup_di_container_from_settings
from care_consent.adapters.message_broker.tasks import deliver_consent_otp, expire_stale_consents
from care_consent.adapters.notifiers.base import NotifierError
from care_consent.core.application.commands.assignment_commands import (
    CreateAssignmentCommand,
    CreatePrimaryAssignmentCommand,
)
from care_consent.core.application.commands.consent_commands import RequestConsentOtpCommand
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.enums import DeliveryMethod
from plugins.django_interface.models import Assignment, ConsentOtp
from tests.helpers.factories import make_organization, make_patient, make_provider, make_user
from tests.helpers.notifier_patches import patch_notifiers

DELAY = "care_consent.adapters.message_broker.consent_delivery.deliver_consent_otp.delay"


class DeliveryTaskTestCase(TestCase):
    def setUp(self) -> None:
        self.bus = setup_di_container_from_settings(settings).command_bus()
        self.notifiers = patch_notifiers(self)

        admin = Actor(user_id=make_user("admin").id, role="admin")
        self.patient = make_patient(email="ana@example.com", phone="+1 415 555 0132")
        primary = make_provider("doctor", make_organization())
        specialist = make_provider("doctor", make_organization())
        self.bus.dispatch(CreatePrimaryAssignmentCommand(patient_id=self.patient.id, provider_id=primary.id, actor=admin))
        created = self.bus.dispatch(
            CreateAssignmentCommand(
                patient_id=self.patient.id,
                actor=admin,
                secondary_doctor_id=specialist.id,
                assignment_reason="Cardiology follow-up",
            )
        )
        self.assignment_id = created.assignment_id
        self.specialist = Actor(user_id=specialist.user_id, role="doctor", provider_id=specialist.id)

    def issue(self, method=DeliveryMethod.EMAIL_OTP):
        """Issues an OTP and returns the arguments the delivery task was queued with."""
        with patch(DELAY) as delay, self.captureOnCommitCallbacks(execute=True):
            self.bus.dispatch(
                RequestConsentOtpCommand(patient_id=self.patient.id, actor=self.specialist, consent_method=method)
            )
        return delay.call_args.args if delay.called else None

    def otp_row(self) -> ConsentOtp:
        return ConsentOtp.objects.get(assignment_id=self.assignment_id)


class DeliverConsentOtpTests(DeliveryTaskTestCase):
    def test_email_is_sent_and_recorded(self) -> None:
        args = self.issue()
        self.assertEqual(args[2], "ana@example.com")

        result = deliver_consent_otp.apply(args=args).get()

        self.assertEqual(result, "sent")
        self.assertEqual(self.otp_row().delivery_status, "sent")
        _, recipient, _subject, body = self.notifiers["email"].call_args.args
        self.assertEqual(recipient, "ana@example.com")
        self.assertIn(args[3], body)

    def test_sms_goes_to_the_phone(self) -> None:
        args = self.issue(DeliveryMethod.SMS_OTP)

        deliver_consent_otp.apply(args=args).get()

        self.notifiers["sms"].assert_called_once()
        self.assertEqual(self.notifiers["sms"].call_args.args[1], "+1 415 555 0132")
        self.notifiers["email"].assert_not_called()

    def test_provider_rejection_marks_failed(self) -> None:
        self.notifiers["email"].side_effect = NotifierError("brevo e-mail rejected with HTTP 400")
        args = self.issue()

        result = deliver_consent_otp.apply(args=args).get()

        self.assertEqual(result, "failed")
        row = self.otp_row()
        self.assertEqual(row.delivery_status, "failed")
        self.assertIn("HTTP 400", row.delivery_error)

    def test_rotated_code_is_not_sent(self) -> None:
        stale = self.issue()
        self.issue()

        result = deliver_consent_otp.apply(args=stale).get()

        self.assertEqual(result, "skipped")
        self.notifiers["email"].assert_not_called()

    def test_expired_code_is_not_sent(self) -> None:
        args = self.issue()
        ConsentOtp.objects.filter(assignment_id=self.assignment_id).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        self.assertEqual(deliver_consent_otp.apply(args=args).get(), "skipped")
        self.notifiers["email"].assert_not_called()

    def test_in_person_is_never_queued(self) -> None:
        self.assertIsNone(self.issue(DeliveryMethod.IN_PERSON))
        self.assertEqual(self.otp_row().delivery_status, "skipped")


class SweepTaskTests(DeliveryTaskTestCase):
    def lapse(self) -> None:
        self.issue()
        ConsentOtp.objects.filter(assignment_id=self.assignment_id).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

    def test_task_expires_lapsed_ceremony(self) -> None:
        self.lapse()

        report = expire_stale_consents.apply().get()

        self.assertEqual(report["expired_pending"], 1)
        row = Assignment.objects.get(id=self.assignment_id)
        self.assertEqual(row.consent_status, "expired")
        self.assertFalse(row.access_granted)

    def test_management_command(self) -> None:
        self.lapse()
        out = StringIO()

        call_command("expire_consents", stdout=out)

        self.assertIn("Expired pending: 1", out.getvalue())
        again = expire_stale_consents.apply().get()
        self.assertEqual(again["expired_pending"], 0)
