"""ORM adapters and the consent ceremony running on them."""
import uuid
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from care_consent.adapters.repositories.assignment_repo_impl import AssignmentRepoImpl
from care_consent.adapters.repositories.audit_event_repo_impl import AuditEventRepoImpl
from care_consent.adapters.repositories.care_directory_repo_impl import CareDirectoryRepoImpl
from care_consent.adapters.repositories.consent_otp_repo_impl import ConsentOtpRepoImpl
from care_consent.adapters.repositories.unit_of_work_impl import DjangoUnitOfWork
from care_consent.core.application.consent_settings import ConsentSettings
from care_consent.core.application.services.assignment_service import AssignmentService
from care_consent.core.application.services.consent_ceremony_service import ConsentCeremonyService
from care_consent.core.domain.entities.actor import Actor
from care_consent.core.domain.entities.consent_otp_entity import ConsentOtpEntity
from care_consent.core.domain.entities.enums import (
    BlockedReason,
    ConsentStatus,
    DeliveryMethod,
    UserRole,
    VerifierRole,
)
from care_consent.core.domain.errors import Conflict, IncorrectCode, OtpBlocked, RateLimited
from care_consent.core.domain.events.events import ConsentGrantedEvent
from care_consent.core.domain.services.clock import FrozenClock
from care_consent.core.domain.services.event_dispatcher import EventDispatcher
from care_consent.core.domain.services.otp_codes import OtpCodec
from plugins.django_interface.models import Assignment, AuditEvent, ConsentOtp, ConsentOtpIssuance
from tests.helpers.factories import make_organization, make_patient, make_provider, make_user
from tests.helpers.in_memory import RecordingDelivery


class OrmConsentTestCase(TestCase):
    def setUp(self) -> None:
        self.clock = FrozenClock(start=timezone.now().replace(microsecond=0))
        self.assignments = AssignmentRepoImpl()
        self.otps = ConsentOtpRepoImpl()
        self.delivery = RecordingDelivery()
        self.dispatcher = EventDispatcher()
        self.granted = []
        self.dispatcher.subscribe(ConsentGrantedEvent, self.granted.append)
        self.codec = OtpCodec(secret="test-secret")
        uow = DjangoUnitOfWork()
        common = dict(
            assignment_repo=self.assignments,
            directory=CareDirectoryRepoImpl(),
            uow=uow,
            audit=AuditEventRepoImpl(),
            clock=self.clock,
            settings=ConsentSettings(),
            dispatcher=self.dispatcher,
        )
        self.service = AssignmentService(**common)
        self.ceremony = ConsentCeremonyService(otp_repo=self.otps, delivery=self.delivery, codec=self.codec, **common)

        self.admin = Actor(user_id=make_user("admin").id, role=UserRole.ADMIN)
        self.patient = make_patient()
        self.primary = make_provider("doctor", make_organization())
        self.specialist = make_provider("doctor", make_organization())
        self.service.create_primary(self.patient.id, self.primary.id, self.admin)

    def open_ceremony(self):
        return self.service.create_secondary(
            self.patient.id,
            self.admin,
            secondary_doctor_id=self.specialist.id,
            assignment_reason="Second opinion on imaging",
        ).assignment


class AssignmentRepoTests(OrmConsentTestCase):
    def test_second_active_primary_conflicts(self) -> None:
        other = make_provider("doctor")
        with self.assertRaises(Conflict):
            self.service.create_primary(self.patient.id, other.id, self.admin)
        self.assertEqual(
            Assignment.objects.filter(patient=self.patient, assignment_type="primary", is_active=True).count(), 1
        )

    def test_duplicate_active_secondary_conflicts(self) -> None:
        self.open_ceremony()
        with self.assertRaises(Conflict):
            self.open_ceremony()

    def test_round_trip_and_lookups(self) -> None:
        created = self.open_ceremony()
        stored = self.assignments.find_by_id(created.id)

        self.assertEqual(stored.secondary_doctor_id, self.specialist.id)
        self.assertIs(stored.consent_status, ConsentStatus.PENDING)
        self.assertEqual(self.assignments.find_active_for_patient(self.patient.id, self.specialist.id).id, created.id)
        self.assertEqual(self.assignments.find_latest_awaiting_consent(self.patient.id).id, created.id)
        items, total = self.assignments.list_for_secondary_provider(self.specialist.id, 1, 10)
        self.assertEqual(total, 1)
        self.assertEqual(items[0].id, created.id)

    def test_deactivate_voids_access_once(self) -> None:
        primary = self.assignments.find_active_primary(self.patient.id)
        self.assertTrue(self.assignments.deactivate(primary.id, self.clock.now()))
        self.assertFalse(self.assignments.deactivate(primary.id, self.clock.now()))
        row = Assignment.objects.get(id=primary.id)
        self.assertFalse(row.is_active)
        self.assertFalse(row.access_granted)

    def test_creation_is_audited(self) -> None:
        created = self.open_ceremony()
        audit = AuditEvent.objects.get(resource_id=created.id, action="assignment.created")
        self.assertEqual(audit.outcome, "pending")
        self.assertEqual(audit.actor_id, self.admin.user_id)
        self.assertFalse(audit.detail["same_organization"])


class ConsentOtpRepoTests(OrmConsentTestCase):
    def new_otp(self, assignment_id, **kw):
        now = self.clock.now()
        return self.otps.create(
            ConsentOtpEntity(
                id=uuid.uuid4(),
                assignment_id=assignment_id,
                code_digest=self.codec.digest("123456"),
                delivery_method=DeliveryMethod.EMAIL_OTP,
                created_at=kw.pop("created_at", now),
                expires_at=kw.pop("expires_at", now + timedelta(minutes=15)),
                **kw,
            )
        )

    def test_failed_attempts_block_at_max(self) -> None:
        otp = self.new_otp(self.open_ceremony().id)
        for expected in (1, 2):
            self.assertEqual(self.otps.record_failed_attempt(otp.id, self.clock.now()).verification_attempts, expected)
        blocked = self.otps.record_failed_attempt(otp.id, self.clock.now())
        self.assertTrue(blocked.is_blocked)
        self.assertIs(blocked.blocked_reason, BlockedReason.MAX_ATTEMPTS)
        self.assertEqual(self.otps.record_failed_attempt(otp.id, self.clock.now()).verification_attempts, 3)

    def test_mark_verified_is_conditional(self) -> None:
        otp = self.new_otp(self.open_ceremony().id)
        now = self.clock.now()
        self.assertTrue(self.otps.mark_verified(otp.id, otp.code_digest, now, self.patient.user_id, "patient"))
        self.assertFalse(self.otps.mark_verified(otp.id, otp.code_digest, now, self.patient.user_id, "patient"))

    def test_mark_verified_rejects_rotated_digest(self) -> None:
        otp = self.new_otp(self.open_ceremony().id)
        now = self.clock.now()
        self.otps.rotate(
            otp.id,
            code_digest=self.codec.digest("654321"),
            delivery_method=DeliveryMethod.EMAIL_OTP,
            issued_at=now,
            expires_at=now + timedelta(minutes=15),
            requested_by=None,
            custom_message=None,
        )

        self.assertFalse(self.otps.mark_verified(otp.id, otp.code_digest, now, self.patient.user_id, "patient"))
        self.assertFalse(ConsentOtp.objects.get(id=otp.id).is_verified)

    def test_mark_verified_rejects_expired_row(self) -> None:
        otp = self.new_otp(self.open_ceremony().id)
        after = otp.expires_at + timedelta(seconds=1)
        self.assertFalse(self.otps.mark_verified(otp.id, otp.code_digest, after, self.patient.user_id, "patient"))

    def test_find_live_ignores_resolved_and_expired(self) -> None:
        assignment_id = self.open_ceremony().id
        now = self.clock.now()
        self.new_otp(assignment_id, expires_at=now - timedelta(seconds=1), created_at=now - timedelta(minutes=20))
        live = self.new_otp(assignment_id, created_at=now - timedelta(minutes=1))
        self.assertEqual(self.otps.find_live(assignment_id, now).id, live.id)

        touched = self.otps.block_unresolved(assignment_id, BlockedReason.RESEND_INVALIDATED, now)
        self.assertIn(live.id, touched)
        self.assertEqual(len(touched), 2)
        self.assertIsNone(self.otps.find_live(assignment_id, now))

    def test_latest_by_assignment(self) -> None:
        assignment_id = self.open_ceremony().id
        now = self.clock.now()
        self.new_otp(assignment_id, created_at=now - timedelta(minutes=5))
        newest = self.new_otp(assignment_id, created_at=now)
        self.assertEqual(self.otps.latest_by_assignment([assignment_id])[assignment_id].id, newest.id)
        self.assertEqual(self.otps.latest_by_assignment([]), {})


class OrmCeremonyTests(OrmConsentTestCase):
    def test_full_grant_persists(self) -> None:
        assignment = self.open_ceremony()
        with self.captureOnCommitCallbacks(execute=True):
            issued = self.ceremony.request_otp(assignment.id, DeliveryMethod.EMAIL_OTP, self.patient.user.id)
        row = ConsentOtp.objects.get(id=issued.otp.id)
        self.assertNotEqual(row.code_digest, issued.code)
        self.assertEqual(ConsentOtpIssuance.objects.filter(assignment_id=assignment.id).count(), 1)

        with self.captureOnCommitCallbacks(execute=True):
            self.ceremony.verify_otp(assignment.id, issued.code, self.patient.user.id, VerifierRole.PATIENT)

        stored = Assignment.objects.get(id=assignment.id)
        self.assertEqual(stored.consent_status, "granted")
        self.assertTrue(stored.access_granted)
        self.assertEqual(stored.consent_granted_by, self.patient.user.id)
        self.assertTrue(ConsentOtp.objects.get(id=issued.otp.id).is_verified)
        self.assertEqual(len(self.granted), 1)

    def test_failed_attempts_survive_the_error(self) -> None:
        assignment = self.open_ceremony()
        issued = self.ceremony.request_otp(assignment.id, DeliveryMethod.EMAIL_OTP, self.patient.user.id)
        for _ in range(2):
            with self.assertRaises(IncorrectCode):
                self.ceremony.verify_otp(assignment.id, "000000", self.patient.user.id, VerifierRole.PATIENT)
        with self.assertRaises(OtpBlocked):
            self.ceremony.verify_otp(assignment.id, "000000", self.patient.user.id, VerifierRole.PATIENT)

        row = ConsentOtp.objects.get(id=issued.otp.id)
        self.assertTrue(row.is_blocked)
        self.assertEqual(row.verification_attempts, 3)
        self.assertEqual(
            AuditEvent.objects.filter(resource_id=assignment.id, action="consent.otp_verify_failed").count(), 3
        )

    def test_rate_limit_rolls_back_the_fourth_issue(self) -> None:
        assignment = self.open_ceremony()
        for _ in range(3):
            self.ceremony.request_otp(assignment.id, DeliveryMethod.EMAIL_OTP, self.patient.user.id)
            self.clock.advance(minutes=1)
        with self.assertRaises(RateLimited) as ctx:
            self.ceremony.resend_otp(assignment.id, "code not received", self.patient.user.id)

        self.assertEqual(ctx.exception.retry_after_seconds, 27 * 60)
        self.assertEqual(ConsentOtpIssuance.objects.filter(assignment_id=assignment.id).count(), 3)
        self.assertEqual(ConsentOtp.objects.filter(assignment_id=assignment.id).count(), 1)

    def test_sweep_expires_lapsed_ceremony(self) -> None:
        assignment = self.open_ceremony()
        self.ceremony.request_otp(assignment.id, DeliveryMethod.EMAIL_OTP, self.patient.user.id)
        self.clock.advance(minutes=16)

        report = self.ceremony.expire_stale_consents()

        self.assertEqual(report.expired_pending, 1)
        self.assertEqual(Assignment.objects.get(id=assignment.id).consent_status, "expired")
