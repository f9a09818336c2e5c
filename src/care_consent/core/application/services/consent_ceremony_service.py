from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog

from care_consent.core.application.consent_settings import ConsentSettings
from care_consent.core.domain.entities.assignment_entity import AssignmentEntity
from care_consent.core.domain.entities.consent_otp_entity import ConsentOtpEntity, OtpIssuanceEntity
from care_consent.core.domain.entities.enums import (
    BlockedReason,
    ConsentStatus,
    DeliveryMethod,
    DeliveryStatus,
    IssuanceKind,
    VerifierRole,
)
from care_consent.core.domain.errors import (
    AlreadyDenied,
    AlreadyGranted,
    IncorrectCode,
    NotFound,
    OtpBlocked,
    OtpExpired,
    RateLimited,
    ValidationError,
)
from care_consent.core.domain.events.events import (
    ConsentDeniedEvent,
    ConsentExpiredEvent,
    ConsentGrantedEvent,
    DomainEvent,
    OtpBlockedEvent,
    OtpIssuedEvent,
    OtpRateLimitedEvent,
    OtpVerificationFailedEvent,
)
from care_consent.core.domain.repositories.assignment_repository import AssignmentRepository
from care_consent.core.domain.repositories.care_directory_repository import CareDirectoryRepository
from care_consent.core.domain.repositories.consent_otp_repository import ConsentOtpRepository
from care_consent.core.domain.repositories.unit_of_work import UnitOfWork
from care_consent.core.domain.services.clock import Clock
from care_consent.core.domain.services.event_dispatcher import EventDispatcher
from care_consent.core.domain.services.otp_codes import OtpCodec
from care_consent.core.domain.services.ports import AuditTrailPort, ConsentDeliveryPort

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IssuedOtp:
    assignment: AssignmentEntity
    otp: ConsentOtpEntity
    code: str
    delivery_status: DeliveryStatus
    invalidated: int = 0


@dataclass(frozen=True)
class GrantedConsent:
    assignment_id: uuid.UUID
    otp_id: uuid.UUID
    verified_at: datetime


@dataclass(frozen=True)
class SweepReport:
    expired_pending: int = 0
    expired_grants: int = 0
    deactivated: int = 0

    @property
    def total(self) -> int:
        return self.expired_pending + self.expired_grants + self.deactivated


class ConsentCeremonyService:
    """
    OTP consent ceremony for assignments that require the patient's consent.

    request/resend serialize on the assignment row; verify relies on a
    conditional update of the OTP row so a code is consumed at most once.
    Delivery and domain events run after commit.
    """

    def __init__(  # noqa: PLR0913
        self,
        assignment_repo: AssignmentRepository,
        otp_repo: ConsentOtpRepository,
        directory: CareDirectoryRepository,
        uow: UnitOfWork,
        delivery: ConsentDeliveryPort,
        audit: AuditTrailPort,
        codec: OtpCodec,
        clock: Clock,
        settings: ConsentSettings,
        dispatcher: EventDispatcher,
    ) -> None:
        self.assignment_repo = assignment_repo
        self.otp_repo = otp_repo
        self.directory = directory
        self.uow = uow
        self.delivery = delivery
        self.audit = audit
        self.codec = codec
        self.clock = clock
        self.settings = settings
        self.dispatcher = dispatcher

    # ─────────────────────────  issuing  ────────────────────────── #

    def request_otp(
        self,
        assignment_id: uuid.UUID,
        method: DeliveryMethod,
        requested_by: uuid.UUID | None,
        message: str | None = None,
    ) -> IssuedOtp:
        """Issues a code; a still-live OTP is rotated in place instead of duplicated."""
        method = DeliveryMethod(method)
        now = self.clock.now()
        code = self.codec.generate()
        expires_at = now + self.settings.otp_ttl

        with self.uow.atomic():
            assignment = self._lock_open_ceremony(assignment_id, now)
            self._enforce_rate_limit(assignment.id, now)

            live = self.otp_repo.find_live(assignment.id, now)
            if live is not None:
                otp = self.otp_repo.rotate(
                    live.id,
                    code_digest=self.codec.digest(code),
                    delivery_method=method,
                    issued_at=now,
                    expires_at=expires_at,
                    requested_by=requested_by,
                    custom_message=message,
                )
            else:
                otp = self.otp_repo.create(self._new_otp(assignment.id, code, method, now, expires_at, requested_by, message))

            self._after_issue(assignment, otp, IssuanceKind.REQUEST, now)
            self.audit.audit(
                actor=requested_by,
                action="consent.otp_requested",
                resource_id=assignment.id,
                outcome="issued",
                otp_id=str(otp.id),
                method=method.value,
                rotated=live is not None,
            )

        logger.info(
            "consent.otp_issued",
            assignment_id=str(assignment.id),
            otp_id=str(otp.id),
            method=method.value,
            rotated=live is not None,
        )
        status = self._deliver(assignment, otp, code)
        return IssuedOtp(assignment=assignment, otp=otp, code=code, delivery_status=status)

    def resend_otp(
        self,
        assignment_id: uuid.UUID,
        reason: str,
        requested_by: uuid.UUID | None,
        method: DeliveryMethod | None = None,
    ) -> IssuedOtp:
        """Invalidates every unresolved OTP of the assignment and issues a fresh one."""
        now = self.clock.now()
        code = self.codec.generate()
        expires_at = now + self.settings.otp_ttl

        with self.uow.atomic():
            assignment = self._lock_open_ceremony(assignment_id, now)
            self._enforce_rate_limit(assignment.id, now)

            if method is None:
                latest = self.otp_repo.find_latest(assignment.id)
                method = latest.delivery_method if latest else DeliveryMethod.EMAIL_OTP
            method = DeliveryMethod(method)

            invalidated = self.otp_repo.block_unresolved(assignment.id, BlockedReason.RESEND_INVALIDATED, now)
            otp = self.otp_repo.create(self._new_otp(assignment.id, code, method, now, expires_at, requested_by, None))

            self._after_issue(assignment, otp, IssuanceKind.RESEND, now)
            self.audit.audit(
                actor=requested_by,
                action="consent.otp_resent",
                resource_id=assignment.id,
                outcome="issued",
                otp_id=str(otp.id),
                method=method.value,
                reason=reason,
                invalidated=len(invalidated),
            )

        logger.info(
            "consent.otp_resent",
            assignment_id=str(assignment.id),
            otp_id=str(otp.id),
            invalidated=len(invalidated),
        )
        status = self._deliver(assignment, otp, code)
        return IssuedOtp(
            assignment=assignment,
            otp=otp,
            code=code,
            delivery_status=status,
            invalidated=len(invalidated),
        )

    # ─────────────────────────  verifying  ────────────────────────── #

    def verify_otp(
        self,
        assignment_id: uuid.UUID,
        code: str,
        verified_by: uuid.UUID,
        role: VerifierRole,
    ) -> GrantedConsent:
        role = VerifierRole(role)
        now = self.clock.now()
        assignment = self._active(assignment_id)
        if not assignment.requires_consent:
            raise ValidationError("Consent is not required for this assignment.")
        status = assignment.effective_status(self.settings.consent_cutoff(now))
        if status is ConsentStatus.DENIED:
            raise AlreadyDenied()
        if status is ConsentStatus.GRANTED:
            raise AlreadyGranted()

        # failed attempts and expiry must be committed before the error surfaces
        failure: Exception | None = None
        events: list[DomainEvent] = []

        with self.uow.atomic():
            self._settle_lapse(assignment, now, events)
            live = self.otp_repo.find_live(assignment.id, now)
            if live is None:
                failure = self._no_live_otp(assignment, now, events)
            elif not self.codec.matches(code, live.code_digest):
                failure = self._wrong_code(assignment, live, now, events)
            elif not self.otp_repo.mark_verified(live.id, live.code_digest, now, verified_by, role.value):
                failure = self._lost_race(live, now)
            else:
                self.assignment_repo.apply_consent_grant(assignment.id, now, verified_by)
                self.audit.audit(
                    actor=verified_by,
                    action="consent.otp_verified",
                    resource_id=assignment.id,
                    outcome="granted",
                    otp_id=str(live.id),
                    verifier_role=role.value,
                )
                events.append(
                    ConsentGrantedEvent(
                        assignment_id=assignment.id,
                        otp_id=live.id,
                        verified_by=verified_by,
                        granted_at=now,
                    )
                )
            self._publish_on_commit(events)

        if failure is not None:
            logger.info(
                "consent.verify_failed",
                assignment_id=str(assignment.id),
                reason=getattr(failure, "code", type(failure).__name__),
            )
            raise failure

        logger.info("consent.granted", assignment_id=str(assignment.id), verifier_role=role.value)
        return GrantedConsent(assignment_id=assignment.id, otp_id=live.id, verified_at=now)

    def _lost_race(self, read: ConsentOtpEntity, now: datetime) -> Exception:
        """The OTP changed between the read and the conditional update."""
        current = self.otp_repo.find_by_id(read.id)
        if current is None:
            return NotFound("No OTP found. Please request a new OTP.")
        if current.is_verified:
            return AlreadyGranted()
        if current.is_blocked:
            return OtpBlocked(
                "This OTP is no longer valid. Please request a new OTP."
                if current.blocked_reason is BlockedReason.RESEND_INVALIDATED
                else None
            )
        if current.is_expired(now):
            return OtpExpired()
        return OtpExpired("This OTP was replaced by a newer one. Please use the latest code.")

    def _no_live_otp(self, assignment: AssignmentEntity, now: datetime, events: list[DomainEvent]) -> Exception:
        latest = self.otp_repo.find_latest(assignment.id)
        if latest is None:
            return NotFound("No OTP found. Please request a new OTP.")
        if latest.is_verified:
            if assignment.consent_status is ConsentStatus.GRANTED:
                return AlreadyGranted()
            return OtpExpired("Consent has lapsed. Please request a new OTP.")
        if latest.is_blocked:
            events.append(OtpVerificationFailedEvent(assignment_id=assignment.id, otp_id=latest.id, outcome="blocked"))
            return OtpBlocked()

        if assignment.consent_status is not ConsentStatus.EXPIRED:
            self.assignment_repo.set_consent_status(assignment.id, ConsentStatus.EXPIRED)
            events.append(ConsentExpiredEvent(assignment_id=assignment.id, previous_status=assignment.consent_status.value))
        events.append(OtpVerificationFailedEvent(assignment_id=assignment.id, otp_id=latest.id, outcome="expired"))
        return OtpExpired()

    def _wrong_code(
        self, assignment: AssignmentEntity, otp: ConsentOtpEntity, now: datetime, events: list[DomainEvent]
    ) -> Exception:
        updated = self.otp_repo.record_failed_attempt(otp.id, now)
        self.audit.audit(
            actor=None,
            action="consent.otp_verify_failed",
            resource_id=assignment.id,
            outcome="blocked" if updated.is_blocked else "incorrect",
            otp_id=str(otp.id),
            attempts=updated.verification_attempts,
        )
        if updated.is_blocked:
            events.append(OtpBlockedEvent(assignment_id=assignment.id, otp_id=otp.id, reason=BlockedReason.MAX_ATTEMPTS.value))
            events.append(OtpVerificationFailedEvent(assignment_id=assignment.id, otp_id=otp.id, outcome="blocked"))
            return OtpBlocked()
        events.append(
            OtpVerificationFailedEvent(
                assignment_id=assignment.id,
                otp_id=otp.id,
                outcome="incorrect",
                attempts_remaining=updated.attempts_remaining,
            )
        )
        return IncorrectCode(updated.attempts_remaining)

    # ─────────────────────────  denial & sweep  ────────────────────────── #

    def deny_consent(self, assignment_id: uuid.UUID, denied_by: uuid.UUID) -> AssignmentEntity:
        now = self.clock.now()
        with self.uow.atomic():
            assignment = self.assignment_repo.lock_for_update(assignment_id)
            if assignment is None or not assignment.is_active:
                raise NotFound("Assignment not found.")
            if not assignment.requires_consent:
                raise ValidationError("Consent is not required for this assignment.")
            lapse: list[DomainEvent] = []
            self._settle_lapse(assignment, now, lapse)
            self._publish_on_commit(lapse)
            if assignment.consent_status is ConsentStatus.GRANTED:
                raise AlreadyGranted()
            if assignment.consent_status is ConsentStatus.DENIED:
                raise AlreadyDenied()

            self.otp_repo.block_unresolved(assignment.id, BlockedReason.CONSENT_DENIED, now)
            self.assignment_repo.set_consent_status(assignment.id, ConsentStatus.DENIED)
            self.audit.audit(actor=denied_by, action="consent.denied", resource_id=assignment.id, outcome="denied")
            self._publish_on_commit([ConsentDeniedEvent(assignment_id=assignment.id, denied_by=denied_by)])

        logger.info("consent.denied", assignment_id=str(assignment.id))
        return self.assignment_repo.find_by_id(assignment.id) or assignment

    def expire_stale_consents(self) -> SweepReport:
        """
        Idempotent sweep:
        - pending assignments whose latest OTP lapsed become `expired`
        - grants older than the consent duration become `expired`
        - assignments past `expires_at` are deactivated
        """
        now = self.clock.now()
        expired_pending = expired_grants = deactivated = 0
        events: list[DomainEvent] = []

        with self.uow.atomic():
            for a in self.assignment_repo.list_pending():
                latest = self.otp_repo.find_latest(a.id)
                if latest is not None and latest.is_unresolved() and latest.is_expired(now):
                    self.assignment_repo.set_consent_status(a.id, ConsentStatus.EXPIRED)
                    events.append(ConsentExpiredEvent(assignment_id=a.id, previous_status=a.consent_status.value))
                    expired_pending += 1

            cutoff = self.settings.consent_cutoff(now)
            for a in self.assignment_repo.list_granted_before(cutoff):
                self.assignment_repo.set_consent_status(a.id, ConsentStatus.EXPIRED)
                events.append(ConsentExpiredEvent(assignment_id=a.id, previous_status=a.consent_status.value))
                expired_grants += 1

            for a in self.assignment_repo.list_elapsed(now):
                if self.assignment_repo.deactivate(a.id, now):
                    deactivated += 1

            self._publish_on_commit(events)

        report = SweepReport(expired_pending, expired_grants, deactivated)
        logger.info(
            "consent.sweep_finished",
            expired_pending=expired_pending,
            expired_grants=expired_grants,
            deactivated=deactivated,
        )
        return report

    # ─────────────────────────  helpers  ────────────────────────── #

    def _active(self, assignment_id: uuid.UUID) -> AssignmentEntity:
        assignment = self.assignment_repo.find_by_id(assignment_id)
        if assignment is None or not assignment.is_active:
            raise NotFound("Assignment not found.")
        return assignment

    def _settle_lapse(self, assignment: AssignmentEntity, now: datetime, events: list[DomainEvent]) -> None:
        """Persists a grant that outlived the consent duration as `expired`."""
        if not assignment.consent_lapsed(self.settings.consent_cutoff(now)):
            return
        self.assignment_repo.set_consent_status(assignment.id, ConsentStatus.EXPIRED)
        events.append(ConsentExpiredEvent(assignment_id=assignment.id, previous_status=assignment.consent_status.value))
        assignment.consent_status = ConsentStatus.EXPIRED
        assignment.access_granted = False

    def _lock_open_ceremony(self, assignment_id: uuid.UUID, now: datetime) -> AssignmentEntity:
        assignment = self.assignment_repo.lock_for_update(assignment_id)
        if assignment is None or not assignment.is_active:
            raise NotFound("Assignment not found.")
        if not assignment.requires_consent:
            raise ValidationError("Consent is not required for this assignment.")
        lapse: list[DomainEvent] = []
        self._settle_lapse(assignment, now, lapse)
        self._publish_on_commit(lapse)
        if assignment.consent_status is ConsentStatus.GRANTED:
            raise AlreadyGranted()
        if assignment.consent_status is ConsentStatus.DENIED:
            raise AlreadyDenied()
        return assignment

    def _enforce_rate_limit(self, assignment_id: uuid.UUID, now: datetime) -> None:
        window = self.settings.rate_window
        issued = self.otp_repo.issuances_since(assignment_id, now - window)
        if len(issued) < self.settings.otp_rate_limit:
            return
        oldest = issued[0]
        retry_after = max(1, math.ceil((oldest + window - now).total_seconds()))
        logger.warning("consent.rate_limited", assignment_id=str(assignment_id), retry_after_seconds=retry_after)
        self.dispatcher.dispatch(OtpRateLimitedEvent(assignment_id=assignment_id, retry_after_seconds=retry_after))
        raise RateLimited(retry_after)

    def _new_otp(  # noqa: PLR0913
        self,
        assignment_id: uuid.UUID,
        code: str,
        method: DeliveryMethod,
        now: datetime,
        expires_at: datetime,
        requested_by: uuid.UUID | None,
        message: str | None,
    ) -> ConsentOtpEntity:
        return ConsentOtpEntity(
            id=uuid.uuid4(),
            assignment_id=assignment_id,
            code_digest=self.codec.digest(code),
            delivery_method=method,
            created_at=now,
            expires_at=expires_at,
            max_attempts=self.settings.otp_max_attempts,
            requested_by=requested_by,
            custom_message=message,
        )

    def _after_issue(self, assignment: AssignmentEntity, otp: ConsentOtpEntity, kind: IssuanceKind, now: datetime) -> None:
        self.otp_repo.record_issuance(
            OtpIssuanceEntity(id=uuid.uuid4(), assignment_id=assignment.id, otp_id=otp.id, kind=kind, issued_at=now)
        )
        if assignment.consent_status is ConsentStatus.EXPIRED:
            self.assignment_repo.set_consent_status(assignment.id, ConsentStatus.PENDING)
        self._publish_on_commit(
            [
                OtpIssuedEvent(
                    assignment_id=assignment.id,
                    otp_id=otp.id,
                    kind=kind.value,
                    delivery_method=otp.delivery_method.value,
                    expires_at=otp.expires_at,
                )
            ]
        )

    def _deliver(self, assignment: AssignmentEntity, otp: ConsentOtpEntity, code: str) -> DeliveryStatus:
        patient = self.directory.find_patient(assignment.patient_id)
        recipient = None
        if patient is not None:
            recipient = patient.phone if otp.delivery_method is DeliveryMethod.SMS_OTP else patient.email

        result = self.delivery.deliver(
            assignment_id=assignment.id,
            otp_id=otp.id,
            code=code,
            method=otp.delivery_method,
            recipient=recipient,
            message=otp.custom_message,
        )
        if result.status is not DeliveryStatus.QUEUED:
            self.otp_repo.set_delivery_status(otp.id, result.status, result.error)
        if result.failed:
            logger.warning("consent.delivery_failed", otp_id=str(otp.id), error=result.error)
        return result.status

    def _publish_on_commit(self, events: list[DomainEvent]) -> None:
        if events:
            batch = list(events)
            self.uow.on_commit(lambda: self.dispatcher.dispatch_all(batch))
