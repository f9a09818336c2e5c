from prometheus_client import Counter

from care_consent.core.domain.events.events import (
    AssignmentCreatedEvent,
    AssignmentRevokedEvent,
    ConsentDeniedEvent,
    ConsentExpiredEvent,
    ConsentGrantedEvent,
    OtpIssuedEvent,
    OtpRateLimitedEvent,
    OtpVerificationFailedEvent,
)
from care_consent.core.domain.services.event_dispatcher import EventDispatcher

ASSIGNMENTS_TOTAL = Counter(
    "care_assignments_total",
    "Care assignment lifecycle transitions",
    ["action", "assignment_type", "requires_consent"],
)

CONSENT_OTP_ISSUED = Counter(
    "consent_otp_issued_total",
    "Consent OTP generations",
    ["kind", "method"],
)

CONSENT_OTP_VERIFICATIONS = Counter(
    "consent_otp_verifications_total",
    "Consent OTP verification outcomes",
    ["outcome"],
)

CONSENT_RATE_LIMITED = Counter(
    "consent_rate_limited_total",
    "OTP requests rejected by the per-assignment rate limit",
)

CONSENT_TRANSITIONS = Counter(
    "consent_transitions_total",
    "Consent status transitions",
    ["status"],
)


def _assignment_created(evt: AssignmentCreatedEvent) -> None:
    ASSIGNMENTS_TOTAL.labels("created", evt.assignment_type, str(evt.requires_consent).lower()).inc()


def _assignment_revoked(evt: AssignmentRevokedEvent) -> None:
    ASSIGNMENTS_TOTAL.labels("revoked", "", "").inc()


def _otp_issued(evt: OtpIssuedEvent) -> None:
    CONSENT_OTP_ISSUED.labels(evt.kind, evt.delivery_method).inc()


def _verification_failed(evt: OtpVerificationFailedEvent) -> None:
    CONSENT_OTP_VERIFICATIONS.labels(evt.outcome).inc()


def _granted(evt: ConsentGrantedEvent) -> None:
    CONSENT_OTP_VERIFICATIONS.labels("granted").inc()
    CONSENT_TRANSITIONS.labels("granted").inc()


def _denied(evt: ConsentDeniedEvent) -> None:
    CONSENT_TRANSITIONS.labels("denied").inc()


def _expired(evt: ConsentExpiredEvent) -> None:
    CONSENT_TRANSITIONS.labels("expired").inc()


def _rate_limited(evt: OtpRateLimitedEvent) -> None:
    CONSENT_RATE_LIMITED.inc()


def register_metric_subscribers(dispatcher: EventDispatcher) -> None:
    dispatcher.subscribe(AssignmentCreatedEvent, _assignment_created)
    dispatcher.subscribe(AssignmentRevokedEvent, _assignment_revoked)
    dispatcher.subscribe(OtpIssuedEvent, _otp_issued)
    dispatcher.subscribe(OtpVerificationFailedEvent, _verification_failed)
    dispatcher.subscribe(ConsentGrantedEvent, _granted)
    dispatcher.subscribe(ConsentDeniedEvent, _denied)
    dispatcher.subscribe(ConsentExpiredEvent, _expired)
    dispatcher.subscribe(OtpRateLimitedEvent, _rate_limited)
