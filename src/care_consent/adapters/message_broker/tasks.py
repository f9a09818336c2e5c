from __future__ import annotations

from uuid import UUID

import httpx
import structlog
from celery import Task, shared_task
from django.conf import settings

from care_consent.adapters.notifiers.base import NotifierError
from care_consent.adapters.notifiers.registry import get_notifier
from care_consent.adapters.notifiers.templates import SUBJECT, render_otp_message
from care_consent.core.domain.entities.enums import DeliveryMethod, DeliveryStatus

log = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────
# Queues
# ──────────────────────────────────────────────────────────────────────────
QUEUE_CONSENT_DELIVERY = "consent_delivery"
QUEUE_MAINTENANCE      = "maintenance"


def _container():
    from care_consent.adapters.config.composition_root import setup_di_container_from_settings  # noqa: PLC0415
    return setup_di_container_from_settings(settings)


# ──────────────────────────────────────────────────────────────────────────
# Base task with DLQ
# ──────────────────────────────────────────────────────────────────────────
class BaseTaskWithDLQ(Task):
    """
    Re-publishes to the dead-letter queue once retries are exhausted.
    Eager mode has no broker, so it only logs.
    """
    def on_failure(self, exc, task_id, args, kwargs, einfo):
        if getattr(self.app.conf, "task_always_eager", False):
            log.critical("task.failed_eager_mode", task=self.name, task_id=task_id, error=str(exc))
        else:
            log.critical("task.failed_dlq_redirect", task=self.name, task_id=task_id, error=str(exc), queue="dead_letter")
            self.app.send_task(self.name, args=args, kwargs=kwargs, queue="dead_letter", routing_key="dead_letter")
        super().on_failure(exc, task_id, args, kwargs, einfo)


# ──────────────────────────────────────────────────────────────────────────
# OTP delivery
# ──────────────────────────────────────────────────────────────────────────
@shared_task(
    base=BaseTaskWithDLQ, bind=True, max_retries=3, default_retry_delay=30,
    acks_late=True, queue=QUEUE_CONSENT_DELIVERY,
)
def deliver_consent_otp(self, otp_id: str, method: str, recipient: str, code: str, message: str | None = None):  # noqa: PLR0913
    """
    Sends the plaintext code through the channel's notifier and records the
    delivery status on the OTP. A code that is no longer live, or that was
    rotated after this task was queued, is not sent.
    """
    container = _container()
    otp_repo = container.consent_otp_repo()
    codec = container.otp_codec()
    clock = container.clock()
    consent_settings = container.consent_settings()

    otp = otp_repo.find_by_id(UUID(otp_id))
    if otp is None or not otp.is_live(clock.now()) or not codec.matches(code, otp.code_digest):
        log.info("consent.delivery_stale", otp_id=otp_id)
        return DeliveryStatus.SKIPPED.value

    notifier = get_notifier(DeliveryMethod(method))
    if notifier is None:
        otp_repo.set_delivery_status(otp.id, DeliveryStatus.SKIPPED)
        return DeliveryStatus.SKIPPED.value

    body = render_otp_message(code, otp.delivery_method, consent_settings.otp_ttl_minutes, message)
    try:
        notifier.send(recipient, SUBJECT, body)
    except NotifierError as exc:
        log.warning("consent.delivery_failed", otp_id=otp_id, method=method, error=str(exc))
        otp_repo.set_delivery_status(otp.id, DeliveryStatus.FAILED, str(exc))
        return DeliveryStatus.FAILED.value
    except httpx.HTTPError as exc:
        if self.request.retries < self.max_retries:
            log.warning("consent.delivery_retry", otp_id=otp_id, retries=self.request.retries, error=str(exc))
            raise self.retry(exc=exc)  # noqa: B904
        otp_repo.set_delivery_status(otp.id, DeliveryStatus.FAILED, str(exc))
        return DeliveryStatus.FAILED.value

    otp_repo.set_delivery_status(otp.id, DeliveryStatus.SENT)
    log.info("consent.delivery_sent", otp_id=otp_id, method=method)
    return DeliveryStatus.SENT.value


# ──────────────────────────────────────────────────────────────────────────
# Maintenance
# ──────────────────────────────────────────────────────────────────────────
@shared_task(queue=QUEUE_MAINTENANCE)
def expire_stale_consents():
    from care_consent.core.application.commands.consent_commands import ExpireStaleConsentsCommand  # noqa: PLC0415

    report = _container().command_bus().dispatch(ExpireStaleConsentsCommand())
    log.info("consent.sweep_task_done", total=report.total)
    return {
        "expired_pending": report.expired_pending,
        "expired_grants": report.expired_grants,
        "deactivated": report.deactivated,
    }
