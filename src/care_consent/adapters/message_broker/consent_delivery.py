from __future__ import annotations

import uuid

import structlog

from care_consent.adapters.message_broker.tasks import deliver_consent_otp
from care_consent.core.domain.entities.enums import DeliveryMethod, DeliveryStatus
from care_consent.core.domain.repositories.unit_of_work import UnitOfWork
from care_consent.core.domain.services.ports import ConsentDeliveryPort, DeliveryResult

log = structlog.get_logger(__name__)


class CeleryConsentDelivery(ConsentDeliveryPort):
    """Queues remote deliveries after commit; in-person and phone codes are handed over by staff."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def deliver(  # noqa: PLR0913
        self,
        *,
        assignment_id: uuid.UUID,
        otp_id: uuid.UUID,
        code: str,
        method: DeliveryMethod,
        recipient: str | None,
        message: str | None = None,
    ) -> DeliveryResult:
        method = DeliveryMethod(method)
        if not method.is_remote:
            return DeliveryResult(DeliveryStatus.SKIPPED)
        if not recipient:
            log.warning("consent.delivery_no_recipient", assignment_id=str(assignment_id), method=method.value)
            return DeliveryResult(DeliveryStatus.FAILED, f"patient has no contact for {method.value}")

        self.uow.on_commit(
            lambda: deliver_consent_otp.delay(str(otp_id), method.value, recipient, code, message)
        )
        return DeliveryResult(DeliveryStatus.QUEUED)
