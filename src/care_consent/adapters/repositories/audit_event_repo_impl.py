from __future__ import annotations

import uuid
from typing import Any

import structlog

from care_consent.core.domain.entities._base import to_primitive
from care_consent.core.domain.services.ports import AuditTrailPort
from plugins.django_interface.models import AuditEvent

log = structlog.get_logger(__name__)


class AuditEventRepoImpl(AuditTrailPort):
    """Writes audit rows in the caller's transaction, so they roll back with it."""

    def audit(
        self,
        *,
        actor: uuid.UUID | None,
        action: str,
        resource_id: uuid.UUID | None,
        outcome: str,
        **detail: Any,
    ) -> None:
        AuditEvent.objects.create(
            actor_id=actor,
            action=action,
            resource_id=resource_id,
            outcome=outcome,
            detail={k: to_primitive(v) for k, v in detail.items()},
        )
        log.debug("audit.recorded", action=action, resource_id=str(resource_id) if resource_id else None, outcome=outcome)
