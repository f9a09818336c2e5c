from __future__ import annotations

from datetime import datetime
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from care_consent.core.domain.entities.consent_otp_entity import ConsentOtpEntity, OtpIssuanceEntity
from care_consent.core.domain.entities.enums import BlockedReason, DeliveryMethod, DeliveryStatus
from care_consent.core.domain.errors import NotFound
from care_consent.core.domain.repositories.consent_otp_repository import ConsentOtpRepository
from plugins.django_interface.models import ConsentOtp, ConsentOtpIssuance

NEWEST_FIRST = ("-created_at", "-updated_at")


class ConsentOtpRepoImpl(ConsentOtpRepository):
    @staticmethod
    def _to_entity(model: ConsentOtp) -> ConsentOtpEntity:
        return ConsentOtpEntity.from_model(model)

    @staticmethod
    def _unresolved(assignment_id: UUID):
        return ConsentOtp.objects.filter(assignment_id=assignment_id, is_verified=False, is_blocked=False)

    # ───────────────────────── writes ──────────────────────────

    def create(self, otp: ConsentOtpEntity) -> ConsentOtpEntity:
        model = ConsentOtp.objects.create(
            id=otp.id,
            assignment_id=otp.assignment_id,
            code_digest=otp.code_digest,
            delivery_method=otp.delivery_method.value,
            created_at=otp.created_at,
            expires_at=otp.expires_at,
            verification_attempts=otp.verification_attempts,
            max_attempts=otp.max_attempts,
            requested_by=otp.requested_by,
            custom_message=otp.custom_message,
            delivery_status=otp.delivery_status.value,
        )
        return self._to_entity(model)

    def rotate(  # noqa: PLR0913
        self,
        otp_id: UUID,
        *,
        code_digest: str,
        delivery_method: DeliveryMethod,
        issued_at: datetime,
        expires_at: datetime,
        requested_by: UUID | None,
        custom_message: str | None,
    ) -> ConsentOtpEntity:
        model = ConsentOtp.objects.select_for_update().filter(id=otp_id).first()
        if model is None:
            raise NotFound("OTP not found.")
        model.code_digest = code_digest
        model.delivery_method = DeliveryMethod(delivery_method).value
        model.expires_at = expires_at
        model.verification_attempts = 0
        model.requested_by = requested_by
        model.custom_message = custom_message
        model.delivery_status = DeliveryStatus.QUEUED.value
        model.delivery_error = None
        model.save()
        return self._to_entity(model)

    def record_failed_attempt(self, otp_id: UUID, at: datetime) -> ConsentOtpEntity:
        with transaction.atomic():
            model = ConsentOtp.objects.select_for_update().get(id=otp_id)
            model.verification_attempts = min(model.verification_attempts + 1, model.max_attempts)
            if model.verification_attempts >= model.max_attempts and not model.is_verified:
                model.is_blocked = True
                model.blocked_reason = BlockedReason.MAX_ATTEMPTS.value
            model.save()
        return self._to_entity(model)

    def mark_verified(self, otp_id: UUID, code_digest: str, at: datetime, verified_by: UUID, role: str) -> bool:  # noqa: PLR0913
        updated = ConsentOtp.objects.filter(
            id=otp_id, code_digest=code_digest, expires_at__gt=at, is_verified=False, is_blocked=False
        ).update(
            is_verified=True,
            verified_at=at,
            verified_by=verified_by,
            verification_role=role,
            updated_at=timezone.now(),
        )
        return updated == 1

    def block_unresolved(self, assignment_id: UUID, reason: BlockedReason, at: datetime) -> list[UUID]:
        qs = self._unresolved(assignment_id)
        ids = list(qs.values_list("id", flat=True))
        if ids:
            ConsentOtp.objects.filter(id__in=ids).update(
                is_blocked=True,
                blocked_reason=BlockedReason(reason).value,
                updated_at=timezone.now(),
            )
        return ids

    def set_delivery_status(self, otp_id: UUID, status: DeliveryStatus, error: str | None = None) -> None:
        ConsentOtp.objects.filter(id=otp_id).update(
            delivery_status=DeliveryStatus(status).value,
            delivery_error=error,
            updated_at=timezone.now(),
        )

    # ───────────────────────── reads ──────────────────────────

    def find_by_id(self, otp_id: UUID) -> ConsentOtpEntity | None:
        model = ConsentOtp.objects.filter(id=otp_id).first()
        return self._to_entity(model) if model else None

    def find_live(self, assignment_id: UUID, now: datetime) -> ConsentOtpEntity | None:
        model = self._unresolved(assignment_id).filter(expires_at__gt=now).order_by(*NEWEST_FIRST).first()
        return self._to_entity(model) if model else None

    def find_latest(self, assignment_id: UUID) -> ConsentOtpEntity | None:
        model = ConsentOtp.objects.filter(assignment_id=assignment_id).order_by(*NEWEST_FIRST).first()
        return self._to_entity(model) if model else None

    def latest_by_assignment(self, assignment_ids: list[UUID]) -> dict[UUID, ConsentOtpEntity]:
        latest: dict[UUID, ConsentOtpEntity] = {}
        if not assignment_ids:
            return latest
        for model in ConsentOtp.objects.filter(assignment_id__in=assignment_ids).order_by(*NEWEST_FIRST):
            latest.setdefault(model.assignment_id, self._to_entity(model))
        return latest

    # ───────────────────────── rate-limit ledger ──────────────────────────

    def record_issuance(self, issuance: OtpIssuanceEntity) -> None:
        ConsentOtpIssuance.objects.create(
            id=issuance.id,
            assignment_id=issuance.assignment_id,
            otp_id=issuance.otp_id,
            kind=issuance.kind.value,
            issued_at=issuance.issued_at,
        )

    def issuances_since(self, assignment_id: UUID, since: datetime) -> list[datetime]:
        return list(
            ConsentOtpIssuance.objects.filter(assignment_id=assignment_id, issued_at__gte=since)
            .order_by("issued_at")
            .values_list("issued_at", flat=True)
        )
