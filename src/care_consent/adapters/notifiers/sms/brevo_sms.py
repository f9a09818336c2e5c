from __future__ import annotations

import httpx
import phonenumbers
import structlog
from phonenumbers import NumberParseException

from care_consent.adapters.notifiers.base import BaseNotifier, NotifierError

logger = structlog.get_logger()


def normalize_phone(raw: str | None, default_region: str = "US") -> str | None:
    """E.164 (`+15551234567`) or None when the number is not plausible."""
    if not raw:
        return None
    try:
        num = phonenumbers.parse(raw, default_region)
    except NumberParseException:
        return None
    if not phonenumbers.is_possible_number(num):
        return None
    return phonenumbers.format_number(num, phonenumbers.PhoneNumberFormat.E164)


class BrevoSMS(BaseNotifier):
    """Transactional SMS through the Brevo v3 API."""

    ENDPOINT = "https://api.brevo.com/v3/transactionalSMS/sms"

    def __init__(self, api_key: str | None, sender: str | None, default_region: str = "US"):
        super().__init__("brevo", "sms")
        self._api_key = api_key or ""
        self._sender = (sender or "CareTeam")[:11]
        self._region = default_region

    def send(self, recipient: str, subject: str, body: str) -> None:
        phone = normalize_phone(recipient, self._region)
        if phone is None:
            raise NotifierError("invalid or missing phone number")
        if not self._api_key:
            raise NotifierError("BREVO_API_KEY is not configured")

        payload = {
            "sender":    self._sender,
            "recipient": phone.lstrip("+"),
            "content":   body,
            "type":      "transactional",
            "tag":       subject,
        }
        try:
            self._request(
                "POST",
                self.ENDPOINT,
                json=payload,
                headers={"api-key": self._api_key, "accept": "application/json"},
            )
        except httpx.HTTPStatusError as exc:
            logger.error("brevo.sms_error", status=exc.response.status_code)
            raise NotifierError(f"brevo sms rejected with HTTP {exc.response.status_code}") from exc

        logger.info("sms.sent", provider=self.provider)
