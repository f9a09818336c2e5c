from __future__ import annotations

import httpx
import structlog

from care_consent.adapters.notifiers.base import BaseNotifier, NotifierError

logger = structlog.get_logger()


class BrevoEmail(BaseNotifier):
    """Transactional e-mail through the Brevo v3 API."""

    ENDPOINT = "https://api.brevo.com/v3/smtp/email"

    def __init__(self, api_key: str | None, from_email: str | None, sender_name: str = "Care Team"):
        super().__init__("brevo", "email")
        self._api_key     = api_key or ""
        self._from_email  = from_email or ""
        self._sender_name = sender_name

    def send(self, recipient: str, subject: str, body: str) -> None:
        if not recipient:
            raise NotifierError("missing e-mail recipient")
        if not self._api_key:
            raise NotifierError("BREVO_API_KEY is not configured")

        payload = {
            "sender":      {"email": self._from_email, "name": self._sender_name},
            "to":          [{"email": recipient}],
            "subject":     subject,
            "htmlContent": body,
        }
        headers = {
            "api-key":      self._api_key,
            "accept":       "application/json",
            "content-type": "application/json",
        }
        try:
            self._request("POST", self.ENDPOINT, json=payload, headers=headers)
        except httpx.HTTPStatusError as exc:
            resp = exc.response
            detail = resp.json() if resp.headers.get("content-type", "").startswith("application/json") else resp.text
            logger.error("brevo.email_error", status=resp.status_code, detail=detail)
            raise NotifierError(f"brevo e-mail rejected with HTTP {resp.status_code}") from exc

        logger.info("email.sent", provider=self.provider, subject=subject)
