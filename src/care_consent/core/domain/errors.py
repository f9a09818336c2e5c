"""
Consent domain errors.

Every business-rule failure is a typed, actionable exception carrying a
stable `code`, the HTTP status the edge should use and any details the
caller needs to recover (attempts remaining, cooldown).
"""
from __future__ import annotations

from typing import Any


class ConsentDomainError(Exception):
    """Base for every recoverable error raised by the consent subsystem."""
    code = "consent_error"
    http_status = 400
    default_message = "Consent operation failed."

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(ConsentDomainError):
    code = "validation_error"
    http_status = 400
    default_message = "Invalid input."


class NotFound(ConsentDomainError):
    code = "not_found"
    http_status = 404
    default_message = "Resource not found."


class Conflict(ConsentDomainError):
    code = "conflict"
    http_status = 409
    default_message = "Conflicting assignment."


class Forbidden(ConsentDomainError):
    code = "forbidden"
    http_status = 403
    default_message = "Not allowed to perform this action."


class RateLimited(ConsentDomainError):
    code = "rate_limited"
    http_status = 429
    default_message = "Too many OTP requests."

    def __init__(self, retry_after_seconds: int, message: str | None = None, **details: Any) -> None:
        minutes = max(1, -(-retry_after_seconds // 60))
        super().__init__(
            message or f"Too many OTP requests. Please wait {minutes} minute(s) before requesting again.",
            retry_after_seconds=retry_after_seconds,
            **details,
        )
        self.retry_after_seconds = retry_after_seconds


class IncorrectCode(ConsentDomainError):
    code = "incorrect_code"
    http_status = 400
    default_message = "Incorrect OTP."

    def __init__(self, attempts_remaining: int, message: str | None = None) -> None:
        super().__init__(
            message or f"Incorrect OTP. {attempts_remaining} attempt(s) remaining.",
            attempts_remaining=attempts_remaining,
        )
        self.attempts_remaining = attempts_remaining


class OtpExpired(ConsentDomainError):
    code = "otp_expired"
    http_status = 410
    default_message = "OTP has expired. Please request a new OTP."


class OtpBlocked(ConsentDomainError):
    code = "otp_blocked"
    http_status = 423
    default_message = "OTP verification blocked due to too many incorrect attempts. Please request a new OTP."


class AlreadyGranted(ConsentDomainError):
    code = "already_granted"
    http_status = 409
    default_message = "Consent already granted for this assignment."


class AlreadyDenied(ConsentDomainError):
    code = "already_denied"
    http_status = 409
    default_message = "Consent was denied by the patient for this assignment."
