from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from care_consent.core.domain.services.clock import subtract_months


@dataclass(frozen=True)
class ConsentSettings:
    otp_ttl_minutes: int = 15
    otp_max_attempts: int = 3
    otp_rate_limit: int = 3
    otp_rate_window_minutes: int = 30
    consent_duration_months: int = 6
    default_assignment_days: int = 90
    expose_code: bool = False

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.otp_ttl_minutes)

    @property
    def rate_window(self) -> timedelta:
        return timedelta(minutes=self.otp_rate_window_minutes)

    def consent_cutoff(self, now: datetime) -> datetime:
        """Grants given at or before this instant have lapsed."""
        return subtract_months(now, self.consent_duration_months)

    @classmethod
    def from_django(cls, settings: Any) -> ConsentSettings:
        return cls(
            otp_ttl_minutes=getattr(settings, "CONSENT_OTP_TTL_MINUTES", 15),
            otp_max_attempts=getattr(settings, "CONSENT_OTP_MAX_ATTEMPTS", 3),
            otp_rate_limit=getattr(settings, "CONSENT_OTP_RATE_LIMIT", 3),
            otp_rate_window_minutes=getattr(settings, "CONSENT_OTP_RATE_WINDOW_MINUTES", 30),
            consent_duration_months=getattr(settings, "CONSENT_DURATION_MONTHS", 6),
            default_assignment_days=getattr(settings, "CONSENT_DEFAULT_ASSIGNMENT_DAYS", 90),
            expose_code=getattr(settings, "EXPOSE_OTP_IN_RESPONSE", False),
        )
