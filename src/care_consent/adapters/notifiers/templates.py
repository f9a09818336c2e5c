from __future__ import annotations

from care_consent.core.domain.entities.enums import DeliveryMethod

SUBJECT = "Your consent verification code"


def render_otp_message(code: str, method: DeliveryMethod, ttl_minutes: int, custom: str | None = None) -> str:
    intro = f"{custom.strip()} " if custom else ""
    if DeliveryMethod(method) is DeliveryMethod.EMAIL_OTP:
        return (
            f"<p>{intro}A healthcare provider has requested access to your medical record.</p>"
            f"<p>Your verification code is <b>{code}</b>. It expires in {ttl_minutes} minutes.</p>"
            "<p>If you did not expect this request, ignore this message or deny consent.</p>"
        )
    return f"{intro}Your care consent code is {code}. It expires in {ttl_minutes} min."
