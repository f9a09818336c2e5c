"""
Notifier factory: picks the provider for an OTP delivery method.
"""
from functools import lru_cache

from django.conf import settings

from care_consent.adapters.notifiers.base import BaseNotifier
from care_consent.adapters.notifiers.email.brevo import BrevoEmail
from care_consent.adapters.notifiers.sms.brevo_sms import BrevoSMS
from care_consent.core.domain.entities.enums import DeliveryMethod


@lru_cache
def get_sms_notifier() -> BaseNotifier:
    return BrevoSMS(
        api_key=settings.BREVO_API_KEY,
        sender=settings.SMS_SENDER_NAME,
        default_region=settings.PHONE_DEFAULT_REGION,
    )


@lru_cache
def get_email_notifier() -> BaseNotifier:
    return BrevoEmail(
        api_key=settings.BREVO_API_KEY,
        from_email=settings.DEFAULT_FROM_EMAIL,
        sender_name=settings.EMAIL_SENDER_NAME,
    )


def get_notifier(method: DeliveryMethod) -> BaseNotifier | None:
    """
    - sms_otp   → BrevoSMS
    - email_otp → BrevoEmail
    - in_person / phone_call → None (code is handed over by staff)
    """
    method = DeliveryMethod(method)
    if method is DeliveryMethod.SMS_OTP:
        return get_sms_notifier()
    if method is DeliveryMethod.EMAIL_OTP:
        return get_email_notifier()
    return None
