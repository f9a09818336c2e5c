from unittest.mock import patch

NOTIFIER_SENDS = {
    "email": "care_consent.adapters.notifiers.email.brevo.BrevoEmail.send",
    "sms": "care_consent.adapters.notifiers.sms.brevo_sms.BrevoSMS.send",
}


def patch_notifiers(test_case):
    """
    Replaces every notifier's `send` with a mock for the duration of the test
    and returns the mocks keyed by channel.
    """
    mocks = {}
    for channel, target in NOTIFIER_SENDS.items():
        patcher = patch(target, autospec=True)
        mocks[channel] = patcher.start()
        test_case.addCleanup(patcher.stop)
    return mocks
