from __future__ import annotations

import hashlib
import hmac
import re
import secrets

OTP_PATTERN = re.compile(r"^\d{6}$")


class OtpCodec:
    """
    Generates 6-digit codes and the keyed digest that is persisted instead of
    the plaintext code.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("OtpCodec requires a non-empty secret")
        self._key = secret.encode()

    @staticmethod
    def generate() -> str:
        return f"{secrets.randbelow(900_000) + 100_000:06d}"

    def digest(self, code: str) -> str:
        return hmac.new(self._key, code.encode(), hashlib.sha256).hexdigest()

    def matches(self, code: str, digest: str) -> bool:
        if not OTP_PATTERN.match(code or ""):
            return False
        return hmac.compare_digest(self.digest(code), digest)
