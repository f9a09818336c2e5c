from datetime import UTC, datetime, timedelta

import jwt
from django.conf import settings


class JWTService:
    """
    Issues and validates the bearer tokens used by the API.
    """

    @staticmethod
    def create_token(subject: str, expires_in: int, role: str) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": str(subject),
            "role": role,
            "iat": now,
            "exp": now + timedelta(seconds=int(expires_in)),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        """Raises jwt.PyJWTError when the token is invalid or expired."""
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
