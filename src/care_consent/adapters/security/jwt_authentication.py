from __future__ import annotations

import uuid

import jwt
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication

from care_consent.adapters.security.jwt_service import JWTService
from care_consent.core.domain.entities.actor import Actor
from plugins.django_interface.models import Patient, Provider, User


class SimpleUser:
    """
    Minimal DRF-compatible user: id, role and the provider/patient profile
    the token's subject maps to.
    """
    def __init__(
        self,
        id: uuid.UUID,
        role: str,
        provider_id: uuid.UUID | None = None,
        patient_id: uuid.UUID | None = None,
    ):
        self.id = id
        self.role = role
        self.provider_id = provider_id
        self.patient_id = patient_id
        self.is_authenticated = True

    def to_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role, provider_id=self.provider_id, patient_id=self.patient_id)

    def __str__(self):
        return f"<SimpleUser id={self.id} role={self.role}>"


def _user_from_token(token: str) -> SimpleUser:
    try:
        payload = JWTService.decode_token(token)
    except jwt.PyJWTError as e:
        raise exceptions.AuthenticationFailed(f"Invalid token: {e}")  # noqa: B904

    user_id = payload.get("sub")
    if not user_id:
        raise exceptions.AuthenticationFailed("Token has no 'sub' claim.")

    try:
        user = User.objects.get(id=user_id, is_active=True)
    except (User.DoesNotExist, DjangoValidationError, ValueError):
        raise exceptions.AuthenticationFailed("User not found.")  # noqa: B904

    provider_id = Provider.objects.filter(user_id=user.id, is_active=True).values_list("id", flat=True).first()
    patient_id = Patient.objects.filter(user_id=user.id).values_list("id", flat=True).first()
    return SimpleUser(id=user.id, role=user.role, provider_id=provider_id, patient_id=patient_id)


class JWTAuthentication(BaseAuthentication):
    """
    Reads `Authorization: Bearer <token>`, validates it with JWTService and
    resolves the active user plus their provider/patient profile.
    """
    keyword = "Bearer"

    def authenticate(self, request):
        header = request.headers.get("Authorization", "")
        parts = header.split()

        if not header or parts[0].lower() != "bearer" or len(parts) != 2:  # noqa: PLR2004
            return None

        token = parts[1]
        return (_user_from_token(token), token)

    def authenticate_header(self, request):
        return self.keyword


class CookieJWTAuthentication(BaseAuthentication):
    """Same as JWTAuthentication, but the token comes from the `AUTH_COOKIE_NAME` cookie."""

    def authenticate(self, request):
        token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not token:
            return None
        return (_user_from_token(token), token)
