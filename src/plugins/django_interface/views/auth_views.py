from datetime import timedelta

import structlog
from django.conf import settings
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from care_consent.adapters.security.hash_service import HashService
from care_consent.adapters.security.jwt_service import JWTService
from plugins.django_interface.models import User
from plugins.django_interface.serializers.consent_serializers import LoginSerializer

log = structlog.get_logger(__name__)


class LoginView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"]
        password = serializer.validated_data["password"]

        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if not user or not HashService.verify(password, user.password_hash):
            log.info("auth.login_failed", email=email)
            return Response(
                {"error": {"code": "invalid_credentials", "message": "Invalid e-mail or password."}},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        jwt = JWTService.create_token(subject=str(user.id), expires_in=settings.JWT_EXPIRES_IN, role=user.role)
        resp = Response({"token": jwt, "role": user.role}, status=status.HTTP_200_OK)
        resp.set_cookie(
            settings.AUTH_COOKIE_NAME,
            jwt,
            secure=settings.AUTH_COOKIE_SECURE,
            httponly=settings.AUTH_COOKIE_HTTPONLY,
            samesite=settings.AUTH_COOKIE_SAMESITE,
            expires=timezone.now() + timedelta(seconds=settings.JWT_EXPIRES_IN),
        )
        log.info("auth.login", user_id=str(user.id), role=user.role)
        return resp


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        resp = Response({"message": "Logged out."}, status=status.HTTP_200_OK)
        resp.delete_cookie(settings.AUTH_COOKIE_NAME)
        return resp


class HealthCheckView(APIView):
    """GET /api/healthz/ answers 200 while the process is up."""
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        return Response({"status": "ok"}, status=status.HTTP_200_OK)
