from django.conf import settings
from django.urls import path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

from .views.auth_views import HealthCheckView, LoginView, LogoutView
from .views.consent_views import (
    AccessCheckView,
    AssignmentCreateView,
    AssignmentDetailView,
    ConsentStatusView,
    DenyConsentView,
    PrimaryAssignmentView,
    RequestOtpView,
    ResendOtpView,
    SecondaryPatientsView,
    VerifyOtpView,
)

swagger_permissions = [permissions.IsAdminUser] if not settings.DEBUG else [permissions.AllowAny]

schema_view = get_schema_view(
    openapi.Info(
        title="Care Consent",
        default_version="v1",
        description="Care assignments and patient consent authorization",
    ),
    public=settings.DEBUG,
    permission_classes=swagger_permissions,
)

urlpatterns = [
    path("login/",   LoginView.as_view(),       name="login"),
    path("logout/",  LogoutView.as_view(),      name="logout"),
    path("healthz/", HealthCheckView.as_view(), name="healthz"),

    # assignments
    path("patients/<uuid:patient_id>/assignments",        AssignmentCreateView.as_view(),  name="assignment-create"),
    path("patients/<uuid:patient_id>/primary-assignment", PrimaryAssignmentView.as_view(), name="primary-assignment"),
    path("assignments/<uuid:assignment_id>",              AssignmentDetailView.as_view(),  name="assignment-detail"),

    # consent ceremony
    path("patients/<uuid:patient_id>/consent/request-otp", RequestOtpView.as_view(),    name="consent-request-otp"),
    path("patients/<uuid:patient_id>/consent/resend-otp",  ResendOtpView.as_view(),     name="consent-resend-otp"),
    path("patients/<uuid:patient_id>/consent/verify-otp",  VerifyOtpView.as_view(),     name="consent-verify-otp"),
    path("patients/<uuid:patient_id>/consent/deny",        DenyConsentView.as_view(),   name="consent-deny"),
    path("patients/<uuid:patient_id>/consent/status",      ConsentStatusView.as_view(), name="consent-status"),
    path("patients/<uuid:patient_id>/access",              AccessCheckView.as_view(),   name="patient-access"),
    path("consent/secondary-patients",                     SecondaryPatientsView.as_view(), name="secondary-patients"),

    path("swagger/",     schema_view.with_ui("swagger", cache_timeout=0), name="swagger-ui"),
    path("swagger.json", schema_view.without_ui(cache_timeout=0),         name="swagger-json"),
    path("redoc/",       schema_view.with_ui("redoc",   cache_timeout=0), name="redoc-ui"),
]
