"""
Admin site registry
-------------------
Registers the care directory, assignments and the consent trail. OTP rows
are read-only: digests are never edited by hand.
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ Per-model ModelAdmin options                 │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Directory
    models.Organization: dict(
        list_display=("name", "created_at"),
        search_fields=("name",),
    ),
    models.User: dict(
        list_display=("email", "name", "role", "is_active"),
        search_fields=("email", "name"),
        list_filter=("role", "is_active"),
        exclude=("password_hash",),
    ),
    models.Provider: dict(
        list_display=("name", "kind", "organization", "is_active"),
        list_filter=("kind", "is_active", "organization"),
        search_fields=("name", "email"),
    ),
    models.Patient: dict(
        list_display=("name", "email", "phone"),
        search_fields=("name", "email"),
    ),
    # 2. Assignments
    models.Assignment: dict(
        list_display=("patient", "assignment_type", "secondary_provider", "consent_status", "access_granted", "is_active", "expires_at"),
        list_filter=("assignment_type", "consent_status", "is_active"),
        search_fields=("patient__name",),
        readonly_fields=("consent_granted_at", "consent_granted_by", "deactivated_at", "created_at", "updated_at"),
    ),
    # 3. Consent trail
    models.ConsentOtp: dict(
        list_display=("assignment", "delivery_method", "verification_attempts", "is_verified", "is_blocked", "delivery_status", "expires_at"),
        list_filter=("delivery_method", "is_verified", "is_blocked", "delivery_status"),
        exclude=("code_digest",),
        readonly_fields=("verification_attempts", "verified_at", "verified_by", "blocked_reason", "created_at", "updated_at"),
    ),
    models.ConsentOtpIssuance: dict(
        list_display=("assignment", "kind", "issued_at"),
        list_filter=("kind",),
    ),
    models.AuditEvent: dict(
        list_display=("action", "resource_id", "outcome", "actor_id", "created_at"),
        list_filter=("action", "outcome"),
        search_fields=("resource_id",),
    ),
}

# ╭──────────────────────────────────────────────╮
# │ Dynamic registration                         │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("admin.model_registered", model=model.__name__)
