from rest_framework.permissions import BasePermission

from care_consent.core.domain.entities.enums import UserRole


class IsAdminUser(BasePermission):
    """Allows access only to users with role 'admin'."""

    def has_permission(self, request, view):
        return bool(request.user and getattr(request.user, "role", None) == UserRole.ADMIN.value)


class IsProviderUser(BasePermission):
    """Doctors and HSPs with an active provider profile."""

    def has_permission(self, request, view):
        return bool(
            request.user
            and getattr(request.user, "role", None) in (UserRole.DOCTOR.value, UserRole.HSP.value)
            and getattr(request.user, "provider_id", None)
        )


class IsAdminOrDoctor(BasePermission):
    """Who may open secondary assignments; ownership of the primary is checked downstream."""

    def has_permission(self, request, view):
        return bool(request.user and getattr(request.user, "role", None) in (UserRole.ADMIN.value, UserRole.DOCTOR.value))
