"""
DRF exception handler: every error leaves the API as
`{"error": {"code", "message", ...details}}`.
"""
import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from care_consent.core.domain.errors import ConsentDomainError, RateLimited

log = structlog.get_logger(__name__)


def _camel(key: str) -> str:
    head, *tail = key.split("_")
    return head + "".join(part.title() for part in tail)


def consent_exception_handler(exc, context):
    view = type(context.get("view")).__name__ if context.get("view") else None

    if isinstance(exc, ConsentDomainError):
        body = {"code": exc.code, "message": exc.message, **{_camel(k): v for k, v in exc.details.items()}}
        resp = Response({"error": body}, status=exc.http_status)
        if isinstance(exc, RateLimited):
            resp["Retry-After"] = str(exc.retry_after_seconds)
        log.info("api.domain_error", view=view, code=exc.code, status=exc.http_status)
        return resp

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            {"error": {"code": "validation_error", "message": "Invalid input.", "fields": exc.detail}},
            status=status.HTTP_400_BAD_REQUEST,
        )

    resp = drf_exception_handler(exc, context)
    if resp is not None:
        code = exc.get_codes() if isinstance(exc, exceptions.APIException) else "error"
        if not isinstance(code, str):
            code = "error"
        resp.data = {"error": {"code": code, "message": str(getattr(exc, "detail", exc))}}
        return resp

    log.exception("api.unhandled_error", view=view, error_type=type(exc).__name__)
    return Response(
        {"error": {"code": "internal_error", "message": "Internal server error."}},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
