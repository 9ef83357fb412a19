# clinic_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ErrorKind:
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    VALIDATION_FAILED = "ValidationFailed"
    INVALID_TRANSITION = "InvalidTransition"
    DOUBLE_BOOKED = "DoubleBooked"
    BALANCE_EXCEEDED = "BalanceExceeded"
    INSUFFICIENT_STOCK = "InsufficientStock"
    IMMUTABLE_STATE = "ImmutableState"
    INTERNAL = "Internal"


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(
    *, request=None, code: str, kind: str, message: str, details: Any = None
) -> dict[str, Any]:
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "kind": kind,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


class DomainError(APIException):
    """
    Business-rule failure that still flows through the global exception handler.
    Subclasses pin the HTTP status and the stable error kind.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class InvalidTransition(DomainError):
    default_detail = "Status transition not allowed."
    default_code = "invalid_transition"
    kind = ErrorKind.INVALID_TRANSITION


class DoubleBooked(DomainError):
    default_detail = "The practitioner already has an appointment in this time slot."
    default_code = "double_booked"
    kind = ErrorKind.DOUBLE_BOOKED


class BalanceExceeded(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Amount exceeds the outstanding balance."
    default_code = "balance_exceeded"
    kind = ErrorKind.BALANCE_EXCEEDED


class InsufficientStock(DomainError):
    default_detail = "Insufficient stock."
    default_code = "insufficient_stock"
    kind = ErrorKind.INSUFFICIENT_STOCK


class ImmutableState(DomainError):
    default_detail = "This record can no longer be modified."
    default_code = "immutable_state"
    kind = ErrorKind.IMMUTABLE_STATE


class NoActiveMembership(PermissionDenied):
    default_detail = "You are not an active member of any clinic."
    default_code = "no_active_membership"


def error_kind_for(exc: Exception) -> str:
    if isinstance(exc, DomainError):
        return exc.kind
    if isinstance(exc, NotAuthenticated):
        return ErrorKind.UNAUTHENTICATED
    if isinstance(exc, PermissionDenied):
        return ErrorKind.FORBIDDEN
    if isinstance(exc, (NotFound, Http404, ObjectDoesNotExist)):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, ValidationError):
        return ErrorKind.VALIDATION_FAILED
    return ErrorKind.INTERNAL


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, ObjectDoesNotExist):
        exc = NotFound()

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception("Unhandled API error", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                kind=ErrorKind.INTERNAL,
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    # 1) {"detail": "..."}           -> message=detail, details=None
    # 2) {"detail": "...", ...}      -> message=detail, details=rest
    # 3) field errors / list errors  -> message="Request failed.", details=data
    data = response.data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            kind=error_kind_for(exc),
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
