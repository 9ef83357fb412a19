# clinic_core/common/operations.py
from __future__ import annotations

import logging
from typing import Any, Callable

from django.core.exceptions import ObjectDoesNotExist
from rest_framework.exceptions import APIException, ValidationError

from clinic_core.common.api.exceptions import error_kind_for

logger = logging.getLogger(__name__)


def _message_for(exc: APIException) -> str:
    detail = exc.detail
    if isinstance(exc, ValidationError) and isinstance(detail, dict):
        parts = []
        for field, errors in detail.items():
            if isinstance(errors, (list, tuple)):
                errors = "; ".join(str(e) for e in errors)
            parts.append(f"{field}: {errors}")
        return " ".join(parts)
    if isinstance(detail, (list, tuple)):
        return "; ".join(str(d) for d in detail)
    return str(detail)


def run_operation(fn: Callable[..., Any], *args, **kwargs) -> dict[str, Any]:
    """
    Invoke a service operation and fold the outcome into the outward contract:

        {"success": True, "id": "<uuid>"}      (id only when the result has one)
        {"error": "<ErrorKind>", "message": "..."}

    Only domain failures are folded. Anything else (storage errors,
    programming errors) propagates to the caller untouched.
    """
    try:
        result = fn(*args, **kwargs)
    except APIException as exc:
        kind = error_kind_for(exc)
        logger.debug("Operation %s failed: %s", getattr(fn, "__qualname__", fn), kind)
        return {"error": kind, "message": _message_for(exc)}
    except ObjectDoesNotExist as exc:
        return {"error": error_kind_for(exc), "message": "Not found."}

    payload: dict[str, Any] = {"success": True}
    obj_id = getattr(result, "id", None)
    if obj_id is not None:
        payload["id"] = str(obj_id)
    return payload
