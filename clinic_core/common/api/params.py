# clinic_core/common/api/params.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import ValidationError


def uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError({field_name: "Invalid UUID"})


def datetime_or_none(value: str | None, field_name: str) -> datetime | None:
    if not value:
        return None
    try:
        dt = parse_datetime(value)
    except ValueError:
        dt = None
    if dt is None:
        raise ValidationError({field_name: "Invalid datetime (ISO 8601 expected)"})
    return dt


def truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}
