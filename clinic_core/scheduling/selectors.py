# clinic_core/scheduling/selectors.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from django.db.models import QuerySet

from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.scheduling.models import Appointment


def list_appointments(
    ctx: TenantContext,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    practitioner_id: UUID | None = None,
    patient_id: UUID | None = None,
    status: str | None = None,
) -> QuerySet[Appointment]:
    require_permissions(ctx, Perm.APPOINTMENTS_READ)

    qs = scoped(Appointment, ctx).all().select_related("patient", "practitioner__membership__user")
    if start is not None:
        qs = qs.filter(end_at__gt=start)
    if end is not None:
        qs = qs.filter(start_at__lt=end)
    if practitioner_id:
        qs = qs.filter(practitioner_id=practitioner_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("start_at")


def get_appointment(ctx: TenantContext, *, appointment_id: UUID) -> Appointment:
    require_permissions(ctx, Perm.APPOINTMENTS_READ)
    return scoped(Appointment, ctx).get(appointment_id)
