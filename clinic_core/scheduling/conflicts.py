# clinic_core/scheduling/conflicts.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from clinic_core.scheduling.models import NON_BLOCKING_STATUSES, Appointment


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open [start, end) overlap: touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


class SchedulingConflictDetector:
    """
    Callers must hold the practitioner lock (see AppointmentService) inside the
    same transaction as the insert/update, or the answer can go stale.
    """

    @staticmethod
    def has_conflict(
        *,
        tenant_id: UUID,
        practitioner_id: UUID,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> bool:
        qs = (
            Appointment.objects.for_tenant(tenant_id)
            .filter(practitioner_id=practitioner_id, start_at__lt=end, end_at__gt=start)
            .exclude(status__in=NON_BLOCKING_STATUSES)
        )
        if exclude_appointment_id is not None:
            qs = qs.exclude(id=exclude_appointment_id)
        return qs.exists()
