# clinic_core/scheduling/services/appointments.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.api.exceptions import DoubleBooked
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.patients.models import Patient
from clinic_core.scheduling.conflicts import SchedulingConflictDetector
from clinic_core.scheduling.models import (
    NON_BLOCKING_STATUSES,
    Appointment,
    AppointmentNote,
    AppointmentStatus,
)
from clinic_core.scheduling.services.practitioners import lock_practitioner

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "appointment_type", "notes", "reminder_email")


def _validate_interval(start_at: Optional[datetime], end_at: Optional[datetime]) -> None:
    if start_at is None:
        raise ValidationError({"start_at": "This field is required."})
    if end_at is None:
        raise ValidationError({"end_at": "This field is required."})
    if end_at <= start_at:
        raise ValidationError({"end_at": "End time must be after start time."})


def _ensure_slot_free(
    ctx: TenantContext,
    *,
    practitioner_id: Optional[UUID],
    start_at: datetime,
    end_at: datetime,
    exclude_appointment_id: Optional[UUID] = None,
) -> None:
    """
    Lock the practitioner row, then run the overlap query. Both happen in the
    caller's transaction so a concurrent booking waits for this one to commit.
    """
    if practitioner_id is None:
        return

    lock_practitioner(ctx, practitioner_id)
    if SchedulingConflictDetector.has_conflict(
        tenant_id=ctx.tenant_id,
        practitioner_id=practitioner_id,
        start=start_at,
        end=end_at,
        exclude_appointment_id=exclude_appointment_id,
    ):
        logger.info(
            "Double booking rejected tenant=%s practitioner=%s %s-%s",
            ctx.tenant_id,
            practitioner_id,
            start_at.isoformat(),
            end_at.isoformat(),
        )
        raise DoubleBooked()


class AppointmentService:
    @staticmethod
    @transaction.atomic
    def create(
        ctx: TenantContext,
        *,
        patient_id: UUID,
        start_at: datetime,
        end_at: datetime,
        practitioner_id: Optional[UUID] = None,
        title: str = "",
        appointment_type: str = "",
        notes: str = "",
        status: str = AppointmentStatus.SCHEDULED,
        reminder_email: bool = True,
    ) -> Appointment:
        require_permissions(ctx, Perm.APPOINTMENTS_WRITE)

        _validate_interval(start_at, end_at)
        if status not in AppointmentStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(AppointmentStatus.values)}"})

        patient = scoped(Patient, ctx).get(patient_id)

        if status not in NON_BLOCKING_STATUSES:
            _ensure_slot_free(ctx, practitioner_id=practitioner_id, start_at=start_at, end_at=end_at)
        elif practitioner_id is not None:
            lock_practitioner(ctx, practitioner_id)

        appt = scoped(Appointment, ctx).create(
            patient=patient,
            practitioner_id=practitioner_id,
            start_at=start_at,
            end_at=end_at,
            title=title or "",
            appointment_type=appointment_type or "",
            notes=notes or "",
            status=status,
            reminder_email=reminder_email,
            created_by_user_id=ctx.user_id,
        )

        AuditService.record_after_commit(
            ctx,
            action="appointment.create",
            entity_type="Appointment",
            entity_id=appt.id,
            metadata={"start_at": start_at.isoformat(), "practitioner_id": str(practitioner_id or "")},
        )
        return appt

    @staticmethod
    @transaction.atomic
    def update(ctx: TenantContext, *, appointment_id: UUID, data: dict) -> Appointment:
        """
        Partial update. Re-runs the conflict check whenever the appointment
        still occupies the calendar.
        """
        require_permissions(ctx, Perm.APPOINTMENTS_WRITE)

        appt = scoped(Appointment, ctx).get(appointment_id, lock=True)
        data = data or {}

        start_at = data.get("start_at", appt.start_at)
        end_at = data.get("end_at", appt.end_at)
        _validate_interval(start_at, end_at)

        if "patient_id" in data:
            appt.patient = scoped(Patient, ctx).get(data["patient_id"])

        practitioner_id = data.get("practitioner_id", appt.practitioner_id)

        if appt.status not in NON_BLOCKING_STATUSES:
            _ensure_slot_free(
                ctx,
                practitioner_id=practitioner_id,
                start_at=start_at,
                end_at=end_at,
                exclude_appointment_id=appt.id,
            )
        elif practitioner_id is not None and practitioner_id != appt.practitioner_id:
            lock_practitioner(ctx, practitioner_id)

        appt.start_at = start_at
        appt.end_at = end_at
        appt.practitioner_id = practitioner_id
        for key in EDITABLE_FIELDS:
            if key in data:
                value = data[key]
                setattr(appt, key, value if value is not None else "")
        appt.save()

        AuditService.record_after_commit(
            ctx,
            action="appointment.update",
            entity_type="Appointment",
            entity_id=appt.id,
            metadata={"updated_fields": sorted(data.keys())},
        )
        return appt

    @staticmethod
    @transaction.atomic
    def set_status(ctx: TenantContext, *, appointment_id: UUID, status: str) -> Appointment:
        require_permissions(ctx, Perm.APPOINTMENTS_WRITE)

        if status not in AppointmentStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(AppointmentStatus.values)}"})

        appt = scoped(Appointment, ctx).get(appointment_id, lock=True)
        if appt.status == status:
            return appt

        # reclaiming a freed slot must not double-book it
        if appt.status in NON_BLOCKING_STATUSES and status not in NON_BLOCKING_STATUSES:
            _ensure_slot_free(
                ctx,
                practitioner_id=appt.practitioner_id,
                start_at=appt.start_at,
                end_at=appt.end_at,
                exclude_appointment_id=appt.id,
            )

        previous = appt.status
        appt.status = status
        appt.save(update_fields=["status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action=f"appointment.status.{status}",
            entity_type="Appointment",
            entity_id=appt.id,
            metadata={"from": previous, "to": status},
        )
        return appt

    @staticmethod
    @transaction.atomic
    def add_note(ctx: TenantContext, *, appointment_id: UUID, note: str) -> AppointmentNote:
        require_permissions(ctx, Perm.APPOINTMENTS_WRITE)

        note = (note or "").strip()
        if not note:
            raise ValidationError({"note": "This field is required."})

        appt = scoped(Appointment, ctx).get(appointment_id)
        return scoped(AppointmentNote, ctx).create(
            appointment=appt,
            note=note,
            created_by_user_id=ctx.user_id,
        )

    @staticmethod
    @transaction.atomic
    def toggle_reminder(ctx: TenantContext, *, appointment_id: UUID, enabled: bool) -> Appointment:
        require_permissions(ctx, Perm.APPOINTMENTS_WRITE)

        appt = scoped(Appointment, ctx).get(appointment_id, lock=True)
        appt.reminder_email = bool(enabled)
        if enabled:
            # re-arm so the next reminder run picks it up again
            appt.reminder_sent_at = None
        appt.save(update_fields=["reminder_email", "reminder_sent_at", "updated_at"])
        return appt

    @staticmethod
    @transaction.atomic
    def delete(ctx: TenantContext, *, appointment_id: UUID) -> None:
        require_permissions(ctx, Perm.APPOINTMENTS_DELETE)

        appt = scoped(Appointment, ctx).get(appointment_id, lock=True)
        appt_id = appt.id
        appt.delete()

        AuditService.record_after_commit(
            ctx,
            action="appointment.delete",
            entity_type="Appointment",
            entity_id=appt_id,
        )
