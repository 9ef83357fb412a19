# clinic_core/scheduling/reminders.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from clinic_core.notifications.dispatch import AppointmentReminder, NotificationDispatcher, get_dispatcher
from clinic_core.scheduling.models import REMINDABLE_STATUSES, Appointment
from clinic_core.tenants.models import Tenant, TenantStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderRunResult:
    processed: int
    sent: int
    failed: int


class ReminderService:
    """
    Platform-level job (cron / management command); spans all active clinics.
    Each reminder is dispatched outside any transaction and stamped only on success.
    """

    @staticmethod
    def due_reminders(now: datetime, window: timedelta):
        return (
            Appointment.objects.select_related("patient", "practitioner__membership__user")
            .filter(
                reminder_email=True,
                reminder_sent_at__isnull=True,
                status__in=REMINDABLE_STATUSES,
                start_at__gte=now,
                start_at__lte=now + window,
            )
            .exclude(patient__email="")
            .order_by("start_at")
        )

    @staticmethod
    def process_due_reminders(
        *,
        now: Optional[datetime] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ) -> ReminderRunResult:
        now = now or timezone.now()
        window = timedelta(hours=getattr(settings, "CLINIC_REMINDER_WINDOW_HOURS", 24))
        dispatcher = dispatcher or get_dispatcher()

        clinics = dict(
            Tenant.objects.filter(status=TenantStatus.ACTIVE).values_list("id", "name")
        )

        processed = sent = failed = 0
        for appt in ReminderService.due_reminders(now, window):
            if appt.tenant_id not in clinics:
                continue
            processed += 1

            reminder = AppointmentReminder(
                appointment_id=str(appt.id),
                clinic_name=clinics[appt.tenant_id],
                patient_name=appt.patient.full_name,
                patient_email=appt.patient.email,
                practitioner_name=appt.practitioner.display_name if appt.practitioner_id else None,
                start_at=appt.start_at,
                title=appt.title or "Appointment",
            )
            try:
                dispatcher.send_appointment_reminder(reminder)
            except Exception:
                failed += 1
                logger.exception("Reminder dispatch failed appointment=%s", appt.id)
                continue

            Appointment.objects.filter(id=appt.id, reminder_sent_at__isnull=True).update(reminder_sent_at=timezone.now())
            sent += 1

        logger.info("Reminder run processed=%s sent=%s failed=%s", processed, sent, failed)
        return ReminderRunResult(processed=processed, sent=sent, failed=failed)
