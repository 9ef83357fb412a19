# clinic_core/notifications/dispatch.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentReminder:
    appointment_id: str
    clinic_name: str
    patient_name: str
    patient_email: str
    practitioner_name: Optional[str]
    start_at: datetime
    title: str


@dataclass(frozen=True)
class MemberInvite:
    email: str
    clinic_name: str
    role_name: str


@dataclass(frozen=True)
class LowStockAlert:
    tenant_id: str
    item_id: str
    item_name: str
    current_stock: int
    min_stock: int
    recipients: tuple[str, ...] = ()


class NotificationDispatcher:
    """
    Outbound delivery interface. Always invoked after commit;
    implementations raise on failure and callers log it.
    """

    def send_appointment_reminder(self, reminder: AppointmentReminder) -> None:
        raise NotImplementedError

    def send_member_invite(self, invite: MemberInvite) -> None:
        raise NotImplementedError

    def send_low_stock_alert(self, alert: LowStockAlert) -> None:
        raise NotImplementedError


class EmailNotificationDispatcher(NotificationDispatcher):
    def send_appointment_reminder(self, reminder: AppointmentReminder) -> None:
        with_whom = f" with {reminder.practitioner_name}" if reminder.practitioner_name else ""
        body = (
            f"Hi {reminder.patient_name},\n\n"
            f"This is a reminder of your appointment{with_whom} at {reminder.clinic_name} "
            f"on {reminder.start_at:%Y-%m-%d %H:%M %Z}.\n"
        )
        send_mail(
            subject=f"Appointment reminder: {reminder.title}",
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[reminder.patient_email],
        )

    def send_member_invite(self, invite: MemberInvite) -> None:
        send_mail(
            subject=f"You have been invited to {invite.clinic_name}",
            message=f"You were added to {invite.clinic_name} as {invite.role_name}.",
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[invite.email],
        )

    def send_low_stock_alert(self, alert: LowStockAlert) -> None:
        if not alert.recipients:
            logger.info("Low stock: %s (%s <= %s), no recipients", alert.item_name, alert.current_stock, alert.min_stock)
            return
        send_mail(
            subject=f"Low stock: {alert.item_name}",
            message=f"{alert.item_name} is at {alert.current_stock} (minimum {alert.min_stock}).",
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=list(alert.recipients),
        )


def get_dispatcher() -> NotificationDispatcher:
    backend = getattr(
        settings,
        "CLINIC_NOTIFICATION_BACKEND",
        "clinic_core.notifications.dispatch.EmailNotificationDispatcher",
    )
    return import_string(backend)()
