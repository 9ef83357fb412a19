from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from clinic_core.notifications.dispatch import NotificationDispatcher
from clinic_core.scheduling.models import Appointment, AppointmentStatus
from clinic_core.scheduling.reminders import ReminderService
from clinic_core.scheduling.services.appointments import AppointmentService
from clinic_core.tenants.models import TenantStatus

pytestmark = pytest.mark.django_db


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send_appointment_reminder(self, reminder):
        if reminder.appointment_id in self.fail_for:
            raise RuntimeError("smtp down")
        self.sent.append(reminder)


@pytest.fixture
def soon():
    now = timezone.now()
    return now, now + timedelta(hours=2)


def _book(ctx, patient, practitioner, start, **extra):
    return AppointmentService.create(
        ctx,
        patient_id=patient.id,
        practitioner_id=practitioner.id,
        start_at=start,
        end_at=start + timedelta(minutes=30),
        title="Check-up",
        **extra,
    )


def test_due_reminder_is_sent_once(owner_ctx, patient, practitioner, soon):
    now, start = soon
    appt = _book(owner_ctx, patient, practitioner, start)
    dispatcher = RecordingDispatcher()

    result = ReminderService.process_due_reminders(now=now, dispatcher=dispatcher)
    assert (result.processed, result.sent, result.failed) == (1, 1, 0)
    assert dispatcher.sent[0].patient_email == "patient@example.com"
    assert dispatcher.sent[0].clinic_name == "Smile Dental"

    appt.refresh_from_db()
    assert appt.reminder_sent_at is not None

    again = ReminderService.process_due_reminders(now=now, dispatcher=dispatcher)
    assert again.sent == 0


def test_failed_dispatch_leaves_reminder_pending(owner_ctx, patient, practitioner, soon):
    now, start = soon
    appt = _book(owner_ctx, patient, practitioner, start)

    result = ReminderService.process_due_reminders(now=now, dispatcher=RecordingDispatcher(fail_for={str(appt.id)}))
    assert result.failed == 1

    appt.refresh_from_db()
    assert appt.reminder_sent_at is None


def test_cancelled_disabled_and_far_future_are_skipped(owner_ctx, patient, practitioner, soon):
    now, start = soon
    cancelled = _book(owner_ctx, patient, practitioner, start)
    AppointmentService.set_status(owner_ctx, appointment_id=cancelled.id, status=AppointmentStatus.CANCELLED)
    _book(owner_ctx, patient, practitioner, start + timedelta(hours=1), reminder_email=False)
    _book(owner_ctx, patient, practitioner, now + timedelta(days=3))

    result = ReminderService.process_due_reminders(now=now, dispatcher=RecordingDispatcher())
    assert result.processed == 0


def test_suspended_clinic_gets_no_reminders(owner_ctx, tenant, patient, practitioner, soon):
    now, start = soon
    _book(owner_ctx, patient, practitioner, start)
    tenant.status = TenantStatus.SUSPENDED
    tenant.save(update_fields=["status"])

    assert ReminderService.process_due_reminders(now=now, dispatcher=RecordingDispatcher()).processed == 0


def test_re_enabling_reminder_re_arms_it(owner_ctx, patient, practitioner, soon):
    now, start = soon
    appt = _book(owner_ctx, patient, practitioner, start)
    ReminderService.process_due_reminders(now=now, dispatcher=RecordingDispatcher())

    AppointmentService.toggle_reminder(owner_ctx, appointment_id=appt.id, enabled=False)
    AppointmentService.toggle_reminder(owner_ctx, appointment_id=appt.id, enabled=True)

    assert Appointment.objects.get(id=appt.id).reminder_sent_at is None


def test_management_command_sends_through_mail_backend(owner_ctx, patient, practitioner, soon):
    from django.core import mail

    _, start = soon
    _book(owner_ctx, patient, practitioner, start)

    call_command("send_appointment_reminders")

    assert len(mail.outbox) == 1
    assert "reminder" in mail.outbox[0].subject.lower()
