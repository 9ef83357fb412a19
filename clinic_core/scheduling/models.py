# clinic_core/scheduling/models.py
from __future__ import annotations

from django.db import models
from django.db.models import F, Q

from clinic_core.common.models import TenantScopedModel
from clinic_core.iam.models import Membership
from clinic_core.patients.models import Patient


class PractitionerProfile(TenantScopedModel):
    """
    Bookable clinician. Its row doubles as the per-practitioner scheduling lock.
    """
    membership = models.OneToOneField(Membership, on_delete=models.CASCADE, related_name="practitioner_profile")
    specialization = models.CharField(max_length=120, blank=True)
    registration_number = models.CharField(max_length=64, blank=True)

    class Meta:
        db_table = "scheduling_practitioner_profile"

    def __str__(self) -> str:
        return self.display_name

    @property
    def display_name(self) -> str:
        user = self.membership.user
        return user.get_full_name() or user.get_username()


class AppointmentStatus(models.TextChoices):
    SCHEDULED = "SCHEDULED", "Scheduled"
    CONFIRMED = "CONFIRMED", "Confirmed"
    ARRIVED = "ARRIVED", "Arrived"
    IN_TREATMENT = "IN_TREATMENT", "In treatment"
    COMPLETED = "COMPLETED", "Completed"
    NO_SHOW = "NO_SHOW", "No show"
    CANCELLED = "CANCELLED", "Cancelled"


# Statuses that free the calendar slot.
NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})

# Statuses that still want a reminder.
REMINDABLE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})


class Appointment(TenantScopedModel):
    """
    Half-open interval [start_at, end_at) on a practitioner's calendar.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="appointments")
    practitioner = models.ForeignKey(
        PractitionerProfile,
        on_delete=models.PROTECT,
        related_name="appointments",
        null=True,
        blank=True,
    )

    title = models.CharField(max_length=200, blank=True)
    appointment_type = models.CharField(max_length=64, blank=True)
    notes = models.TextField(blank=True)

    start_at = models.DateTimeField()
    end_at = models.DateTimeField()

    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
        db_index=True,
    )

    reminder_email = models.BooleanField(default=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "scheduling_appointment"
        constraints = [
            models.CheckConstraint(condition=Q(end_at__gt=F("start_at")), name="ck_appointment_end_after_start"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "practitioner", "start_at"]),
            models.Index(fields=["tenant_id", "start_at"]),
            models.Index(fields=["status", "reminder_email", "start_at"]),
        ]

    @property
    def blocks_calendar(self) -> bool:
        return self.status not in NON_BLOCKING_STATUSES


class AppointmentNote(TenantScopedModel):
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name="appointment_notes")
    note = models.TextField()
    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "scheduling_appointment_note"
        ordering = ["created_at"]
