# clinic_core/treatments/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import F, Q

from clinic_core.common.models import TenantScopedModel
from clinic_core.patients.models import Patient
from clinic_core.scheduling.models import PractitionerProfile


class TreatmentPlanStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PROPOSED = "PROPOSED", "Proposed"
    ACCEPTED = "ACCEPTED", "Accepted"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class TreatmentItemStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    SCHEDULED = "SCHEDULED", "Scheduled"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class TreatmentPlan(TenantScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="treatment_plans")
    name = models.CharField(max_length=200)
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=16,
        choices=TreatmentPlanStatus.choices,
        default=TreatmentPlanStatus.DRAFT,
        db_index=True,
    )

    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "treatments_plan"
        indexes = [
            models.Index(fields=["tenant_id", "patient", "created_at"]),
            models.Index(fields=["tenant_id", "status"]),
        ]

    def __str__(self) -> str:
        return self.name


class TreatmentItem(TenantScopedModel):
    """
    One procedure inside a plan. `completed_date` is set exactly while status is COMPLETED.
    """
    plan = models.ForeignKey(TreatmentPlan, on_delete=models.CASCADE, related_name="items")

    procedure = models.CharField(max_length=200)
    tooth_number = models.PositiveSmallIntegerField(null=True, blank=True)

    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(
        max_length=16,
        choices=TreatmentItemStatus.choices,
        default=TreatmentItemStatus.PENDING,
        db_index=True,
    )

    practitioner = models.ForeignKey(
        PractitionerProfile,
        on_delete=models.SET_NULL,
        related_name="treatment_items",
        null=True,
        blank=True,
    )
    scheduled_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "treatments_item"
        ordering = ["sort_order", "created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(cost__gte=0), name="ck_treatment_item_cost_non_negative"),
            models.CheckConstraint(condition=Q(discount__gte=0), name="ck_treatment_item_discount_non_negative"),
            models.CheckConstraint(condition=Q(discount__lte=F("cost")), name="ck_treatment_item_discount_within_cost"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "plan", "sort_order"]),
        ]

    def __str__(self) -> str:
        return self.invoice_label

    @property
    def net_cost(self) -> Decimal:
        return self.cost - self.discount

    @property
    def invoice_label(self) -> str:
        if self.tooth_number:
            return f"{self.procedure} (Tooth #{self.tooth_number})"
        return self.procedure
