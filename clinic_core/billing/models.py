# clinic_core/billing/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from clinic_core.common.models import TenantScopedModel
from clinic_core.patients.models import Patient


class InvoiceStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SENT = "SENT", "Sent"
    PARTIALLY_PAID = "PARTIALLY_PAID", "Partially Paid"
    PAID = "PAID", "Paid"
    OVERDUE = "OVERDUE", "Overdue"
    CANCELLED = "CANCELLED", "Cancelled"
    REFUNDED = "REFUNDED", "Refunded"


class Invoice(TenantScopedModel):
    """
    total = subtotal + tax_amount - discount
    paid_amount = sum(payments) - sum(refunds), kept within [0, total].
    Line items are frozen once the invoice leaves DRAFT (enforced in services).
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="invoices")
    treatment_plan = models.ForeignKey(
        "treatments.TreatmentPlan",
        on_delete=models.PROTECT,
        related_name="invoices",
        null=True,
        blank=True,
    )

    invoice_number = models.CharField(max_length=32)
    status = models.CharField(max_length=32, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT, db_index=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)

    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "billing_invoice"
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "invoice_number"], name="uq_invoice_tenant_number"),
            models.CheckConstraint(condition=Q(paid_amount__gte=0), name="ck_invoice_paid_non_negative"),
            models.CheckConstraint(condition=Q(paid_amount__lte=F("total")), name="ck_invoice_paid_within_total"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status", "created_at"]),
            models.Index(fields=["tenant_id", "patient", "created_at"]),
        ]

    def __str__(self) -> str:
        return self.invoice_number

    @property
    def balance_due(self) -> Decimal:
        return self.total - self.paid_amount


class InvoiceItem(TenantScopedModel):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")

    # set when the line was generated from a completed treatment item
    treatment_item = models.ForeignKey(
        "treatments.TreatmentItem",
        on_delete=models.SET_NULL,
        related_name="invoice_items",
        null=True,
        blank=True,
    )

    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "billing_invoice_item"
        ordering = ["sort_order", "created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "invoice"]),
        ]


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    UPI = "UPI", "UPI"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CHEQUE = "CHEQUE", "Cheque"
    INSURANCE = "INSURANCE", "Insurance"
    REFUND = "REFUND", "Refund"


class Payment(TenantScopedModel):
    """
    `amount` is always positive; `is_refund` flips its effect on Invoice.paid_amount.
    """
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=32, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    is_refund = models.BooleanField(default=False)

    reference = models.CharField(max_length=64, blank=True)
    notes = models.TextField(blank=True)
    received_at = models.DateTimeField(default=timezone.now)
    recorded_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "billing_payment"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="ck_payment_amount_positive"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "invoice", "received_at"]),
        ]

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_refund else self.amount
