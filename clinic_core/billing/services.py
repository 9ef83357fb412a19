# clinic_core/billing/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing import state
from clinic_core.billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
    PaymentMethod,
)
from clinic_core.common.api.exceptions import BalanceExceeded, ImmutableState, InvalidTransition
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.patients.models import Patient
from clinic_core.tenants.services import TenantService
from clinic_core.treatments.models import TreatmentItem, TreatmentPlan

logger = logging.getLogger(__name__)

PAYABLE_METHODS = [m for m in PaymentMethod.values if m != PaymentMethod.REFUND]


@dataclass(frozen=True)
class InvoiceLineInput:
    description: str
    quantity: int
    unit_price: Decimal
    treatment_item_id: Optional[UUID] = None

    @classmethod
    def coerce(cls, value: Any, index: int) -> "InvoiceLineInput":
        if isinstance(value, cls):
            line = value
        elif isinstance(value, dict):
            line = cls(
                description=value.get("description", ""),
                quantity=value.get("quantity", 1),
                unit_price=value.get("unit_price", Decimal("0")),
                treatment_item_id=value.get("treatment_item_id"),
            )
        else:
            raise ValidationError({f"items[{index}]": "Invalid line item."})
        return line._validated(index)

    def _validated(self, index: int) -> "InvoiceLineInput":
        prefix = f"items[{index}]"
        description = (self.description or "").strip()
        if not description:
            raise ValidationError({f"{prefix}.description": "This field is required."})

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValidationError({f"{prefix}.quantity": "Quantity must be a whole number >= 1."})

        try:
            unit_price = state.to_money(self.unit_price)
        except ValueError:
            raise ValidationError({f"{prefix}.unit_price": "Invalid amount."})
        if unit_price < 0:
            raise ValidationError({f"{prefix}.unit_price": "Unit price must be >= 0."})

        return InvoiceLineInput(
            description=description[:255],
            quantity=self.quantity,
            unit_price=unit_price,
            treatment_item_id=self.treatment_item_id,
        )


def _validated_lines(items: Optional[Iterable[Any]]) -> list[InvoiceLineInput]:
    lines = [InvoiceLineInput.coerce(v, i) for i, v in enumerate(items or [])]
    if not lines:
        raise ValidationError({"items": "At least one item is required."})
    return lines


def _validated_tax_rate(value: Any) -> Decimal:
    try:
        rate = state.to_money(value if value is not None else 0)
    except ValueError:
        raise ValidationError({"tax_rate": "Invalid tax rate."})
    if rate < 0 or rate > 100:
        raise ValidationError({"tax_rate": "Tax rate must be between 0 and 100."})
    return rate


def _validated_amount(value: Any, field: str) -> Decimal:
    try:
        amount = state.to_money(value)
    except ValueError:
        raise ValidationError({field: "Invalid amount."})
    if amount <= 0:
        raise ValidationError({field: "Amount must be greater than 0."})
    return amount


def _totals_for(lines: list[InvoiceLineInput], tax_rate: Any, discount: Any) -> state.InvoiceTotals:
    tax_rate = _validated_tax_rate(tax_rate)
    try:
        discount = state.to_money(discount if discount is not None else 0)
    except ValueError:
        raise ValidationError({"discount": "Invalid amount."})
    if discount < 0:
        raise ValidationError({"discount": "Discount must be >= 0."})

    totals = state.compute_totals(((l.quantity, l.unit_price) for l in lines), tax_rate, discount)
    if totals.total < 0:
        raise ValidationError({"discount": "Discount cannot exceed subtotal plus tax."})
    return totals


def _write_items(ctx: TenantContext, invoice: Invoice, lines: list[InvoiceLineInput]) -> None:
    repo = scoped(InvoiceItem, ctx)
    for position, line in enumerate(lines):
        repo.create(
            invoice=invoice,
            treatment_item_id=line.treatment_item_id,
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            amount=state.to_money(line.unit_price * line.quantity),
            sort_order=position,
        )


def _check_linked_items(ctx: TenantContext, lines: list[InvoiceLineInput], plan: Optional[TreatmentPlan]) -> None:
    """
    Lines pointing at treatment items must point at items of the invoice's own plan.
    """
    linked = {l.treatment_item_id for l in lines if l.treatment_item_id is not None}
    if not linked:
        return
    if plan is None:
        raise ValidationError({"items": "Treatment item lines need a treatment plan."})
    found = scoped(TreatmentItem, ctx).filter(plan=plan, id__in=linked).count()
    if found != len(linked):
        raise ValidationError({"items": "Treatment item does not belong to this plan."})


def _apply_totals(invoice: Invoice, totals: state.InvoiceTotals, tax_rate: Any) -> None:
    invoice.subtotal = totals.subtotal
    invoice.tax_rate = _validated_tax_rate(tax_rate)
    invoice.tax_amount = totals.tax_amount
    invoice.discount = totals.discount
    invoice.total = totals.total


class InvoiceService:
    @staticmethod
    @transaction.atomic
    def create(
        ctx: TenantContext,
        *,
        patient_id: UUID,
        items: Iterable[Any],
        tax_rate: Any = 0,
        discount: Any = 0,
        due_date: Optional[date] = None,
        notes: str = "",
        treatment_plan_id: Optional[UUID] = None,
    ) -> Invoice:
        require_permissions(ctx, Perm.BILLING_WRITE)

        lines = _validated_lines(items)
        totals = _totals_for(lines, tax_rate, discount)

        patient = scoped(Patient, ctx).get(patient_id)

        plan = None
        if treatment_plan_id is not None:
            plan = scoped(TreatmentPlan, ctx).get(treatment_plan_id)
            if plan.patient_id != patient.id:
                raise ValidationError({"treatment_plan_id": "Treatment plan belongs to a different patient."})

        _check_linked_items(ctx, lines, plan)

        invoice = Invoice(
            tenant_id=ctx.tenant_id,
            patient=patient,
            treatment_plan=plan,
            invoice_number=TenantService.allocate_invoice_number(ctx.tenant_id),
            status=InvoiceStatus.DRAFT,
            paid_amount=state.ZERO,
            due_date=due_date,
            notes=notes or "",
            created_by_user_id=ctx.user_id,
        )
        _apply_totals(invoice, totals, tax_rate)
        invoice.save()
        _write_items(ctx, invoice, lines)

        AuditService.record_after_commit(
            ctx,
            action="invoice.create",
            entity_type="Invoice",
            entity_id=invoice.id,
            metadata={"invoice_number": invoice.invoice_number, "total": str(invoice.total)},
        )
        logger.info("Invoice created tenant=%s invoice=%s total=%s", ctx.tenant_id, invoice.invoice_number, invoice.total)
        return invoice

    @staticmethod
    def _ensure_editable(invoice: Invoice) -> None:
        if invoice.status != InvoiceStatus.DRAFT:
            raise ImmutableState("Only draft invoices can be edited.")

    @staticmethod
    @transaction.atomic
    def update(
        ctx: TenantContext,
        *,
        invoice_id: UUID,
        items: Optional[Iterable[Any]] = None,
        tax_rate: Any = None,
        discount: Any = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Invoice:
        """
        Replace line items and/or adjust tax, discount, due date and notes of a DRAFT invoice.
        """
        require_permissions(ctx, Perm.BILLING_WRITE)

        invoice = scoped(Invoice, ctx).get(invoice_id, lock=True)
        InvoiceService._ensure_editable(invoice)

        if items is not None:
            lines = _validated_lines(items)
            _check_linked_items(ctx, lines, invoice.treatment_plan)
        else:
            lines = [
                InvoiceLineInput(i.description, i.quantity, i.unit_price, i.treatment_item_id)
                for i in invoice.items.all()
            ]

        tax_rate = invoice.tax_rate if tax_rate is None else tax_rate
        discount = invoice.discount if discount is None else discount
        totals = _totals_for(lines, tax_rate, discount)

        if totals.total < invoice.paid_amount:
            raise ValidationError({"items": "Invoice total cannot drop below the amount already paid."})

        _apply_totals(invoice, totals, tax_rate)
        if due_date is not None:
            invoice.due_date = due_date
        if notes is not None:
            invoice.notes = notes
        invoice.save()

        if items is not None:
            invoice.items.all().delete()
            _write_items(ctx, invoice, lines)

        AuditService.record_after_commit(
            ctx,
            action="invoice.update",
            entity_type="Invoice",
            entity_id=invoice.id,
            metadata={"total": str(invoice.total)},
        )
        return invoice

    @staticmethod
    @transaction.atomic
    def delete(ctx: TenantContext, *, invoice_id: UUID) -> None:
        require_permissions(ctx, Perm.BILLING_WRITE)

        invoice = scoped(Invoice, ctx).get(invoice_id, lock=True)
        if invoice.status != InvoiceStatus.DRAFT or invoice.paid_amount != state.ZERO:
            raise ImmutableState("Only unpaid draft invoices can be deleted.")

        number = invoice.invoice_number
        invoice_pk = invoice.id
        invoice.delete()

        AuditService.record_after_commit(
            ctx,
            action="invoice.delete",
            entity_type="Invoice",
            entity_id=invoice_pk,
            metadata={"invoice_number": number},
        )

    @staticmethod
    @transaction.atomic
    def transition(ctx: TenantContext, *, invoice_id: UUID, target: str) -> Invoice:
        require_permissions(ctx, Perm.BILLING_WRITE)

        if target not in InvoiceStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(InvoiceStatus.values)}"})

        invoice = scoped(Invoice, ctx).get(invoice_id, lock=True)
        current = invoice.status

        if target in state.DERIVED_STATUSES:
            raise InvalidTransition(f"{target} is set by payments and refunds, not directly.")
        if not state.can_transition(current, target):
            raise InvalidTransition(f"Cannot change invoice status from {current} to {target}.")

        invoice.status = target
        invoice.save(update_fields=["status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action=f"invoice.status.{target}",
            entity_type="Invoice",
            entity_id=invoice.id,
            metadata={"from": current, "to": target},
        )
        return invoice


class PaymentService:
    @staticmethod
    @transaction.atomic
    def record_payment(
        ctx: TenantContext,
        *,
        invoice_id: UUID,
        amount: Any,
        method: str = PaymentMethod.CASH,
        reference: str = "",
        notes: str = "",
    ) -> Payment:
        require_permissions(ctx, Perm.BILLING_WRITE)

        amount = _validated_amount(amount, "amount")
        if method not in PAYABLE_METHODS:
            raise ValidationError({"method": f"Invalid method. Allowed: {PAYABLE_METHODS}"})

        invoice = scoped(Invoice, ctx).get(invoice_id, lock=True)

        if invoice.status in state.PAYMENT_BLOCKED_STATUSES:
            raise InvalidTransition(f"Cannot record a payment on a {invoice.status} invoice.")
        if state.exceeds_balance(amount, invoice.balance_due):
            raise BalanceExceeded(f"Amount exceeds balance due ({invoice.balance_due}).")

        pay = scoped(Payment, ctx).create(
            invoice=invoice,
            amount=amount,
            method=method,
            is_refund=False,
            reference=reference or "",
            notes=notes or "",
            recorded_by_user_id=ctx.user_id,
        )

        invoice.paid_amount = invoice.paid_amount + amount
        invoice.status = state.status_after_payment(invoice.status, invoice.paid_amount, invoice.total)
        invoice.save(update_fields=["paid_amount", "status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action="payment.record",
            entity_type="Invoice",
            entity_id=invoice.id,
            metadata={"payment_id": str(pay.id), "amount": str(amount), "method": method},
        )
        logger.info("Payment recorded invoice=%s amount=%s status=%s", invoice.invoice_number, amount, invoice.status)
        return pay

    @staticmethod
    @transaction.atomic
    def refund_payment(
        ctx: TenantContext,
        *,
        invoice_id: UUID,
        amount: Any,
        reason: str = "",
    ) -> Payment:
        require_permissions(ctx, Perm.BILLING_REFUND)

        amount = _validated_amount(amount, "amount")

        invoice = scoped(Invoice, ctx).get(invoice_id, lock=True)
        if amount > invoice.paid_amount:
            raise BalanceExceeded(f"Refund exceeds amount paid ({invoice.paid_amount}).")

        refund = scoped(Payment, ctx).create(
            invoice=invoice,
            amount=amount,
            method=PaymentMethod.REFUND,
            is_refund=True,
            notes=reason or "",
            recorded_by_user_id=ctx.user_id,
        )

        invoice.paid_amount = invoice.paid_amount - amount
        # derived, not checked against INVOICE_TRANSITIONS
        invoice.status = state.status_after_refund(invoice.status, invoice.paid_amount, invoice.total)
        invoice.save(update_fields=["paid_amount", "status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action="payment.refund",
            entity_type="Invoice",
            entity_id=invoice.id,
            metadata={"payment_id": str(refund.id), "amount": str(amount), "reason": reason or ""},
        )
        logger.info("Refund recorded invoice=%s amount=%s status=%s", invoice.invoice_number, amount, invoice.status)
        return refund
