# clinic_core/billing/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Prefetch, QuerySet

from clinic_core.billing.models import Invoice, InvoiceItem, Payment
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions


def invoices_qs(ctx: TenantContext) -> QuerySet[Invoice]:
    return (
        scoped(Invoice, ctx)
        .all()
        .select_related("patient")
        .prefetch_related(
            Prefetch("items", queryset=InvoiceItem.objects.order_by("sort_order", "created_at")),
            Prefetch("payments", queryset=Payment.objects.order_by("received_at")),
        )
    )


def list_invoices(
    ctx: TenantContext,
    *,
    patient_id: UUID | None = None,
    treatment_plan_id: UUID | None = None,
    status: str | None = None,
) -> QuerySet[Invoice]:
    require_permissions(ctx, Perm.BILLING_READ)

    qs = invoices_qs(ctx).order_by("-created_at")

    if patient_id:
        qs = qs.filter(patient_id=patient_id)

    if treatment_plan_id:
        qs = qs.filter(treatment_plan_id=treatment_plan_id)

    if status:
        qs = qs.filter(status=status)

    return qs


def get_invoice(ctx: TenantContext, *, invoice_id: UUID) -> Invoice:
    require_permissions(ctx, Perm.BILLING_READ)
    invoice = scoped(Invoice, ctx).get(invoice_id)
    return invoices_qs(ctx).get(pk=invoice.pk)


def list_payments(ctx: TenantContext, *, invoice_id: UUID) -> QuerySet[Payment]:
    require_permissions(ctx, Perm.BILLING_READ)
    invoice = scoped(Invoice, ctx).get(invoice_id)
    return scoped(Payment, ctx).filter(invoice=invoice).order_by("received_at")
