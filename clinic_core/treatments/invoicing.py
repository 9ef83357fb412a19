# clinic_core/treatments/invoicing.py
"""
Turning completed treatment work into invoices.

An item counts as already billed when any invoice linked to its plan carries
a line that points at the item, or whose description matches the item's
procedure or its generated label. Cancelled invoices still count.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List
from uuid import UUID

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing.models import Invoice, InvoiceItem
from clinic_core.billing.services import InvoiceLineInput, InvoiceService
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.treatments.models import TreatmentItem, TreatmentItemStatus, TreatmentPlan

logger = logging.getLogger(__name__)


def _billed_markers(ctx: TenantContext, plan: TreatmentPlan) -> tuple[set, set]:
    lines = scoped(InvoiceItem, ctx).filter(invoice__treatment_plan=plan).values_list("treatment_item_id", "description")
    item_ids, descriptions = set(), set()
    for item_id, description in lines:
        if item_id is not None:
            item_ids.add(item_id)
        descriptions.add(description)
    return item_ids, descriptions


def _unbilled(ctx: TenantContext, plan: TreatmentPlan, items: Iterable[TreatmentItem]) -> List[TreatmentItem]:
    billed_ids, billed_descriptions = _billed_markers(ctx, plan)
    return [
        item
        for item in items
        if item.id not in billed_ids
        and item.procedure not in billed_descriptions
        and item.invoice_label not in billed_descriptions
    ]


def _completed_items(ctx: TenantContext, plan: TreatmentPlan):
    return scoped(TreatmentItem, ctx).filter(plan=plan, status=TreatmentItemStatus.COMPLETED).order_by("sort_order")


def completed_unbilled_items(ctx: TenantContext, *, plan_id: UUID) -> List[TreatmentItem]:
    require_permissions(ctx, Perm.TREATMENTS_READ, Perm.BILLING_READ)

    plan = scoped(TreatmentPlan, ctx).get(plan_id)
    return _unbilled(ctx, plan, _completed_items(ctx, plan))


@transaction.atomic
def generate_invoice_from_plan(
    ctx: TenantContext,
    *,
    plan_id: UUID,
    item_ids: Iterable[UUID],
    tax_rate: Any = 0,
    discount: Any = 0,
) -> Invoice:
    """
    Bill the selected completed items of a plan as one DRAFT invoice.

    The plan row is locked for the duration so two concurrent calls for the
    same items cannot both see them as unbilled.
    """
    require_permissions(ctx, Perm.TREATMENTS_WRITE, Perm.BILLING_WRITE)

    plan = scoped(TreatmentPlan, ctx).get(plan_id, lock=True)

    wanted = {str(i) for i in (item_ids or [])}
    selected = [item for item in _completed_items(ctx, plan) if str(item.id) in wanted]
    eligible = _unbilled(ctx, plan, selected)
    if not eligible:
        raise ValidationError({"item_ids": "No completed, unbilled items selected."})

    lines = [
        InvoiceLineInput(
            description=item.invoice_label,
            quantity=1,
            unit_price=item.net_cost,
            treatment_item_id=item.id,
        )
        for item in eligible
    ]

    invoice = InvoiceService.create(
        ctx,
        patient_id=plan.patient_id,
        items=lines,
        tax_rate=tax_rate,
        discount=discount,
        notes=f"Generated from treatment plan: {plan.name}",
        treatment_plan_id=plan.id,
    )

    AuditService.record_after_commit(
        ctx,
        action="invoice.generate_from_plan",
        entity_type="Invoice",
        entity_id=invoice.id,
        metadata={
            "treatment_plan_id": str(plan.id),
            "invoice_number": invoice.invoice_number,
            "total": str(invoice.total),
            "items": [str(item.id) for item in eligible],
        },
    )
    logger.info("Invoice %s generated from plan=%s items=%d", invoice.invoice_number, plan.id, len(eligible))
    return invoice
