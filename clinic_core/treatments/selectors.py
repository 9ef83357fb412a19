# clinic_core/treatments/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Prefetch, QuerySet

from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.treatments.models import TreatmentItem, TreatmentPlan


def plans_qs(ctx: TenantContext) -> QuerySet[TreatmentPlan]:
    return (
        scoped(TreatmentPlan, ctx)
        .all()
        .select_related("patient")
        .prefetch_related(Prefetch("items", queryset=TreatmentItem.objects.order_by("sort_order", "created_at")))
    )


def list_plans(
    ctx: TenantContext,
    *,
    patient_id: UUID | None = None,
    status: str | None = None,
) -> QuerySet[TreatmentPlan]:
    require_permissions(ctx, Perm.TREATMENTS_READ)

    qs = plans_qs(ctx).order_by("-created_at")
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if status:
        qs = qs.filter(status=status)
    return qs


def get_plan(ctx: TenantContext, *, plan_id: UUID) -> TreatmentPlan:
    require_permissions(ctx, Perm.TREATMENTS_READ)
    plan = scoped(TreatmentPlan, ctx).get(plan_id)
    return plans_qs(ctx).get(pk=plan.pk)


def get_item(ctx: TenantContext, *, item_id: UUID) -> TreatmentItem:
    require_permissions(ctx, Perm.TREATMENTS_READ)
    return scoped(TreatmentItem, ctx).get(item_id)
