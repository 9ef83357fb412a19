# clinic_core/treatments/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Max
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing.state import to_money
from clinic_core.common.api.exceptions import ImmutableState, InvalidTransition
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.patients.models import Patient
from clinic_core.scheduling.models import PractitionerProfile
from clinic_core.treatments import state
from clinic_core.treatments.models import (
    TreatmentItem,
    TreatmentItemStatus,
    TreatmentPlan,
    TreatmentPlanStatus,
)

logger = logging.getLogger(__name__)

TOOTH_MIN = 11
TOOTH_MAX = 48

ITEM_FIELDS = {"procedure", "tooth_number", "cost", "discount", "practitioner_id", "scheduled_date", "notes"}


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError({"name": "Plan name is required."})
    return name


def _clean_tooth(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError({"tooth_number": "Invalid tooth number."})
    try:
        tooth = int(value)
    except (TypeError, ValueError):
        raise ValidationError({"tooth_number": "Invalid tooth number."})
    if tooth != value and str(tooth) != str(value).strip():
        raise ValidationError({"tooth_number": "Tooth number must be a whole number."})
    if tooth < TOOTH_MIN or tooth > TOOTH_MAX:
        raise ValidationError({"tooth_number": f"Tooth number must be between {TOOTH_MIN} and {TOOTH_MAX}."})
    return tooth


def _clean_money(value: Any, field: str) -> Decimal:
    try:
        amount = to_money(value if value not in (None, "") else 0)
    except ValueError:
        raise ValidationError({field: "Invalid amount."})
    if amount < 0:
        raise ValidationError({field: "Must be >= 0."})
    return amount


def _clean_item_fields(ctx: TenantContext, data: dict, *, current: Optional[TreatmentItem] = None) -> dict:
    updates: dict[str, Any] = {}

    if "procedure" in data or current is None:
        procedure = (data.get("procedure") or "").strip()
        if not procedure:
            raise ValidationError({"procedure": "Procedure name is required."})
        updates["procedure"] = procedure[:200]

    if "tooth_number" in data:
        updates["tooth_number"] = _clean_tooth(data["tooth_number"])

    if "cost" in data or current is None:
        updates["cost"] = _clean_money(data.get("cost"), "cost")
    if "discount" in data or current is None:
        updates["discount"] = _clean_money(data.get("discount"), "discount")

    cost = updates.get("cost", current.cost if current else Decimal("0"))
    discount = updates.get("discount", current.discount if current else Decimal("0"))
    if discount > cost:
        raise ValidationError({"discount": "Discount cannot exceed cost."})

    if "practitioner_id" in data:
        pid = data["practitioner_id"]
        updates["practitioner"] = scoped(PractitionerProfile, ctx).get(pid) if pid else None

    if "scheduled_date" in data:
        updates["scheduled_date"] = data["scheduled_date"]

    if "notes" in data:
        updates["notes"] = data["notes"] or ""

    return updates


def _apply_item_status(item: TreatmentItem, status: str) -> None:
    if status == TreatmentItemStatus.COMPLETED:
        if item.status != TreatmentItemStatus.COMPLETED:
            item.completed_date = timezone.now()
    else:
        item.completed_date = None
    item.status = status


def _rederive_plan(ctx: TenantContext, plan: TreatmentPlan) -> str:
    statuses = list(scoped(TreatmentItem, ctx).filter(plan=plan).values_list("status", flat=True))
    derived = state.derive_plan_status(plan.status, statuses)
    if derived != plan.status:
        previous = plan.status
        plan.status = derived
        plan.save(update_fields=["status", "updated_at"])
        logger.info("Plan status derived plan=%s %s->%s", plan.id, previous, derived)
    return plan.status


class TreatmentPlanService:
    @staticmethod
    @transaction.atomic
    def create_plan(ctx: TenantContext, *, patient_id: UUID, name: str, notes: str = "") -> TreatmentPlan:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        name = _clean_name(name)
        patient = scoped(Patient, ctx).get(patient_id)

        plan = scoped(TreatmentPlan, ctx).create(
            patient=patient,
            name=name,
            notes=(notes or "").strip(),
            created_by_user_id=ctx.user_id,
        )

        AuditService.record_after_commit(
            ctx,
            action="treatment_plan.create",
            entity_type="TreatmentPlan",
            entity_id=plan.id,
        )
        return plan

    @staticmethod
    @transaction.atomic
    def update_plan(
        ctx: TenantContext,
        *,
        plan_id: UUID,
        name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TreatmentPlan:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        plan = scoped(TreatmentPlan, ctx).get(plan_id, lock=True)
        if name is not None:
            plan.name = _clean_name(name)
        if notes is not None:
            plan.notes = notes.strip()
        plan.save()

        AuditService.record_after_commit(
            ctx,
            action="treatment_plan.update",
            entity_type="TreatmentPlan",
            entity_id=plan.id,
        )
        return plan

    @staticmethod
    @transaction.atomic
    def delete_plan(ctx: TenantContext, *, plan_id: UUID) -> None:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        plan = scoped(TreatmentPlan, ctx).get(plan_id, lock=True)
        if plan.invoices.exists():
            raise ImmutableState("Treatment plan has invoices and cannot be deleted.")

        plan_pk = plan.id
        plan.delete()

        AuditService.record_after_commit(
            ctx,
            action="treatment_plan.delete",
            entity_type="TreatmentPlan",
            entity_id=plan_pk,
        )

    @staticmethod
    @transaction.atomic
    def transition(ctx: TenantContext, *, plan_id: UUID, target: str) -> TreatmentPlan:
        """
        Explicit status change. Accepting a plan is an approval and needs
        `treatments:approve`; every other target needs `treatments:write`.
        """
        if target == TreatmentPlanStatus.ACCEPTED:
            require_permissions(ctx, Perm.TREATMENTS_APPROVE)
        else:
            require_permissions(ctx, Perm.TREATMENTS_WRITE)

        if target not in TreatmentPlanStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(TreatmentPlanStatus.values)}"})

        plan = scoped(TreatmentPlan, ctx).get(plan_id, lock=True)
        current = plan.status
        if not state.can_transition(current, target):
            raise InvalidTransition(f"Cannot transition treatment plan from {current} to {target}.")

        plan.status = target
        plan.save(update_fields=["status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action=f"treatment_plan.status.{target}",
            entity_type="TreatmentPlan",
            entity_id=plan.id,
            metadata={"from": current, "to": target},
        )
        logger.info("Plan transitioned tenant=%s plan=%s %s->%s", ctx.tenant_id, plan.id, current, target)
        return plan


class TreatmentItemService:
    @staticmethod
    @transaction.atomic
    def add_item(ctx: TenantContext, *, plan_id: UUID, data: dict) -> TreatmentItem:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        plan = scoped(TreatmentPlan, ctx).get(plan_id, lock=True)
        if plan.status in state.CLOSED_PLAN_STATUSES:
            raise ImmutableState(f"Cannot add items to a {plan.status} treatment plan.")

        fields = _clean_item_fields(ctx, data or {})
        last = scoped(TreatmentItem, ctx).filter(plan=plan).aggregate(m=Max("sort_order"))["m"]

        item = scoped(TreatmentItem, ctx).create(
            plan=plan,
            sort_order=0 if last is None else last + 1,
            **fields,
        )

        next_status = state.status_after_item_added(plan.status)
        if next_status != plan.status:
            plan.status = next_status
            plan.save(update_fields=["status", "updated_at"])

        AuditService.record_after_commit(
            ctx,
            action="treatment_item.create",
            entity_type="TreatmentItem",
            entity_id=item.id,
            metadata={"plan_id": str(plan.id), "procedure": item.procedure},
        )
        return item

    @staticmethod
    @transaction.atomic
    def update_item(ctx: TenantContext, *, item_id: UUID, data: dict) -> TreatmentItem:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        data = data or {}
        item = scoped(TreatmentItem, ctx).get(item_id, lock=True)
        plan = scoped(TreatmentPlan, ctx).get(item.plan_id, lock=True)

        updates = _clean_item_fields(ctx, {k: v for k, v in data.items() if k in ITEM_FIELDS}, current=item)
        for k, v in updates.items():
            setattr(item, k, v)

        status = data.get("status")
        if status is not None:
            if status not in TreatmentItemStatus.values:
                raise ValidationError({"status": f"Invalid status. Allowed: {list(TreatmentItemStatus.values)}"})
            _apply_item_status(item, status)

        item.save()
        if status is not None:
            _rederive_plan(ctx, plan)

        AuditService.record_after_commit(
            ctx,
            action="treatment_item.update",
            entity_type="TreatmentItem",
            entity_id=item.id,
            metadata={"updated_fields": sorted(set(data) & (ITEM_FIELDS | {"status"}))},
        )
        return item

    @staticmethod
    @transaction.atomic
    def set_item_status(ctx: TenantContext, *, item_id: UUID, status: str) -> TreatmentItem:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        if status not in TreatmentItemStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(TreatmentItemStatus.values)}"})

        item = scoped(TreatmentItem, ctx).get(item_id, lock=True)
        plan = scoped(TreatmentPlan, ctx).get(item.plan_id, lock=True)

        _apply_item_status(item, status)
        item.save(update_fields=["status", "completed_date", "updated_at"])
        plan_status = _rederive_plan(ctx, plan)

        AuditService.record_after_commit(
            ctx,
            action=f"treatment_item.status.{status}",
            entity_type="TreatmentItem",
            entity_id=item.id,
            metadata={"plan_id": str(plan.id), "plan_status": plan_status},
        )
        return item

    @staticmethod
    @transaction.atomic
    def remove_item(ctx: TenantContext, *, item_id: UUID) -> None:
        require_permissions(ctx, Perm.TREATMENTS_WRITE)

        item = scoped(TreatmentItem, ctx).get(item_id, lock=True)
        item_pk, plan_pk = item.id, item.plan_id
        item.delete()

        AuditService.record_after_commit(
            ctx,
            action="treatment_item.delete",
            entity_type="TreatmentItem",
            entity_id=item_pk,
            metadata={"plan_id": str(plan_pk)},
        )
