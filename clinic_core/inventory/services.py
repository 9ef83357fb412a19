# clinic_core/inventory/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing.state import to_money
from clinic_core.common.api.exceptions import ImmutableState
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.inventory.models import InventoryItem, Supplier

logger = logging.getLogger(__name__)

ITEM_TEXT_FIELDS = {"name": 200, "sku": 50, "category": 100, "unit": 20}
SUPPLIER_TEXT_FIELDS = {"name": 200, "phone": 20, "address": 500, "notes": 1000}


def _clean_text(data: dict, limits: dict) -> dict:
    out = {}
    for key, limit in limits.items():
        if key not in data:
            continue
        value = (data[key] or "").strip()
        if len(value) > limit:
            raise ValidationError({key: f"Ensure this field has no more than {limit} characters."})
        out[key] = value
    if "name" in out and not out["name"]:
        raise ValidationError({"name": "Name is required."})
    return out


def _non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError({field: "Must be a whole number >= 0."})
    return value


def _non_negative_money(value: Any, field: str) -> Decimal:
    try:
        amount = to_money(value if value is not None else 0)
    except ValueError:
        raise ValidationError({field: "Invalid amount."})
    if amount < 0:
        raise ValidationError({field: "Must be >= 0."})
    return amount


def _clean_item(ctx: TenantContext, data: dict) -> dict:
    fields = _clean_text(data, ITEM_TEXT_FIELDS)
    if "unit" in fields and not fields["unit"]:
        fields["unit"] = "pcs"
    if "min_stock" in data:
        fields["min_stock"] = _non_negative_int(data["min_stock"], "min_stock")
    for key in ("cost_price", "sell_price"):
        if key in data:
            fields[key] = _non_negative_money(data[key], key)
    if "supplier_id" in data:
        sid = data["supplier_id"]
        fields["supplier"] = scoped(Supplier, ctx).get(sid) if sid else None
    return fields


class InventoryItemService:
    @staticmethod
    @transaction.atomic
    def create_item(ctx: TenantContext, *, data: dict) -> InventoryItem:
        """
        Opening stock is accepted here only; later changes go through InventoryLedger.
        """
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        data = data or {}
        if "name" not in data:
            raise ValidationError({"name": "Name is required."})
        fields = _clean_item(ctx, data)
        opening = _non_negative_int(data.get("current_stock", 0), "current_stock")

        item = scoped(InventoryItem, ctx).create(current_stock=opening, **fields)

        AuditService.record_after_commit(
            ctx,
            action="inventory.item.create",
            entity_type="InventoryItem",
            entity_id=item.id,
            metadata={"name": item.name, "opening_stock": opening},
        )
        logger.info("Inventory item created tenant=%s item=%s name=%s", ctx.tenant_id, item.id, item.name)
        return item

    @staticmethod
    @transaction.atomic
    def update_item(ctx: TenantContext, *, item_id: UUID, data: dict) -> InventoryItem:
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        data = data or {}
        if "current_stock" in data:
            raise ValidationError({"current_stock": "Stock changes must be recorded as stock movements."})

        item = scoped(InventoryItem, ctx).get(item_id, lock=True)
        updates = _clean_item(ctx, data)
        for k, v in updates.items():
            setattr(item, k, v)
        item.save()

        AuditService.record_after_commit(
            ctx,
            action="inventory.item.update",
            entity_type="InventoryItem",
            entity_id=item.id,
            metadata={"updated_fields": sorted(k if k != "supplier" else "supplier_id" for k in updates)},
        )
        return item

    @staticmethod
    @transaction.atomic
    def delete_item(ctx: TenantContext, *, item_id: UUID) -> None:
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        item = scoped(InventoryItem, ctx).get(item_id, lock=True)
        item_pk = item.id
        item.delete()

        AuditService.record_after_commit(
            ctx,
            action="inventory.item.delete",
            entity_type="InventoryItem",
            entity_id=item_pk,
        )


def _clean_supplier(data: dict) -> dict:
    fields = _clean_text(data, SUPPLIER_TEXT_FIELDS)
    if "email" in data:
        email = (data["email"] or "").strip()
        if email:
            try:
                validate_email(email)
            except DjangoValidationError:
                raise ValidationError({"email": "Enter a valid email address."})
        fields["email"] = email
    return fields


class SupplierService:
    @staticmethod
    @transaction.atomic
    def create_supplier(ctx: TenantContext, *, data: dict) -> Supplier:
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        data = data or {}
        if "name" not in data:
            raise ValidationError({"name": "Name is required."})

        supplier = scoped(Supplier, ctx).create(**_clean_supplier(data))

        AuditService.record_after_commit(
            ctx,
            action="inventory.supplier.create",
            entity_type="Supplier",
            entity_id=supplier.id,
        )
        return supplier

    @staticmethod
    @transaction.atomic
    def update_supplier(ctx: TenantContext, *, supplier_id: UUID, data: dict) -> Supplier:
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        supplier = scoped(Supplier, ctx).get(supplier_id, lock=True)
        for k, v in _clean_supplier(data or {}).items():
            setattr(supplier, k, v)
        supplier.save()

        AuditService.record_after_commit(
            ctx,
            action="inventory.supplier.update",
            entity_type="Supplier",
            entity_id=supplier.id,
        )
        return supplier

    @staticmethod
    @transaction.atomic
    def delete_supplier(ctx: TenantContext, *, supplier_id: UUID) -> None:
        require_permissions(ctx, Perm.INVENTORY_WRITE)

        supplier = scoped(Supplier, ctx).get(supplier_id, lock=True)
        linked = supplier.items.count()
        if linked:
            raise ImmutableState(f"Supplier has {linked} linked item(s). Reassign or remove them first.")

        supplier_pk = supplier.id
        supplier.delete()

        AuditService.record_after_commit(
            ctx,
            action="inventory.supplier.delete",
            entity_type="Supplier",
            entity_id=supplier_pk,
        )
