# clinic_core/inventory/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Count, Q, QuerySet

from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.inventory.models import InventoryItem, StockMovement, Supplier


def list_items(
    ctx: TenantContext,
    *,
    search: str | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
) -> QuerySet[InventoryItem]:
    require_permissions(ctx, Perm.INVENTORY_READ)

    qs = scoped(InventoryItem, ctx).all().select_related("supplier")

    sv = (search or "").strip()
    if sv:
        qs = qs.filter(Q(name__icontains=sv) | Q(sku__icontains=sv))
    if category:
        qs = qs.filter(category=category)
    if low_stock_only:
        qs = qs.low_stock()

    return qs.order_by("name")


def low_stock_items(ctx: TenantContext) -> QuerySet[InventoryItem]:
    return list_items(ctx, low_stock_only=True)


def get_item(ctx: TenantContext, *, item_id: UUID) -> InventoryItem:
    require_permissions(ctx, Perm.INVENTORY_READ)
    return scoped(InventoryItem, ctx).get(item_id)


def list_movements(ctx: TenantContext, *, item_id: UUID) -> QuerySet[StockMovement]:
    require_permissions(ctx, Perm.INVENTORY_READ)
    item = scoped(InventoryItem, ctx).get(item_id)
    return scoped(StockMovement, ctx).filter(item=item).order_by("-created_at")


def list_suppliers(ctx: TenantContext) -> QuerySet[Supplier]:
    require_permissions(ctx, Perm.INVENTORY_READ)
    return scoped(Supplier, ctx).all().annotate(item_count=Count("items")).order_by("name")


def get_supplier(ctx: TenantContext, *, supplier_id: UUID) -> Supplier:
    require_permissions(ctx, Perm.INVENTORY_READ)
    supplier = scoped(Supplier, ctx).get(supplier_id)
    return list_suppliers(ctx).get(pk=supplier.pk)
