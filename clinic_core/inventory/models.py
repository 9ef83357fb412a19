# clinic_core/inventory/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import F, Q

from clinic_core.common.models import TenantScopedModel, TenantScopedQuerySet


class Supplier(TenantScopedModel):
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=500, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = "inventory_supplier"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class InventoryItemQuerySet(TenantScopedQuerySet):
    def low_stock(self):
        return self.filter(current_stock__lte=F("min_stock"))


class InventoryItem(TenantScopedModel):
    """
    `current_stock` changes only through StockMovement rows (opening stock aside).
    """
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=50, blank=True)
    category = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=20, default="pcs")

    current_stock = models.IntegerField(default=0)
    min_stock = models.PositiveIntegerField(default=5)

    cost_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sell_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="items",
        null=True,
        blank=True,
    )

    objects = InventoryItemQuerySet.as_manager()

    class Meta:
        db_table = "inventory_item"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(condition=Q(current_stock__gte=0), name="ck_inventory_stock_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "name"]),
            models.Index(fields=["tenant_id", "category"]),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock


class MovementType(models.TextChoices):
    IN = "in", "Stock in"
    OUT = "out", "Stock out"
    ADJUSTMENT = "adjustment", "Adjustment"


class StockMovement(TenantScopedModel):
    """
    `quantity` is the magnitude; `delta` is the signed change applied to the item.
    """
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="movements")
    movement_type = models.CharField(max_length=16, choices=MovementType.choices)
    quantity = models.PositiveIntegerField()
    delta = models.IntegerField()
    stock_after = models.IntegerField()
    reason = models.CharField(max_length=500, blank=True)
    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "inventory_stock_movement"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="ck_stock_movement_quantity_positive"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "item", "created_at"]),
        ]
