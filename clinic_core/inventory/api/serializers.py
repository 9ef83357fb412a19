# clinic_core/inventory/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from clinic_core.inventory.models import InventoryItem, MovementType, StockMovement, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Supplier
        fields = [
            "id",
            "tenant_id",
            "name",
            "email",
            "phone",
            "address",
            "notes",
            "item_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SupplierWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class InventoryItemSerializer(serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default=None)

    class Meta:
        model = InventoryItem
        fields = [
            "id",
            "tenant_id",
            "name",
            "sku",
            "category",
            "unit",
            "current_stock",
            "min_stock",
            "is_low_stock",
            "cost_price",
            "sell_price",
            "supplier",
            "supplier_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InventoryItemWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    sku = serializers.CharField(max_length=50, required=False, allow_blank=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)
    current_stock = serializers.IntegerField(min_value=0, required=False)
    min_stock = serializers.IntegerField(min_value=0, required=False)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)
    sell_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)
    supplier_id = serializers.UUIDField(required=False, allow_null=True)


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id",
            "item",
            "movement_type",
            "quantity",
            "delta",
            "stock_after",
            "reason",
            "created_by_user_id",
            "created_at",
        ]
        read_only_fields = fields


class StockMovementCreateSerializer(serializers.Serializer):
    movement_type = serializers.ChoiceField(choices=MovementType.choices)
    quantity = serializers.IntegerField()
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
