# clinic_core/billing/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from clinic_core.billing.models import Invoice, InvoiceItem, InvoiceStatus, Payment
from clinic_core.billing.services import PAYABLE_METHODS


class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = [
            "id",
            "treatment_item",
            "description",
            "quantity",
            "unit_price",
            "amount",
            "sort_order",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "invoice",
            "amount",
            "method",
            "is_refund",
            "reference",
            "notes",
            "received_at",
            "recorded_by_user_id",
            "created_at",
        ]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "tenant_id",
            "patient",
            "patient_name",
            "treatment_plan",
            "invoice_number",
            "status",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "discount",
            "total",
            "paid_amount",
            "balance_due",
            "due_date",
            "notes",
            "items",
            "payments",
            "created_by_user_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceLineInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))


class InvoiceCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    treatment_plan_id = serializers.UUIDField(required=False, allow_null=True)
    items = InvoiceLineInputSerializer(many=True, allow_empty=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=Decimal("0"))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0"))
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceUpdateSerializer(serializers.Serializer):
    items = InvoiceLineInputSerializer(many=True, required=False, allow_empty=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class InvoiceTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=InvoiceStatus.choices)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PAYABLE_METHODS, required=False, default="CASH")
    reference = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RefundCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
