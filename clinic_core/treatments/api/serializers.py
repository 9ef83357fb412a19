# clinic_core/treatments/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from clinic_core.treatments.models import (
    TreatmentItem,
    TreatmentItemStatus,
    TreatmentPlan,
    TreatmentPlanStatus,
)


class TreatmentItemSerializer(serializers.ModelSerializer):
    net_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = TreatmentItem
        fields = [
            "id",
            "plan",
            "procedure",
            "tooth_number",
            "cost",
            "discount",
            "net_cost",
            "status",
            "practitioner",
            "scheduled_date",
            "completed_date",
            "notes",
            "sort_order",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TreatmentPlanSerializer(serializers.ModelSerializer):
    items = TreatmentItemSerializer(many=True, read_only=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = TreatmentPlan
        fields = [
            "id",
            "tenant_id",
            "patient",
            "patient_name",
            "name",
            "notes",
            "status",
            "items",
            "created_by_user_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TreatmentPlanCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    name = serializers.CharField(max_length=200)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TreatmentPlanUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class TreatmentPlanTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TreatmentPlanStatus.choices)


class TreatmentItemWriteSerializer(serializers.Serializer):
    procedure = serializers.CharField(max_length=200, required=False)
    tooth_number = serializers.IntegerField(required=False, allow_null=True)
    cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0"))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0"))
    practitioner_id = serializers.UUIDField(required=False, allow_null=True)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=TreatmentItemStatus.choices, required=False)


class TreatmentItemStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TreatmentItemStatus.choices)


class GenerateInvoiceSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=Decimal("0"))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0"))
