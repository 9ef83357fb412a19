# clinic_core/tenants/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.tenants.models import Tenant, TenantStatus


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = [
            "id",
            "name",
            "slug",
            "timezone",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TenantOnboardSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    timezone = serializers.CharField(max_length=64, required=False, allow_blank=True)


class TenantStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TenantStatus.choices)
