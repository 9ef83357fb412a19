# clinic_core/audit/api/serializers.py
from rest_framework import serializers
from clinic_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    # API field name "timestamp" maps to model field "occurred_at"
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "tenant_id",
            "action",
            "entity_type",
            "entity_id",
            "actor_user_id",
            "timestamp",
            "metadata",
        ]
        read_only_fields = fields
