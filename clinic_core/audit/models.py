# clinic_core/audit/models.py
from django.db import models
from clinic_core.common.models import TenantScopedModel


class AuditEvent(TenantScopedModel):
    """
    Append-only audit record: (tenant, actor, action, entity, entity id, metadata, time).
    """
    action = models.CharField(max_length=128, db_index=True)  # e.g. "payment.refund"
    entity_type = models.CharField(max_length=64, db_index=True)  # e.g. "Invoice"
    entity_id = models.CharField(max_length=64, db_index=True)

    # plain id: the trail must survive user deletion
    actor_user_id = models.BigIntegerField(null=True, blank=True, db_index=True)

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("AuditEvent is append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("AuditEvent is append-only.")
