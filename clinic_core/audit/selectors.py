# clinic_core/audit/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from clinic_core.audit.models import AuditEvent
from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions


def list_audit_events(
    ctx: TenantContext,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    actor_user_id: int | None = None,
) -> QuerySet[AuditEvent]:
    require_permissions(ctx, Perm.SETTINGS_READ)

    qs = scoped(AuditEvent, ctx).all()
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id:
        qs = qs.filter(entity_id=str(entity_id))
    if action:
        qs = qs.filter(action=action)
    if actor_user_id is not None:
        qs = qs.filter(actor_user_id=actor_user_id)

    return qs.order_by("-occurred_at")
