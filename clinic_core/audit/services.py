# clinic_core/audit/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from clinic_core.audit.models import AuditEvent
from clinic_core.common.events import run_after_commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    tenant_id: UUID
    actor_user_id: int | None
    action: str
    entity_type: str
    entity_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class AuditService:
    """
    Audit sink. Business services call `record_after_commit`; the write happens
    only once their transaction has committed and never affects its outcome.
    """

    @staticmethod
    def log(record: AuditRecord) -> AuditEvent:
        return AuditEvent.objects.create(
            tenant_id=record.tenant_id,
            actor_user_id=record.actor_user_id,
            action=record.action,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            metadata=record.metadata,
        )

    @staticmethod
    def record_after_commit(
        ctx,
        *,
        action: str,
        entity_type: str,
        entity_id: Any,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        record = AuditRecord(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            metadata=metadata or {},
        )
        run_after_commit(lambda: AuditService.log(record), label=f"audit:{action}")
        return record
