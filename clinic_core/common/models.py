# clinic_core/common/models.py
from __future__ import annotations

import uuid
from typing import Any

from django.db import models


class TimeStampedModel(models.Model):
    """
    Standard timestamps for all entities.
    """
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TenantScopedQuerySet(models.QuerySet):
    def for_tenant(self, tenant_id: Any) -> "TenantScopedQuerySet":
        return self.filter(tenant_id=tenant_id)


class TenantScopedModel(TimeStampedModel):
    """
    Every row carries the tenant it belongs to.

    Service code never queries these models through `objects` directly;
    it goes through `clinic_core.common.scoping`, which pins the tenant
    from the resolved context onto every queryset.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)

    objects = TenantScopedQuerySet.as_manager()

    class Meta:
        abstract = True
