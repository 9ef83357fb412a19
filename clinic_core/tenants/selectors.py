# clinic_core/tenants/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from clinic_core.tenants.models import Tenant, TenantStatus


def tenant_qs() -> QuerySet[Tenant]:
    return Tenant.objects.all()


def active_tenants_qs() -> QuerySet[Tenant]:
    return Tenant.objects.filter(status=TenantStatus.ACTIVE)


def get_tenant_or_none(*, tenant_id: UUID) -> Optional[Tenant]:
    return Tenant.objects.filter(id=tenant_id).first()


def slug_taken(slug: str) -> bool:
    return Tenant.objects.filter(slug=slug).exists()
