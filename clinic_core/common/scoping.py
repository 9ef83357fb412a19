# clinic_core/common/scoping.py
from __future__ import annotations

from typing import Any, Generic, Optional, Type, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from rest_framework.exceptions import NotFound

from clinic_core.common.models import TenantScopedModel

M = TypeVar("M", bound=TenantScopedModel)


class TenantRepository(Generic[M]):
    """
    Data-access boundary for tenant-owned rows.

    Built from a resolved context (anything exposing `tenant_id`); every
    queryset it hands out is already filtered to that tenant, so a foreign
    id is indistinguishable from a missing one.
    """

    def __init__(self, model: Type[M], ctx: Any):
        self.model = model
        self.tenant_id = ctx.tenant_id

    @property
    def label(self) -> str:
        return str(self.model._meta.verbose_name).capitalize()

    def all(self) -> models.QuerySet:
        return self.model.objects.for_tenant(self.tenant_id)

    def filter(self, **lookups) -> models.QuerySet:
        return self.all().filter(**lookups)

    def get(self, pk: Any, *, lock: bool = False) -> M:
        qs = self.all()
        if lock:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=pk)
        except (self.model.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound(f"{self.label} not found.")

    def get_or_none(self, pk: Any) -> Optional[M]:
        if pk is None:
            return None
        try:
            return self.all().filter(pk=pk).first()
        except (DjangoValidationError, ValueError, TypeError):
            return None

    def create(self, **fields) -> M:
        return self.model.objects.create(tenant_id=self.tenant_id, **fields)


def scoped(model: Type[M], ctx: Any) -> TenantRepository[M]:
    return TenantRepository(model, ctx)
