# clinic_core/tenants/services.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils.text import slugify
from rest_framework.exceptions import NotAuthenticated, NotFound, ValidationError

from clinic_core.iam.catalog import OWNER_ROLE
from clinic_core.iam.context import PlatformContext
from clinic_core.iam.models import Membership
from clinic_core.iam.services.roles import provision_default_roles
from clinic_core.tenants.models import Tenant, TenantStatus
from clinic_core.tenants.selectors import slug_taken

logger = logging.getLogger(__name__)


def unique_slug(name: str) -> str:
    base = slugify(name)[:70] or "clinic"
    slug = base
    n = 1
    while slug_taken(slug):
        n += 1
        slug = f"{base}-{n}"
    return slug


class TenantService:
    """
    All Tenant mutations live here (write-model boundary).
    """

    @staticmethod
    @transaction.atomic
    def onboard(*, name: str, owner, timezone: Optional[str] = None) -> Tenant:
        """
        Create a clinic, provision its default roles and make `owner` its Owner.
        """
        if owner is None or not getattr(owner, "is_authenticated", False):
            raise NotAuthenticated()

        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": "This field is required."})

        tenant = Tenant.objects.create(
            name=name,
            slug=unique_slug(name),
            timezone=(timezone or settings.CLINIC_DEFAULT_TIMEZONE),
        )
        roles = provision_default_roles(tenant)
        Membership.objects.create(tenant=tenant, user=owner, role=roles[OWNER_ROLE])

        logger.info("Clinic onboarded tenant=%s slug=%s owner=%s", tenant.id, tenant.slug, owner.id)
        return tenant

    @staticmethod
    @transaction.atomic
    def set_status(platform: PlatformContext, *, tenant_id: UUID, status: str) -> Tenant:
        if status not in TenantStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(TenantStatus.values)}"})

        t = Tenant.objects.select_for_update().filter(id=tenant_id).first()
        if t is None:
            raise NotFound("Clinic not found.")

        # idempotent no-op
        if t.status == status:
            return t

        t.status = status
        t.save(update_fields=["status", "updated_at"])
        logger.warning("Clinic status changed tenant=%s status=%s by platform user=%s", t.id, status, platform.user_id)
        return t

    @staticmethod
    def allocate_invoice_number(tenant_id: UUID) -> str:
        """
        Next sequential invoice number for the clinic. Must run inside the
        caller's transaction; the tenant row lock serialises allocation.
        """
        t = Tenant.objects.select_for_update().get(id=tenant_id)
        t.invoice_seq += 1
        t.save(update_fields=["invoice_seq", "updated_at"])
        return f"INV-{t.invoice_seq:06d}"
