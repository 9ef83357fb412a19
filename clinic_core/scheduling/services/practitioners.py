# clinic_core/scheduling/services/practitioners.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet
from rest_framework.exceptions import ValidationError

from clinic_core.common.scoping import scoped
from clinic_core.iam.catalog import Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.iam.models import Membership
from clinic_core.scheduling.models import PractitionerProfile


def ensure_practitioner_profile(membership: Membership) -> PractitionerProfile:
    profile, _ = PractitionerProfile.objects.get_or_create(
        membership=membership,
        defaults={"tenant_id": membership.tenant_id},
    )
    return profile


def list_practitioners(ctx: TenantContext) -> QuerySet[PractitionerProfile]:
    require_permissions(ctx, Perm.APPOINTMENTS_READ)
    return (
        scoped(PractitionerProfile, ctx)
        .filter(membership__is_active=True)
        .select_related("membership__user")
        .order_by("created_at")
    )


def lock_practitioner(ctx: TenantContext, practitioner_id: UUID) -> PractitionerProfile:
    """
    Row-lock the practitioner for the rest of the transaction.
    Serialises check-then-insert on one practitioner's calendar.
    """
    profile = scoped(PractitionerProfile, ctx).get(practitioner_id, lock=True)
    if not profile.membership.is_active:
        raise ValidationError({"practitioner_id": "Practitioner is no longer an active member."})
    return profile
