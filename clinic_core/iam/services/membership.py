# clinic_core/iam/services/membership.py
from __future__ import annotations

import logging
from uuid import UUID

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import QuerySet
from rest_framework.exceptions import NotFound, ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.events import run_after_commit
from clinic_core.iam.catalog import OWNER_ROLE, PRACTITIONER_ROLES, Perm
from clinic_core.iam.context import TenantContext, require_permissions
from clinic_core.iam.models import Membership
from clinic_core.iam.services.roles import get_role_by_name
from clinic_core.notifications.dispatch import MemberInvite, get_dispatcher
from clinic_core.scheduling.services.practitioners import ensure_practitioner_profile
from clinic_core.tenants.models import Tenant

logger = logging.getLogger(__name__)


def list_user_memberships(user_id: int) -> list[dict]:
    """
    Active clinic memberships for /me.
    """
    qs = (
        Membership.objects.select_related("tenant", "role")
        .filter(user_id=user_id, is_active=True)
        .order_by("joined_at")
    )
    return [
        {
            "membership_id": str(m.id),
            "tenant_id": str(m.tenant_id),
            "tenant_slug": m.tenant.slug,
            "tenant_name": m.tenant.name,
            "role_name": m.role.name,
        }
        for m in qs
    ]


def list_memberships(ctx: TenantContext) -> QuerySet[Membership]:
    require_permissions(ctx, Perm.MEMBERS_READ)
    return (
        Membership.objects.select_related("user", "role")
        .filter(tenant_id=ctx.tenant_id)
        .order_by("joined_at")
    )


def _get_membership_locked(ctx: TenantContext, membership_id: UUID) -> Membership:
    try:
        return (
            Membership.objects.select_for_update()
            .select_related("role")
            .get(id=membership_id, tenant_id=ctx.tenant_id)
        )
    except (Membership.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound("Member not found.")


class MembershipService:
    @staticmethod
    @transaction.atomic
    def invite(ctx: TenantContext, *, email: str, role_name: str) -> Membership:
        require_permissions(ctx, Perm.MEMBERS_WRITE)

        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError({"email": "A valid e-mail address is required."})

        if role_name == OWNER_ROLE:
            raise ValidationError({"role_name": "Cannot invite another Owner."})

        role = get_role_by_name(tenant_id=ctx.tenant_id, name=role_name)
        if role is None:
            raise ValidationError({"role_name": f"Role '{role_name}' not found."})

        User = get_user_model()
        user = User.objects.filter(email__iexact=email).order_by("id").first()
        if user is None:
            # placeholder identity; credentials are set when the invitee signs in
            user = User.objects.create_user(username=email, email=email, password=None)

        membership = (
            Membership.objects.select_for_update()
            .filter(tenant_id=ctx.tenant_id, user=user)
            .first()
        )
        if membership is not None and membership.is_active:
            raise ValidationError({"email": "User is already a member of this clinic."})

        if membership is None:
            membership = Membership.objects.create(tenant_id=ctx.tenant_id, user=user, role=role)
        else:
            membership.role = role
            membership.is_active = True
            membership.save(update_fields=["role", "is_active"])

        if role.name in PRACTITIONER_ROLES:
            ensure_practitioner_profile(membership)

        AuditService.record_after_commit(
            ctx,
            action="member.invite",
            entity_type="Membership",
            entity_id=membership.id,
            metadata={"email": email, "role": role.name},
        )

        clinic_name = Tenant.objects.values_list("name", flat=True).get(id=ctx.tenant_id)
        invite = MemberInvite(email=email, clinic_name=clinic_name, role_name=role.name)
        run_after_commit(lambda: get_dispatcher().send_member_invite(invite), label="notify:member.invite")

        logger.info("Member invited tenant=%s membership=%s role=%s", ctx.tenant_id, membership.id, role.name)
        return membership

    @staticmethod
    @transaction.atomic
    def deactivate(ctx: TenantContext, *, membership_id: UUID) -> Membership:
        require_permissions(ctx, Perm.MEMBERS_DELETE)

        membership = _get_membership_locked(ctx, membership_id)

        if membership.role.name == OWNER_ROLE:
            raise ValidationError({"detail": "Cannot remove the clinic Owner."})
        if membership.user_id == ctx.user_id:
            raise ValidationError({"detail": "Cannot remove yourself."})

        if not membership.is_active:
            return membership

        membership.is_active = False
        membership.save(update_fields=["is_active"])

        AuditService.record_after_commit(
            ctx,
            action="member.remove",
            entity_type="Membership",
            entity_id=membership.id,
        )
        return membership
