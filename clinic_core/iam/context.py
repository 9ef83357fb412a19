# clinic_core/iam/context.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from uuid import UUID

from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from clinic_core.common.api.exceptions import NoActiveMembership
from clinic_core.iam.models import Membership, RolePermission
from clinic_core.tenants.models import TenantStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    """
    Resolved caller capability for one clinic.
    Passed explicitly into every service call; never re-derived downstream.
    """
    tenant_id: UUID
    user_id: int
    membership_id: UUID
    role_name: str
    permissions: frozenset[str]

    def has(self, *codes: str) -> bool:
        return all(c in self.permissions for c in codes)

    def as_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": str(self.tenant_id),
            "user_id": self.user_id,
            "membership_id": str(self.membership_id),
            "role": self.role_name,
            "permissions": sorted(self.permissions),
        }


@dataclass(frozen=True)
class PlatformContext:
    user_id: int


def _require_authenticated(user) -> None:
    if user is None or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated()


def _permission_codes(role_id: UUID) -> frozenset[str]:
    return frozenset(
        RolePermission.objects.filter(role_id=role_id).values_list("permission__code", flat=True)
    )


class TenantContextResolver:
    """
    identity -> (tenant, role, permission set).

    A pure read: looks up the caller's active membership in an active clinic,
    preferring `tenant_id` when given, otherwise the earliest-joined one.
    """

    @staticmethod
    def resolve(user, *, tenant_id: Optional[UUID] = None) -> TenantContext:
        _require_authenticated(user)

        qs = (
            Membership.objects.select_related("role")
            .filter(user_id=user.id, is_active=True, tenant__status=TenantStatus.ACTIVE)
            .order_by("joined_at", "id")
        )
        if tenant_id is not None:
            qs = qs.filter(tenant_id=tenant_id)

        membership = qs.first()
        if membership is None:
            logger.warning("No active membership for user=%s tenant=%s", user.id, tenant_id)
            raise NoActiveMembership()

        return TenantContext(
            tenant_id=membership.tenant_id,
            user_id=user.id,
            membership_id=membership.id,
            role_name=membership.role.name,
            permissions=_permission_codes(membership.role_id),
        )

    @staticmethod
    def resolve_platform(user) -> PlatformContext:
        """
        Platform-admin surface. Bypasses clinic/role resolution entirely.
        """
        _require_authenticated(user)
        if not getattr(user, "is_superuser", False):
            raise PermissionDenied("Platform administrator access required.")
        return PlatformContext(user_id=user.id)


class PermissionEnforcer:
    """
    AND semantics: every listed code must be held.
    Call before reading any tenant data the operation touches.
    """

    @staticmethod
    def has(ctx: TenantContext, codes: Iterable[str]) -> bool:
        return ctx.has(*codes)

    @staticmethod
    def require(ctx: TenantContext, codes: Iterable[str]) -> None:
        codes = list(codes)
        missing = [c for c in codes if c not in ctx.permissions]
        if missing:
            logger.warning(
                "Permission denied user=%s tenant=%s role=%s missing=%s",
                ctx.user_id,
                ctx.tenant_id,
                ctx.role_name,
                ",".join(missing),
            )
            raise PermissionDenied("You do not have permission to perform this action.")


def require_permissions(ctx: TenantContext, *codes: str) -> None:
    PermissionEnforcer.require(ctx, codes)
