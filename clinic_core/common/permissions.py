# clinic_core/common/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission

from clinic_core.iam.context import TenantContextResolver
from clinic_core.iam.scope import context_for_request


class HasTenantContext(BasePermission):
    """
    Resolves the caller's clinic context before the view runs.

    Per-operation permission codes are enforced inside the services;
    this gate only guarantees an active membership exists.
    """

    def has_permission(self, request, view) -> bool:
        context_for_request(request)
        return True


class IsPlatformAdmin(BasePermission):
    def has_permission(self, request, view) -> bool:
        TenantContextResolver.resolve_platform(request.user)
        return True
