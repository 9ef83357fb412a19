# clinic_core/iam/scope.py
from __future__ import annotations

from uuid import UUID

from rest_framework.exceptions import ValidationError

from clinic_core.iam.context import TenantContext, TenantContextResolver

HDR_TENANT = "X-Tenant-Id"


def tenant_id_from_headers(request) -> UUID | None:
    """
    Optional clinic selector. Missing header -> None (first active membership wins).
    """
    raw = request.headers.get(HDR_TENANT)
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        raise ValidationError({HDR_TENANT: "Invalid UUID"})


def context_for_request(request) -> TenantContext:
    """
    Resolve (once per request) the caller's clinic context and cache it on the request.
    """
    ctx = getattr(request, "tenant_context", None)
    if ctx is not None:
        return ctx

    ctx = TenantContextResolver.resolve(request.user, tenant_id=tenant_id_from_headers(request))
    request.tenant_context = ctx
    return ctx
