# clinic_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter


class ClinicAutoSchema(AutoSchema):
    """
    Documents the optional X-Tenant-Id header on every tenant-scoped endpoint.
    Omitting it selects the caller's first active clinic.
    """

    TENANT_HEADER = OpenApiParameter(
        name="X-Tenant-Id",
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.HEADER,
        required=False,
        description="Clinic to act in. Defaults to the caller's first active membership.",
    )

    UNSCOPED_VIEWS = {"SpectacularAPIView", "SpectacularSwaggerView"}

    def _is_unscoped_endpoint(self) -> bool:
        view = getattr(self, "view", None)
        if view is None:
            return False
        return view.__class__.__name__ in self.UNSCOPED_VIEWS

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])
        if not self._is_unscoped_endpoint():
            if not any(p.name.lower() == "x-tenant-id" for p in params):
                params.append(self.TENANT_HEADER)
        return params
