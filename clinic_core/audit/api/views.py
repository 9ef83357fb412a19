# clinic_core/audit/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.exceptions import ValidationError

from clinic_core.audit.api.serializers import AuditEventSerializer
from clinic_core.audit.models import AuditEvent
from clinic_core.audit.selectors import list_audit_events
from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request


class AuditEventViewSet(viewsets.GenericViewSet):
    """
    Clinic audit trail (read-only).
    """
    permission_classes = [HasTenantContext]

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditEventSerializer(many=True)},
        parameters=[
            OpenApiParameter(
                name="entity_type",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by entity type (e.g. Invoice, Appointment, InventoryItem).",
            ),
            OpenApiParameter(
                name="entity_id",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by entity id.",
            ),
            OpenApiParameter(
                name="action",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by action (e.g. payment.refund, inventory.stock.out).",
            ),
            OpenApiParameter(
                name="actor_user_id",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by actor user id (int).",
            ),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qp = request.query_params

        actor_user_id = None
        actor_raw = qp.get("actor_user_id")
        if actor_raw:
            try:
                actor_user_id = int(actor_raw)
            except ValueError:
                raise ValidationError({"actor_user_id": "Invalid actor_user_id (int expected)"})

        qs = list_audit_events(
            ctx,
            entity_type=qp.get("entity_type") or None,
            entity_id=qp.get("entity_id") or None,
            action=qp.get("action") or None,
            actor_user_id=actor_user_id,
        )
        return paginate(request, qs, AuditEventSerializer, view=self)
