# clinic_core/tenants/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic_core.common.api.params import uuid_or_none
from clinic_core.common.permissions import IsPlatformAdmin
from clinic_core.iam.context import TenantContextResolver
from clinic_core.tenants.api.serializers import (
    TenantOnboardSerializer,
    TenantSerializer,
    TenantStatusUpdateSerializer,
)
from clinic_core.tenants.models import Tenant
from clinic_core.tenants.selectors import get_tenant_or_none, tenant_qs
from clinic_core.tenants.services import TenantService


@extend_schema_view(
    list=extend_schema(tags=["Tenants"], operation_id="v1_tenants_list", responses={200: TenantSerializer(many=True)}),
    retrieve=extend_schema(tags=["Tenants"], operation_id="v1_tenants_retrieve", responses={200: TenantSerializer}),
    set_status=extend_schema(tags=["Tenants"], operation_id="v1_tenants_set_status", request=TenantStatusUpdateSerializer, responses={200: TenantSerializer}),
)
class TenantViewSet(viewsets.ViewSet):
    """
    Platform-admin clinic management (superusers only).
    """

    permission_classes = [IsPlatformAdmin]

    serializer_class = TenantSerializer
    queryset = Tenant.objects.none()

    def list(self, request):
        qs = tenant_qs().order_by("-created_at")[:300]
        return Response(TenantSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        obj = get_tenant_or_none(tenant_id=uuid_or_none(pk, "id"))
        if obj is None:
            raise NotFound("Clinic not found.")
        return Response(TenantSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="set-status")
    def set_status(self, request, pk=None):
        platform = TenantContextResolver.resolve_platform(request.user)

        ser = TenantStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        t = TenantService.set_status(platform, tenant_id=uuid_or_none(pk, "id"), status=ser.validated_data["status"])
        return Response(TenantSerializer(t).data, status=status.HTTP_200_OK)


class OnboardingViewSet(viewsets.ViewSet):
    """
    Any signed-in identity may create a clinic and becomes its Owner.
    """

    permission_classes = [IsAuthenticated]

    serializer_class = TenantOnboardSerializer
    queryset = Tenant.objects.none()

    @extend_schema(tags=["Tenants"], operation_id="v1_onboarding_create", request=TenantOnboardSerializer, responses={201: TenantSerializer})
    def create(self, request):
        ser = TenantOnboardSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        t = TenantService.onboard(
            name=ser.validated_data["name"],
            owner=request.user,
            timezone=ser.validated_data.get("timezone") or None,
        )
        return Response(TenantSerializer(t).data, status=status.HTTP_201_CREATED)
