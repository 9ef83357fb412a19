# clinic_core/treatments/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.billing.api.serializers import InvoiceSerializer
from clinic_core.billing.selectors import get_invoice
from clinic_core.common.api.pagination import paginate
from clinic_core.common.api.params import uuid_or_none
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request
from clinic_core.treatments.api.serializers import (
    GenerateInvoiceSerializer,
    TreatmentItemSerializer,
    TreatmentItemStatusSerializer,
    TreatmentItemWriteSerializer,
    TreatmentPlanCreateSerializer,
    TreatmentPlanSerializer,
    TreatmentPlanTransitionSerializer,
    TreatmentPlanUpdateSerializer,
)
from clinic_core.treatments.invoicing import completed_unbilled_items, generate_invoice_from_plan
from clinic_core.treatments.models import TreatmentItem, TreatmentPlan
from clinic_core.treatments.selectors import get_item, get_plan, list_plans
from clinic_core.treatments.services import TreatmentItemService, TreatmentPlanService


class TreatmentPlanViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = TreatmentPlanSerializer
    queryset = TreatmentPlan.objects.none()

    @extend_schema(
        tags=["Treatments"],
        responses={200: TreatmentPlanSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qs = list_plans(
            ctx,
            patient_id=uuid_or_none(request.query_params.get("patient"), "patient"),
            status=request.query_params.get("status") or None,
        )
        return paginate(request, qs, TreatmentPlanSerializer, view=self)

    @extend_schema(tags=["Treatments"], responses={200: TreatmentPlanSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        return Response(TreatmentPlanSerializer(get_plan(ctx, plan_id=pk)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], request=TreatmentPlanCreateSerializer, responses={201: TreatmentPlanSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = TreatmentPlanCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        plan = TreatmentPlanService.create_plan(ctx, **ser.validated_data)
        return Response(TreatmentPlanSerializer(get_plan(ctx, plan_id=plan.id)).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Treatments"], request=TreatmentPlanUpdateSerializer, responses={200: TreatmentPlanSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = TreatmentPlanUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        plan = TreatmentPlanService.update_plan(ctx, plan_id=pk, **ser.validated_data)
        return Response(TreatmentPlanSerializer(get_plan(ctx, plan_id=plan.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        TreatmentPlanService.delete_plan(ctx, plan_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Treatments"], request=TreatmentPlanTransitionSerializer, responses={200: TreatmentPlanSerializer})
    @action(detail=True, methods=["post"], url_path="transition")
    def transition(self, request, pk=None):
        ctx = context_for_request(request)

        ser = TreatmentPlanTransitionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        plan = TreatmentPlanService.transition(ctx, plan_id=pk, target=ser.validated_data["status"])
        return Response(TreatmentPlanSerializer(get_plan(ctx, plan_id=plan.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], request=TreatmentItemWriteSerializer, responses={201: TreatmentItemSerializer})
    @action(detail=True, methods=["post"], url_path="items")
    def add_item(self, request, pk=None):
        ctx = context_for_request(request)

        ser = TreatmentItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = TreatmentItemService.add_item(ctx, plan_id=pk, data=ser.validated_data)
        return Response(TreatmentItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Treatments"], responses={200: TreatmentItemSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="unbilled-items")
    def unbilled_items(self, request, pk=None):
        ctx = context_for_request(request)
        items = completed_unbilled_items(ctx, plan_id=pk)
        return Response(TreatmentItemSerializer(items, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], request=GenerateInvoiceSerializer, responses={201: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="generate-invoice")
    def generate_invoice(self, request, pk=None):
        ctx = context_for_request(request)

        ser = GenerateInvoiceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = generate_invoice_from_plan(ctx, plan_id=pk, **ser.validated_data)
        return Response(InvoiceSerializer(get_invoice(ctx, invoice_id=inv.id)).data, status=status.HTTP_201_CREATED)


class TreatmentItemViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = TreatmentItemSerializer
    queryset = TreatmentItem.objects.none()

    @extend_schema(tags=["Treatments"], responses={200: TreatmentItemSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        return Response(TreatmentItemSerializer(get_item(ctx, item_id=pk)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], request=TreatmentItemWriteSerializer, responses={200: TreatmentItemSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = TreatmentItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = TreatmentItemService.update_item(ctx, item_id=pk, data=ser.validated_data)
        return Response(TreatmentItemSerializer(item).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Treatments"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        TreatmentItemService.remove_item(ctx, item_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Treatments"], request=TreatmentItemStatusSerializer, responses={200: TreatmentItemSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        ctx = context_for_request(request)

        ser = TreatmentItemStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = TreatmentItemService.set_item_status(ctx, item_id=pk, status=ser.validated_data["status"])
        return Response(TreatmentItemSerializer(item).data, status=status.HTTP_200_OK)
