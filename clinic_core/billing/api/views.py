# clinic_core/billing/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.billing.api.serializers import (
    InvoiceCreateSerializer,
    InvoiceSerializer,
    InvoiceTransitionSerializer,
    InvoiceUpdateSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    RefundCreateSerializer,
)
from clinic_core.billing.models import Invoice
from clinic_core.billing.selectors import get_invoice, list_invoices, list_payments
from clinic_core.billing.services import InvoiceService, PaymentService
from clinic_core.common.api.pagination import paginate
from clinic_core.common.api.params import uuid_or_none
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request


class InvoiceViewSet(viewsets.GenericViewSet):
    """
    Invoices:
    - list/retrieve
    - create (DRAFT), edit and delete while DRAFT
    - explicit status transitions
    - payments and refunds
    """
    permission_classes = [HasTenantContext]

    serializer_class = InvoiceSerializer
    queryset = Invoice.objects.none()

    @extend_schema(
        tags=["Billing"],
        responses={200: InvoiceSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="treatment_plan", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qp = request.query_params

        qs = list_invoices(
            ctx,
            patient_id=uuid_or_none(qp.get("patient"), "patient"),
            treatment_plan_id=uuid_or_none(qp.get("treatment_plan"), "treatment_plan"),
            status=qp.get("status") or None,
        )
        return paginate(request, qs, InvoiceSerializer, view=self)

    @extend_schema(tags=["Billing"], responses={200: InvoiceSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        return Response(InvoiceSerializer(get_invoice(ctx, invoice_id=pk)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing"], request=InvoiceCreateSerializer, responses={201: InvoiceSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = InvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        inv = InvoiceService.create(
            ctx,
            patient_id=data["patient_id"],
            items=[dict(line) for line in data["items"]],
            tax_rate=data["tax_rate"],
            discount=data["discount"],
            due_date=data.get("due_date"),
            notes=data["notes"],
            treatment_plan_id=data.get("treatment_plan_id"),
        )
        return Response(InvoiceSerializer(get_invoice(ctx, invoice_id=inv.id)).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Billing"], request=InvoiceUpdateSerializer, responses={200: InvoiceSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = InvoiceUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        items = data.get("items")
        inv = InvoiceService.update(
            ctx,
            invoice_id=pk,
            items=[dict(line) for line in items] if items is not None else None,
            tax_rate=data.get("tax_rate"),
            discount=data.get("discount"),
            due_date=data.get("due_date"),
            notes=data.get("notes"),
        )
        return Response(InvoiceSerializer(get_invoice(ctx, invoice_id=inv.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        InvoiceService.delete(ctx, invoice_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Billing"], request=InvoiceTransitionSerializer, responses={200: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="transition")
    def transition(self, request, pk=None):
        ctx = context_for_request(request)

        ser = InvoiceTransitionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = InvoiceService.transition(ctx, invoice_id=pk, target=ser.validated_data["status"])
        return Response(InvoiceSerializer(get_invoice(ctx, invoice_id=inv.id)).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        methods=["GET"],
        responses={200: PaymentSerializer(many=True)},
    )
    @extend_schema(
        tags=["Billing"],
        methods=["POST"],
        request=PaymentCreateSerializer,
        responses={201: PaymentSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request, pk=None):
        ctx = context_for_request(request)

        if request.method == "GET":
            qs = list_payments(ctx, invoice_id=pk)
            return Response(PaymentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        pay = PaymentService.record_payment(ctx, invoice_id=pk, **ser.validated_data)
        return Response(PaymentSerializer(pay).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Billing"], request=RefundCreateSerializer, responses={201: PaymentSerializer})
    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        ctx = context_for_request(request)

        ser = RefundCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        refund = PaymentService.refund_payment(ctx, invoice_id=pk, **ser.validated_data)
        return Response(PaymentSerializer(refund).data, status=status.HTTP_201_CREATED)
