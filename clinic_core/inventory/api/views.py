# clinic_core/inventory/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.api.params import truthy
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request
from clinic_core.inventory.api.serializers import (
    InventoryItemSerializer,
    InventoryItemWriteSerializer,
    StockMovementCreateSerializer,
    StockMovementSerializer,
    SupplierSerializer,
    SupplierWriteSerializer,
)
from clinic_core.inventory.ledger import InventoryLedger
from clinic_core.inventory.models import InventoryItem, Supplier
from clinic_core.inventory.selectors import (
    get_item,
    get_supplier,
    list_items,
    list_movements,
    list_suppliers,
    low_stock_items,
)
from clinic_core.inventory.services import InventoryItemService, SupplierService


class InventoryItemViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = InventoryItemSerializer
    queryset = InventoryItem.objects.none()

    @extend_schema(
        tags=["Inventory"],
        responses={200: InventoryItemSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="search", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="category", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="low_stock", type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qp = request.query_params

        qs = list_items(
            ctx,
            search=qp.get("search"),
            category=qp.get("category") or None,
            low_stock_only=truthy(qp.get("low_stock")),
        )
        return paginate(request, qs, InventoryItemSerializer, view=self)

    @extend_schema(tags=["Inventory"], responses={200: InventoryItemSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        return Response(InventoryItemSerializer(get_item(ctx, item_id=pk)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Inventory"], request=InventoryItemWriteSerializer, responses={201: InventoryItemSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = InventoryItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = InventoryItemService.create_item(ctx, data=ser.validated_data)
        return Response(InventoryItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Inventory"], request=InventoryItemWriteSerializer, responses={200: InventoryItemSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = InventoryItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = InventoryItemService.update_item(ctx, item_id=pk, data=ser.validated_data)
        return Response(InventoryItemSerializer(item).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Inventory"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        InventoryItemService.delete_item(ctx, item_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Inventory"], responses={200: InventoryItemSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        ctx = context_for_request(request)
        return Response(InventoryItemSerializer(low_stock_items(ctx), many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Inventory"], methods=["GET"], responses={200: StockMovementSerializer(many=True)})
    @extend_schema(
        tags=["Inventory"],
        methods=["POST"],
        request=StockMovementCreateSerializer,
        responses={201: StockMovementSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="movements")
    def movements(self, request, pk=None):
        ctx = context_for_request(request)

        if request.method == "GET":
            qs = list_movements(ctx, item_id=pk)
            return paginate(request, qs, StockMovementSerializer, view=self)

        ser = StockMovementCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        movement = InventoryLedger.record_movement(ctx, item_id=pk, **ser.validated_data)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class SupplierViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = SupplierSerializer
    queryset = Supplier.objects.none()

    @extend_schema(tags=["Inventory"], responses={200: SupplierSerializer(many=True)})
    def list(self, request):
        ctx = context_for_request(request)
        return paginate(request, list_suppliers(ctx), SupplierSerializer, view=self)

    @extend_schema(tags=["Inventory"], responses={200: SupplierSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        return Response(SupplierSerializer(get_supplier(ctx, supplier_id=pk)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Inventory"], request=SupplierWriteSerializer, responses={201: SupplierSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = SupplierWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        supplier = SupplierService.create_supplier(ctx, data=ser.validated_data)
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Inventory"], request=SupplierWriteSerializer, responses={200: SupplierSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = SupplierWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        supplier = SupplierService.update_supplier(ctx, supplier_id=pk, data=ser.validated_data)
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Inventory"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        SupplierService.delete_supplier(ctx, supplier_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
