# clinic_core/patients/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request
from clinic_core.patients.api.serializers import (
    PatientCreateSerializer,
    PatientSerializer,
    PatientUpdateSerializer,
)
from clinic_core.patients.models import Patient
from clinic_core.patients.selectors import get_patient, search_patients
from clinic_core.patients.services import PatientService


class PatientViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = PatientSerializer
    queryset = Patient.objects.none()

    @extend_schema(
        tags=["Patients"],
        responses={200: PatientSerializer(many=True)},
        parameters=[
            OpenApiParameter(
                name="q",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Search by name, phone or e-mail.",
            ),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qs = search_patients(ctx, q=request.query_params.get("q"))
        return paginate(request, qs, PatientSerializer, view=self)

    @extend_schema(tags=["Patients"], responses={200: PatientSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        patient = get_patient(ctx, patient_id=pk)
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], request=PatientCreateSerializer, responses={201: PatientSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = PatientCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.create_patient(ctx, **ser.validated_data)
        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Patients"], request=PatientUpdateSerializer, responses={200: PatientSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = PatientUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.update_patient(ctx, patient_id=pk, data=ser.validated_data)
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)
