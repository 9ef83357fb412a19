# clinic_core/scheduling/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.common.api.params import datetime_or_none, uuid_or_none
from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.scope import context_for_request
from clinic_core.scheduling.api.serializers import (
    AppointmentCreateSerializer,
    AppointmentNoteCreateSerializer,
    AppointmentNoteSerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
    AppointmentUpdateSerializer,
    PractitionerSerializer,
    ReminderToggleSerializer,
)
from clinic_core.scheduling.models import Appointment, PractitionerProfile
from clinic_core.scheduling.selectors import get_appointment, list_appointments
from clinic_core.scheduling.services.appointments import AppointmentService
from clinic_core.scheduling.services.practitioners import list_practitioners


class PractitionerViewSet(viewsets.GenericViewSet):
    """
    Bookable clinicians (active Dentist members).
    """
    permission_classes = [HasTenantContext]

    serializer_class = PractitionerSerializer
    queryset = PractitionerProfile.objects.none()

    @extend_schema(tags=["Scheduling"], responses={200: PractitionerSerializer(many=True)})
    def list(self, request):
        ctx = context_for_request(request)
        return Response(PractitionerSerializer(list_practitioners(ctx), many=True).data, status=status.HTTP_200_OK)


class AppointmentViewSet(viewsets.GenericViewSet):
    permission_classes = [HasTenantContext]

    serializer_class = AppointmentSerializer
    queryset = Appointment.objects.none()

    @extend_schema(
        tags=["Scheduling"],
        responses={200: AppointmentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="start", type=OpenApiTypes.DATETIME, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="end", type=OpenApiTypes.DATETIME, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="practitioner", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        ctx = context_for_request(request)
        qp = request.query_params

        qs = list_appointments(
            ctx,
            start=datetime_or_none(qp.get("start"), "start"),
            end=datetime_or_none(qp.get("end"), "end"),
            practitioner_id=uuid_or_none(qp.get("practitioner"), "practitioner"),
            patient_id=uuid_or_none(qp.get("patient"), "patient"),
            status=qp.get("status") or None,
        )
        return paginate(request, qs, AppointmentSerializer, view=self)

    @extend_schema(tags=["Scheduling"], responses={200: AppointmentSerializer})
    def retrieve(self, request, pk=None):
        ctx = context_for_request(request)
        appt = get_appointment(ctx, appointment_id=pk)
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Scheduling"], request=AppointmentCreateSerializer, responses={201: AppointmentSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = AppointmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.create(ctx, **ser.validated_data)
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Scheduling"], request=AppointmentUpdateSerializer, responses={200: AppointmentSerializer})
    def partial_update(self, request, pk=None):
        ctx = context_for_request(request)

        ser = AppointmentUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.update(ctx, appointment_id=pk, data=ser.validated_data)
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Scheduling"], responses={204: None})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        AppointmentService.delete(ctx, appointment_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Scheduling"], request=AppointmentStatusSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        ctx = context_for_request(request)

        ser = AppointmentStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.set_status(ctx, appointment_id=pk, status=ser.validated_data["status"])
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Scheduling"], request=AppointmentNoteCreateSerializer, responses={201: AppointmentNoteSerializer})
    @action(detail=True, methods=["post"], url_path="notes")
    def add_note(self, request, pk=None):
        ctx = context_for_request(request)

        ser = AppointmentNoteCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        note = AppointmentService.add_note(ctx, appointment_id=pk, note=ser.validated_data["note"])
        return Response(AppointmentNoteSerializer(note).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Scheduling"], request=ReminderToggleSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"], url_path="reminder")
    def toggle_reminder(self, request, pk=None):
        ctx = context_for_request(request)

        ser = ReminderToggleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appt = AppointmentService.toggle_reminder(ctx, appointment_id=pk, enabled=ser.validated_data["enabled"])
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_200_OK)
