# clinic_core/scheduling/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.scheduling.models import (
    Appointment,
    AppointmentNote,
    AppointmentStatus,
    PractitionerProfile,
)


class PractitionerSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)
    membership_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = PractitionerProfile
        fields = [
            "id",
            "membership_id",
            "display_name",
            "specialization",
            "registration_number",
        ]
        read_only_fields = fields


class AppointmentNoteSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppointmentNote
        fields = ["id", "note", "created_by_user_id", "created_at"]
        read_only_fields = fields


class AppointmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "tenant_id",
            "patient",
            "patient_name",
            "practitioner",
            "title",
            "appointment_type",
            "notes",
            "start_at",
            "end_at",
            "status",
            "reminder_email",
            "reminder_sent_at",
            "created_by_user_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AppointmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    practitioner_id = serializers.UUIDField(required=False, allow_null=True)
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    appointment_type = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False, default=AppointmentStatus.SCHEDULED)
    reminder_email = serializers.BooleanField(required=False, default=True)


class AppointmentUpdateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField(required=False)
    practitioner_id = serializers.UUIDField(required=False, allow_null=True)
    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    appointment_type = serializers.CharField(max_length=64, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    reminder_email = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AppointmentStatus.choices)


class AppointmentNoteCreateSerializer(serializers.Serializer):
    note = serializers.CharField()


class ReminderToggleSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
