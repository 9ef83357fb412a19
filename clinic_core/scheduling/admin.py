from django.contrib import admin

from clinic_core.scheduling.models import Appointment, PractitionerProfile


@admin.register(PractitionerProfile)
class PractitionerProfileAdmin(admin.ModelAdmin):
    list_display = ("membership", "specialization", "registration_number", "tenant_id")
    search_fields = ("membership__user__username", "registration_number")


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("start_at", "end_at", "patient", "practitioner", "status", "tenant_id")
    list_filter = ("status", "start_at")
    search_fields = ("title", "patient__first_name", "patient__last_name")
    ordering = ("-start_at",)
