from django.contrib import admin

from clinic_core.patients.models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "phone", "email", "tenant_id", "created_at")
    list_filter = ("tenant_id",)
    search_fields = ("first_name", "last_name", "phone", "email")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-created_at",)
