from django.contrib import admin

from clinic_core.treatments.models import TreatmentItem, TreatmentPlan


class TreatmentItemInline(admin.TabularInline):
    model = TreatmentItem
    extra = 0
    fields = ("procedure", "tooth_number", "cost", "discount", "status", "sort_order")


@admin.register(TreatmentPlan)
class TreatmentPlanAdmin(admin.ModelAdmin):
    list_display = ("name", "patient", "status", "tenant_id", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "patient__first_name", "patient__last_name")
    inlines = [TreatmentItemInline]
    ordering = ("-created_at",)
