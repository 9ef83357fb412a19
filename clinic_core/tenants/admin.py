from django.contrib import admin

from clinic_core.tenants.models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "timezone", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("name", "slug")
    ordering = ("-created_at",)
    readonly_fields = ("id", "invoice_seq", "created_at", "updated_at")
