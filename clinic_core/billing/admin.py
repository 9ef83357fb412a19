from __future__ import annotations

from django.contrib import admin

from clinic_core.billing.models import Invoice, InvoiceItem, Payment


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ("amount",)


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ("amount", "method", "is_refund", "reference", "received_at", "recorded_by_user_id")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "tenant_id", "patient", "status", "total", "paid_amount", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("invoice_number", "patient__first_name", "patient__last_name")
    readonly_fields = ("subtotal", "tax_amount", "total", "paid_amount", "created_at", "updated_at")
    inlines = [InvoiceItemInline, PaymentInline]
    ordering = ("-created_at",)
