from django.contrib import admin

from clinic_core.inventory.models import InventoryItem, StockMovement, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "tenant_id")
    search_fields = ("name", "email")


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "category", "current_stock", "min_stock", "tenant_id")
    list_filter = ("category",)
    search_fields = ("name", "sku")
    # stock only moves through the ledger
    readonly_fields = ("current_stock", "created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("item", "movement_type", "delta", "stock_after", "created_at")
    list_filter = ("movement_type",)
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
