# inventory/admin.py

from django.contrib import admin

from inventory.models import CostConsumption, InventoryLot, Product

# ============================================================
# PRODUCT
# ============================================================


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "tax_rate", "price_includes_tax", "sale_price", "is_active")
    list_filter = ("tax_rate", "is_active")
    search_fields = ("sku", "name")
    ordering = ("name",)
    readonly_fields = ("uuid", "created_at")


# ============================================================
# FIFO LOTS (quantities move only through the lot store)
# ============================================================


@admin.register(InventoryLot)
class InventoryLotAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "product",
        "purchase_date",
        "expiration_date",
        "original_quantity",
        "remaining_quantity",
        "unit_cost",
        "status",
    )
    list_filter = ("status", "purchase_date")
    search_fields = ("product__sku", "product__name", "lot_number")
    ordering = ("product", "purchase_date", "id")
    readonly_fields = [f.name for f in InventoryLot._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# COST CONSUMPTIONS (append-only)
# ============================================================


@admin.register(CostConsumption)
class CostConsumptionAdmin(admin.ModelAdmin):
    list_display = ("id", "date", "consumption_type", "product", "lot", "quantity", "unit_cost", "total_cost")
    list_filter = ("consumption_type", "date")
    search_fields = ("product__sku", "reference")
    ordering = ("-date", "-id")
    readonly_fields = [f.name for f in CostConsumption._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
