# sales/admin.py

from django.contrib import admin

from sales.models import CashShift, Sale, SaleItem, SaleReturn, SaleReturnItem


class ReadOnlyAdminMixin:
    """Sales documents change only through the checkout / return services."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================================================
# SALE ADMIN
# ======================================================


class SaleItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = SaleItem
    extra = 0
    fields = (
        "product",
        "quantity",
        "unit_price",
        "tax_rate",
        "subtotal",
        "itbis",
        "total",
        "cost_total",
        "unallocated_quantity",
        "unallocated_cost",
        "returned_quantity",
    )
    readonly_fields = fields


@admin.register(Sale)
class SaleAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "receipt_number",
        "sale_date",
        "payment_method",
        "ncf",
        "status",
        "total",
        "cost_total",
        "created_by",
    )
    list_filter = ("status", "payment_method", "sale_date")
    search_fields = ("receipt_number", "ncf", "customer_rnc", "customer_name")
    inlines = [SaleItemInline]


# ======================================================
# RETURN ADMIN
# ======================================================


class SaleReturnItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = SaleReturnItem
    extra = 0
    fields = ("sale_item", "quantity", "subtotal", "itbis", "total", "cost_total")
    readonly_fields = fields


@admin.register(SaleReturn)
class SaleReturnAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("sale", "return_date", "refund_method", "total", "cost_total", "created_by")
    list_filter = ("refund_method", "return_date")
    search_fields = ("sale__receipt_number", "reason")
    inlines = [SaleReturnItemInline]


# ======================================================
# CASH SHIFT ADMIN
# ======================================================


@admin.register(CashShift)
class CashShiftAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "shift_number",
        "opened_by",
        "status",
        "opened_at",
        "closed_at",
        "expected_cash",
        "counted_cash",
        "cash_difference",
    )
    list_filter = ("status", "opened_by")
    search_fields = ("shift_number", "opened_by")
