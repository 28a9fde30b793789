# purchases/admin.py

from django.contrib import admin

from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier, SupplierPayment

# ============================================================
# SUPPLIERS
# ============================================================


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "rnc", "phone", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "rnc")


# ============================================================
# INVOICES & PAYMENTS (posted documents: read-only)
# ============================================================


class PurchaseInvoiceItemInline(admin.TabularInline):
    model = PurchaseInvoiceItem
    extra = 0
    fields = ("product", "description", "quantity", "unit_cost", "tax_rate", "subtotal", "itbis", "total", "lot")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PurchaseInvoice)
class PurchaseInvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "supplier",
        "supplier_ncf",
        "issue_date",
        "category",
        "status",
        "total",
        "amount_paid",
    )
    list_filter = ("status", "category", "issue_date")
    search_fields = ("invoice_number", "supplier_ncf", "supplier__name", "supplier__rnc")
    readonly_fields = [f.name for f in PurchaseInvoice._meta.fields]
    inlines = [PurchaseInvoiceItemInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SupplierPayment)
class SupplierPaymentAdmin(admin.ModelAdmin):
    list_display = ("invoice", "amount", "payment_method", "payment_date", "journal_entry")
    list_filter = ("payment_method", "payment_date")
    readonly_fields = [f.name for f in SupplierPayment._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
