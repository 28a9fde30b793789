# taxes/admin.py

from django.contrib import admin

from taxes.models import ITBISPeriodSummary, ITBISRetention, NCFRange, NCFUsage


@admin.register(ITBISPeriodSummary)
class ITBISPeriodSummaryAdmin(admin.ModelAdmin):
    """Summaries are derived; status moves through the closing service."""

    list_display = ("period", "status", "total_collected", "total_paid", "total_retained", "net_due")
    list_filter = ("status",)
    search_fields = ("period", "dgii_confirmation")
    ordering = ("-period",)
    readonly_fields = [f.name for f in ITBISPeriodSummary._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ITBISRetention)
class ITBISRetentionAdmin(admin.ModelAdmin):
    list_display = ("date", "retained_by", "retained_by_rnc", "amount", "reference")
    search_fields = ("retained_by", "retained_by_rnc", "reference")
    ordering = ("-date",)


@admin.register(NCFRange)
class NCFRangeAdmin(admin.ModelAdmin):
    list_display = ("ncf_type", "start_number", "end_number", "current_number", "expiration_date", "is_active")
    list_filter = ("ncf_type", "is_active")
    readonly_fields = ("current_number", "created_at")


@admin.register(NCFUsage)
class NCFUsageAdmin(admin.ModelAdmin):
    list_display = ("ncf", "status", "sale", "issued_at", "issued_by")
    list_filter = ("status", "ncf_range__ncf_type")
    search_fields = ("ncf",)
    readonly_fields = [f.name for f in NCFUsage._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
