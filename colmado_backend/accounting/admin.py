# accounting/admin.py

from django.contrib import admin

from accounting.models import Account, CardSettlement, EntrySequence, JournalEntry, JournalLine

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "account_type", "is_system", "is_active")
    list_filter = ("account_type", "is_system", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("is_system", "created_at", "updated_at")

    fieldsets = (
        ("Cuenta", {"fields": ("code", "name", "account_type")}),
        ("Estado", {"fields": ("is_system", "is_active")}),
        ("Audit", {"fields": ("created_at", "updated_at")}),
    )

    def has_delete_permission(self, request, obj=None):
        return obj is None or not obj.is_system


# ============================================================
# JOURNAL (read-only: entries move only through services)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    fields = ("line_no", "account", "debit", "credit", "memo")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "entry_date",
        "source_type",
        "status",
        "total_debit",
        "total_credit",
        "created_by",
    )
    list_filter = ("status", "source_type", "entry_date")
    search_fields = ("entry_number", "description", "source_id")
    ordering = ("-entry_date", "-id")
    readonly_fields = [f.name for f in JournalEntry._meta.fields]
    inlines = [JournalLineInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EntrySequence)
class EntrySequenceAdmin(admin.ModelAdmin):
    list_display = ("key", "last_number", "updated_at")
    readonly_fields = ("key", "last_number", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# CARD SETTLEMENTS
# ============================================================


@admin.register(CardSettlement)
class CardSettlementAdmin(admin.ModelAdmin):
    list_display = (
        "settlement_date",
        "processor",
        "gross_amount",
        "commission",
        "itbis_retained",
        "net_amount",
        "status",
    )
    list_filter = ("status", "processor")
    search_fields = ("processor", "reference")
    ordering = ("-settlement_date",)
    readonly_fields = [f.name for f in CardSettlement._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
