# accounting/api/serializers/journal_entries.py

from decimal import Decimal

from rest_framework import serializers

from accounting.models import Account, JournalEntry, JournalLine


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = ("line_no", "account", "account_code", "account_name", "debit", "credit", "memo")
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "uuid",
            "entry_number",
            "entry_date",
            "description",
            "source_type",
            "source_id",
            "status",
            "total_debit",
            "total_credit",
            "created_by",
            "created_at",
            "posted_at",
            "voided_at",
            "voided_by",
            "void_reason",
            "lines",
        )
        read_only_fields = fields


class VoidJournalEntrySerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)


class ManualLineSerializer(serializers.Serializer):
    account = serializers.SlugRelatedField(slug_field="code", queryset=Account.objects.filter(is_active=True))
    debit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0.00"))
    credit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0.00"))
    memo = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ManualJournalEntrySerializer(serializers.Serializer):
    """
    Manual entries (opening capital, owner draws, corrections).
    Balance and line rules are enforced by the journal engine.
    """

    entry_date = serializers.DateField(required=False)
    description = serializers.CharField(max_length=500)
    reference = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    lines = ManualLineSerializer(many=True)

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("A journal entry needs at least two lines")
        return value
