# accounting/api/serializers/settlements.py

from rest_framework import serializers

from accounting.models import CardSettlement
from sales.models import Sale


class CardSettlementSerializer(serializers.ModelSerializer):
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)

    class Meta:
        model = CardSettlement
        fields = (
            "id",
            "uuid",
            "settlement_date",
            "processor",
            "reference",
            "gross_amount",
            "commission",
            "tax_on_commission",
            "itbis_retained",
            "net_amount",
            "sales",
            "status",
            "journal_entry",
            "entry_number",
            "dispute_reason",
            "created_by",
            "created_at",
            "reconciled_at",
        )
        read_only_fields = fields


class RecordCardSettlementSerializer(serializers.Serializer):
    settlement_date = serializers.DateField()
    processor = serializers.CharField(max_length=80)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    gross_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    commission = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    tax_on_commission = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    itbis_retained = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    sales = serializers.PrimaryKeyRelatedField(queryset=Sale.objects.all(), many=True, required=False)


class DisputeSettlementSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
