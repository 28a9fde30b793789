# sales/api/serializers.py

"""
PATH: sales/api/serializers.py

Read serializers expose what the receipt and the history screens need;
input serializers document ONLY what the terminal is allowed to send.
Totals, ITBIS and cost are always computed server-side.
"""

from rest_framework import serializers

from inventory.models import Product
from sales.models import CashShift, Sale, SaleItem, SaleReturn, SaleReturnItem
from taxes.models import NCFRange


# ======================================================
# READ
# ======================================================


class SaleItemSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = SaleItem
        fields = [
            "id",
            "product",
            "product_sku",
            "product_name",
            "quantity",
            "unit_price",
            "tax_rate",
            "price_includes_tax",
            "subtotal",
            "itbis",
            "total",
            "cost_total",
            "unallocated_quantity",
            "unallocated_cost",
            "returned_quantity",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)
    gross_profit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "uuid",
            "receipt_number",
            "sale_date",
            "shift",
            "payment_method",
            "customer_name",
            "customer_rnc",
            "ncf",
            "status",
            "subtotal",
            "itbis_total",
            "total",
            "cost_total",
            "gross_profit",
            "entry_number",
            "created_by",
            "created_at",
            "items",
        ]
        read_only_fields = fields


class SaleReturnItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleReturnItem
        fields = ["id", "sale_item", "quantity", "subtotal", "itbis", "total", "cost_total"]
        read_only_fields = fields


class SaleReturnSerializer(serializers.ModelSerializer):
    items = SaleReturnItemSerializer(many=True, read_only=True)
    receipt_number = serializers.CharField(source="sale.receipt_number", read_only=True)
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)

    class Meta:
        model = SaleReturn
        fields = [
            "id",
            "uuid",
            "sale",
            "receipt_number",
            "return_date",
            "shift",
            "refund_method",
            "reason",
            "subtotal",
            "itbis_total",
            "total",
            "cost_total",
            "entry_number",
            "created_by",
            "created_at",
            "items",
        ]
        read_only_fields = fields


class CashShiftSerializer(serializers.ModelSerializer):
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)

    class Meta:
        model = CashShift
        fields = [
            "id",
            "uuid",
            "shift_number",
            "status",
            "opened_at",
            "opened_by",
            "opening_cash",
            "cash_in",
            "cash_out",
            "closed_at",
            "closed_by",
            "counted_cash",
            "expected_cash",
            "cash_difference",
            "sales_count",
            "total_sales",
            "cash_sales",
            "card_sales",
            "transfer_sales",
            "credit_sales",
            "returns_total",
            "cash_refunds",
            "cogs_total",
            "notes",
            "entry_number",
        ]
        read_only_fields = fields


# ======================================================
# INPUT
# ======================================================


class CheckoutLineSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.filter(is_active=True))
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        help_text="Overrides the shelf price (price changes at the counter).",
    )


class CheckoutSerializer(serializers.Serializer):
    lines = CheckoutLineSerializer(many=True)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_CHOICES)
    ncf_type = serializers.ChoiceField(choices=NCFRange.TYPE_CHOICES, required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    customer_rnc = serializers.CharField(max_length=11, required=False, allow_blank=True, default="")
    sale_date = serializers.DateField(required=False)

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError("A sale needs at least one line")
        return value


class ReturnLineSerializer(serializers.Serializer):
    sale_item = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)


class ReturnSerializer(serializers.Serializer):
    items = ReturnLineSerializer(many=True)
    refund_method = serializers.ChoiceField(choices=Sale.PAYMENT_CHOICES, required=False, allow_null=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    return_date = serializers.DateField(required=False)


class OpenShiftSerializer(serializers.Serializer):
    opening_cash = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)


class CloseShiftSerializer(serializers.Serializer):
    counted_cash = serializers.DecimalField(max_digits=14, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CashMovementSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    direction = serializers.ChoiceField(choices=["in", "out"])
