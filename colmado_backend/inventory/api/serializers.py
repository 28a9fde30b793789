# inventory/api/serializers.py

from rest_framework import serializers

from inventory.models import CostConsumption, InventoryLot, Product
from inventory.services.adjustments import LOSS_REASONS


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "uuid",
            "sku",
            "name",
            "tax_rate",
            "price_includes_tax",
            "sale_price",
            "fallback_unit_cost",
            "is_active",
            "created_at",
        ]
        read_only_fields = ("id", "uuid", "created_at")


class InventoryLotSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = InventoryLot
        fields = [
            "id",
            "uuid",
            "product",
            "product_sku",
            "purchase_invoice",
            "lot_number",
            "purchase_date",
            "expiration_date",
            "original_quantity",
            "remaining_quantity",
            "unit_cost",
            "unit_cost_inc_tax",
            "tax_rate",
            "status",
            "version",
            "depleted_at",
            "created_at",
        ]
        read_only_fields = fields


class LotCreateSerializer(serializers.Serializer):
    """
    Manual lot intake (opening stock, transfers). Purchases create their
    lots through the purchases app.
    """

    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.filter(is_active=True))
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=4, required=False, allow_null=True)
    purchase_date = serializers.DateField(required=False, allow_null=True)
    expiration_date = serializers.DateField(required=False, allow_null=True)
    lot_number = serializers.CharField(required=False, allow_blank=True, default="")


class CostConsumptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CostConsumption
        fields = [
            "id",
            "lot",
            "product",
            "consumption_type",
            "sale",
            "sale_item",
            "sale_return",
            "reference",
            "reverses",
            "quantity",
            "unit_cost",
            "total_cost",
            "date",
        ]
        read_only_fields = fields


class InventoryLossSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    reason = serializers.ChoiceField(choices=LOSS_REASONS)
    date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class LotWriteOffSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=LOSS_REASONS, default="expiration")
    date = serializers.DateField(required=False, allow_null=True)
