# purchases/api/serializers.py

from rest_framework import serializers

from inventory.models import Product
from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier, SupplierPayment


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ("id", "uuid", "name", "rnc", "phone", "is_active", "created_at")
        read_only_fields = ("id", "uuid", "created_at")


class PurchaseInvoiceItemSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True, default=None)

    class Meta:
        model = PurchaseInvoiceItem
        fields = (
            "id",
            "product",
            "product_sku",
            "description",
            "quantity",
            "unit_cost",
            "tax_rate",
            "cost_includes_tax",
            "subtotal",
            "itbis",
            "total",
            "expiration_date",
            "lot",
        )
        read_only_fields = fields


class PurchaseInvoiceSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    supplier_rnc = serializers.CharField(source="supplier.rnc", read_only=True)
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    items = PurchaseInvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseInvoice
        fields = (
            "id",
            "uuid",
            "supplier",
            "supplier_name",
            "supplier_rnc",
            "invoice_number",
            "supplier_ncf",
            "issue_date",
            "category",
            "status",
            "subtotal",
            "itbis_total",
            "total",
            "amount_paid",
            "balance_due",
            "entry_number",
            "void_reason",
            "created_by",
            "created_at",
            "items",
        )
        read_only_fields = fields


class PurchaseInvoiceItemCreateSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.filter(is_active=True), required=False, allow_null=True
    )
    description = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=4, required=False, allow_null=True)
    cost_includes_tax = serializers.BooleanField(required=False, default=False)
    expiration_date = serializers.DateField(required=False, allow_null=True)
    lot_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")


class PurchaseInvoiceCreateSerializer(serializers.Serializer):
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    supplier_rnc = serializers.CharField(max_length=11, required=False, allow_blank=True, default="")
    supplier_ncf = serializers.CharField(max_length=13, required=False, allow_blank=True, default="")
    invoice_number = serializers.CharField(max_length=64)
    issue_date = serializers.DateField(required=False)
    category = serializers.ChoiceField(choices=PurchaseInvoice.CATEGORIES, default=PurchaseInvoice.CATEGORY_INVENTORY)
    items = PurchaseInvoiceItemCreateSerializer(many=True)

    def validate(self, attrs):
        if not attrs.get("supplier_name") and not attrs.get("supplier_rnc"):
            raise serializers.ValidationError("supplier_name or supplier_rnc is required")
        return attrs


class VoidPurchaseInvoiceSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)


class SupplierPaymentSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)
    supplier_name = serializers.CharField(source="invoice.supplier.name", read_only=True)
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True, default=None)

    class Meta:
        model = SupplierPayment
        fields = (
            "id",
            "uuid",
            "invoice",
            "invoice_number",
            "supplier_name",
            "amount",
            "payment_method",
            "payment_date",
            "reference",
            "entry_number",
            "created_by",
            "created_at",
        )
        read_only_fields = fields


class SupplierPaymentCreateSerializer(serializers.Serializer):
    invoice = serializers.SlugRelatedField(slug_field="uuid", queryset=PurchaseInvoice.objects.all())
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=SupplierPayment.METHODS)
    payment_date = serializers.DateField(required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
