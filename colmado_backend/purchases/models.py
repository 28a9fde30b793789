# purchases/models.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

TWOPLACES = Decimal("0.01")


class Supplier(models.Model):
    """
    Supplier master (distribuidor / suplidor).
    """

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    name = models.CharField(max_length=200)
    rnc = models.CharField(max_length=11, blank=True, default="", help_text="RNC or cédula")
    phone = models.CharField(max_length=50, blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="supplier_name_idx"),
            models.Index(fields=["rnc"], name="supplier_rnc_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.rnc})" if self.rnc else self.name


class PurchaseInvoice(models.Model):
    """
    Supplier invoice header.

    Recording is performed by services (receiving_service):
    - creates one FIFO lot per inventory line
    - posts the purchase entry (Dr Inventario/expense + ITBIS Pagado, Cr CxP)
    - counts toward ITBIS paid for its issue_date month
    """

    STATUS_RECORDED = "recorded"
    STATUS_VOIDED = "voided"

    STATUSES = [
        (STATUS_RECORDED, "Recorded"),
        (STATUS_VOIDED, "Voided"),
    ]

    CATEGORY_INVENTORY = "inventory"
    CATEGORY_UTILITIES = "utilities"
    CATEGORY_MAINTENANCE = "maintenance"
    CATEGORY_PAYROLL = "payroll"
    CATEGORY_OTHER = "other"

    CATEGORIES = [
        (CATEGORY_INVENTORY, "Mercancía"),
        (CATEGORY_UTILITIES, "Servicios públicos"),
        (CATEGORY_MAINTENANCE, "Mantenimiento"),
        (CATEGORY_PAYROLL, "Nómina"),
        (CATEGORY_OTHER, "Otros"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    invoice_number = models.CharField(max_length=64)
    supplier_ncf = models.CharField(max_length=13, blank=True, default="")
    issue_date = models.DateField(default=timezone.localdate)
    category = models.CharField(max_length=16, choices=CATEGORIES, default=CATEGORY_INVENTORY)

    status = models.CharField(max_length=12, choices=STATUSES, default=STATUS_RECORDED)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    itbis_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    void_reason = models.CharField(max_length=255, blank=True, default="")
    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-issue_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["supplier", "invoice_number"],
                name="uniq_supplier_invoice_number",
            ),
            models.CheckConstraint(
                condition=models.Q(total__gte=Decimal("0.00")),
                name="purchase_invoice_total_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=Decimal("0.00")),
                name="purchase_invoice_paid_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["issue_date", "status"], name="purchase_date_status_idx"),
        ]

    @property
    def supplier_name(self) -> str:
        return self.supplier.name

    @property
    def balance_due(self) -> Decimal:
        return (self.total - self.amount_paid).quantize(TWOPLACES)

    @property
    def is_paid(self) -> bool:
        return self.balance_due <= Decimal("0.00")

    def clean(self):
        if not (self.invoice_number or "").strip():
            raise ValidationError({"invoice_number": "invoice_number is required"})

        if self.subtotal + self.itbis_total != self.total:
            raise ValidationError("subtotal + itbis_total must equal total")

        if self.amount_paid > self.total:
            raise ValidationError({"amount_paid": "amount_paid cannot exceed total"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Purchase invoices cannot be deleted; void them instead")

    def __str__(self):
        return f"{self.supplier.name} #{self.invoice_number} ({self.total})"


class PurchaseInvoiceItem(models.Model):
    """
    One invoice line. Inventory lines reference a product and the FIFO lot
    they created; expense lines only carry a description.
    """

    invoice = models.ForeignKey(PurchaseInvoice, on_delete=models.PROTECT, related_name="items")

    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="purchase_items",
    )
    description = models.CharField(max_length=200, blank=True, default="")

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4, help_text="Tax-exclusive")
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4)
    cost_includes_tax = models.BooleanField(default=False)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    itbis = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)

    expiration_date = models.DateField(null=True, blank=True)
    lot = models.OneToOneField(
        "inventory.InventoryLot",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice_item",
    )

    class Meta:
        ordering = ["id"]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be > 0"})
        if self.unit_cost is None or self.unit_cost <= 0:
            raise ValidationError({"unit_cost": "unit_cost must be > 0"})
        if self.subtotal + self.itbis != self.total:
            raise ValidationError("subtotal + itbis must equal total")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Invoice items cannot be deleted")


class SupplierPayment(models.Model):
    METHOD_CASH = "cash"
    METHOD_TRANSFER = "transfer"

    METHODS = [
        (METHOD_CASH, "Efectivo"),
        (METHOD_TRANSFER, "Transferencia"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    invoice = models.ForeignKey(PurchaseInvoice, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=12, choices=METHODS)
    payment_date = models.DateField(default=timezone.localdate)
    reference = models.CharField(max_length=100, blank=True, default="")

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="supplier_payment_amount_positive",
            ),
        ]

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Supplier payments cannot be deleted")

    def __str__(self):
        return f"{self.amount} → {self.invoice}"
