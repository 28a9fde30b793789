# taxes/models/ncf.py

"""
NCF (NÚMERO DE COMPROBANTE FISCAL)

NCFRange: one DGII authorisation of sequential numbers for a receipt type.
NCFUsage: one issued number (append-only; voiding keeps the row).

current_number is the LAST number issued (0 = none yet). It only moves
through taxes.services.ncf.issue_ncf(), a serialized increment.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class NCFRange(models.Model):
    TYPE_CREDITO_FISCAL = "B01"
    TYPE_CONSUMO = "B02"
    TYPE_NOTA_CREDITO = "B04"
    TYPE_REGIMEN_ESPECIAL = "B14"
    TYPE_GUBERNAMENTAL = "B15"
    TYPE_E_CREDITO_FISCAL = "E31"
    TYPE_E_CONSUMO = "E32"

    TYPE_CHOICES = [
        (TYPE_CREDITO_FISCAL, "Crédito Fiscal"),
        (TYPE_CONSUMO, "Consumidor Final"),
        (TYPE_NOTA_CREDITO, "Nota de Crédito"),
        (TYPE_REGIMEN_ESPECIAL, "Régimen Especial"),
        (TYPE_GUBERNAMENTAL, "Gubernamental"),
        (TYPE_E_CREDITO_FISCAL, "e-CF Crédito Fiscal"),
        (TYPE_E_CONSUMO, "e-CF Consumo"),
    ]

    ncf_type = models.CharField(max_length=3, choices=TYPE_CHOICES)
    start_number = models.PositiveBigIntegerField(default=1)
    end_number = models.PositiveBigIntegerField()
    current_number = models.PositiveBigIntegerField(
        default=0, help_text="Last number issued from this range"
    )
    expiration_date = models.DateField(null=True, blank=True)
    authorization = models.CharField(max_length=64, blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["ncf_type", "start_number"]
        indexes = [models.Index(fields=["ncf_type", "is_active"], name="ncf_range_type_active_idx")]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_number__gte=F("start_number")),
                name="chk_ncf_range_bounds",
            ),
            models.CheckConstraint(
                condition=Q(current_number__lte=F("end_number")),
                name="chk_ncf_current_within_range",
            ),
        ]
        verbose_name = "NCF Range"

    def __str__(self):
        return f"{self.ncf_type} {self.start_number}-{self.end_number} (last {self.current_number})"

    @property
    def digits(self) -> int:
        # B-series: 11 chars total, e-CF: 13 chars total
        return 10 if self.ncf_type.startswith("E") else 8

    @property
    def remaining(self) -> int:
        last = max(self.current_number, self.start_number - 1)
        return self.end_number - last

    def format(self, number: int) -> str:
        return f"{self.ncf_type}{number:0{self.digits}d}"

    def clean(self):
        if self.start_number < 1:
            raise ValidationError("start_number must be >= 1")
        if self.end_number < self.start_number:
            raise ValidationError("end_number must be >= start_number")
        if len(str(self.end_number)) > self.digits:
            raise ValidationError(f"{self.ncf_type} numbers have at most {self.digits} digits")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class NCFUsage(models.Model):
    STATUS_ISSUED = "issued"
    STATUS_VOIDED = "voided"

    STATUS_CHOICES = [
        (STATUS_ISSUED, "Issued"),
        (STATUS_VOIDED, "Voided"),
    ]

    ncf = models.CharField(max_length=13, unique=True)
    ncf_range = models.ForeignKey(
        NCFRange, on_delete=models.PROTECT, related_name="usages"
    )
    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ncf_usages",
    )
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=STATUS_ISSUED)

    issued_at = models.DateTimeField(auto_now_add=True)
    issued_by = models.CharField(max_length=150, default="system")
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.CharField(max_length=150, blank=True, default="")
    void_reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-issued_at", "-id"]
        verbose_name = "NCF Usage"

    def __str__(self):
        return f"{self.ncf} ({self.status})"

    def delete(self, *args, **kwargs):
        raise ValidationError("Issued NCFs cannot be deleted; void them instead")
