# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Account(models.Model):
    """
    One account of the colmado's chart (Dominican retail catalogue).

    - Codes are numeric, 4 to 10 digits; the first digit is the class
      (1 activos, 2 pasivos, 3 capital, 4 ingresos, 5 costos, 6 gastos).
    - Accounts seeded from the DR chart are system accounts: posting rules
      depend on them, so they cannot be deactivated or re-typed.
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Activo"),
        (LIABILITY, "Pasivo"),
        (EQUITY, "Capital"),
        (REVENUE, "Ingreso"),
        (EXPENSE, "Gasto / Costo"),
    ]

    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    CLASS_DIGITS = {
        ASSET: ("1",),
        LIABILITY: ("2",),
        EQUITY: ("3",),
        REVENUE: ("4",),
        EXPENSE: ("5", "6"),
    }

    code = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=150)
    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPES)

    is_system = models.BooleanField(
        default=False,
        help_text="Seeded from the DR chart and referenced by posting rules",
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        indexes = [
            models.Index(fields=["account_type"], name="acct_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(code__regex=r"^[0-9]{4,10}$"),
                name="chk_account_code_numeric",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(is_active=True) | Q(is_system=False),
                name="chk_system_account_active",
            ),
        ]

    def __str__(self):
        return f"{self.code} {self.name}"

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in self.DEBIT_NORMAL_TYPES

    @property
    def normal_balance(self) -> str:
        return "debit" if self.is_debit_normal else "credit"

    def signed_balance(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Balance in the account's normal direction (negative means contra)."""
        return debit - credit if self.is_debit_normal else credit - debit

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code.isdigit() or not 4 <= len(self.code) <= 10:
            raise ValidationError({"code": "Account codes are 4 to 10 digits"})
        if not self.name:
            raise ValidationError({"name": "Account name is required"})
        if self.code[0] not in self.CLASS_DIGITS.get(self.account_type, ()):
            raise ValidationError(
                {"account_type": f"Code {self.code} does not belong to class {self.account_type}"}
            )

        if self.pk and self.is_system:
            stored = Account.objects.filter(pk=self.pk).values("account_type", "code").first()
            if stored and (stored["account_type"], stored["code"]) != (self.account_type, self.code):
                raise ValidationError("System accounts cannot change code or type")
            if not self.is_active:
                raise ValidationError("System accounts cannot be deactivated")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_system:
            raise ValidationError("System accounts cannot be deleted")
        return super().delete(*args, **kwargs)
