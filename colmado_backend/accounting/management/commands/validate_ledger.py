# accounting/management/commands/validate_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from accounting.services.financial_statement_service import unbalanced_posted_entries
from accounting.services.trial_balance_service import TrialBalanceService
from inventory.models import Product
from inventory.services.valuation import check_conservation


class Command(BaseCommand):
    help = "Validate ledger balance and FIFO quantity conservation."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any error is found.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        errors = 0

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger & Inventory Validation"))

        # -----------------------------
        # 1) Every posted entry balances
        # -----------------------------
        unbalanced = unbalanced_posted_entries()
        if unbalanced:
            errors += len(unbalanced)
            self.stderr.write(self.style.ERROR(f"[FAIL] Unbalanced posted entries: {len(unbalanced)}"))
            for entry in unbalanced[:10]:
                self.stderr.write(f"  {entry.entry_number} debit={entry.line_debit} credit={entry.line_credit}")
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Every posted entry balances"))

        # -----------------------------
        # 2) Trial balance
        # -----------------------------
        totals = TrialBalanceService().generate()["totals"]
        if not totals["balanced"]:
            errors += 1
            self.stderr.write(
                self.style.ERROR(f"[FAIL] Trial balance off: debit={totals['debit']} credit={totals['credit']}")
            )
        else:
            self.stdout.write(self.style.SUCCESS(f"[OK] Trial balance: {totals['debit']}"))

        # -----------------------------
        # 3) FIFO conservation per product
        # -----------------------------
        broken = []
        for product in Product.objects.all().iterator():
            check = check_conservation(product)
            if not check["balanced"]:
                broken.append((product.sku, check))

        if broken:
            errors += len(broken)
            self.stderr.write(self.style.ERROR(f"[FAIL] Conservation broken for {len(broken)} product(s)"))
            for sku, check in broken[:10]:
                self.stderr.write(
                    f"  {sku}: original={check['original']} remaining={check['remaining']} "
                    f"outbound={check['outbound']} returned={check['returned']}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] FIFO quantities conserved"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("VALIDATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VALIDATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
