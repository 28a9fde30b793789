# accounting/management/commands/recalculate_itbis.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from accounting.services.exceptions import PeriodClosedError
from taxes.services.exceptions import InvalidPeriodError
from taxes.services.itbis import accumulate_period, period_for


class Command(BaseCommand):
    help = "Re-derive ITBIS period summaries from sales, returns, purchases and retentions."

    def add_arguments(self, parser):
        parser.add_argument(
            "periods",
            nargs="*",
            help="Periods as YYYY-MM (default: current month)",
        )

    def handle(self, *args, **options):
        periods = options.get("periods") or [period_for(timezone.localdate())]

        failures = 0
        for period in periods:
            try:
                summary = accumulate_period(period, actor="manage.py")
            except InvalidPeriodError as exc:
                raise CommandError(str(exc)) from exc
            except PeriodClosedError as exc:
                failures += 1
                self.stderr.write(self.style.WARNING(f"[SKIP] {exc}"))
                continue

            self.stdout.write(
                self.style.SUCCESS(
                    f"[OK] {summary.period}: collected={summary.total_collected} "
                    f"paid={summary.total_paid} retained={summary.total_retained} "
                    f"net_due={summary.net_due}"
                )
            )

        if failures:
            self.stdout.write(f"{failures} period(s) skipped (closed or filed)")
