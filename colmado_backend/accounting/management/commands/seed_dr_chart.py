# accounting/management/commands/seed_dr_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.services.account_resolver import DEFAULT_CHART, ensure_chart


class Command(BaseCommand):
    help = "Seed the Dominican retail (colmado) chart of accounts. Safe to re-run."

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding colmado chart of accounts...")

        created = ensure_chart()

        self.stdout.write(
            self.style.SUCCESS(
                f"Chart ready: {len(DEFAULT_CHART)} accounts ({created} created)"
            )
        )
