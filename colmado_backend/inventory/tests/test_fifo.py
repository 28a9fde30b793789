# inventory/tests/test_fifo.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from audit.models import AuditLogEntry
from inventory.models import CostConsumption, InventoryLot, Product
from inventory.services.exceptions import (
    ConcurrentModificationError,
    InsufficientInventoryError,
    InsufficientLotQuantityError,
    InvalidCostError,
    InvalidQuantityError,
)
from inventory.services.fifo import consume, reverse
from inventory.services.lot_store import (
    adjust_remaining,
    create_lot,
    get_available_quantity,
    list_available_lots,
    mark_lot_expired,
)
from inventory.services.valuation import check_conservation, get_product_valuation


class FifoEngineTests(TestCase):
    """
    FIFO GUARANTEES:
    - oldest lot first, each unit at its own lot's cost
    - remaining never negative, conservation always holds
    - reversal restocks the SAME lot
    """

    def setUp(self):
        self.product = Product.objects.create(
            sku="ARROZ-5LB",
            name="Arroz selecto 5 lb",
            sale_price=Decimal("250.00"),
        )
        self.l1 = create_lot(
            product=self.product,
            quantity=5,
            unit_cost="10.00",
            purchase_date=date(2024, 1, 1),
        )
        self.l2 = create_lot(
            product=self.product,
            quantity=5,
            unit_cost="12.00",
            purchase_date=date(2024, 1, 5),
        )

    # --------------------------------------------------
    # Allocation order
    # --------------------------------------------------

    def test_consume_takes_oldest_lot_first(self):
        result = consume(product=self.product, quantity=7, date=date(2024, 1, 10))

        self.assertEqual(
            [(a.lot_id, a.quantity, a.unit_cost) for a in result.allocations],
            [
                (self.l1.pk, Decimal("5.000"), Decimal("10.0000")),
                (self.l2.pk, Decimal("2.000"), Decimal("12.0000")),
            ],
        )
        self.assertEqual(result.total_cost, Decimal("74.00"))
        self.assertFalse(result.is_partial)

        self.l1.refresh_from_db()
        self.l2.refresh_from_db()
        self.assertEqual(self.l1.remaining_quantity, Decimal("0"))
        self.assertEqual(self.l1.status, InventoryLot.STATUS_DEPLETED)
        self.assertIsNotNone(self.l1.depleted_at)
        self.assertEqual(self.l2.remaining_quantity, Decimal("3"))
        self.assertEqual(self.l2.status, InventoryLot.STATUS_ACTIVE)

    def test_available_lots_skip_expired_and_depleted(self):
        mark_lot_expired(self.l1)
        lots = list_available_lots(self.product)
        self.assertEqual([lot.pk for lot in lots], [self.l2.pk])
        self.assertEqual(get_available_quantity(self.product), Decimal("5"))

    def test_consumption_writes_audit_entries(self):
        consume(product=self.product, quantity=7)
        self.assertEqual(
            AuditLogEntry.objects.filter(action=AuditLogEntry.Action.FIFO_CONSUMPTION).count(),
            2,
        )

    # --------------------------------------------------
    # Insufficient stock
    # --------------------------------------------------

    def test_partial_allocation_reports_shortfall(self):
        result = consume(product=self.product, quantity=12, strict=False)

        self.assertTrue(result.is_partial)
        self.assertEqual(result.allocated_quantity, Decimal("10"))
        self.assertEqual(result.shortfall, Decimal("2"))
        self.assertEqual(result.total_cost, Decimal("110.00"))

    def test_strict_mode_refuses_before_touching_lots(self):
        with self.assertRaises(InsufficientInventoryError):
            consume(product=self.product, quantity=12, strict=True)

        self.l1.refresh_from_db()
        self.assertEqual(self.l1.remaining_quantity, Decimal("5"))
        self.assertFalse(CostConsumption.objects.exists())

    @override_settings(INVENTORY={"FIFO_STRICT": True, "MAX_RETRIES": 3, "EXPIRY_WARNING_DAYS": 7})
    def test_strict_mode_from_settings(self):
        with self.assertRaises(InsufficientInventoryError) as ctx:
            consume(product=self.product, quantity=11)
        self.assertEqual(ctx.exception.code, "insufficient_inventory")

    # --------------------------------------------------
    # Validation
    # --------------------------------------------------

    def test_rejects_non_positive_quantity_and_cost(self):
        with self.assertRaises(InvalidQuantityError):
            consume(product=self.product, quantity=0)
        with self.assertRaises(InvalidQuantityError):
            create_lot(product=self.product, quantity=-1, unit_cost=5)
        with self.assertRaises(InvalidCostError):
            create_lot(product=self.product, quantity=1, unit_cost=0)

    def test_adjust_beyond_bounds_raises(self):
        with self.assertRaises(InsufficientLotQuantityError):
            adjust_remaining(self.l1, Decimal("-6"))
        with self.assertRaises(InsufficientLotQuantityError):
            adjust_remaining(self.l1, Decimal("1"))

    def test_lot_cost_basis_is_immutable(self):
        self.l1.unit_cost = Decimal("99.00")
        with self.assertRaises(ValidationError):
            self.l1.save()

    # --------------------------------------------------
    # Reversal
    # --------------------------------------------------

    def test_reverse_restores_original_lot_exactly(self):
        result = consume(product=self.product, quantity=7)
        reverse(result.allocations)

        self.l1.refresh_from_db()
        self.l2.refresh_from_db()
        self.assertEqual(self.l1.remaining_quantity, Decimal("5"))
        self.assertEqual(self.l1.status, InventoryLot.STATUS_ACTIVE)
        self.assertIsNone(self.l1.depleted_at)
        self.assertEqual(self.l2.remaining_quantity, Decimal("5"))

        returns = CostConsumption.objects.filter(consumption_type=CostConsumption.TYPE_RETURN)
        self.assertEqual(sum(r.total_cost for r in returns), Decimal("74.00"))

    def test_over_reversal_is_rejected(self):
        result = consume(product=self.product, quantity=3)
        first = result.allocations[0]
        reverse([first], quantities={first.pk: Decimal("2")})

        with self.assertRaises(InsufficientLotQuantityError):
            reverse([first], quantities={first.pk: Decimal("2")})

    def test_conservation_holds_through_consume_and_reverse(self):
        result = consume(product=self.product, quantity=8)
        reverse(result.allocations[:1], quantities={result.allocations[0].pk: Decimal("1")})
        consume(product=self.product, quantity=1)

        check = check_conservation(self.product)
        self.assertTrue(check["balanced"], check)

    def test_valuation_matches_remaining_layers(self):
        consume(product=self.product, quantity=7)
        valuation = get_product_valuation(self.product)
        self.assertEqual(valuation["quantity"], "3.000")
        self.assertEqual(valuation["value"], "36.00")


class FifoConcurrencyTests(TestCase):
    """
    Two cashiers take 5 each from a lot of 6. The second one read the lot
    before the first one committed (stale version).
    """

    def setUp(self):
        self.product = Product.objects.create(sku="ACEITE-1L", name="Aceite 1 L")
        self.lot = create_lot(product=self.product, quantity=6, unit_cost="80.00")

    def _race(self, *, strict: bool):
        stale = list_available_lots(self.product)
        consume(product=self.product, quantity=5)
        fresh = list_available_lots(self.product)

        with mock.patch(
            "inventory.services.fifo.list_available_lots",
            side_effect=[stale, fresh],
        ) as patched:
            try:
                return consume(product=self.product, quantity=5, strict=strict)
            finally:
                self.assertEqual(patched.call_count, 2)

    def test_conflict_retries_then_allocates_partially(self):
        result = self._race(strict=False)

        self.assertEqual(result.allocated_quantity, Decimal("1"))
        self.assertEqual(result.shortfall, Decimal("4"))

        self.lot.refresh_from_db()
        self.assertEqual(self.lot.remaining_quantity, Decimal("0"))
        self.assertTrue(check_conservation(self.product)["balanced"])

    def test_conflict_retries_then_refuses_in_strict_mode(self):
        with self.assertRaises(InsufficientInventoryError):
            self._race(strict=True)

        self.lot.refresh_from_db()
        self.assertEqual(self.lot.remaining_quantity, Decimal("1"))

    def test_stale_version_is_detected(self):
        stale = InventoryLot.objects.get(pk=self.lot.pk)
        adjust_remaining(self.lot, Decimal("-1"), expected_version=self.lot.version)

        with self.assertRaises(ConcurrentModificationError):
            adjust_remaining(stale, Decimal("-1"), expected_version=stale.version)
