"""
Tests for the pure business rules: stock check, PO totals and approval,
quality verdicts, stock alerts, FIFO allocation and document numbers.
"""
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from domain.inventory import rules as inventory_rules
from domain.procurement import rules as procurement_rules
from domain.shared.exceptions import (
    InsufficientStockException,
    StatusTransitionException,
    ValidationException,
    check_transition,
)
from domain.shared.value_objects import (
    AlertLevel,
    DocumentNumber,
    ExpiryStatus,
    Priority,
    QualityStatus,
    StockStatus,
    Urgency,
    UserRole,
    has_permission,
)


def bom_line(code, required, stock, last_price=None, average_price=None):
    return procurement_rules.BOMLine(
        material_id=code,
        material_code=code,
        material_name=code.title(),
        required_quantity=Decimal(required),
        current_stock=Decimal(stock),
        unit='kg',
        last_price=Decimal(last_price) if last_price else None,
        average_price=Decimal(average_price) if average_price else None,
    )


class StockCheckTests(SimpleTestCase):

    def test_shortfall_only_for_lines_beyond_stock(self):
        result = procurement_rules.check_stock([
            bom_line('resin', '100', '40', last_price='250'),
            bom_line('glass', '50', '80'),
        ])
        self.assertEqual(result.items_available, 1)
        self.assertEqual(result.items_short, 1)
        self.assertTrue(result.has_shortfall)

        resin, glass = result.lines
        self.assertEqual(resin.shortfall, Decimal('60'))
        self.assertEqual(resin.available_quantity, Decimal('40'))
        self.assertEqual(glass.shortfall, Decimal('0'))
        # available is capped at what the line needs
        self.assertEqual(glass.available_quantity, Decimal('50'))

    def test_pr_lines_priced_from_last_then_average(self):
        result = procurement_rules.check_stock([
            bom_line('resin', '10', '0', last_price='250', average_price='200'),
            bom_line('core', '4', '1', average_price='99.5'),
            bom_line('peel', '3', '0'),
        ])
        lines = {ln.material_code: ln for ln in result.pr_lines()}
        self.assertEqual(lines['resin'].estimated_unit_price, Decimal('250'))
        self.assertEqual(lines['resin'].estimated_total, Decimal('2500.00'))
        self.assertEqual(lines['core'].quantity, Decimal('3'))
        self.assertEqual(lines['core'].estimated_total, Decimal('298.50'))
        self.assertEqual(lines['peel'].estimated_unit_price, Decimal('0'))

    def test_negative_stock_counts_as_zero(self):
        result = procurement_rules.check_stock([bom_line('resin', '5', '-2')])
        self.assertEqual(result.lines[0].shortfall, Decimal('5'))
        self.assertEqual(result.lines[0].available_quantity, Decimal('0'))

    def test_non_positive_requirement_is_rejected(self):
        with self.assertRaises(ValidationException):
            procurement_rules.check_stock([bom_line('resin', '0', '10')])

    def test_no_shortfall_means_no_pr_lines(self):
        result = procurement_rules.check_stock([bom_line('resin', '5', '5')])
        self.assertFalse(result.has_shortfall)
        self.assertEqual(result.pr_lines(), [])


class PurchaseOrderRuleTests(SimpleTestCase):

    def test_totals_apply_gst_on_subtotal(self):
        totals = procurement_rules.order_totals(
            [(Decimal('10'), Decimal('1000')), (Decimal('2.5'), Decimal('99.99'))],
            gst_rate=Decimal('18'),
        )
        self.assertEqual(totals.subtotal, Decimal('10249.98'))
        self.assertEqual(totals.gst_amount, Decimal('1845.00'))
        self.assertEqual(totals.total, Decimal('12094.98'))

    def test_threshold_is_inclusive(self):
        self.assertTrue(procurement_rules.requires_md_approval(Decimal('50000'), Decimal('50000')))
        self.assertFalse(procurement_rules.requires_md_approval(Decimal('49999.99'), Decimal('50000')))

    def test_receipt_quantity_cannot_exceed_outstanding(self):
        self.assertEqual(
            procurement_rules.validate_receipt_quantity(Decimal('10'), Decimal('4'), '6'),
            Decimal('6'),
        )
        with self.assertRaises(ValidationException):
            procurement_rules.validate_receipt_quantity(Decimal('10'), Decimal('4'), '7')
        with self.assertRaises(ValidationException):
            procurement_rules.validate_receipt_quantity(Decimal('10'), Decimal('0'), '0')

    def test_receipt_status(self):
        self.assertIsNone(procurement_rules.receipt_status([(10, 0), (5, 0)]))
        self.assertEqual(procurement_rules.receipt_status([(10, 10), (5, 2)]), 'partially_received')
        self.assertEqual(procurement_rules.receipt_status([(10, 10), (5, 5)]), 'received')

    def test_quality_status(self):
        self.assertEqual(procurement_rules.quality_status(10, 10, 0), QualityStatus.PASSED)
        self.assertEqual(procurement_rules.quality_status(10, 0, 10), QualityStatus.FAILED)
        self.assertEqual(procurement_rules.quality_status(10, 7, 3), QualityStatus.PARTIAL)
        with self.assertRaises(ValidationException):
            procurement_rules.quality_status(10, 7, 2)

    def test_running_average_price(self):
        self.assertEqual(
            procurement_rules.running_average_price(Decimal('10'), Decimal('100'), Decimal('10'), Decimal('200')),
            Decimal('150.00'),
        )
        self.assertEqual(
            procurement_rules.running_average_price(Decimal('0'), None, Decimal('5'), Decimal('80')),
            Decimal('80.00'),
        )


class StockLevelRuleTests(SimpleTestCase):

    def test_alert_levels(self):
        self.assertEqual(inventory_rules.alert_level(0, 100), AlertLevel.OUT_OF_STOCK)
        self.assertEqual(inventory_rules.alert_level(10, 100), AlertLevel.CRITICAL)
        self.assertEqual(inventory_rules.alert_level(25, 100), AlertLevel.WARNING)
        self.assertEqual(inventory_rules.alert_level(50, 100), AlertLevel.INFO)
        self.assertIsNone(inventory_rules.alert_level(51, 100))
        self.assertIsNone(inventory_rules.alert_level(5, 0))

    def test_stock_status(self):
        self.assertEqual(inventory_rules.stock_status(0, 10), StockStatus.OUT_OF_STOCK)
        self.assertEqual(inventory_rules.stock_status(10, 10), StockStatus.LOW)
        self.assertEqual(inventory_rules.stock_status(11, 10), StockStatus.OK)

    def test_suggested_reorder_quantity(self):
        self.assertEqual(inventory_rules.suggested_reorder_quantity(20, 100), Decimal('180'))
        self.assertEqual(inventory_rules.suggested_reorder_quantity(150, 100), Decimal('100'))

    def test_reorder_suggestions_are_sorted_by_urgency(self):
        candidates = [
            inventory_rules.ReorderCandidate('a', 'A', 'Alpha', Decimal('110'), Decimal('100')),
            inventory_rules.ReorderCandidate('b', 'B', 'Beta', Decimal('0'), Decimal('50'),
                                             issued_last_window=Decimal('60'), unit_price=Decimal('10')),
            inventory_rules.ReorderCandidate('c', 'C', 'Gamma', Decimal('20'), Decimal('40')),
            inventory_rules.ReorderCandidate('d', 'D', 'Delta', Decimal('500'), Decimal('40')),
        ]
        suggestions = inventory_rules.suggest_reorders(candidates, lead_time_days=7)
        self.assertEqual([s.material_code for s in suggestions], ['B', 'C'])
        beta = suggestions[0]
        self.assertEqual(beta.priority, Priority.URGENT)
        # 2/day over 7 days plus the minimum
        self.assertEqual(beta.suggested_quantity, Decimal('64'))
        self.assertEqual(beta.estimated_cost, Decimal('640'))
        self.assertEqual(suggestions[1].priority, Priority.HIGH)

    def test_requisition_availability(self):
        self.assertEqual(inventory_rules.requisition_availability([(5, 5), (2, 3)]), 'stock_available')
        self.assertEqual(inventory_rules.requisition_availability([(5, 1), (2, 3)]), 'stock_partial')
        self.assertEqual(inventory_rules.requisition_availability([(5, 0), (2, 0)]), 'stock_unavailable')
        with self.assertRaises(ValidationException):
            inventory_rules.requisition_availability([])


class FifoAllocationTests(SimpleTestCase):
    today = date(2025, 6, 1)

    def slot(self, number, remaining, received, expiry=None, qc_status='passed'):
        return inventory_rules.BatchSlot(number, number, Decimal(remaining), received, expiry, qc_status)

    def test_oldest_batch_first(self):
        allocations = inventory_rules.allocate_fifo([
            self.slot('B2', '10', date(2025, 3, 1)),
            self.slot('B1', '4', date(2025, 1, 1)),
        ], Decimal('7'), self.today)
        self.assertEqual([(a.batch_number, a.quantity) for a in allocations],
                         [('B1', Decimal('4')), ('B2', Decimal('3'))])

    def test_expired_and_quarantined_batches_are_skipped(self):
        allocations = inventory_rules.allocate_fifo([
            self.slot('OLD', '10', date(2024, 1, 1), expiry=date(2025, 5, 1)),
            self.slot('HOLD', '10', date(2024, 6, 1), qc_status='quarantined'),
            self.slot('GOOD', '10', date(2025, 2, 1)),
        ], Decimal('5'), self.today)
        self.assertEqual([a.batch_number for a in allocations], ['GOOD'])

    def test_not_enough_usable_stock(self):
        with self.assertRaises(InsufficientStockException):
            inventory_rules.allocate_fifo([self.slot('B1', '2', date(2025, 1, 1))], Decimal('3'), self.today)

    def test_expiry_status(self):
        self.assertEqual(inventory_rules.expiry_status(None, self.today), ExpiryStatus.OK)
        self.assertEqual(inventory_rules.expiry_status(date(2025, 5, 31), self.today), ExpiryStatus.EXPIRED)
        self.assertEqual(inventory_rules.expiry_status(date(2025, 6, 20), self.today), ExpiryStatus.EXPIRING_SOON)
        self.assertEqual(inventory_rules.expiry_status(date(2025, 9, 1), self.today), ExpiryStatus.OK)


class SharedValueObjectTests(SimpleTestCase):

    def test_document_numbers(self):
        number = DocumentNumber('PO', date(2025, 3, 7), 12)
        self.assertEqual(str(number), 'PO-250307-0012')
        self.assertEqual(str(number.next()), 'PO-250307-0013')
        challan = DocumentNumber('DC', date(2025, 3, 7), 5, long_date=True, width=3)
        self.assertEqual(str(challan), 'DC-20250307-005')
        self.assertEqual(DocumentNumber.parse_sequence('GRN-250307-0042'), 42)
        self.assertIsNone(DocumentNumber.parse_sequence('garbage'))

    def test_invalid_prefix(self):
        with self.assertRaises(ValueError):
            DocumentNumber('po', date(2025, 1, 1), 1)

    def test_role_permissions(self):
        self.assertTrue(has_permission(UserRole.MD.default_permissions, 'purchase:approve'))
        self.assertTrue(has_permission(UserRole.PURCHASE.default_permissions, 'purchase:write'))
        self.assertFalse(has_permission(UserRole.PURCHASE.default_permissions, 'purchase:approve'))
        self.assertFalse(has_permission(UserRole.VIEWER.default_permissions, 'inventory:read'))
        self.assertFalse(has_permission(None, 'reports:read'))

    def test_urgency_maps_to_priority(self):
        self.assertEqual(Urgency.CRITICAL.to_priority(), Priority.URGENT)
        self.assertEqual(Urgency.HIGH.to_priority(), Priority.HIGH)
        self.assertEqual(Urgency.LOW.to_priority(), Priority.NORMAL)

    def test_check_transition(self):
        table = {'draft': ['submitted']}
        check_transition('BOM', table, 'draft', 'submitted')
        with self.assertRaises(StatusTransitionException):
            check_transition('BOM', table, 'draft', 'completed')
