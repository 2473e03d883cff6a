"""
Procurement flow: BOM stock check, purchase requisition, purchase order
approval against the MD threshold, goods receipt, QC and stock posting.
"""
from decimal import Decimal

from django.test import TestCase

from application.services import (
    bom_service,
    procurement_service,
    receiving_service,
)
from domain.shared.exceptions import (
    AuthorizationException,
    BusinessRuleViolationException,
    StatusTransitionException,
    ValidationException,
)
from infrastructure.persistence.models import (
    ApprovalStep,
    AuditLog,
    Notification,
    PurchaseOrder,
    StockAlert,
    StockMovement,
    SystemSetting,
)
from tests.factories import TestDataFactory


class BOMToRequisitionTests(TestCase):

    def setUp(self):
        self.designer = TestDataFactory.create_user(role='design')
        self.supplier = TestDataFactory.create_supplier()
        self.resin = TestDataFactory.create_material(
            code='RES-01', stock='40', last_price='250', preferred_supplier=self.supplier
        )
        self.glass = TestDataFactory.create_material(code='GLS-01', stock='500', last_price='90')
        self.bom = TestDataFactory.create_bom(
            [(self.resin, '100'), (self.glass, '50')], user=self.designer
        )

    def test_submit_requires_items(self):
        empty = TestDataFactory.create_bom([], user=self.designer)
        with self.assertRaises(BusinessRuleViolationException):
            bom_service.submit_bom(empty, self.designer)

    def test_stock_check_records_shortfall_on_lines(self):
        bom_service.submit_bom(self.bom, self.designer)
        bom, result = bom_service.check_bom_stock(self.bom.pk, self.designer)

        self.assertEqual(bom.status, 'stock_checked')
        self.assertEqual(bom.items_available, 1)
        self.assertEqual(bom.items_short, 1)
        resin_line = bom.items.get(material=self.resin)
        self.assertEqual(resin_line.shortfall_quantity, Decimal('60'))
        self.assertTrue(AuditLog.objects.filter(action='stock_check', document_id=str(bom.pk)).exists())

        payload = bom_service.stock_check_payload(bom, result)
        self.assertTrue(payload['has_shortfall'])
        self.assertEqual(len(payload['pr_lines']), 1)
        self.assertEqual(payload['pr_lines'][0]['material_code'], 'RES-01')

    def test_generate_pr_for_shortfall_only(self):
        bom_service.submit_bom(self.bom, self.designer)
        bom_service.check_bom_stock(self.bom.pk, self.designer)

        requisition = bom_service.generate_purchase_requisition(self.bom.pk, self.designer, priority='high')

        self.assertTrue(requisition.number.startswith('PR-'))
        self.assertEqual(requisition.source_type, 'bom')
        self.assertEqual(requisition.status, 'pending_enquiry')
        self.assertEqual(requisition.priority, 'high')
        items = list(requisition.items.all())
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].material, self.resin)
        self.assertEqual(items[0].quantity, Decimal('60'))
        self.assertEqual(items[0].estimated_unit_price, Decimal('250'))
        self.assertEqual(items[0].suggested_supplier, self.supplier)

        self.bom.refresh_from_db()
        self.assertEqual(self.bom.status, 'pr_generated')
        self.assertTrue(Notification.objects.filter(
            notification_type='pr_created', document_id=str(requisition.pk)
        ).exists())

    def test_generate_pr_needs_stock_check(self):
        bom_service.submit_bom(self.bom, self.designer)
        with self.assertRaises(BusinessRuleViolationException):
            bom_service.generate_purchase_requisition(self.bom.pk, self.designer)

    def test_generate_pr_without_shortfall(self):
        self.resin.current_stock = Decimal('1000')
        self.resin.save()
        bom_service.submit_bom(self.bom, self.designer)
        bom_service.check_bom_stock(self.bom.pk, self.designer)
        with self.assertRaises(BusinessRuleViolationException):
            bom_service.generate_purchase_requisition(self.bom.pk, self.designer)

    def test_completed_bom_cannot_be_reopened(self):
        bom_service.submit_bom(self.bom, self.designer)
        bom_service.check_bom_stock(self.bom.pk, self.designer)
        bom_service.complete_bom(self.bom, self.designer)
        with self.assertRaises(StatusTransitionException):
            bom_service.cancel_bom(self.bom, self.designer)


class PurchaseOrderApprovalTests(TestCase):

    def setUp(self):
        self.buyer = TestDataFactory.create_user(role='purchase')
        self.md = TestDataFactory.create_user(role='md')
        self.supplier = TestDataFactory.create_supplier()
        self.material = TestDataFactory.create_material(code='CORE-10')

    def order(self, quantity, unit_price):
        return procurement_service.create_purchase_order(
            self.supplier,
            [{'material': self.material, 'quantity': Decimal(quantity), 'unit_price': Decimal(unit_price)}],
            user=self.buyer,
            gst_rate=Decimal('18'),
        )

    def test_numbering_and_totals(self):
        order = self.order('10', '100')
        self.assertRegex(order.number, r'^PO-\d{6}-0001$')
        self.assertEqual(order.subtotal, Decimal('1000.00'))
        self.assertEqual(order.gst_amount, Decimal('180.00'))
        self.assertEqual(order.total, Decimal('1180.00'))
        self.assertRegex(self.order('1', '1').number, r'^PO-\d{6}-0002$')

    def test_below_threshold_is_auto_approved(self):
        order = procurement_service.submit_order(self.order('10', '100'), self.buyer)
        self.assertEqual(order.status, 'approved')
        self.assertFalse(order.requires_md_approval)
        step = ApprovalStep.objects.get(purchase_order=order)
        self.assertEqual(step.decision, ApprovalStep.DECISION_AUTO)

    def test_at_threshold_waits_for_md(self):
        # 42372.88 + 18% GST is 50000.00
        order = procurement_service.submit_order(self.order('1', '42372.88'), self.buyer)
        self.assertEqual(order.total, Decimal('50000.00'))
        self.assertEqual(order.status, 'pending_md_approval')
        self.assertTrue(order.requires_md_approval)
        self.assertTrue(Notification.objects.filter(
            notification_type='approval_required', document_id=str(order.pk)
        ).exists())

    def test_threshold_comes_from_system_settings(self):
        SystemSetting.objects.create(key='md_approval_threshold', value={'value': '1000'})
        order = procurement_service.submit_order(self.order('10', '100'), self.buyer)
        self.assertEqual(order.status, 'pending_md_approval')

    def test_only_md_can_approve(self):
        order = procurement_service.submit_order(self.order('100', '1000'), self.buyer)
        with self.assertRaises(AuthorizationException):
            procurement_service.approve_order(order, self.buyer)

        procurement_service.approve_order(order, self.md, comments='Go ahead')
        order.refresh_from_db()
        self.assertEqual(order.status, 'approved')
        self.assertEqual(order.approved_by, self.md)
        self.assertTrue(Notification.objects.filter(
            notification_type='approved', for_user=self.buyer
        ).exists())

    def test_reject_needs_reason_and_can_be_reopened(self):
        order = procurement_service.submit_order(self.order('100', '1000'), self.buyer)
        with self.assertRaises(ValidationException):
            procurement_service.reject_order(order, self.md, '')

        order = procurement_service.reject_order(order, self.md, 'Price too high')
        self.assertEqual(order.status, 'rejected')
        procurement_service.reopen_order(order, self.buyer)
        self.assertEqual(order.status, 'draft')

    def test_decision_reads_current_status(self):
        order = procurement_service.submit_order(self.order('100', '1000'), self.buyer)
        stale = PurchaseOrder.objects.get(pk=order.pk)
        procurement_service.approve_order(order, self.md)

        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.reject_order(stale, self.md, 'Too late')
        self.assertEqual(ApprovalStep.objects.filter(purchase_order=order).count(), 1)

    def test_approved_order_is_placed(self):
        order = procurement_service.submit_order(self.order('10', '100'), self.buyer)
        procurement_service.mark_order_placed(order, self.buyer)
        order.refresh_from_db()
        self.assertEqual(order.status, 'ordered')
        self.assertIsNotNone(order.ordered_at)

        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.mark_order_placed(self.order('1', '1'), self.buyer)

    def test_submit_empty_order(self):
        order = TestDataFactory.create_purchase_order(self.supplier, [], user=self.buyer)
        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.submit_order(order, self.buyer)

    def test_order_from_requisition_moves_requisition(self):
        requisition = procurement_service.create_requisition(
            [{'material': self.material, 'quantity': Decimal('5'), 'estimated_unit_price': Decimal('20')}],
            user=self.buyer,
        )
        order = procurement_service.create_order_from_requisition(requisition, self.supplier, user=self.buyer)
        requisition.refresh_from_db()
        self.assertEqual(requisition.status, 'po_created')
        self.assertEqual(order.requisition, requisition)
        self.assertEqual(order.subtotal, Decimal('100.00'))


class EnquiryAndQuoteTests(TestCase):

    def setUp(self):
        self.buyer = TestDataFactory.create_user(role='purchase')
        self.cheap = TestDataFactory.create_supplier(code='CHEAP')
        self.dear = TestDataFactory.create_supplier(code='DEAR')
        self.material = TestDataFactory.create_material()
        self.requisition = procurement_service.create_requisition(
            [{'material': self.material, 'quantity': Decimal('10')}], user=self.buyer
        )
        self.line = self.requisition.items.get()

    def test_quote_selection_to_order(self):
        enquiry = procurement_service.create_enquiry(self.requisition, [self.cheap, self.dear], user=self.buyer)
        self.requisition.refresh_from_db()
        self.assertEqual(self.requisition.status, 'enquiry_in_progress')

        cheap_quote = procurement_service.record_quote(enquiry, self.cheap, {str(self.line.pk): Decimal('12')},
                                                       user=self.buyer)
        procurement_service.record_quote(enquiry, self.dear, {str(self.line.pk): Decimal('15')}, user=self.buyer)
        self.assertEqual(cheap_quote.total, Decimal('120.00'))

        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.create_order_from_quote(cheap_quote, user=self.buyer)

        procurement_service.select_quote(enquiry, cheap_quote, user=self.buyer)
        cheap_quote.refresh_from_db()
        order = procurement_service.create_order_from_quote(cheap_quote, user=self.buyer)

        self.assertEqual(order.supplier, self.cheap)
        self.assertEqual(order.items.get().unit_price, Decimal('12'))
        enquiry.refresh_from_db()
        self.assertEqual(enquiry.status, 'closed')

    def test_assign_and_cancel_requisition(self):
        colleague = TestDataFactory.create_user(role='purchase')
        procurement_service.assign_requisition(self.requisition, colleague, user=self.buyer)
        self.requisition.refresh_from_db()
        self.assertEqual(self.requisition.assigned_to, colleague)
        self.assertTrue(Notification.objects.filter(for_user=colleague,
                                                    document_id=str(self.requisition.pk)).exists())

        procurement_service.cancel_requisition(self.requisition, user=self.buyer)
        self.assertEqual(self.requisition.status, 'cancelled')
        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.create_enquiry(self.requisition, [self.cheap], user=self.buyer)

    def test_quote_for_foreign_line_is_rejected(self):
        enquiry = procurement_service.create_enquiry(self.requisition, [self.cheap], user=self.buyer)
        with self.assertRaises(ValidationException):
            procurement_service.record_quote(enquiry, self.cheap, {'not-a-line': Decimal('1')}, user=self.buyer)


class MaterialRequestTests(TestCase):

    def setUp(self):
        self.requester = TestDataFactory.create_user(role='supervisor')
        self.buyer = TestDataFactory.create_user(role='purchase')
        self.material = TestDataFactory.create_material(last_price='40')

    def test_request_to_requisition(self):
        request = procurement_service.create_material_request(
            [{'material': self.material, 'quantity': Decimal('8')}],
            user=self.requester, urgency='critical',
        )
        self.assertTrue(request.number.startswith('MR-'))

        with self.assertRaises(AuthorizationException):
            procurement_service.approve_material_request(request, self.requester)

        procurement_service.approve_material_request(request, self.buyer)
        requisition = procurement_service.convert_material_request(request, self.buyer)

        self.assertEqual(requisition.source_type, 'material_request')
        self.assertEqual(requisition.priority, 'urgent')
        self.assertEqual(requisition.items.get().quantity, Decimal('8'))
        request.refresh_from_db()
        self.assertEqual(request.status, 'converted_to_pr')

    def test_pending_request_cannot_be_converted(self):
        request = procurement_service.create_material_request(
            [{'material': self.material, 'quantity': Decimal('1')}], user=self.requester
        )
        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.convert_material_request(request, self.buyer)

    def test_unknown_urgency(self):
        with self.assertRaises(ValidationException):
            procurement_service.create_material_request(
                [{'material': self.material, 'quantity': Decimal('1')}], user=self.requester, urgency='asap'
            )


class GoodsReceiptTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_user(role='store')
        self.inspector = TestDataFactory.create_user(role='quality')
        self.supplier = TestDataFactory.create_supplier()
        self.material = TestDataFactory.create_material(code='FAB-01', stock='10', min_stock='100')
        self.order = TestDataFactory.create_purchase_order(
            self.supplier, [(self.material, '100', '50')], status='approved'
        )
        self.line = self.order.items.get()

    def receive(self, quantity, **extra):
        return receiving_service.create_goods_receipt(
            self.order.pk,
            [dict(purchase_order_item=self.line.pk, received_quantity=Decimal(quantity), **extra)],
            user=self.store,
        )

    def test_partial_receipt_updates_order(self):
        receipt = self.receive('40')
        self.order.refresh_from_db()
        self.line.refresh_from_db()
        self.assertTrue(receipt.number.startswith('GRN-'))
        self.assertEqual(self.order.status, 'partially_received')
        self.assertEqual(self.line.received_quantity, Decimal('40'))
        # stock only moves after QC
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('10'))

    def test_received_order_cannot_be_cancelled(self):
        self.receive('40')
        self.order.refresh_from_db()
        with self.assertRaises(BusinessRuleViolationException):
            procurement_service.cancel_order(self.order, self.store, 'Supplier delay')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'partially_received')

    def test_over_receipt_is_rejected(self):
        with self.assertRaises(ValidationException):
            self.receive('101')

    def test_draft_order_is_not_receivable(self):
        draft = TestDataFactory.create_purchase_order(self.supplier, [(self.material, '1', '1')])
        with self.assertRaises(BusinessRuleViolationException):
            receiving_service.create_goods_receipt(
                draft.pk, [{'purchase_order_item': draft.items.get().pk, 'received_quantity': Decimal('1')}]
            )

    def test_inspect_and_post_to_stock(self):
        receipt = self.receive('100')
        receiving_service.send_to_quality(receipt, self.store)
        item = receipt.items.get()

        with self.assertRaises(AuthorizationException):
            receiving_service.inspect_goods_receipt(receipt.pk, {}, self.store)
        with self.assertRaises(ValidationException):
            receiving_service.inspect_goods_receipt(receipt.pk, {}, self.inspector)

        receiving_service.inspect_goods_receipt(receipt.pk, {
            item.pk: {'accepted_quantity': '95', 'rejected_quantity': '5', 'rejection_reason': 'Delaminated'},
        }, self.inspector)
        receipt.refresh_from_db()
        item.refresh_from_db()
        self.assertEqual(receipt.status, 'verified')
        self.assertEqual(item.quality_status, 'partial')

        receiving_service.post_to_stock(receipt.pk, self.store)
        receipt.refresh_from_db()
        self.material.refresh_from_db()
        self.assertEqual(receipt.status, 'stock_updated')
        self.assertEqual(self.material.current_stock, Decimal('105'))
        self.assertEqual(self.material.last_price, Decimal('50'))
        movement = StockMovement.objects.get(material=self.material, movement_type='inward')
        self.assertEqual(movement.quantity, Decimal('95'))
        self.assertEqual(movement.balance_after, Decimal('105'))
        self.assertEqual(movement.reference, receipt.number)

        receiving_service.complete_receipt(receipt, self.store)
        self.assertEqual(receipt.status, 'completed')

    def test_posting_resolves_stock_alert(self):
        from application.services import inventory_service
        inventory_service.evaluate_stock_alert(self.material)
        self.assertTrue(StockAlert.objects.filter(material=self.material, status='active').exists())

        receipt = self.receive('100')
        item = receipt.items.get()
        receiving_service.inspect_goods_receipt(
            receipt.pk, {item.pk: {'accepted_quantity': '100', 'rejected_quantity': '0'}}, self.inspector
        )
        receiving_service.post_to_stock(receipt.pk, self.store)

        alert = StockAlert.objects.get(material=self.material)
        self.assertEqual(alert.status, 'resolved')
        self.assertEqual(alert.purchase_order, self.order)

    def test_fully_rejected_receipt(self):
        receipt = self.receive('100')
        item = receipt.items.get()
        receiving_service.inspect_goods_receipt(
            receipt.pk, {item.pk: {'accepted_quantity': '0', 'rejected_quantity': '100'}}, self.inspector
        )
        receipt.refresh_from_db()
        self.assertEqual(receipt.status, 'rejected')
        with self.assertRaises(BusinessRuleViolationException):
            receiving_service.post_to_stock(receipt.pk, self.store)

    def test_batch_tracked_material_gets_a_batch(self):
        self.material.is_batch_tracked = True
        self.material.save()
        receipt = self.receive('20', batch_number='LOT-7')
        item = receipt.items.get()
        receiving_service.inspect_goods_receipt(
            receipt.pk, {item.pk: {'accepted_quantity': '20', 'rejected_quantity': '0'}}, self.inspector
        )
        receiving_service.post_to_stock(receipt.pk, self.store)
        batch = self.material.batches.get()
        self.assertEqual(batch.batch_number, 'LOT-7')
        self.assertEqual(batch.remaining_quantity, Decimal('20'))


class InvoiceTests(TestCase):

    def setUp(self):
        self.buyer = TestDataFactory.create_user(role='purchase')
        supplier = TestDataFactory.create_supplier()
        material = TestDataFactory.create_material()
        self.order = TestDataFactory.create_purchase_order(supplier, [(material, '10', '100')], status='ordered')

    def test_invoice_lifecycle(self):
        from datetime import date
        invoice = procurement_service.create_invoice(
            self.order, 'INV-991', date(2025, 4, 1), Decimal('1000'), Decimal('180'), user=self.buyer
        )
        self.assertEqual(invoice.total, Decimal('1180'))
        self.assertEqual(invoice.amount_mismatch, Decimal('0.00'))

        procurement_service.move_invoice(invoice, 'verify', user=self.buyer)
        procurement_service.move_invoice(invoice, 'request_payment', user=self.buyer)
        procurement_service.move_invoice(invoice, 'mark_paid', user=self.buyer, reference='UTR123')
        self.assertEqual(invoice.status, 'paid')
        self.assertEqual(invoice.paid_amount, Decimal('1180.00'))

    def test_unknown_action(self):
        from datetime import date
        invoice = procurement_service.create_invoice(
            self.order, 'INV-992', date(2025, 4, 1), Decimal('1000'), Decimal('180')
        )
        with self.assertRaises(ValidationException):
            procurement_service.move_invoice(invoice, 'shred')
