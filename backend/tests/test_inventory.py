"""
Inventory: stock adjustment, FIFO issue from batches, supervisor
requisitions, stock alerts, returns from jobs and reservations.
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from application.services import inventory_service, requisition_service
from application.tasks import inventory_tasks
from domain.shared.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InsufficientStockException,
    ValidationException,
)
from infrastructure.persistence.models import (
    AuditLog,
    MaterialRequest,
    Notification,
    StockAlert,
    StockBatch,
    StockMovement,
)
from tests.factories import TestDataFactory


class StockAdjustmentTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_user(role='store')
        self.material = TestDataFactory.create_material(stock='50', min_stock='20')

    def test_adjustment_records_difference_and_movement(self):
        adjustment = inventory_service.adjust_stock(self.material.pk, '42.5', reason='damage',
                                                    notes='Water damage', user=self.store)

        self.assertTrue(adjustment.number.startswith('ADJ-'))
        self.assertEqual(adjustment.previous_quantity, Decimal('50'))
        self.assertEqual(adjustment.difference, Decimal('-7.5'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('42.5'))

        movement = StockMovement.objects.get(material=self.material)
        self.assertEqual(movement.movement_type, 'adjustment')
        self.assertEqual(movement.quantity, Decimal('-7.5'))
        self.assertEqual(movement.balance_after, Decimal('42.5'))
        self.assertEqual(movement.reference, adjustment.number)
        self.assertTrue(AuditLog.objects.filter(action='adjust', document_id=str(adjustment.pk)).exists())

    def test_negative_count_is_rejected(self):
        with self.assertRaises(ValidationException):
            inventory_service.adjust_stock(self.material.pk, '-1', user=self.store)

    def test_batch_tracked_surplus_becomes_a_batch(self):
        material = TestDataFactory.create_material(stock='0', is_batch_tracked=True)
        adjustment = inventory_service.adjust_stock(material.pk, '12', reason='opening', user=self.store)

        batch = StockBatch.objects.get(material=material)
        self.assertEqual(batch.batch_number, adjustment.number)
        self.assertEqual(batch.remaining_quantity, Decimal('12'))
        self.assertEqual(StockMovement.objects.get(material=material).batch, batch)

    def test_batch_tracked_shortfall_writes_off_expired_first(self):
        today = timezone.localdate()
        material = TestDataFactory.create_material(stock='10', is_batch_tracked=True)
        expired = TestDataFactory.create_batch(material, 'B-EXP', '4', today - timedelta(days=60),
                                               expiry_date=today - timedelta(days=1))
        good = TestDataFactory.create_batch(material, 'B-OK', '6', today - timedelta(days=90))

        inventory_service.adjust_stock(material.pk, '5', reason='expiry', user=self.store)

        expired.refresh_from_db()
        good.refresh_from_db()
        self.assertEqual(expired.remaining_quantity, Decimal('0'))
        self.assertEqual(good.remaining_quantity, Decimal('5'))

    def test_adjusting_to_zero_raises_alert(self):
        inventory_service.adjust_stock(self.material.pk, '0', user=self.store)
        alert = StockAlert.objects.get(material=self.material)
        self.assertEqual(alert.level, 'out_of_stock')
        self.assertEqual(alert.suggested_reorder_quantity, Decimal('40'))
        notification = Notification.objects.get(notification_type='stock_alert')
        self.assertEqual(notification.priority, 'urgent')
        self.assertEqual(notification.for_roles, ['store', 'purchase'])


class IssueFromStockTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_user(role='store')

    def test_untracked_material(self):
        material = TestDataFactory.create_material(stock='10')
        locked = inventory_service.lock_material(material.pk)
        taken = inventory_service.issue_from_stock(locked, '4', user=self.store, reference='ISS-1')
        self.assertEqual(taken, [(None, Decimal('4'))])
        material.refresh_from_db()
        self.assertEqual(material.current_stock, Decimal('6'))

    def test_unknown_material(self):
        with self.assertRaises(EntityNotFoundException):
            inventory_service.lock_material('00000000-0000-0000-0000-000000000000')

    def test_never_below_zero(self):
        material = TestDataFactory.create_material(stock='3')
        locked = inventory_service.lock_material(material.pk)
        with self.assertRaises(InsufficientStockException):
            inventory_service.issue_from_stock(locked, '4', user=self.store)

    def test_batches_are_consumed_oldest_first(self):
        today = timezone.localdate()
        material = TestDataFactory.create_material(stock='15', is_batch_tracked=True)
        newer = TestDataFactory.create_batch(material, 'B-NEW', '10', today - timedelta(days=2))
        older = TestDataFactory.create_batch(material, 'B-OLD', '5', today - timedelta(days=20))

        locked = inventory_service.lock_material(material.pk)
        taken = inventory_service.issue_from_stock(locked, '8', user=self.store, reference='ISS-2')

        self.assertEqual([(b.batch_number, q) for b, q in taken], [('B-OLD', Decimal('5')), ('B-NEW', Decimal('3'))])
        older.refresh_from_db()
        newer.refresh_from_db()
        self.assertEqual(older.remaining_quantity, Decimal('0'))
        self.assertEqual(newer.remaining_quantity, Decimal('7'))
        self.assertEqual(StockMovement.objects.filter(material=material, movement_type='issue').count(), 2)

    def test_quarantined_batch_cannot_cover_issue(self):
        today = timezone.localdate()
        material = TestDataFactory.create_material(stock='10', is_batch_tracked=True)
        TestDataFactory.create_batch(material, 'B-1', '10', today, qc_status='quarantined')
        locked = inventory_service.lock_material(material.pk)
        with self.assertRaises(InsufficientStockException):
            inventory_service.issue_from_stock(locked, '1', user=self.store)


class MaterialRequisitionTests(TestCase):

    def setUp(self):
        self.supervisor = TestDataFactory.create_user(role='supervisor')
        self.store = TestDataFactory.create_user(role='store')
        self.resin = TestDataFactory.create_material(code='RES', stock='30')
        self.foam = TestDataFactory.create_material(code='FOAM', stock='0')

    def requisition(self):
        return requisition_service.create_requisition(
            [
                {'material': self.resin, 'requested_quantity': Decimal('50')},
                {'material': self.foam, 'requested_quantity': Decimal('4')},
            ],
            user=self.supervisor, project='Radome', urgency='high',
        )

    def test_check_approve_issue(self):
        requisition = self.requisition()
        self.assertTrue(requisition.number.startswith('MRQ-'))

        requisition = requisition_service.check_stock(requisition.pk, self.store)
        self.assertEqual(requisition.status, 'stock_partial')

        requisition_service.approve_for_issue(requisition, self.store, note='Issue what we have')
        material_issue = requisition_service.issue(requisition.pk, self.store)

        self.assertTrue(material_issue.number.startswith('ISS-'))
        self.assertEqual(material_issue.issued_to, self.supervisor)
        line = material_issue.items.get()
        self.assertEqual(line.material, self.resin)
        self.assertEqual(line.quantity, Decimal('30'))

        self.resin.refresh_from_db()
        self.assertEqual(self.resin.current_stock, Decimal('0'))
        requisition.refresh_from_db()
        self.assertEqual(requisition.status, 'issued')
        self.assertEqual([step['action'] for step in requisition.workflow_log],
                         ['created', 'stock_checked', 'approved_for_issue', 'issued'])

    def test_shortfall_goes_to_purchase(self):
        requisition = self.requisition()
        requisition_service.check_stock(requisition.pk, self.store)

        request = requisition_service.send_to_purchase(requisition.pk, self.store)

        self.assertIsInstance(request, MaterialRequest)
        self.assertEqual(request.source_requisition_id, requisition.pk)
        self.assertEqual(request.urgency, 'high')
        quantities = {item.material.code: item.quantity for item in request.items.all()}
        self.assertEqual(quantities, {'RES': Decimal('20'), 'FOAM': Decimal('4')})
        requisition.refresh_from_db()
        self.assertEqual(requisition.status, 'sent_to_purchase')

    def test_nothing_in_stock_cannot_be_approved(self):
        self.resin.current_stock = Decimal('0')
        self.resin.save()
        requisition = requisition_service.check_stock(self.requisition().pk, self.store)
        self.assertEqual(requisition.status, 'stock_unavailable')
        with self.assertRaises(BusinessRuleViolationException):
            requisition_service.approve_for_issue(requisition, self.store)

    def test_expired_batch_limits_what_can_be_issued(self):
        today = timezone.localdate()
        core = TestDataFactory.create_material(code='CORE', stock='10', is_batch_tracked=True)
        TestDataFactory.create_batch(core, 'C-OLD', '5', today - timedelta(days=200),
                                     expiry_date=today - timedelta(days=3))
        TestDataFactory.create_batch(core, 'C-NEW', '5', today - timedelta(days=5))
        requisition = requisition_service.create_requisition(
            [{'material': core, 'requested_quantity': Decimal('8')}], user=self.supervisor,
        )

        requisition = requisition_service.check_stock(requisition.pk, self.store)
        self.assertEqual(requisition.status, 'stock_partial')
        self.assertEqual(requisition.items.get().available_quantity, Decimal('5'))

        requisition_service.approve_for_issue(requisition, self.store)
        material_issue = requisition_service.issue(requisition.pk, self.store)

        line = material_issue.items.get()
        self.assertEqual(line.batch.batch_number, 'C-NEW')
        self.assertEqual(line.quantity, Decimal('5'))
        core.refresh_from_db()
        self.assertEqual(core.current_stock, Decimal('5'))

    def test_adjusted_stock_of_batch_tracked_material_can_be_issued(self):
        core = TestDataFactory.create_material(code='CORE', stock='0', is_batch_tracked=True)
        inventory_service.adjust_stock(core.pk, '10', reason='opening', user=self.store)
        requisition = requisition_service.create_requisition(
            [{'material': core, 'requested_quantity': Decimal('8')}], user=self.supervisor,
        )

        requisition = requisition_service.check_stock(requisition.pk, self.store)
        self.assertEqual(requisition.status, 'stock_available')
        requisition_service.approve_for_issue(requisition, self.store)
        material_issue = requisition_service.issue(requisition.pk, self.store)

        self.assertEqual(material_issue.items.get().quantity, Decimal('8'))
        core.refresh_from_db()
        self.assertEqual(core.current_stock, Decimal('2'))

    def test_stock_outside_batches_is_not_issued(self):
        core = TestDataFactory.create_material(code='CORE', stock='10', is_batch_tracked=True)
        TestDataFactory.create_batch(core, 'C-1', '4', timezone.localdate() - timedelta(days=2))
        requisition = requisition_service.create_requisition(
            [{'material': core, 'requested_quantity': Decimal('6')}], user=self.supervisor,
        )

        requisition = requisition_service.check_stock(requisition.pk, self.store)
        self.assertEqual(requisition.status, 'stock_partial')
        requisition_service.approve_for_issue(requisition, self.store)
        material_issue = requisition_service.issue(requisition.pk, self.store)

        self.assertEqual(material_issue.items.get().quantity, Decimal('4'))
        core.refresh_from_db()
        self.assertEqual(core.current_stock, Decimal('6'))

    def test_reject_needs_reason(self):
        requisition = self.requisition()
        with self.assertRaises(ValidationException):
            requisition_service.reject(requisition, self.store, '')
        requisition_service.reject(requisition, self.store, 'Wrong project code')
        self.assertEqual(requisition.status, 'rejected')
        self.assertEqual(requisition.rejection_reason, 'Wrong project code')


class StockAlertTests(TestCase):

    def setUp(self):
        self.material = TestDataFactory.create_material(stock='4', min_stock='100', last_price='10')

    def test_alert_is_updated_not_duplicated(self):
        alert = inventory_service.evaluate_stock_alert(self.material)
        self.assertEqual(alert.level, 'critical')

        self.material.current_stock = Decimal('20')
        self.material.save()
        again = inventory_service.evaluate_stock_alert(self.material)

        self.assertEqual(again.pk, alert.pk)
        self.assertEqual(again.level, 'warning')
        self.assertEqual(StockAlert.objects.filter(material=self.material).count(), 1)

    def test_alert_stays_open_until_above_minimum(self):
        inventory_service.evaluate_stock_alert(self.material)
        self.material.current_stock = Decimal('100')
        self.material.save()
        self.assertIsNotNone(inventory_service.evaluate_stock_alert(self.material))

        self.material.current_stock = Decimal('101')
        self.material.save()
        self.assertIsNone(inventory_service.evaluate_stock_alert(self.material))
        self.assertEqual(StockAlert.objects.get(material=self.material).status, 'resolved')

    def test_acknowledge_only_active(self):
        store = TestDataFactory.create_user(role='store')
        alert = inventory_service.evaluate_stock_alert(self.material)
        alert.acknowledge(store)
        self.assertEqual(alert.status, 'acknowledged')
        self.assertEqual(alert.acknowledged_by, store)
        with self.assertRaises(BusinessRuleViolationException):
            alert.acknowledge(store)

    def test_snoozed_alerts_come_back(self):
        alert = inventory_service.evaluate_stock_alert(self.material)
        alert.snooze(2)
        self.assertEqual(inventory_service.reactivate_snoozed_alerts(), 0)

        later = timezone.now() + timedelta(hours=3)
        self.assertEqual(inventory_service.reactivate_snoozed_alerts(now=later), 1)
        alert.refresh_from_db()
        self.assertEqual(alert.status, 'active')

    def test_scan_task(self):
        TestDataFactory.create_material(stock='500', min_stock='100')
        result = inventory_tasks.scan_stock_alerts()
        self.assertEqual(result, {'raised': 1, 'resolved': 0})
        self.assertEqual(inventory_tasks.scan_stock_alerts(), {'raised': 0, 'resolved': 0})

    def test_batch_expiry_scan(self):
        today = timezone.localdate()
        TestDataFactory.create_batch(self.material, 'OLD', '2', today - timedelta(days=90),
                                     expiry_date=today - timedelta(days=1))
        TestDataFactory.create_batch(self.material, 'SOON', '2', today - timedelta(days=10),
                                     expiry_date=today + timedelta(days=5))
        TestDataFactory.create_batch(self.material, 'FRESH', '2', today, expiry_date=today + timedelta(days=200))

        self.assertEqual(inventory_tasks.scan_batch_expiry(), {'expiring': 1, 'expired': 1})
        notification = Notification.objects.get(title__startswith='2 batches expiring')
        self.assertEqual(notification.priority, 'high')

    def test_reorder_suggestions(self):
        suggestions = inventory_service.reorder_suggestions(lead_time_days=7)
        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0].material_code, self.material.code)
        self.assertEqual(suggestions[0].suggested_quantity, Decimal('96'))

    def test_reorder_digest_emails_purchase(self):
        from django.core import mail
        TestDataFactory.create_user(role='purchase', email='buyer@test.com')
        result = inventory_tasks.send_reorder_digest()
        self.assertEqual(result['suggestions'], 1)
        self.assertEqual(result['emailed'], 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.material.code, mail.outbox[0].body)

    def test_export_stock_report(self):
        filename, content = inventory_service.export_stock_report()
        self.assertTrue(filename.endswith('.xlsx'))
        # xlsx files are zip archives
        self.assertEqual(content[:2], b'PK')


class MaterialReturnTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_user(role='store')
        self.resin = TestDataFactory.create_material(code='RES', stock='10', min_stock='5')

    def test_good_return_is_restocked(self):
        material_return = inventory_service.return_to_stock(
            self.resin.pk, '3', 'JC-2026-001', user=self.store, remarks='Leftover'
        )

        self.assertTrue(material_return.number.startswith('RET-'))
        self.assertEqual(material_return.restocked_quantity, Decimal('3'))
        self.resin.refresh_from_db()
        self.assertEqual(self.resin.current_stock, Decimal('13'))
        movement = StockMovement.objects.get(material=self.resin)
        self.assertEqual(movement.movement_type, 'return')
        self.assertEqual(movement.quantity, Decimal('3'))
        self.assertEqual(movement.reference, material_return.number)
        self.assertEqual(movement.project, 'JC-2026-001')
        self.assertTrue(AuditLog.objects.filter(action='return', document_id=str(material_return.pk)).exists())

    def test_damaged_return_is_logged_only(self):
        material_return = inventory_service.return_to_stock(
            self.resin.pk, '2', 'JC-2026-002', condition='damaged', user=self.store
        )

        self.assertEqual(material_return.restocked_quantity, Decimal('0'))
        self.resin.refresh_from_db()
        self.assertEqual(self.resin.current_stock, Decimal('10'))
        movement = StockMovement.objects.get(material=self.resin)
        self.assertEqual(movement.quantity, Decimal('0'))
        self.assertEqual(movement.balance_after, Decimal('10'))

    def test_return_needs_job_and_quantity(self):
        with self.assertRaises(ValidationException):
            inventory_service.return_to_stock(self.resin.pk, '1', '', user=self.store)
        with self.assertRaises(ValidationException):
            inventory_service.return_to_stock(self.resin.pk, '0', 'JC-1', user=self.store)

    def test_batch_tracked_return_goes_back_to_its_batch(self):
        core = TestDataFactory.create_material(code='CORE', stock='4', is_batch_tracked=True)
        batch = TestDataFactory.create_batch(core, 'C-1', '4', timezone.localdate())

        material_return = inventory_service.return_to_stock(
            core.pk, '1.5', 'JC-9', batch_number='C-1', user=self.store
        )

        batch.refresh_from_db()
        self.assertEqual(batch.remaining_quantity, Decimal('5.5'))
        self.assertEqual(material_return.batch, batch)


class MaterialReservationTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_user(role='store')
        self.pm = TestDataFactory.create_user(role='pm')
        self.resin = TestDataFactory.create_material(code='RES', stock='10')

    def test_reservations_cannot_exceed_free_stock(self):
        inventory_service.reserve_material(self.resin.pk, '6', 'JC-1', user=self.pm)
        self.assertEqual(inventory_service.reservable_stock(self.resin), Decimal('4'))

        with self.assertRaises(InsufficientStockException):
            inventory_service.reserve_material(self.resin.pk, '5', 'JC-2', user=self.pm)

    def test_cancelling_frees_the_stock(self):
        reservation = inventory_service.reserve_material(self.resin.pk, '10', 'JC-1', user=self.pm)
        inventory_service.cancel_reservation(reservation, user=self.pm)

        self.assertEqual(reservation.status, 'cancelled')
        self.assertEqual(inventory_service.reservable_stock(self.resin), Decimal('10'))

    def test_fulfil_issues_the_reserved_quantity(self):
        reservation = inventory_service.reserve_material(
            self.resin.pk, '4', 'JC-1', production_order='WO-7', user=self.pm
        )

        material_issue = inventory_service.fulfil_reservation(reservation.pk, user=self.store)

        self.assertEqual(material_issue.issued_to, self.pm)
        self.assertEqual(material_issue.project, 'JC-1')
        self.assertEqual(material_issue.items.get().quantity, Decimal('4'))
        self.resin.refresh_from_db()
        self.assertEqual(self.resin.current_stock, Decimal('6'))
        reservation.refresh_from_db()
        self.assertEqual(reservation.status, 'fulfilled')
        self.assertEqual(reservation.issue, material_issue)
        self.assertEqual(inventory_service.reserved_quantity(self.resin), Decimal('0'))

        with self.assertRaises(BusinessRuleViolationException):
            inventory_service.fulfil_reservation(reservation.pk, user=self.store)
