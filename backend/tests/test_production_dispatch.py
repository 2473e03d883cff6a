"""
Finished goods QC and dispatch by delivery challan or dispatch record.
"""
from decimal import Decimal

from django.test import TestCase

from application.services import dispatch_service, production_service
from domain.shared.exceptions import (
    AuthorizationException,
    BusinessRuleViolationException,
    StatusTransitionException,
    ValidationException,
)
from infrastructure.persistence.models import DispatchRecord, Notification
from tests.factories import TestDataFactory


class FinishedGoodQCTests(TestCase):

    def setUp(self):
        self.supervisor = TestDataFactory.create_user(role='supervisor')
        self.inspector = TestDataFactory.create_user(role='quality')

    def test_register_notifies_quality(self):
        good = production_service.register_finished_good(
            user=self.supervisor, product_name='Radome 900', product_code='RD-900', quantity=Decimal('3')
        )
        self.assertTrue(good.number.startswith('FG-'))
        self.assertEqual(good.status, 'pending_qc')
        self.assertEqual(good.produced_by, self.supervisor)
        notification = Notification.objects.get(document_id=str(good.pk))
        self.assertEqual(notification.for_roles, ['quality'])

    def test_only_quality_can_pass(self):
        good = TestDataFactory.create_finished_good()
        with self.assertRaises(AuthorizationException):
            production_service.pass_qc(good, self.supervisor)

        production_service.pass_qc(good, self.inspector, notes='Dimensions within tolerance')
        self.assertEqual(good.status, 'qc_passed')
        self.assertEqual(good.qc_inspector, self.inspector)

    def test_fail_needs_notes_then_rework(self):
        good = TestDataFactory.create_finished_good()
        with self.assertRaises(ValidationException):
            production_service.fail_qc(good, self.inspector, '')

        production_service.fail_qc(good, self.inspector, 'Voids in laminate')
        self.assertEqual(good.status, 'qc_failed')

        production_service.rework(good, self.supervisor)
        self.assertEqual(good.status, 'pending_qc')
        self.assertEqual(good.rework_count, 1)

    def test_failed_good_cannot_go_to_stock(self):
        good = TestDataFactory.create_finished_good(status='qc_failed')
        with self.assertRaises(StatusTransitionException):
            production_service.move_to_stock(good, self.supervisor)


class DeliveryChallanTests(TestCase):

    def setUp(self):
        self.dispatcher = TestDataFactory.create_user(role='dispatch')
        self.good = TestDataFactory.create_finished_good(status='in_stock', hsn_code='3926')

    def challan(self, good=None):
        good = good or self.good
        return dispatch_service.create_challan(
            [{'finished_good': good, 'quantity': good.quantity}],
            user=self.dispatcher,
            consignee_name='Bharat Aero Ltd',
            consignee_address='Plot 4, Hosur Road',
            vehicle_number='KA01AB1234',
        )

    def test_challan_number_and_lines(self):
        challan = self.challan()
        self.assertRegex(challan.number, r'^DC-\d{8}-001$')
        item = challan.items.get()
        self.assertEqual(item.sl_no, 1)
        self.assertEqual(item.description, 'Radome 1200')
        self.assertEqual(item.hsn_code, '3926')
        self.assertEqual(challan.consignor['name'], 'Triovision Composite Technologies')

    def test_dispatch_and_deliver(self):
        challan = self.challan()
        dispatch_service.dispatch_challan(challan.pk, self.dispatcher)

        challan.refresh_from_db()
        self.good.refresh_from_db()
        self.assertEqual(challan.status, 'dispatched')
        self.assertEqual(self.good.status, 'dispatched')
        record = DispatchRecord.objects.get(challan=challan)
        self.assertEqual(record.status, 'in_transit')
        self.assertEqual(record.finished_good, self.good)
        self.assertEqual(record.tracking_reference, 'KA01AB1234')

        dispatch_service.deliver_challan(challan.pk, self.dispatcher, received_by_name='R. Gupta')
        challan.refresh_from_db()
        record.refresh_from_db()
        self.assertEqual(challan.status, 'delivered')
        self.assertEqual(record.status, 'delivered')

    def test_goods_must_be_in_stock(self):
        pending = TestDataFactory.create_finished_good(status='qc_passed')
        challan = self.challan(pending)
        with self.assertRaises(BusinessRuleViolationException):
            dispatch_service.dispatch_challan(challan.pk, self.dispatcher)

    def test_dispatch_needs_permission(self):
        challan = self.challan()
        store = TestDataFactory.create_user(role='store')
        with self.assertRaises(AuthorizationException):
            dispatch_service.dispatch_challan(challan.pk, store)

    def test_empty_challan(self):
        with self.assertRaises(ValidationException):
            dispatch_service.create_challan([], user=self.dispatcher, consignee_name='Nobody')


class DispatchRecordTests(TestCase):

    def setUp(self):
        self.dispatcher = TestDataFactory.create_user(role='dispatch')

    def test_record_requires_qc_passed_good(self):
        good = TestDataFactory.create_finished_good()
        with self.assertRaises(BusinessRuleViolationException):
            dispatch_service.create_dispatch_record(
                user=self.dispatcher, finished_good=good, customer='HAL', quantity=Decimal('1')
            )

    def test_transit_and_delivery(self):
        good = TestDataFactory.create_finished_good(status='qc_passed')
        record = dispatch_service.create_dispatch_record(
            user=self.dispatcher, finished_good=good, customer='HAL',
            destination='Bengaluru', quantity=Decimal('2'),
        )
        self.assertEqual(record.status, 'ready')

        dispatch_service.start_transit(record, self.dispatcher, tracking_reference='LR-5501')
        good.refresh_from_db()
        self.assertEqual(record.status, 'in_transit')
        self.assertEqual(record.tracking_reference, 'LR-5501')
        self.assertEqual(good.status, 'dispatched')

        dispatch_service.mark_delivered(record, self.dispatcher)
        self.assertEqual(record.status, 'delivered')
        self.assertIsNotNone(record.delivered_date)

        with self.assertRaises(StatusTransitionException):
            dispatch_service.mark_delivered(record, self.dispatcher)
