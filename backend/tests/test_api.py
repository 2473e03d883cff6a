"""
REST API: authentication, permission checks, the purchase order approval
flow, delivery challans, returns and reservations, the n8n webhook and
role dashboards.
"""
import json
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework import status

from application.services import notifications
from infrastructure.persistence.models import AuditLog, DeliveryChallan, PurchaseOrder, WebhookEvent
from tests.factories import AuthenticatedAPIClient, TestDataFactory

API = '/api/v1'


class AuthenticationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='store', username='store9', email='store9@example.com')

    def test_login_with_username(self):
        response = self.client.post(f'{API}/auth/login/', {'username': 'store9', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'store')
        self.assertEqual(response.data['user']['dashboard'], 'store')
        self.assertTrue(AuditLog.objects.filter(action='login', user=self.user).exists())

    def test_login_with_email(self):
        response = self.client.post(f'{API}/auth/login/',
                                    {'username': 'STORE9@example.com', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_wrong_password(self):
        response = self.client.post(f'{API}/auth/login/', {'username': 'store9', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get(f'{API}/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'store9')
        self.assertIn('inventory:write', response.data['permissions'])

    def test_unauthenticated_request(self):
        response = self.client.get(f'{API}/materials/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PermissionAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.payload = {'code': 'GF-200', 'name': 'Glass fibre 200 gsm', 'unit': 'sqm', 'min_stock': '50'}

    def test_viewer_cannot_create_material(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.post(f'{API}/materials/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_store_creates_material(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='store'))
        response = self.client.post(f'{API}/materials/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'GF-200')
        self.assertEqual(Decimal(response.data['current_stock']), Decimal('0'))

    def test_negative_adjustment_is_rejected(self):
        store = TestDataFactory.create_user(role='store')
        material = TestDataFactory.create_material(stock='5')
        self.client.authenticate_user(store)
        response = self.client.post(
            f'{API}/stock-adjustments/',
            {'material': str(material.pk), 'new_quantity': '-3', 'reason': 'physical_count'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PurchaseOrderAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.buyer = TestDataFactory.create_user(role='purchase')
        self.md = TestDataFactory.create_user(role='md')
        self.supplier = TestDataFactory.create_supplier()
        self.resin = TestDataFactory.create_material(code='RES-API')

    def create_order(self, quantity, price):
        self.client.authenticate_user(self.buyer)
        response = self.client.post(f'{API}/purchase-orders/', {
            'supplier': str(self.supplier.pk),
            'items': [{'material': str(self.resin.pk), 'quantity': quantity, 'unit_price': price}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_small_order_is_approved_on_submit(self):
        order = self.create_order('10', '100')
        self.assertEqual(order['total'], '1180.00')

        response = self.client.post(f"{API}/purchase-orders/{order['id']}/submit/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertFalse(response.data['requires_md_approval'])

    def test_large_order_needs_md(self):
        order = self.create_order('100', '500')
        response = self.client.post(f"{API}/purchase-orders/{order['id']}/submit/")
        self.assertEqual(response.data['status'], 'pending_md_approval')

        response = self.client.post(f"{API}/purchase-orders/{order['id']}/approve/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(f'{API}/purchase-orders/pending_approval/')
        self.assertEqual(response.data['count'], 1)

        self.client.authenticate_user(self.md)
        response = self.client.post(f"{API}/purchase-orders/{order['id']}/approve/",
                                    {'comments': 'Go ahead'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertEqual(PurchaseOrder.objects.get(pk=order['id']).approved_by, self.md)

    def test_reject_requires_reason(self):
        order = self.create_order('100', '500')
        self.client.post(f"{API}/purchase-orders/{order['id']}/submit/")
        self.client.authenticate_user(self.md)
        response = self.client.post(f"{API}/purchase-orders/{order['id']}/reject/", {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_transition_is_conflict(self):
        order = self.create_order('1', '10')
        self.client.post(f"{API}/purchase-orders/{order['id']}/submit/")
        response = self.client.post(f"{API}/purchase-orders/{order['id']}/submit/")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'invalid_status_transition')


@override_settings(N8N_WEBHOOK_SECRET='test-secret')
class WebhookAPITests(TestCase):
    url = f'{API}/webhooks/n8n/'

    def post(self, body, **headers):
        return self.client.post(self.url, data=body, content_type='application/json', **headers)

    def test_missing_secret(self):
        response = self.post(json.dumps({'event': 'x'}))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(WebhookEvent.objects.exists())

    def test_wrong_secret(self):
        response = self.post(json.dumps({'event': 'x'}), HTTP_X_N8N_SECRET='guess')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_bad_json(self):
        response = self.post('{not json', HTTP_X_N8N_SECRET='test-secret')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_scalar_body_is_accepted(self):
        response = self.post('42', HTTP_X_N8N_SECRET='test-secret')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        event = WebhookEvent.objects.get()
        self.assertEqual(event.payload, 42)
        self.assertEqual(event.event_type, '')

    def test_failed_persist_still_answers_ok(self):
        with mock.patch.object(WebhookEvent.objects, 'create', side_effect=DatabaseError('disk full')):
            response = self.post(json.dumps({'event': 'x'}), HTTP_X_N8N_SECRET='test-secret')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'ok': True})
        self.assertFalse(WebhookEvent.objects.exists())

    def test_accepted_event_is_processed(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.post(json.dumps({'event': 'stock.sync', 'rows': 3}),
                                 HTTP_X_N8N_SECRET='test-secret')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'ok': True})
        event = WebhookEvent.objects.get()
        self.assertEqual(event.event_type, 'stock.sync')
        self.assertEqual(event.status, 'processed')


class DashboardAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_unknown_dashboard(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='md'))
        response = self.client.get(f'{API}/dashboard/role/unknown/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_viewer_cannot_open_purchase_dashboard(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.get(f'{API}/dashboard/role/purchase/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_md_dashboard(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='md'))
        response = self.client.get(f'{API}/dashboard/role/md/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['dashboard'], 'md')

    def test_store_sees_own_dashboard(self):
        TestDataFactory.create_material(stock='0', min_stock='10')
        self.client.authenticate_user(TestDataFactory.create_user(role='store'))
        response = self.client.get(f'{API}/dashboard/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['dashboard'], 'store')

    def test_summary(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.get(f'{API}/dashboard/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class NotificationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.store = TestDataFactory.create_user(role='store')
        self.client.authenticate_user(self.store)

    def test_list_and_mark_read(self):
        mine = notifications.notify('Batch expiring', roles=['store'])
        notifications.notify('PO waiting', roles=['md'])

        response = self.client.get(f'{API}/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['title'] for n in response.data['results']], ['Batch expiring'])

        response = self.client.post(f'{API}/notifications/{mine.pk}/mark_read/')
        self.assertTrue(response.data['is_read'])
        response = self.client.get(f'{API}/notifications/unread_count/')
        self.assertEqual(response.data['count'], 0)


class DeliveryChallanAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.dispatcher = TestDataFactory.create_user(role='dispatch')
        self.client.authenticate_user(self.dispatcher)

    def create_challan(self, **item):
        item.setdefault('quantity', '1')
        return self.client.post(f'{API}/delivery-challans/', {
            'consignee_name': 'Aero Labs',
            'consignee_address': 'Plot 4, Hosur',
            'vehicle_number': 'KA01AB1234',
            'items': [item],
        }, format='json')

    def test_anonymous_is_rejected(self):
        response = AuthenticatedAPIClient().get(f'{API}/delivery-challans/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_viewer_cannot_list(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.get(f'{API}/delivery-challans/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_and_list(self):
        response = self.create_challan(description='Spare gaskets', quantity='4')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['number'].startswith('DC-'))
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(Decimal(response.data['total_quantity']), Decimal('4'))

        response = self.client.get(f'{API}/delivery-challans/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)

    def test_line_needs_good_or_description(self):
        response = self.create_challan(quantity='2')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dispatch_action(self):
        good = TestDataFactory.create_finished_good(status='in_stock')
        challan_id = self.create_challan(finished_good=str(good.pk)).data['id']

        response = self.client.post(f'{API}/delivery-challans/{challan_id}/dispatch/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'dispatched')
        good.refresh_from_db()
        self.assertEqual(good.status, 'dispatched')
        challan = DeliveryChallan.objects.get(pk=challan_id)
        self.assertEqual(challan.dispatch_records.get().status, 'in_transit')

    def test_dispatch_refuses_good_not_in_stock(self):
        good = TestDataFactory.create_finished_good(status='pending_qc')
        challan_id = self.create_challan(finished_good=str(good.pk)).data['id']

        response = self.client.post(f'{API}/delivery-challans/{challan_id}/dispatch/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(DeliveryChallan.objects.get(pk=challan_id).status, 'draft')


class MaterialReturnAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='store'))
        self.material = TestDataFactory.create_material(code='RES-1', stock='10')

    def test_good_return_is_restocked(self):
        response = self.client.post(f'{API}/material-returns/', {
            'material': str(self.material.pk),
            'quantity': '2.5',
            'job_number': 'JOB-7',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['number'].startswith('RET-'))
        self.assertEqual(Decimal(response.data['restocked_quantity']), Decimal('2.5'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('12.5'))

    def test_viewer_cannot_return(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.post(f'{API}/material-returns/', {
            'material': str(self.material.pk), 'quantity': '1', 'job_number': 'JOB-7',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MaterialReservationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='store'))
        self.material = TestDataFactory.create_material(code='RES-2', stock='10')

    def reserve(self, quantity):
        return self.client.post(f'{API}/material-reservations/', {
            'material': str(self.material.pk),
            'quantity': quantity,
            'job_number': 'JOB-9',
        }, format='json')

    def test_reserve_and_fulfil(self):
        response = self.reserve('6')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'active')

        response = self.client.post(f"{API}/material-reservations/{response.data['id']}/fulfil/")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items']), 1)
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('4'))

    def test_over_reservation_is_conflict(self):
        self.assertEqual(self.reserve('8').status_code, status.HTTP_201_CREATED)
        response = self.reserve('3')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
