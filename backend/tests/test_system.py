"""
Users and roles, notifications, audit log, webhooks, management
commands, document numbering, settings layering and websocket
authentication.
"""
from io import StringIO
from unittest import mock

from asgiref.sync import async_to_sync
from channels.testing import WebsocketCommunicator
from django.apps import apps
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from django.db import IntegrityError
from django.db.migrations.loader import MigrationLoader
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from application.services import audit, notifications, user_service, webhook_service
from application.tasks.webhook_tasks import process_pending_webhook_events, process_webhook_event
from infrastructure.persistence.models import (
    AuditLog,
    NotificationRole,
    PurchaseOrder,
    Role,
    SystemSetting,
    WebhookEvent,
)
from presentation.websocket.consumers import DashboardConsumer, NotificationConsumer
from tests.factories import TestDataFactory

User = get_user_model()


class UserSeedingTests(TestCase):

    def test_seed_creates_default_users(self):
        report = user_service.seed_users(password='Seed@1234')

        self.assertEqual(len(report.created), len(user_service.DEFAULT_USERS))
        sunil = User.objects.get(email='sunil@triovisioninternational.com')
        self.assertEqual(sunil.role, 'md')
        self.assertTrue(sunil.check_password('Seed@1234'))
        self.assertTrue(sunil.has_erp_permission('purchase:approve'))
        store = User.objects.get(username='store1')
        self.assertEqual(store.permissions, ['inventory:read', 'inventory:write', 'purchase:read'])

    def test_second_run_skips_or_resets(self):
        user_service.seed_users(password='Seed@1234')
        again = user_service.seed_users(password='Other@1234')
        self.assertEqual(again.created, [])
        self.assertEqual(len(again.skipped), len(user_service.DEFAULT_USERS))

        pm = User.objects.get(username='pm')
        pm.set_role('viewer')
        pm.save()
        reset = user_service.seed_users(password='Other@1234', reset_passwords=True)
        self.assertEqual(len(reset.updated), len(user_service.DEFAULT_USERS))
        pm.refresh_from_db()
        self.assertEqual(pm.role, 'pm')
        self.assertTrue(pm.check_password('Other@1234'))

    def test_role_table_overrides_permissions(self):
        user_service.sync_roles()
        Role.objects.filter(code='viewer').update(default_permissions=['reports:read', 'inventory:read'])
        user = TestDataFactory.create_user(role='hr')
        user_service.change_role(user, 'viewer')
        user.refresh_from_db()
        self.assertEqual(user.permissions, ['reports:read', 'inventory:read'])

    def test_sync_roles_is_idempotent(self):
        self.assertEqual(user_service.sync_roles(), 11)
        self.assertEqual(user_service.sync_roles(), 0)

    def test_inactive_user_has_no_permissions(self):
        md = TestDataFactory.create_user(role='md', is_active=False)
        self.assertFalse(md.has_erp_permission('reports:read'))


class ManagementCommandTests(TestCase):

    def test_init_system(self):
        out = StringIO()
        call_command('init_system', admin_password='Admin@1234', stdout=out)

        self.assertIn('System initialization completed!', out.getvalue())
        admin = User.objects.get(username='admin')
        self.assertTrue(admin.is_superuser)
        self.assertEqual(admin.role, 'admin')
        self.assertTrue(admin.check_password('Admin@1234'))
        self.assertEqual(Role.objects.count(), 11)
        self.assertEqual(
            set(SystemSetting.objects.values_list('key', flat=True)),
            {'md_approval_threshold', 'gst_rate', 'company'},
        )

    def test_seed_users_command(self):
        out = StringIO()
        call_command('seed_users', password='Seed@1234', stdout=out)
        self.assertIn(f'{len(user_service.DEFAULT_USERS)} created', out.getvalue())

        out = StringIO()
        call_command('seed_users', stdout=out)
        self.assertIn('0 created', out.getvalue())
        self.assertIn('Skipped (exists): admin@triovisioninternational.com', out.getvalue())


class NotificationTests(TestCase):

    def setUp(self):
        self.buyer = TestDataFactory.create_user(role='purchase')
        self.other_buyer = TestDataFactory.create_user(role='purchase')
        self.store = TestDataFactory.create_user(role='store')

    def test_for_user_covers_direct_and_role(self):
        notifications.notify('For buyers', roles=['purchase'])
        notifications.notify('For store', roles=['store'])
        notifications.notify('Just you', user=self.buyer)

        titles = set(notifications.for_user(self.buyer).values_list('title', flat=True))
        self.assertEqual(titles, {'For buyers', 'Just you'})
        self.assertEqual(
            set(notifications.for_user(self.other_buyer).values_list('title', flat=True)),
            {'For buyers'},
        )

    def test_mark_all_read(self):
        notifications.notify('For buyers', roles=['purchase'])
        notifications.notify('Just you', user=self.buyer)
        self.assertEqual(notifications.mark_all_read(self.buyer), 2)
        # role notifications are shared by everyone holding the role
        self.assertFalse(notifications.for_user(self.other_buyer).filter(is_read=False).exists())

    def test_document_reference(self):
        material = TestDataFactory.create_material(code='RES-9')
        notification = notifications.notify('Doc', roles=['store'], document=material, priority='high')
        self.assertEqual(notification.document_type, 'material')
        self.assertEqual(notification.document_id, str(material.pk))
        self.assertTrue(notification.is_for(self.store))
        self.assertFalse(notification.is_for(self.buyer))

    def test_push_after_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            notifications.notify('Later', roles=['store'])
        self.assertEqual(len(callbacks), 1)

    def test_roles_are_indexed(self):
        shared = notifications.notify('Shortage', roles=['store', 'purchase', 'store'])
        self.assertEqual(
            set(NotificationRole.objects.filter(notification=shared).values_list('role', flat=True)),
            {'store', 'purchase'},
        )
        self.assertIn(shared, notifications.for_user(self.store))
        self.assertIn(shared, notifications.for_user(self.buyer))

    def test_direct_notification_with_roles(self):
        mixed = notifications.notify('Mixed', roles=['store'], user=self.buyer)
        self.assertIn(mixed, notifications.for_user(self.buyer))
        self.assertIn(mixed, notifications.for_user(self.store))
        self.assertNotIn(mixed, notifications.for_user(self.other_buyer))


class AuditLogTests(TestCase):

    def test_log_action_with_document(self):
        user = TestDataFactory.create_user(role='store')
        material = TestDataFactory.create_material()
        entry = audit.log_action('update', material, user=user, details={'field': 'min_stock'})
        self.assertEqual(entry.document_type, 'material')
        self.assertEqual(entry.user, user)
        self.assertEqual(entry.details, {'field': 'min_stock'})

    def test_anonymous_user_is_not_recorded(self):
        entry = audit.log_action('login', user=AnonymousUser(), document_type='user')
        self.assertIsNone(entry.user)
        self.assertEqual(AuditLog.objects.count(), 1)


@override_settings(N8N_WEBHOOK_SECRET='s3cret')
class WebhookServiceTests(TestCase):

    def test_secret_matching(self):
        self.assertTrue(webhook_service.secret_matches('s3cret'))
        self.assertFalse(webhook_service.secret_matches('wrong'))
        self.assertFalse(webhook_service.secret_matches(None))
        self.assertFalse(webhook_service.secret_matches('anything', expected=''))

    def test_store_and_process(self):
        event = webhook_service.store_event({'event': 'po.reminder', 'po': 'PO-250101-0001'})
        self.assertEqual(event.event_type, 'po.reminder')
        self.assertEqual(event.status, 'received')

        result = process_webhook_event(str(event.pk))
        self.assertEqual(result, {'status': 'processed'})
        event.refresh_from_db()
        self.assertIsNotNone(event.processed_at)

    def test_untyped_list_payload(self):
        event = webhook_service.store_event([{'a': 1}])
        self.assertEqual(event.event_type, '')

    def test_scalar_payload_fails_processing(self):
        event = WebhookEvent.objects.create(source='n8n', payload='just text')
        webhook_service.process_event(event)
        self.assertEqual(event.status, 'failed')
        self.assertIn('str', event.error)

    def test_missing_event(self):
        self.assertEqual(process_webhook_event('00000000-0000-0000-0000-000000000000'), {'status': 'missing'})

    def test_pending_batch(self):
        webhook_service.store_event({'event': 'a'})
        webhook_service.store_event({'event': 'b'})
        self.assertEqual(process_pending_webhook_events(), {'processed': 2, 'failed': 0})
        self.assertEqual(process_pending_webhook_events(), {'processed': 0, 'failed': 0})


class WebsocketAuthTests(SimpleTestCase):

    def connect(self, consumer, path):
        async def attempt():
            communicator = WebsocketCommunicator(consumer.as_asgi(), path)
            communicator.scope['user'] = AnonymousUser()
            connected, code = await communicator.connect()
            await communicator.disconnect()
            return connected, code
        return async_to_sync(attempt)()

    def test_anonymous_notification_socket_is_closed(self):
        self.assertEqual(self.connect(NotificationConsumer, '/ws/notifications/'), (False, 4001))

    def test_anonymous_dashboard_socket_is_closed(self):
        self.assertEqual(self.connect(DashboardConsumer, '/ws/dashboard/'), (False, 4001))


class DocumentNumberTests(TestCase):

    def setUp(self):
        self.supplier = TestDataFactory.create_supplier()
        self.stem = f"PO-{timezone.localdate():%y%m%d}-"

    def test_sequence_past_padding(self):
        PurchaseOrder.objects.create(supplier=self.supplier, number=f'{self.stem}9999')
        PurchaseOrder.objects.create(supplier=self.supplier, number=f'{self.stem}10000')
        self.assertEqual(PurchaseOrder.generate_number(), f'{self.stem}10001')

    def test_taken_number_is_retried(self):
        PurchaseOrder.objects.create(supplier=self.supplier, number=f'{self.stem}0001')
        with mock.patch.object(PurchaseOrder, 'generate_number',
                               side_effect=[f'{self.stem}0001', f'{self.stem}0002']):
            order = PurchaseOrder.objects.create(supplier=self.supplier)
        self.assertEqual(order.number, f'{self.stem}0002')

    def test_gives_up_after_repeated_collisions(self):
        PurchaseOrder.objects.create(supplier=self.supplier, number=f'{self.stem}0001')
        with mock.patch.object(PurchaseOrder, 'generate_number', return_value=f'{self.stem}0001'):
            with self.assertRaises(IntegrityError):
                PurchaseOrder.objects.create(supplier=self.supplier)


class SettingsLayeringTests(SimpleTestCase):

    def test_environment_overrides_leave_base_untouched(self):
        from config.settings import base, dev

        self.assertIn('debug_toolbar', dev.INSTALLED_APPS)
        self.assertNotIn('debug_toolbar', base.INSTALLED_APPS)
        self.assertNotIn('debug_toolbar', settings.INSTALLED_APPS)
        self.assertEqual(base.LOGGING['root']['level'], 'INFO')
        self.assertEqual(base.LOGGING['handlers']['file']['class'], 'logging.handlers.RotatingFileHandler')
        self.assertTrue(base.REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'])
        self.assertEqual(settings.LOGGING['handlers']['file'], {'class': 'logging.NullHandler'})


@override_settings(MIGRATION_MODULES={})
class MigrationTests(SimpleTestCase):

    def test_initial_migration_creates_every_model(self):
        loader = MigrationLoader(None, ignore_no_migrations=True)
        state = loader.project_state(('persistence', '0001_initial'))

        migrated = {name for app_label, name in state.models if app_label == 'persistence'}
        registered = {model._meta.model_name for model in apps.get_app_config('persistence').get_models()}
        self.assertEqual(migrated, registered)
        self.assertIn('historicalpurchaseorder', migrated)

    def test_history_tables_are_unconstrained(self):
        loader = MigrationLoader(None, ignore_no_migrations=True)
        state = loader.project_state(('persistence', '0001_initial'))

        history = state.models['persistence', 'historicalmaterial']
        self.assertFalse(history.fields['preferred_supplier'].db_constraint)
        self.assertFalse(history.fields['code'].unique)
        self.assertTrue(history.fields['history_id'].primary_key)
