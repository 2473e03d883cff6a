"""
Celery configuration for the ERP project.
"""

import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('erp')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks(lambda: [
    'application.tasks.inventory_tasks',
    'application.tasks.notification_tasks',
    'application.tasks.webhook_tasks',
], related_name=None)

# Configure task routes
app.conf.task_routes = {
    'application.tasks.inventory_tasks.*': {'queue': 'inventory'},
    'application.tasks.notification_tasks.*': {'queue': 'notifications'},
    'application.tasks.webhook_tasks.*': {'queue': 'webhooks'},
}

# Configure task schedules (periodic tasks)
app.conf.beat_schedule = {
    'scan-stock-alerts': {
        'task': 'application.tasks.inventory_tasks.scan_stock_alerts',
        'schedule': 3600.0,  # Every hour
    },
    'reorder-suggestions-digest': {
        'task': 'application.tasks.inventory_tasks.send_reorder_digest',
        'schedule': crontab(hour=8, minute=0),
    },
    'scan-batch-expiry': {
        'task': 'application.tasks.inventory_tasks.scan_batch_expiry',
        'schedule': crontab(hour=7, minute=30),
    },
    'unsnooze-stock-alerts': {
        'task': 'application.tasks.inventory_tasks.reactivate_snoozed_alerts',
        'schedule': 900.0,
    },
    'process-pending-webhooks': {
        'task': 'application.tasks.webhook_tasks.process_pending_webhook_events',
        'schedule': 300.0,
    },
}
