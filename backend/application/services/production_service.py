"""
Production Service.

Finished goods and their quality check.
"""

import logging

from infrastructure.persistence.models import FinishedGood

from . import notifications
from .access import require_permission
from .audit import log_action

logger = logging.getLogger(__name__)


def register_finished_good(user=None, **fields):
    good = FinishedGood.objects.create(produced_by=user, created_by=user, **fields)
    log_action('create', good, user=user, details={'product': good.product_name, 'quantity': str(good.quantity)})
    notifications.notify(
        title=f"{good.number} ready for QC",
        message=f"{good.product_name} x {good.quantity} {good.unit}",
        roles=['quality'],
        notification_type='qc_result',
        document=good,
        created_by=user,
    )
    return good


def pass_qc(good, inspector, notes=''):
    require_permission(inspector, 'quality:write', good.number)
    good.pass_qc(inspector, notes)
    log_action('qc_pass', good, user=inspector, details={'notes': notes})
    notifications.notify(
        title=f"{good.number} passed QC",
        message=good.product_name,
        roles=['dispatch', 'supervisor'],
        notification_type='qc_result',
        document=good,
        created_by=inspector,
    )
    notifications.dashboard_changed('production')
    return good


def fail_qc(good, inspector, notes):
    require_permission(inspector, 'quality:write', good.number)
    good.fail_qc(inspector, notes)
    log_action('qc_fail', good, user=inspector, details={'notes': notes})
    notifications.notify(
        title=f"{good.number} failed QC",
        message=notes,
        roles=['supervisor', 'pm'],
        notification_type='qc_result',
        document=good,
        priority='high',
        created_by=inspector,
    )
    notifications.dashboard_changed('production')
    logger.warning(f"Finished good {good.number} failed QC: {notes}")
    return good


def move_to_stock(good, user=None, location=''):
    good.move_to_stock(user, location)
    log_action('status_change', good, user=user, details={'status': good.status, 'location': location})
    return good


def rework(good, user=None):
    good.rework(user)
    log_action('status_change', good, user=user, details={'status': good.status, 'rework': good.rework_count})
    return good
