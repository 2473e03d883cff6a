"""
Dashboard Service.

Counters and short lists for the company summary and for each
department dashboard.
"""

from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from infrastructure.persistence.models import (
    BillOfMaterials,
    DeliveryChallan,
    DispatchRecord,
    FinishedGood,
    GoodsReceipt,
    Material,
    MaterialRequest,
    MaterialRequisition,
    PurchaseInvoice,
    PurchaseOrder,
    PurchaseRequisition,
    StockAlert,
    StockBatch,
)

from . import inventory_service

ZERO = Decimal('0')
RECENT_LIMIT = 5

OPEN_PR_STATUSES = ('pending_enquiry', 'enquiry_in_progress', 'quotes_received')


def _by_status(queryset):
    return {
        row['status']: row['count']
        for row in queryset.values('status').annotate(count=Count('id')).order_by()
    }


def _stock_value():
    materials = Material.objects.filter(is_active=True).only('current_stock', 'last_price', 'average_price')
    return sum((m.stock_value for m in materials), ZERO)


def _brief(document, **extra):
    data = {
        'id': str(document.pk),
        'number': getattr(document, 'number', ''),
        'status': document.status,
        'created_at': document.created_at.isoformat() if document.created_at else None,
    }
    data.update({k: (str(v) if isinstance(v, Decimal) else v) for k, v in extra.items()})
    return data


def inventory_counters():
    materials = Material.objects.filter(is_active=True)
    return {
        'materials': materials.count(),
        'low_stock': materials.filter(current_stock__gt=0, current_stock__lte=F('min_stock')).count(),
        'out_of_stock': materials.filter(current_stock__lte=0).count(),
        'stock_value': str(_stock_value()),
        'active_alerts': StockAlert.objects.filter(status__in=StockAlert.OPEN_STATUSES).count(),
    }


def summary():
    """Company-wide counters."""
    month_start = timezone.localdate().replace(day=1)
    orders = PurchaseOrder.objects.all()
    invoices = PurchaseInvoice.objects.all()

    return {
        'material_requests': {
            'pending': MaterialRequest.objects.filter(status='pending').count(),
            'approved': MaterialRequest.objects.filter(status='approved').count(),
        },
        'purchase_requisitions': {
            'open': PurchaseRequisition.objects.filter(status__in=OPEN_PR_STATUSES).count(),
            'by_status': _by_status(PurchaseRequisition.objects.all()),
        },
        'purchase_orders': {
            'pending_approval': orders.filter(status='pending_md_approval').count(),
            'total_value': str(orders.exclude(status='cancelled').aggregate(
                total=Coalesce(Sum('total'), ZERO))['total']),
            'by_status': _by_status(orders),
        },
        'inventory': inventory_counters(),
        'invoices': {
            'pending': invoices.filter(status='pending').count(),
            'payment_pending': invoices.filter(status='payment_pending').count(),
            'paid_amount': str(invoices.filter(status='paid').aggregate(
                total=Coalesce(Sum('paid_amount'), ZERO))['total']),
        },
        'production': {
            'by_status': _by_status(FinishedGood.objects.all()),
        },
        'dispatch': {
            'ready': DispatchRecord.objects.filter(status='ready').count(),
            'in_transit': DispatchRecord.objects.filter(status='in_transit').count(),
            'delivered_this_month': DispatchRecord.objects.filter(
                status='delivered', delivered_date__date__gte=month_start
            ).count(),
        },
    }


def purchase_dashboard():
    return {
        'material_requests_pending': MaterialRequest.objects.filter(status__in=('pending', 'approved')).count(),
        'requisitions_open': PurchaseRequisition.objects.filter(status__in=OPEN_PR_STATUSES).count(),
        'requisitions_urgent': PurchaseRequisition.objects.filter(
            status__in=OPEN_PR_STATUSES, priority='urgent').count(),
        'orders_by_status': _by_status(PurchaseOrder.objects.all()),
        'orders_awaiting_delivery': PurchaseOrder.objects.filter(
            status__in=('approved', 'ordered', 'partially_received')).count(),
        'recent_requisitions': [
            _brief(pr, priority=pr.priority, source=pr.source_reference)
            for pr in PurchaseRequisition.objects.filter(status__in=OPEN_PR_STATUSES)[:RECENT_LIMIT]
        ],
        'reorder_suggestions': len(inventory_service.reorder_suggestions()),
    }


def store_dashboard():
    soon = timezone.localdate() + timedelta(days=30)
    return {
        'inventory': inventory_counters(),
        'requisitions_waiting': MaterialRequisition.objects.filter(
            status__in=('pending', 'stock_available', 'stock_partial', 'ready_to_issue')).count(),
        'receipts_to_post': GoodsReceipt.objects.filter(status='verified').count(),
        'batches_expiring': StockBatch.objects.filter(
            remaining_quantity__gt=0, expiry_date__isnull=False, expiry_date__lte=soon).count(),
        'alerts': [
            {
                'id': str(alert.pk),
                'material': alert.material.code,
                'level': alert.level,
                'current_stock': str(alert.current_stock),
                'suggested_reorder_quantity': str(alert.suggested_reorder_quantity),
            }
            for alert in StockAlert.objects.filter(status='active').select_related('material')[:RECENT_LIMIT]
        ],
    }


def production_dashboard(user=None):
    requisitions = MaterialRequisition.objects.all()
    if user is not None and user.role == 'supervisor':
        requisitions = requisitions.filter(requested_by=user)
    return {
        'requisitions_by_status': _by_status(requisitions),
        'boms_by_status': _by_status(BillOfMaterials.objects.all()),
        'finished_goods_by_status': _by_status(FinishedGood.objects.all()),
        'recent_requisitions': [_brief(r, project=r.project) for r in requisitions[:RECENT_LIMIT]],
    }


def quality_dashboard():
    return {
        'receipts_awaiting_qc': GoodsReceipt.objects.filter(status__in=('pending', 'quality_check')).count(),
        'finished_goods_pending_qc': FinishedGood.objects.filter(status='pending_qc').count(),
        'finished_goods_failed': FinishedGood.objects.filter(status='qc_failed').count(),
        'queue': [
            _brief(good, product=good.product_name, quantity=good.quantity)
            for good in FinishedGood.objects.filter(status='pending_qc')[:RECENT_LIMIT]
        ],
    }


def dispatch_dashboard():
    return {
        'ready_to_ship': FinishedGood.objects.filter(status='in_stock').count(),
        'challans_by_status': _by_status(DeliveryChallan.objects.all()),
        'records_by_status': _by_status(DispatchRecord.objects.all()),
        'in_transit': [
            {
                'id': str(record.pk),
                'customer': record.customer,
                'destination': record.destination,
                'dispatch_date': record.dispatch_date.isoformat() if record.dispatch_date else None,
            }
            for record in DispatchRecord.objects.filter(status='in_transit')[:RECENT_LIMIT]
        ],
    }


def md_dashboard():
    pending = PurchaseOrder.objects.filter(status='pending_md_approval').select_related('supplier')
    return {
        'approval_queue': [
            _brief(order, supplier=order.supplier.name, total=order.total)
            for order in pending.order_by('-total')
        ],
        'approval_queue_value': str(pending.aggregate(total=Coalesce(Sum('total'), ZERO))['total']),
        'summary': summary(),
    }


ROLE_DASHBOARDS = {
    'purchase': purchase_dashboard,
    'store': store_dashboard,
    'production': production_dashboard,
    'quality': quality_dashboard,
    'dispatch': dispatch_dashboard,
    'md': md_dashboard,
}


def for_role(name, user=None):
    builder = ROLE_DASHBOARDS[name]
    if builder is production_dashboard:
        return builder(user)
    return builder()
