"""
API v1 URL Configuration.

All API endpoints for version 1.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views.users import (
    AuthViewSet,
    UserViewSet,
    RoleViewSet,
)
from .views.catalog import (
    SupplierViewSet,
    MaterialViewSet,
)
from .views.bom import BOMViewSet
from .views.procurement import (
    MaterialRequestViewSet,
    PurchaseRequisitionViewSet,
    EnquiryViewSet,
    PurchaseOrderViewSet,
    GoodsReceiptViewSet,
    PurchaseInvoiceViewSet,
)
from .views.inventory import (
    StockMovementViewSet,
    StockAdjustmentViewSet,
    StockBatchViewSet,
    StockAlertViewSet,
    MaterialRequisitionViewSet,
    MaterialIssueViewSet,
    MaterialReturnViewSet,
    MaterialReservationViewSet,
)
from .views.production import FinishedGoodViewSet
from .views.dispatch import (
    DeliveryChallanViewSet,
    DispatchRecordViewSet,
)
from .views.notifications import (
    NotificationViewSet,
    AuditLogViewSet,
    SystemSettingViewSet,
)
from .views.dashboard import DashboardViewSet
from .views.webhooks import N8nWebhookView

# Create router
router = DefaultRouter()

# Auth & Users
router.register(r'auth', AuthViewSet, basename='auth')
router.register(r'users', UserViewSet, basename='users')
router.register(r'roles', RoleViewSet, basename='roles')

# Catalog
router.register(r'suppliers', SupplierViewSet, basename='suppliers')
router.register(r'materials', MaterialViewSet, basename='materials')

# BOM
router.register(r'boms', BOMViewSet, basename='boms')

# Procurement
router.register(r'material-requests', MaterialRequestViewSet, basename='material-requests')
router.register(r'purchase-requisitions', PurchaseRequisitionViewSet, basename='purchase-requisitions')
router.register(r'enquiries', EnquiryViewSet, basename='enquiries')
router.register(r'purchase-orders', PurchaseOrderViewSet, basename='purchase-orders')
router.register(r'goods-receipts', GoodsReceiptViewSet, basename='goods-receipts')
router.register(r'purchase-invoices', PurchaseInvoiceViewSet, basename='purchase-invoices')

# Inventory
router.register(r'stock-movements', StockMovementViewSet, basename='stock-movements')
router.register(r'stock-adjustments', StockAdjustmentViewSet, basename='stock-adjustments')
router.register(r'stock-batches', StockBatchViewSet, basename='stock-batches')
router.register(r'stock-alerts', StockAlertViewSet, basename='stock-alerts')
router.register(r'material-requisitions', MaterialRequisitionViewSet, basename='material-requisitions')
router.register(r'material-issues', MaterialIssueViewSet, basename='material-issues')
router.register(r'material-returns', MaterialReturnViewSet, basename='material-returns')
router.register(r'material-reservations', MaterialReservationViewSet, basename='material-reservations')

# Production
router.register(r'finished-goods', FinishedGoodViewSet, basename='finished-goods')

# Dispatch
router.register(r'delivery-challans', DeliveryChallanViewSet, basename='delivery-challans')
router.register(r'dispatch-records', DispatchRecordViewSet, basename='dispatch-records')

# Notifications, audit, settings
router.register(r'notifications', NotificationViewSet, basename='notifications')
router.register(r'audit-logs', AuditLogViewSet, basename='audit-logs')
router.register(r'settings', SystemSettingViewSet, basename='settings')

# Dashboards
router.register(r'dashboard', DashboardViewSet, basename='dashboard')

app_name = 'api_v1'

urlpatterns = [
    path('webhooks/n8n/', N8nWebhookView.as_view(), name='webhook-n8n'),
    path('', include(router.urls)),
]
