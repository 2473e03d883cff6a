"""
Persistence Models Package.

All Django ORM models for the ERP system.
"""

# Base mixins and managers
from .base import (
    TimeStampedMixin,
    SoftDeleteMixin,
    VersionedMixin,
    AuditMixin,
    DocumentMixin,
    ActiveManager,
    AllObjectsManager,
)

# User models
from .users import (
    User,
    Role,
)

# Catalog models
from .catalog import (
    Supplier,
    Material,
)

# BOM models
from .bom import (
    BillOfMaterials,
    BOMItem,
)

# Procurement models
from .procurement import (
    MaterialRequest,
    MaterialRequestItem,
    PurchaseRequisition,
    PurchaseRequisitionItem,
    Enquiry,
    SupplierQuote,
    SupplierQuoteItem,
    PurchaseOrder,
    PurchaseOrderItem,
    ApprovalStep,
    GoodsReceipt,
    GoodsReceiptItem,
    PurchaseInvoice,
)

# Inventory models
from .inventory import (
    StockMovement,
    StockAdjustment,
    StockBatch,
    StockAlert,
    MaterialRequisition,
    MaterialRequisitionItem,
    MaterialIssue,
    MaterialIssueItem,
    MaterialReturn,
    MaterialReservation,
)

# Production models
from .production import (
    FinishedGood,
)

# Dispatch models
from .dispatch import (
    DeliveryChallan,
    DeliveryChallanItem,
    DispatchRecord,
)

# Audit models
from .audit import (
    AuditLog,
    Notification,
    NotificationRole,
    WebhookEvent,
    SystemSetting,
)


__all__ = [
    # Base
    'TimeStampedMixin',
    'SoftDeleteMixin',
    'VersionedMixin',
    'AuditMixin',
    'DocumentMixin',
    'ActiveManager',
    'AllObjectsManager',
    # Users
    'User',
    'Role',
    # Catalog
    'Supplier',
    'Material',
    # BOM
    'BillOfMaterials',
    'BOMItem',
    # Procurement
    'MaterialRequest',
    'MaterialRequestItem',
    'PurchaseRequisition',
    'PurchaseRequisitionItem',
    'Enquiry',
    'SupplierQuote',
    'SupplierQuoteItem',
    'PurchaseOrder',
    'PurchaseOrderItem',
    'ApprovalStep',
    'GoodsReceipt',
    'GoodsReceiptItem',
    'PurchaseInvoice',
    # Inventory
    'StockMovement',
    'StockAdjustment',
    'StockBatch',
    'StockAlert',
    'MaterialRequisition',
    'MaterialRequisitionItem',
    'MaterialIssue',
    'MaterialIssueItem',
    'MaterialReturn',
    'MaterialReservation',
    # Production
    'FinishedGood',
    # Dispatch
    'DeliveryChallan',
    'DeliveryChallanItem',
    'DispatchRecord',
    # Audit
    'AuditLog',
    'Notification',
    'NotificationRole',
    'WebhookEvent',
    'SystemSetting',
]
