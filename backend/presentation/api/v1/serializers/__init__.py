"""
Serializers Package.

All API serializers for the ERP system.
"""

from .base import BaseModelSerializer, DocumentSerializer, UserMinimalSerializer

from .users import (
    RoleSerializer,
    UserListSerializer,
    UserDetailSerializer,
    UserCreateSerializer,
    ChangePasswordSerializer,
    LoginSerializer,
    UserProfileSerializer,
)

from .catalog import (
    SupplierListSerializer,
    SupplierDetailSerializer,
    MaterialListSerializer,
    MaterialDetailSerializer,
    MaterialMinimalSerializer,
)

from .bom import (
    BOMItemSerializer,
    BOMListSerializer,
    BOMDetailSerializer,
)

from .procurement import (
    MaterialRequestSerializer,
    MaterialRequestCreateSerializer,
    PurchaseRequisitionListSerializer,
    PurchaseRequisitionDetailSerializer,
    PurchaseRequisitionCreateSerializer,
    EnquirySerializer,
    EnquiryCreateSerializer,
    SupplierQuoteSerializer,
    QuoteInputSerializer,
    PurchaseOrderListSerializer,
    PurchaseOrderDetailSerializer,
    PurchaseOrderCreateSerializer,
    OrderFromRequisitionSerializer,
    GoodsReceiptListSerializer,
    GoodsReceiptDetailSerializer,
    GoodsReceiptCreateSerializer,
    InspectionSerializer,
    PurchaseInvoiceSerializer,
    InvoicePaymentSerializer,
)

from .inventory import (
    StockMovementSerializer,
    StockAdjustmentSerializer,
    StockAdjustmentCreateSerializer,
    StockBatchSerializer,
    StockAlertSerializer,
    SnoozeSerializer,
    ReorderSuggestionSerializer,
    MaterialRequisitionSerializer,
    MaterialRequisitionCreateSerializer,
    MaterialIssueSerializer,
)

from .production import (
    FinishedGoodSerializer,
    QCDecisionSerializer,
    MoveToStockSerializer,
)

from .dispatch import (
    DeliveryChallanSerializer,
    DeliveryChallanCreateSerializer,
    DispatchRecordSerializer,
)

from .notifications import (
    NotificationSerializer,
    AuditLogSerializer,
    SystemSettingSerializer,
)
