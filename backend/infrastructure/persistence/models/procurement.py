"""
Procurement ORM Models.

Models for the purchasing cycle:
- MaterialRequest - departments ask the purchase team for material
- PurchaseRequisition (PR) - what purchase has to buy, from a BOM shortfall,
  a material request, a stock alert or raised by hand
- Enquiry / SupplierQuote - quotes collected against a PR
- PurchaseOrder (PO) - order to a supplier, approved by the MD above a threshold
- GoodsReceipt (GRN) - inward of goods against a PO, with QC per line
- PurchaseInvoice - supplier bill matched to the PO
"""

import uuid
from decimal import Decimal

from django.db import models, transaction
from django.conf import settings
from django.utils import timezone

from domain.procurement import rules
from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from domain.shared.value_objects import Priority, Urgency, QualityStatus
from .base import BaseModel, BaseModelWithHistory, DocumentMixin, ActiveManager, AllObjectsManager


PRIORITY_CHOICES = [(p.value, p.value.title()) for p in Priority]
URGENCY_CHOICES = [(u.value, u.value.title()) for u in Urgency]


# =============================================================================
# MATERIAL REQUEST
# =============================================================================

class MaterialRequest(DocumentMixin, BaseModelWithHistory):
    """
    Material Request - a department asks purchase for material.

    Approved requests are converted into a purchase requisition.
    """

    NUMBER_PREFIX = 'MR'

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('converted_to_pr', 'Converted to PR'),
    ]

    TRANSITIONS = {
        'pending': ['approved', 'rejected'],
        'approved': ['converted_to_pr', 'rejected'],
        'rejected': [],
        'converted_to_pr': [],
    }

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='material_requests',
        verbose_name="Requested by"
    )
    department = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Department"
    )
    urgency = models.CharField(
        max_length=10,
        choices=URGENCY_CHOICES,
        default=Urgency.NORMAL.value,
        verbose_name="Urgency"
    )
    required_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Required by"
    )
    purpose = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Purpose"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True,
        verbose_name="Status"
    )

    # Decision
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_material_requests',
        verbose_name="Approved by"
    )
    approved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Approved at"
    )
    rejection_reason = models.TextField(
        blank=True,
        verbose_name="Rejection reason"
    )

    # Origin (supervisor requisition sent to purchase)
    source_requisition = models.ForeignKey(
        'MaterialRequisition',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='material_requests',
        verbose_name="Source requisition"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'material_requests'
        verbose_name = 'Material request'
        verbose_name_plural = 'Material requests'
        ordering = ['-created_at']

    def __str__(self):
        return self.number

    @property
    def priority(self):
        return Urgency(self.urgency).to_priority()

    def approve(self, user=None):
        return self.transition_to('approved', approved_by=user, approved_at=timezone.now())

    def reject(self, user=None, reason=''):
        if not reason:
            raise ValidationException("Rejection reason is required", field='reason')
        return self.transition_to('rejected', rejection_reason=reason, updated_by=user)


class MaterialRequestItem(BaseModel):
    request = models.ForeignKey(
        MaterialRequest,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Material request"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='material_request_items',
        verbose_name="Material"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    unit = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="Unit"
    )
    notes = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Notes"
    )

    class Meta:
        db_table = 'material_request_items'
        verbose_name = 'Material request item'
        verbose_name_plural = 'Material request items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.material} x {self.quantity}"


# =============================================================================
# PURCHASE REQUISITION
# =============================================================================

class PurchaseRequisition(DocumentMixin, BaseModelWithHistory):
    """
    Purchase Requisition (PR) - demand the purchase team has to source.
    """

    NUMBER_PREFIX = 'PR'

    SOURCE_CHOICES = [
        ('bom', 'BOM shortfall'),
        ('material_request', 'Material request'),
        ('manual', 'Manual'),
        ('stock_alert', 'Stock alert'),
    ]

    STATUS_CHOICES = [
        ('pending_enquiry', 'Pending enquiry'),
        ('enquiry_in_progress', 'Enquiry in progress'),
        ('quotes_received', 'Quotes received'),
        ('po_created', 'PO created'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'pending_enquiry': ['enquiry_in_progress', 'po_created', 'cancelled'],
        'enquiry_in_progress': ['quotes_received', 'po_created', 'cancelled'],
        'quotes_received': ['quotes_received', 'po_created', 'cancelled'],
        'po_created': ['po_created', 'completed'],
        'completed': [],
        'cancelled': [],
    }

    source_type = models.CharField(
        max_length=20,
        choices=SOURCE_CHOICES,
        default='manual',
        verbose_name="Source"
    )
    source_reference = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Source document"
    )
    bom = models.ForeignKey(
        'BillOfMaterials',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_requisitions',
        verbose_name="BOM"
    )
    material_request = models.ForeignKey(
        MaterialRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_requisitions',
        verbose_name="Material request"
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORITY_CHOICES,
        default=Priority.NORMAL.value,
        db_index=True,
        verbose_name="Priority"
    )
    status = models.CharField(
        max_length=25,
        choices=STATUS_CHOICES,
        default='pending_enquiry',
        db_index=True,
        verbose_name="Status"
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_requisitions',
        verbose_name="Requested by"
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_requisitions',
        verbose_name="Assigned to"
    )
    required_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Required by"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'purchase_requisitions'
        verbose_name = 'Purchase requisition'
        verbose_name_plural = 'Purchase requisitions'
        ordering = ['-created_at']

    def __str__(self):
        return self.number

    @property
    def estimated_total(self):
        return sum((item.estimated_total for item in self.items.all()), Decimal('0'))

    def assign(self, assignee, user=None):
        self.assigned_to = assignee
        self.updated_by = user
        self.save(update_fields=['assigned_to', 'updated_by', 'updated_at'])
        return self

    def cancel(self, user=None):
        return self.transition_to('cancelled', updated_by=user)


class PurchaseRequisitionItem(BaseModel):
    requisition = models.ForeignKey(
        PurchaseRequisition,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Purchase requisition"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='requisition_items',
        verbose_name="Material"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    unit = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="Unit"
    )
    estimated_unit_price = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Estimated unit price"
    )
    estimated_total = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Estimated total"
    )
    suggested_supplier = models.ForeignKey(
        'Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='suggested_requisition_items',
        verbose_name="Suggested supplier"
    )
    notes = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Notes"
    )

    class Meta:
        db_table = 'purchase_requisition_items'
        verbose_name = 'Purchase requisition item'
        verbose_name_plural = 'Purchase requisition items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.material} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.estimated_total = rules.line_total(self.quantity, self.estimated_unit_price)
        if not self.unit and self.material_id:
            self.unit = self.material.unit
        super().save(*args, **kwargs)


# =============================================================================
# ENQUIRY & QUOTES
# =============================================================================

class Enquiry(DocumentMixin, BaseModelWithHistory):
    """
    Enquiry - request for quotation sent to suppliers for a PR.
    """

    NUMBER_PREFIX = 'ENQ'

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('quoted', 'Quoted'),
        ('closed', 'Closed'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'open': ['quoted', 'closed', 'cancelled'],
        'quoted': ['quoted', 'closed', 'cancelled'],
        'closed': [],
        'cancelled': [],
    }

    requisition = models.ForeignKey(
        PurchaseRequisition,
        on_delete=models.PROTECT,
        related_name='enquiries',
        verbose_name="Purchase requisition"
    )
    suppliers = models.ManyToManyField(
        'Supplier',
        related_name='enquiries',
        blank=True,
        verbose_name="Suppliers"
    )
    due_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Quotes due"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='open',
        verbose_name="Status"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'enquiries'
        verbose_name = 'Enquiry'
        verbose_name_plural = 'Enquiries'
        ordering = ['-created_at']

    def __str__(self):
        return self.number

    @property
    def selected_quote(self):
        return self.quotes.filter(is_selected=True).first()

    def select_quote(self, quote, user=None):
        """Mark one quote as chosen; any previous choice is cleared."""
        if quote.enquiry_id != self.id:
            raise ValidationException("Quote does not belong to this enquiry", field='quote')
        with transaction.atomic():
            self.quotes.exclude(pk=quote.pk).update(is_selected=False)
            quote.is_selected = True
            quote.save(update_fields=['is_selected', 'updated_at'])
        return quote


class SupplierQuote(BaseModel):
    """Quote received from one supplier against an enquiry."""

    enquiry = models.ForeignKey(
        Enquiry,
        on_delete=models.CASCADE,
        related_name='quotes',
        verbose_name="Enquiry"
    )
    supplier = models.ForeignKey(
        'Supplier',
        on_delete=models.PROTECT,
        related_name='quotes',
        verbose_name="Supplier"
    )
    quote_reference = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Supplier quote ref."
    )
    delivery_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Delivery (days)"
    )
    valid_until = models.DateField(
        null=True,
        blank=True,
        verbose_name="Valid until"
    )
    is_selected = models.BooleanField(
        default=False,
        verbose_name="Selected"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    class Meta:
        db_table = 'supplier_quotes'
        verbose_name = 'Supplier quote'
        verbose_name_plural = 'Supplier quotes'
        ordering = ['created_at']
        unique_together = [['enquiry', 'supplier']]

    def __str__(self):
        return f"{self.enquiry.number} / {self.supplier}"

    @property
    def total(self):
        return rules.order_totals((i.quantity, i.unit_price) for i in self.items.all()).subtotal


class SupplierQuoteItem(BaseModel):
    quote = models.ForeignKey(
        SupplierQuote,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Quote"
    )
    requisition_item = models.ForeignKey(
        PurchaseRequisitionItem,
        on_delete=models.CASCADE,
        related_name='quote_items',
        verbose_name="Requisition item"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    unit_price = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name="Unit price"
    )

    class Meta:
        db_table = 'supplier_quote_items'
        verbose_name = 'Supplier quote item'
        verbose_name_plural = 'Supplier quote items'
        ordering = ['created_at']

    @property
    def line_total(self):
        return rules.line_total(self.quantity, self.unit_price)


# =============================================================================
# PURCHASE ORDER
# =============================================================================

class PurchaseOrder(DocumentMixin, BaseModelWithHistory):
    """
    Purchase Order (PO).

    Totals are derived from the lines: subtotal, GST on the subtotal, total.
    Submitting an order above the approval threshold sends it to the MD;
    below the threshold it is approved automatically.
    """

    NUMBER_PREFIX = 'PO'

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending_md_approval', 'Pending MD approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('ordered', 'Ordered'),
        ('partially_received', 'Partially received'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'draft': ['pending_md_approval', 'approved', 'cancelled'],
        'pending_md_approval': ['approved', 'rejected', 'cancelled'],
        'approved': ['ordered', 'partially_received', 'received', 'cancelled'],
        'rejected': ['draft', 'cancelled'],
        'ordered': ['partially_received', 'received', 'cancelled'],
        'partially_received': ['partially_received', 'received'],
        'received': [],
        'cancelled': [],
    }

    RECEIVABLE_STATUSES = ('approved', 'ordered', 'partially_received')

    supplier = models.ForeignKey(
        'Supplier',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name="Supplier"
    )
    requisition = models.ForeignKey(
        PurchaseRequisition,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders',
        verbose_name="Purchase requisition"
    )
    enquiry = models.ForeignKey(
        Enquiry,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders',
        verbose_name="Enquiry"
    )
    status = models.CharField(
        max_length=25,
        choices=STATUS_CHOICES,
        default='draft',
        db_index=True,
        verbose_name="Status"
    )

    # Dates & terms
    order_date = models.DateField(
        default=timezone.localdate,
        verbose_name="Order date"
    )
    expected_delivery_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Expected delivery"
    )
    delivery_address = models.TextField(
        blank=True,
        verbose_name="Delivery address"
    )
    payment_terms = models.CharField(
        max_length=200,
        blank=True,
        verbose_name="Payment terms"
    )

    # Amounts
    subtotal = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Subtotal"
    )
    gst_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=rules.DEFAULT_GST_RATE,
        verbose_name="GST rate (%)"
    )
    gst_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="GST amount"
    )
    total = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Total"
    )

    # Approval
    requires_md_approval = models.BooleanField(
        default=False,
        verbose_name="Requires MD approval"
    )
    submitted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Submitted at"
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_purchase_orders',
        verbose_name="Approved by"
    )
    approved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Approved at"
    )
    rejection_reason = models.TextField(
        blank=True,
        verbose_name="Rejection reason"
    )
    ordered_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Ordered at"
    )

    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'purchase_orders'
        verbose_name = 'Purchase order'
        verbose_name_plural = 'Purchase orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'order_date'], name='po_status_date_idx'),
        ]

    def __str__(self):
        return f"{self.number} ({self.supplier})"

    def recalculate_totals(self, save=True):
        totals = rules.order_totals(
            ((item.quantity, item.unit_price) for item in self.items.all()),
            self.gst_rate,
        )
        self.subtotal = totals.subtotal
        self.gst_amount = totals.gst_amount
        self.total = totals.total
        if save:
            self.save(update_fields=['subtotal', 'gst_amount', 'total', 'updated_at'])
        return totals

    def submit_for_approval(self, user=None, threshold=rules.DEFAULT_MD_APPROVAL_THRESHOLD):
        """
        Send the order for approval.

        Returns True when the MD has to decide, False when the order was
        approved automatically because it is below the threshold.
        """
        if not self.items.exists():
            raise BusinessRuleViolationException('po_has_items', "Cannot submit an empty purchase order")
        with transaction.atomic():
            self.recalculate_totals(save=False)
            self.requires_md_approval = rules.requires_md_approval(self.total, threshold)
            self.submitted_at = timezone.now()
            self.save(update_fields=[
                'subtotal', 'gst_amount', 'total', 'requires_md_approval', 'submitted_at', 'updated_at'
            ])
            if self.requires_md_approval:
                self.transition_to('pending_md_approval', updated_by=user)
            else:
                self._record_approval(user, ApprovalStep.DECISION_AUTO,
                                      f"Below approval threshold of {threshold}")
                self.transition_to('approved', approved_by=user, approved_at=timezone.now())
        return self.requires_md_approval

    def approve(self, user, comments=''):
        if self.status != 'pending_md_approval':
            raise BusinessRuleViolationException(
                'po_pending_approval', f"Purchase order {self.number} is not awaiting approval"
            )
        with transaction.atomic():
            self._record_approval(user, ApprovalStep.DECISION_APPROVED, comments)
            self.transition_to('approved', approved_by=user, approved_at=timezone.now())
        return self

    def reject(self, user, reason):
        if not reason:
            raise ValidationException("Rejection reason is required", field='reason')
        if self.status != 'pending_md_approval':
            raise BusinessRuleViolationException(
                'po_pending_approval', f"Purchase order {self.number} is not awaiting approval"
            )
        with transaction.atomic():
            self._record_approval(user, ApprovalStep.DECISION_REJECTED, reason)
            self.transition_to('rejected', rejection_reason=reason, updated_by=user)
        return self

    def mark_ordered(self, user=None):
        if self.status != 'approved':
            raise BusinessRuleViolationException(
                'po_approved', "Only an approved purchase order can be placed with the supplier"
            )
        return self.transition_to('ordered', ordered_at=timezone.now(), updated_by=user)

    def cancel(self, user=None, reason=''):
        if self.goods_receipts.exists():
            raise BusinessRuleViolationException(
                'po_not_received', "Cannot cancel a purchase order with goods receipts"
            )
        return self.transition_to('cancelled', rejection_reason=reason, updated_by=user)

    def reopen(self, user=None):
        """Return a rejected order to draft for correction."""
        return self.transition_to('draft', rejection_reason='', updated_by=user)

    def apply_receipt_status(self):
        """Set partially_received / received from the line quantities."""
        new_status = rules.receipt_status(
            (item.quantity, item.received_quantity) for item in self.items.all()
        )
        if new_status:
            self.transition_to(new_status)
        return new_status

    def _record_approval(self, user, decision, comments=''):
        return ApprovalStep.objects.create(
            purchase_order=self,
            role=getattr(user, 'role', '') or 'md',
            approver=user,
            decision=decision,
            comments=comments or '',
            amount=self.total,
        )


class PurchaseOrderItem(BaseModel):
    order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Purchase order"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='purchase_order_items',
        verbose_name="Material"
    )
    requisition_item = models.ForeignKey(
        PurchaseRequisitionItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        verbose_name="Requisition item"
    )
    description = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Description"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    unit = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="Unit"
    )
    unit_price = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name="Unit price"
    )
    received_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Received quantity"
    )

    class Meta:
        db_table = 'purchase_order_items'
        verbose_name = 'Purchase order item'
        verbose_name_plural = 'Purchase order items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.material} x {self.quantity} @ {self.unit_price}"

    def save(self, *args, **kwargs):
        if not self.unit and self.material_id:
            self.unit = self.material.unit
        super().save(*args, **kwargs)

    @property
    def line_total(self):
        return rules.line_total(self.quantity, self.unit_price)

    @property
    def pending_quantity(self):
        return rules.outstanding_quantity(self.quantity, self.received_quantity)


class ApprovalStep(models.Model):
    """One decision on a purchase order."""

    DECISION_APPROVED = 'approved'
    DECISION_REJECTED = 'rejected'
    DECISION_AUTO = 'auto_approved'

    DECISION_CHOICES = [
        (DECISION_APPROVED, 'Approved'),
        (DECISION_REJECTED, 'Rejected'),
        (DECISION_AUTO, 'Auto-approved'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='approval_steps',
        verbose_name="Purchase order"
    )
    role = models.CharField(
        max_length=20,
        verbose_name="Approver role"
    )
    approver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approval_steps',
        verbose_name="Approver"
    )
    decision = models.CharField(
        max_length=20,
        choices=DECISION_CHOICES,
        verbose_name="Decision"
    )
    comments = models.TextField(
        blank=True,
        verbose_name="Comments"
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Order total at decision"
    )
    decided_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Decided at"
    )

    class Meta:
        db_table = 'po_approval_steps'
        verbose_name = 'Approval step'
        verbose_name_plural = 'Approval steps'
        ordering = ['decided_at']

    def __str__(self):
        return f"{self.purchase_order.number}: {self.get_decision_display()}"


# =============================================================================
# GOODS RECEIPT
# =============================================================================

class GoodsReceipt(DocumentMixin, BaseModelWithHistory):
    """
    Goods Receipt Note (GRN).

    Creating a GRN records the received quantities on the PO lines.
    Stock is only increased when the accepted quantities are posted
    after quality inspection.
    """

    NUMBER_PREFIX = 'GRN'

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('quality_check', 'Quality check'),
        ('verified', 'Verified'),
        ('stock_updated', 'Stock updated'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
    ]

    TRANSITIONS = {
        'pending': ['quality_check', 'verified', 'rejected'],
        'quality_check': ['verified', 'rejected'],
        'verified': ['stock_updated'],
        'stock_updated': ['completed'],
        'completed': [],
        'rejected': [],
    }

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.PROTECT,
        related_name='goods_receipts',
        verbose_name="Purchase order"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True,
        verbose_name="Status"
    )
    received_date = models.DateField(
        default=timezone.localdate,
        verbose_name="Received date"
    )
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='goods_receipts',
        verbose_name="Received by"
    )
    vehicle_number = models.CharField(
        max_length=30,
        blank=True,
        verbose_name="Vehicle number"
    )
    supplier_dc_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Supplier DC number"
    )
    supplier_invoice_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Supplier invoice number"
    )

    # QC
    inspected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inspected_receipts',
        verbose_name="Inspected by"
    )
    inspected_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Inspected at"
    )

    # Posting
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='posted_receipts',
        verbose_name="Posted by"
    )
    posted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Posted to stock at"
    )

    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'goods_receipts'
        verbose_name = 'Goods receipt'
        verbose_name_plural = 'Goods receipts'
        ordering = ['-received_date', '-created_at']

    def __str__(self):
        return f"{self.number} ({self.purchase_order.number})"

    def send_to_quality(self, user=None):
        return self.transition_to('quality_check', updated_by=user)

    def complete(self, user=None):
        return self.transition_to('completed', updated_by=user)


class GoodsReceiptItem(BaseModel):
    receipt = models.ForeignKey(
        GoodsReceipt,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Goods receipt"
    )
    purchase_order_item = models.ForeignKey(
        PurchaseOrderItem,
        on_delete=models.PROTECT,
        related_name='receipt_items',
        verbose_name="PO item"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='receipt_items',
        verbose_name="Material"
    )
    ordered_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Ordered"
    )
    received_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Received"
    )
    accepted_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Accepted"
    )
    rejected_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Rejected"
    )
    quality_status = models.CharField(
        max_length=10,
        choices=[(q.value, q.value.title()) for q in QualityStatus],
        default=QualityStatus.PENDING.value,
        verbose_name="Quality status"
    )
    rejection_reason = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Rejection reason"
    )
    batch_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Batch number"
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Expiry date"
    )

    class Meta:
        db_table = 'goods_receipt_items'
        verbose_name = 'Goods receipt item'
        verbose_name_plural = 'Goods receipt items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.material} received {self.received_quantity}"

    def record_inspection(self, accepted, rejected, reason=''):
        verdict = rules.quality_status(self.received_quantity, accepted, rejected)
        self.accepted_quantity = accepted
        self.rejected_quantity = rejected
        self.quality_status = verdict.value
        self.rejection_reason = reason or ''
        self.save(update_fields=[
            'accepted_quantity', 'rejected_quantity', 'quality_status', 'rejection_reason', 'updated_at'
        ])
        return verdict


# =============================================================================
# PURCHASE INVOICE
# =============================================================================

class PurchaseInvoice(DocumentMixin, BaseModelWithHistory):
    """
    Supplier invoice matched against a purchase order.
    """

    NUMBER_PREFIX = 'PINV'

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('verified', 'Verified'),
        ('payment_pending', 'Payment pending'),
        ('paid', 'Paid'),
        ('disputed', 'Disputed'),
    ]

    TRANSITIONS = {
        'pending': ['verified', 'disputed'],
        'verified': ['payment_pending', 'disputed'],
        'payment_pending': ['paid', 'disputed'],
        'disputed': ['pending', 'verified'],
        'paid': [],
    }

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.PROTECT,
        related_name='invoices',
        verbose_name="Purchase order"
    )
    goods_receipt = models.ForeignKey(
        GoodsReceipt,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='invoices',
        verbose_name="Goods receipt"
    )
    supplier_invoice_number = models.CharField(
        max_length=50,
        verbose_name="Supplier invoice number"
    )
    invoice_date = models.DateField(
        verbose_name="Invoice date"
    )
    due_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Due date"
    )
    subtotal = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Subtotal"
    )
    gst_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="GST amount"
    )
    total = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Total"
    )
    paid_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        verbose_name="Paid amount"
    )
    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Paid at"
    )
    payment_reference = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Payment reference"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True,
        verbose_name="Status"
    )
    dispute_reason = models.TextField(
        blank=True,
        verbose_name="Dispute reason"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'purchase_invoices'
        verbose_name = 'Purchase invoice'
        verbose_name_plural = 'Purchase invoices'
        ordering = ['-invoice_date', '-created_at']
        unique_together = [['purchase_order', 'supplier_invoice_number']]

    def __str__(self):
        return f"{self.number} ({self.supplier_invoice_number})"

    def save(self, *args, **kwargs):
        if not self.total:
            self.total = rules.money(self.subtotal) + rules.money(self.gst_amount)
        super().save(*args, **kwargs)

    @property
    def amount_mismatch(self):
        """Difference between the invoice and the order total."""
        return rules.money(self.total) - rules.money(self.purchase_order.total)

    def verify(self, user=None):
        return self.transition_to('verified', updated_by=user)

    def request_payment(self, user=None):
        return self.transition_to('payment_pending', updated_by=user)

    def mark_paid(self, user=None, amount=None, reference=''):
        amount = rules.money(amount if amount is not None else self.total)
        if amount <= 0:
            raise ValidationException("Paid amount must be positive", field='amount', value=amount)
        return self.transition_to(
            'paid', paid_amount=amount, paid_at=timezone.now(),
            payment_reference=reference or '', updated_by=user,
        )

    def dispute(self, user=None, reason=''):
        if not reason:
            raise ValidationException("Dispute reason is required", field='reason')
        return self.transition_to('disputed', dispute_reason=reason, updated_by=user)
