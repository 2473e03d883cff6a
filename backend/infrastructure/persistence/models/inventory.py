"""
Inventory ORM Models.

Models for stores management:
- StockMovement - ledger of every stock change
- StockAdjustment - manual correction of the on-hand quantity
- StockBatch - lots received through GRN, issued FIFO
- StockAlert - low stock alerts with acknowledge / resolve / snooze
- MaterialRequisition - supervisor asks the store for material
- MaterialIssue - material handed out against a requisition
- MaterialReturn - unused material brought back from a job
- MaterialReservation - stock blocked for a planned job
"""

from datetime import timedelta

from django.db import models
from django.conf import settings
from django.utils import timezone

from domain.inventory.rules import expiry_status
from domain.shared.exceptions import BusinessRuleViolationException, ValidationException
from domain.shared.value_objects import AlertLevel, Urgency
from .base import BaseModel, BaseModelWithHistory, DocumentMixin, ActiveManager, AllObjectsManager


class StockMovement(models.Model):
    """
    Stock Movement - record of stock changes (inward, issue, adjustment).

    Quantity is signed: positive for inward, negative for issue.
    """

    TYPE_CHOICES = [
        ('inward', 'Inward'),
        ('issue', 'Issue'),
        ('adjustment', 'Adjustment'),
        ('return', 'Return'),
        ('dispatch', 'Dispatch'),
    ]

    id = models.BigAutoField(primary_key=True)

    material = models.ForeignKey(
        'Material',
        on_delete=models.CASCADE,
        related_name='movements',
        verbose_name="Material"
    )
    movement_type = models.CharField(
        max_length=20,
        choices=TYPE_CHOICES,
        db_index=True,
        verbose_name="Movement type"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    balance_after = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Balance after"
    )
    batch = models.ForeignKey(
        'StockBatch',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name="Batch"
    )

    # Source document
    reference = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        verbose_name="Reference document"
    )
    project = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="Project"
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='stock_movements',
        verbose_name="Performed by"
    )
    performed_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name="Performed at"
    )
    notes = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Notes"
    )

    class Meta:
        db_table = 'stock_movements'
        verbose_name = 'Stock movement'
        verbose_name_plural = 'Stock movements'
        ordering = ['-performed_at', '-id']
        indexes = [
            models.Index(fields=['material', 'performed_at'], name='stock_mov_material_time_idx'),
        ]

    def __str__(self):
        return f"{self.get_movement_type_display()}: {self.quantity} ({self.performed_at})"


class StockAdjustment(DocumentMixin, BaseModel):
    """
    Stock Adjustment - physical count correction.
    """

    NUMBER_PREFIX = 'ADJ'

    REASON_CHOICES = [
        ('physical_count', 'Physical count'),
        ('damage', 'Damage'),
        ('expiry', 'Expired'),
        ('correction', 'Data correction'),
        ('opening', 'Opening balance'),
        ('other', 'Other'),
    ]

    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='adjustments',
        verbose_name="Material"
    )
    previous_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Previous quantity"
    )
    new_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="New quantity"
    )
    difference = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Difference"
    )
    reason = models.CharField(
        max_length=20,
        choices=REASON_CHOICES,
        default='physical_count',
        verbose_name="Reason"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )
    adjusted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='stock_adjustments',
        verbose_name="Adjusted by"
    )

    class Meta:
        db_table = 'stock_adjustments'
        verbose_name = 'Stock adjustment'
        verbose_name_plural = 'Stock adjustments'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.number}: {self.material} {self.previous_quantity} -> {self.new_quantity}"


class StockBatch(BaseModelWithHistory):
    """
    Stock Batch (Lot) - material received in one GRN line.

    Batch-tracked materials are issued from the oldest QC-passed batch first.
    """

    QC_STATUS_CHOICES = [
        ('pending', 'Pending QC'),
        ('passed', 'Passed'),
        ('quarantined', 'Quarantined'),
        ('rejected', 'Rejected'),
    ]

    material = models.ForeignKey(
        'Material',
        on_delete=models.CASCADE,
        related_name='batches',
        verbose_name="Material"
    )
    batch_number = models.CharField(
        max_length=50,
        verbose_name="Batch number"
    )
    received_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Received quantity"
    )
    remaining_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Remaining quantity"
    )
    received_date = models.DateField(
        default=timezone.localdate,
        verbose_name="Received date"
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Expiry date"
    )
    qc_status = models.CharField(
        max_length=15,
        choices=QC_STATUS_CHOICES,
        default='passed',
        verbose_name="QC status"
    )
    goods_receipt = models.ForeignKey(
        'GoodsReceipt',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='batches',
        verbose_name="Goods receipt"
    )
    unit_cost = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Unit cost"
    )

    class Meta:
        db_table = 'stock_batches'
        verbose_name = 'Batch'
        verbose_name_plural = 'Batches'
        ordering = ['received_date', 'batch_number']
        unique_together = [['material', 'batch_number']]

    def __str__(self):
        return f"Batch {self.batch_number}: {self.remaining_quantity} ({self.material})"

    @property
    def is_empty(self):
        return self.remaining_quantity <= 0

    @property
    def expiry_status(self):
        return expiry_status(self.expiry_date, timezone.localdate()).value

    def quarantine(self, user=None):
        self.qc_status = 'quarantined'
        self.updated_by = user
        self.save(update_fields=['qc_status', 'updated_by', 'updated_at'])

    def release(self, user=None):
        self.qc_status = 'passed'
        self.updated_by = user
        self.save(update_fields=['qc_status', 'updated_by', 'updated_at'])


class StockAlert(BaseModel):
    """
    Stock Alert - raised when a material drops towards or below its minimum.

    A material has at most one alert in an active state
    (active, acknowledged or snoozed).
    """

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('acknowledged', 'Acknowledged'),
        ('snoozed', 'Snoozed'),
        ('resolved', 'Resolved'),
    ]

    OPEN_STATUSES = ('active', 'acknowledged', 'snoozed')

    material = models.ForeignKey(
        'Material',
        on_delete=models.CASCADE,
        related_name='alerts',
        verbose_name="Material"
    )
    level = models.CharField(
        max_length=15,
        choices=[(lvl.value, lvl.value.replace('_', ' ').title()) for lvl in AlertLevel],
        db_index=True,
        verbose_name="Level"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='active',
        db_index=True,
        verbose_name="Status"
    )
    current_stock = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Stock when raised"
    )
    min_stock = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Minimum stock"
    )
    suggested_reorder_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Suggested reorder quantity"
    )

    acknowledged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='acknowledged_alerts',
        verbose_name="Acknowledged by"
    )
    acknowledged_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Acknowledged at"
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Resolved at"
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_alerts',
        verbose_name="Resolved by"
    )
    purchase_order = models.ForeignKey(
        'PurchaseOrder',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_alerts',
        verbose_name="Purchase order"
    )
    snoozed_until = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Snoozed until"
    )

    class Meta:
        db_table = 'stock_alerts'
        verbose_name = 'Stock alert'
        verbose_name_plural = 'Stock alerts'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.material}: {self.level} ({self.status})"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    def acknowledge(self, user=None):
        if self.status != 'active':
            raise BusinessRuleViolationException('alert_active', "Only an active alert can be acknowledged")
        self.status = 'acknowledged'
        self.acknowledged_by = user
        self.acknowledged_at = timezone.now()
        self.save(update_fields=['status', 'acknowledged_by', 'acknowledged_at', 'updated_at'])
        return self

    def resolve(self, user=None, purchase_order=None):
        if not self.is_open:
            raise BusinessRuleViolationException('alert_open', "Alert is already resolved")
        self.status = 'resolved'
        self.resolved_by = user
        self.resolved_at = timezone.now()
        self.purchase_order = purchase_order
        self.save(update_fields=['status', 'resolved_by', 'resolved_at', 'purchase_order', 'updated_at'])
        return self

    def snooze(self, hours, user=None):
        hours = int(hours)
        if hours <= 0:
            raise ValidationException("Snooze hours must be positive", field='hours', value=hours)
        if not self.is_open:
            raise BusinessRuleViolationException('alert_open', "Cannot snooze a resolved alert")
        self.status = 'snoozed'
        self.snoozed_until = timezone.now() + timedelta(hours=hours)
        self.updated_by = user
        self.save(update_fields=['status', 'snoozed_until', 'updated_by', 'updated_at'])
        return self


# =============================================================================
# SUPERVISOR REQUISITION & ISSUE
# =============================================================================

class MaterialRequisition(DocumentMixin, BaseModelWithHistory):
    """
    Material Requisition (MRQ) - production supervisor asks the store.

    Workflow: pending -> stock check -> ready_to_issue -> issued.
    Shortfalls can be sent to purchase as a material request.
    Every step is appended to `workflow_log`.
    """

    NUMBER_PREFIX = 'MRQ'

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('stock_available', 'Stock available'),
        ('stock_partial', 'Stock partially available'),
        ('stock_unavailable', 'Stock unavailable'),
        ('ready_to_issue', 'Ready to issue'),
        ('issued', 'Issued'),
        ('rejected', 'Rejected'),
        ('sent_to_purchase', 'Sent to purchase'),
    ]

    CHECKED = ['stock_available', 'stock_partial', 'stock_unavailable']

    TRANSITIONS = {
        'pending': CHECKED + ['rejected'],
        'stock_available': CHECKED + ['ready_to_issue', 'rejected'],
        'stock_partial': CHECKED + ['ready_to_issue', 'rejected', 'sent_to_purchase'],
        'stock_unavailable': CHECKED + ['rejected', 'sent_to_purchase'],
        'ready_to_issue': ['issued', 'rejected'],
        'issued': [],
        'rejected': [],
        'sent_to_purchase': CHECKED,
    }

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='material_requisitions',
        verbose_name="Requested by"
    )
    project = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="Project"
    )
    team = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Team"
    )
    urgency = models.CharField(
        max_length=10,
        choices=[(u.value, u.value.title()) for u in Urgency],
        default=Urgency.NORMAL.value,
        verbose_name="Urgency"
    )
    required_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Required by"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
        db_index=True,
        verbose_name="Status"
    )
    rejection_reason = models.TextField(
        blank=True,
        verbose_name="Rejection reason"
    )
    workflow_log = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Workflow log"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'material_requisitions'
        verbose_name = 'Material requisition'
        verbose_name_plural = 'Material requisitions'
        ordering = ['-created_at']

    def __str__(self):
        return self.number

    def log(self, action, user=None, note=''):
        self.workflow_log = list(self.workflow_log or []) + [{
            'action': action,
            'by': str(user) if user else None,
            'by_id': str(user.pk) if user else None,
            'note': note,
            'at': timezone.now().isoformat(),
        }]

    def move(self, target, action, user=None, note='', **extra_fields):
        """Transition and append the step to the workflow log in one save."""
        self.log(action, user, note)
        return self.transition_to(target, workflow_log=self.workflow_log, **extra_fields)


class MaterialRequisitionItem(BaseModel):
    requisition = models.ForeignKey(
        MaterialRequisition,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Requisition"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='requisition_lines',
        verbose_name="Material"
    )
    requested_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Requested"
    )
    available_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name="In stock at check"
    )
    issued_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Issued"
    )
    notes = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Notes"
    )

    class Meta:
        db_table = 'material_requisition_items'
        verbose_name = 'Material requisition item'
        verbose_name_plural = 'Material requisition items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.material} x {self.requested_quantity}"

    @property
    def shortfall(self):
        available = self.available_quantity or 0
        return max(self.requested_quantity - available, 0)


class MaterialIssue(DocumentMixin, BaseModel):
    """
    Material Issue - store hands material to production.
    """

    NUMBER_PREFIX = 'ISS'

    requisition = models.ForeignKey(
        MaterialRequisition,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='issues',
        verbose_name="Requisition"
    )
    issued_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_issues',
        verbose_name="Issued to"
    )
    issued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='material_issues',
        verbose_name="Issued by"
    )
    project = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="Project"
    )
    team = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Team"
    )
    issued_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Issued at"
    )

    class Meta:
        db_table = 'material_issues'
        verbose_name = 'Material issue'
        verbose_name_plural = 'Material issues'
        ordering = ['-issued_at']

    def __str__(self):
        return self.number


class MaterialIssueItem(models.Model):
    id = models.BigAutoField(primary_key=True)

    issue = models.ForeignKey(
        MaterialIssue,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Issue"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='issue_items',
        verbose_name="Material"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='issue_items',
        verbose_name="Batch"
    )

    class Meta:
        db_table = 'material_issue_items'
        verbose_name = 'Material issue item'
        verbose_name_plural = 'Material issue items'

    def __str__(self):
        return f"{self.material} x {self.quantity}"


# =============================================================================
# RETURNS & RESERVATIONS
# =============================================================================

class MaterialReturn(DocumentMixin, BaseModel):
    """
    Material Return (RET) - unused material brought back from a job.

    Only material returned in good condition goes back into stock; the
    return is recorded either way.
    """

    NUMBER_PREFIX = 'RET'

    CONDITION_CHOICES = [
        ('good', 'Good'),
        ('damaged', 'Damaged'),
        ('partial', 'Partially usable'),
    ]

    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='returns',
        verbose_name="Material"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    job_number = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name="Job number"
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='returns',
        verbose_name="Batch"
    )
    condition = models.CharField(
        max_length=10,
        choices=CONDITION_CHOICES,
        default='good',
        verbose_name="Condition"
    )
    restocked_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Restocked"
    )
    remarks = models.TextField(
        blank=True,
        verbose_name="Remarks"
    )
    returned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='material_returns',
        verbose_name="Returned by"
    )
    returned_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Returned at"
    )

    class Meta:
        db_table = 'material_returns'
        verbose_name = 'Material return'
        verbose_name_plural = 'Material returns'
        ordering = ['-returned_at']

    def __str__(self):
        return f"{self.number}: {self.material} x {self.quantity} ({self.condition})"


class MaterialReservation(DocumentMixin, BaseModel):
    """
    Material Reservation (RSV) - stock blocked for a planned job.

    Active reservations reduce what can be reserved by others. Fulfilling
    a reservation issues the reserved quantity from stock.
    """

    NUMBER_PREFIX = 'RSV'

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('fulfilled', 'Fulfilled'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'active': ['fulfilled', 'cancelled'],
        'fulfilled': [],
        'cancelled': [],
    }

    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name="Material"
    )
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Quantity"
    )
    job_number = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name="Job number"
    )
    production_order = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Production order"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='active',
        db_index=True,
        verbose_name="Status"
    )
    reserved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='material_reservations',
        verbose_name="Reserved by"
    )
    issue = models.ForeignKey(
        MaterialIssue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reservations',
        verbose_name="Issue"
    )

    class Meta:
        db_table = 'material_reservations'
        verbose_name = 'Material reservation'
        verbose_name_plural = 'Material reservations'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.number}: {self.material} x {self.quantity} for {self.job_number}"
