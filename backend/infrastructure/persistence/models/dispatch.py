"""
Dispatch ORM Models.

Delivery Challans (DC) accompanying goods leaving the factory and the
dispatch records that track shipments to the customer.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone

from domain.shared.exceptions import BusinessRuleViolationException, check_transition
from .base import BaseModel, BaseModelWithHistory, DocumentMixin, ActiveManager, AllObjectsManager


class DeliveryChallan(DocumentMixin, BaseModelWithHistory):
    """
    Delivery Challan - DC-YYYYMMDD-NNN.

    Consignor details are copied from the company settings when the
    challan is created so that a printed DC never changes afterwards.
    """

    NUMBER_PREFIX = 'DC'
    NUMBER_LONG_DATE = True
    NUMBER_WIDTH = 3

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('dispatched', 'Dispatched'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'draft': ['dispatched', 'cancelled'],
        'dispatched': ['delivered'],
        'delivered': [],
        'cancelled': [],
    }

    REASON_CHOICES = [
        ('supply', 'Supply'),
        ('job_work', 'Job work'),
        ('return', 'Return'),
        ('sample', 'Sample'),
        ('other', 'Other'),
    ]

    TRANSPORT_MODE_CHOICES = [
        ('road', 'Road'),
        ('rail', 'Rail'),
        ('air', 'Air'),
        ('courier', 'Courier'),
        ('hand', 'By hand'),
    ]

    challan_date = models.DateField(
        default=timezone.localdate,
        verbose_name="Challan date"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='draft',
        db_index=True,
        verbose_name="Status"
    )
    reason = models.CharField(
        max_length=15,
        choices=REASON_CHOICES,
        default='supply',
        verbose_name="Reason"
    )

    # Consignor
    consignor = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Consignor"
    )

    # Consignee
    consignee_name = models.CharField(
        max_length=255,
        verbose_name="Consignee"
    )
    consignee_address = models.TextField(
        blank=True,
        verbose_name="Consignee address"
    )
    consignee_gstin = models.CharField(
        max_length=15,
        blank=True,
        verbose_name="Consignee GSTIN"
    )
    consignee_phone = models.CharField(
        max_length=30,
        blank=True,
        verbose_name="Consignee phone"
    )

    # Transport
    transport_mode = models.CharField(
        max_length=10,
        choices=TRANSPORT_MODE_CHOICES,
        default='road',
        verbose_name="Transport mode"
    )
    vehicle_number = models.CharField(
        max_length=30,
        blank=True,
        verbose_name="Vehicle number"
    )
    driver_name = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Driver"
    )
    driver_phone = models.CharField(
        max_length=30,
        blank=True,
        verbose_name="Driver phone"
    )
    lr_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="LR number"
    )

    dispatched_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Dispatched at"
    )
    delivered_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Delivered at"
    )
    received_by_name = models.CharField(
        max_length=150,
        blank=True,
        verbose_name="Received by"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'delivery_challans'
        verbose_name = 'Delivery challan'
        verbose_name_plural = 'Delivery challans'
        ordering = ['-challan_date', '-created_at']

    def __str__(self):
        return f"{self.number} to {self.consignee_name}"

    @property
    def total_quantity(self):
        return sum((item.quantity for item in self.items.all()), 0)

    def cancel(self, user=None):
        return self.transition_to('cancelled', updated_by=user)


class DeliveryChallanItem(BaseModel):
    challan = models.ForeignKey(
        DeliveryChallan,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="Delivery challan"
    )
    sl_no = models.PositiveIntegerField(
        default=0,
        verbose_name="Sl. no."
    )
    item_code = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Item code"
    )
    description = models.CharField(
        max_length=500,
        verbose_name="Description"
    )
    hsn_code = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="HSN code"
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name="Quantity"
    )
    unit = models.CharField(
        max_length=20,
        default='nos',
        verbose_name="Unit"
    )
    finished_good = models.ForeignKey(
        'FinishedGood',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='challan_items',
        verbose_name="Finished good"
    )

    class Meta:
        db_table = 'delivery_challan_items'
        verbose_name = 'Delivery challan item'
        verbose_name_plural = 'Delivery challan items'
        ordering = ['sl_no']

    def __str__(self):
        return f"{self.sl_no}. {self.description} x {self.quantity}"

    def save(self, *args, **kwargs):
        if not self.sl_no:
            last = self.challan.items.aggregate(m=models.Max('sl_no'))['m'] or 0
            self.sl_no = last + 1
        super().save(*args, **kwargs)


class DispatchRecord(BaseModelWithHistory):
    """
    Dispatch Record - a shipment of finished goods to a customer.

    Workflow: ready -> in_transit -> delivered.
    """

    STATUS_CHOICES = [
        ('ready', 'Ready'),
        ('in_transit', 'In transit'),
        ('delivered', 'Delivered'),
    ]

    TRANSITIONS = {
        'ready': ['in_transit'],
        'in_transit': ['delivered'],
        'delivered': [],
    }

    finished_good = models.ForeignKey(
        'FinishedGood',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='dispatch_records',
        verbose_name="Finished good"
    )
    challan = models.ForeignKey(
        DeliveryChallan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dispatch_records',
        verbose_name="Delivery challan"
    )
    customer = models.CharField(
        max_length=255,
        verbose_name="Customer"
    )
    destination = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Destination"
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=1,
        verbose_name="Quantity"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='ready',
        db_index=True,
        verbose_name="Status"
    )
    dispatch_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Dispatch date"
    )
    delivered_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Delivered date"
    )
    tracking_reference = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Tracking reference"
    )
    dispatched_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dispatch_records',
        verbose_name="Dispatched by"
    )
    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'dispatch_records'
        verbose_name = 'Dispatch record'
        verbose_name_plural = 'Dispatch records'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.customer} ({self.get_status_display()})"

    def _move(self, target, **fields):
        check_transition('dispatch record', self.TRANSITIONS, self.status, target)
        self.status = target
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=['status', 'updated_at', *fields.keys()])
        return self

    def start_transit(self, user=None, tracking_reference=''):
        if self.finished_good_id and self.finished_good.status not in ('qc_passed', 'in_stock', 'dispatched'):
            raise BusinessRuleViolationException(
                'fg_ready', "Only QC-passed finished goods can be dispatched"
            )
        return self._move(
            'in_transit',
            dispatch_date=timezone.now(),
            dispatched_by=user,
            tracking_reference=tracking_reference or self.tracking_reference,
        )

    def mark_delivered(self, user=None):
        return self._move('delivered', delivered_date=timezone.now(), updated_by=user)
