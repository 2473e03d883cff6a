"""
BOM ORM Models.

Bill of Materials raised by the project manager for a production job.
The BOM lists raw materials required; the stock check compares them with
stores and feeds the shortfall into a purchase requisition.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone

from domain.shared.exceptions import BusinessRuleViolationException
from .base import BaseModel, BaseModelWithHistory, DocumentMixin, ActiveManager, AllObjectsManager


class BillOfMaterials(DocumentMixin, BaseModelWithHistory):
    """
    Bill of Materials for one product / job.

    Workflow: draft -> submitted -> stock_checked -> pr_generated -> completed.
    A stock check may be repeated while the BOM is stock_checked.
    """

    NUMBER_PREFIX = 'BOM'

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('submitted', 'Submitted'),
        ('stock_checked', 'Stock checked'),
        ('pr_generated', 'PR generated'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'draft': ['submitted', 'cancelled'],
        'submitted': ['stock_checked', 'draft', 'cancelled'],
        'stock_checked': ['stock_checked', 'pr_generated', 'completed', 'cancelled'],
        'pr_generated': ['completed', 'cancelled'],
        'completed': [],
        'cancelled': [],
    }

    project_name = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="Project"
    )
    product_name = models.CharField(
        max_length=255,
        verbose_name="Product"
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=1,
        verbose_name="Quantity to produce"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='draft',
        db_index=True,
        verbose_name="Status"
    )
    required_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Required by"
    )

    # Last stock check
    items_available = models.PositiveIntegerField(
        default=0,
        verbose_name="Lines available"
    )
    items_short = models.PositiveIntegerField(
        default=0,
        verbose_name="Lines short"
    )
    stock_checked_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Stock checked at"
    )
    stock_checked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_checked_boms',
        verbose_name="Stock checked by"
    )

    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'bills_of_materials'
        verbose_name = 'Bill of materials'
        verbose_name_plural = 'Bills of materials'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.number} {self.product_name}"

    def submit(self, user=None):
        if not self.items.exists():
            raise BusinessRuleViolationException(
                'bom_has_items', "A BOM without items cannot be submitted"
            )
        return self.transition_to('submitted', updated_by=user)

    def record_stock_check(self, result, user=None):
        """Store the outcome of a stock check on the BOM and its lines."""
        by_material = {ln.line.material_id: ln for ln in result.lines}
        for item in self.items.all():
            checked = by_material.get(item.material_id)
            if checked is None:
                continue
            item.available_quantity = checked.available_quantity
            item.shortfall_quantity = checked.shortfall
            item.save(update_fields=['available_quantity', 'shortfall_quantity', 'updated_at'])
        return self.transition_to(
            'stock_checked',
            items_available=result.items_available,
            items_short=result.items_short,
            stock_checked_at=timezone.now(),
            stock_checked_by=user,
        )


class BOMItem(BaseModel):
    """
    BOM line - a material and the quantity required.
    """

    bom = models.ForeignKey(
        BillOfMaterials,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name="BOM"
    )
    material = models.ForeignKey(
        'Material',
        on_delete=models.PROTECT,
        related_name='bom_items',
        verbose_name="Material"
    )
    required_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name="Required quantity"
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

    # Snapshot of the last stock check
    available_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name="Available at check"
    )
    shortfall_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name="Shortfall at check"
    )

    class Meta:
        db_table = 'bom_items'
        verbose_name = 'BOM item'
        verbose_name_plural = 'BOM items'
        ordering = ['created_at']
        unique_together = [['bom', 'material']]

    def __str__(self):
        return f"{self.material} x {self.required_quantity}"

    def save(self, *args, **kwargs):
        if not self.unit and self.material_id:
            self.unit = self.material.unit
        super().save(*args, **kwargs)
