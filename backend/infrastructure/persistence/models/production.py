"""
Production ORM Models.

Finished goods coming off the production floor and their quality check.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone

from domain.shared.exceptions import ValidationException
from .base import BaseModelWithHistory, DocumentMixin, ActiveManager, AllObjectsManager


class FinishedGood(DocumentMixin, BaseModelWithHistory):
    """
    Finished Good - a produced part or batch awaiting QC, stocked or shipped.

    Workflow: pending_qc -> qc_passed | qc_failed;
    qc_passed -> in_stock -> dispatched; qc_failed -> pending_qc (rework).
    """

    NUMBER_PREFIX = 'FG'

    STATUS_CHOICES = [
        ('pending_qc', 'Pending QC'),
        ('qc_passed', 'QC passed'),
        ('qc_failed', 'QC failed'),
        ('in_stock', 'In stock'),
        ('dispatched', 'Dispatched'),
    ]

    TRANSITIONS = {
        'pending_qc': ['qc_passed', 'qc_failed'],
        'qc_passed': ['in_stock', 'dispatched'],
        'qc_failed': ['pending_qc'],
        'in_stock': ['dispatched'],
        'dispatched': [],
    }

    product_name = models.CharField(
        max_length=255,
        db_index=True,
        verbose_name="Product"
    )
    product_code = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Product code"
    )
    project = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="Project"
    )
    bom = models.ForeignKey(
        'BillOfMaterials',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='finished_goods',
        verbose_name="BOM"
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=1,
        verbose_name="Quantity"
    )
    unit = models.CharField(
        max_length=20,
        default='nos',
        verbose_name="Unit"
    )
    serial_number = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Batch / serial number"
    )
    hsn_code = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="HSN code"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='pending_qc',
        db_index=True,
        verbose_name="Status"
    )
    produced_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='produced_goods',
        verbose_name="Produced by"
    )
    produced_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Produced at"
    )

    # QC
    qc_inspector = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inspected_goods',
        verbose_name="QC inspector"
    )
    qc_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="QC date"
    )
    qc_notes = models.TextField(
        blank=True,
        verbose_name="QC notes"
    )
    rework_count = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Rework count"
    )

    storage_location = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Storage location"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'finished_goods'
        verbose_name = 'Finished good'
        verbose_name_plural = 'Finished goods'
        ordering = ['-produced_at']

    def __str__(self):
        return f"{self.number} {self.product_name}"

    def pass_qc(self, inspector, notes=''):
        return self.transition_to(
            'qc_passed', qc_inspector=inspector, qc_date=timezone.now(), qc_notes=notes or ''
        )

    def fail_qc(self, inspector, notes):
        if not notes:
            raise ValidationException("QC notes are required when failing an item", field='notes')
        return self.transition_to(
            'qc_failed', qc_inspector=inspector, qc_date=timezone.now(), qc_notes=notes
        )

    def move_to_stock(self, user=None, location=''):
        return self.transition_to(
            'in_stock', storage_location=location or self.storage_location, updated_by=user
        )

    def rework(self, user=None):
        return self.transition_to('pending_qc', rework_count=self.rework_count + 1, updated_by=user)

    def mark_dispatched(self):
        return self.transition_to('dispatched')
