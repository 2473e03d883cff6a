"""
Catalog ORM Models.

Materials held in the stores and the suppliers they are bought from.
"""

from decimal import Decimal

from django.db import models

from domain.inventory.rules import stock_status
from .base import BaseModelWithHistory, ActiveManager, AllObjectsManager


class Supplier(BaseModelWithHistory):
    """
    Supplier - vendor of raw materials and consumables.
    """

    code = models.CharField(
        max_length=30,
        unique=True,
        verbose_name="Code"
    )
    name = models.CharField(
        max_length=255,
        db_index=True,
        verbose_name="Name"
    )
    contact_person = models.CharField(
        max_length=150,
        blank=True,
        verbose_name="Contact person"
    )
    email = models.EmailField(
        blank=True,
        verbose_name="Email"
    )
    phone = models.CharField(
        max_length=30,
        blank=True,
        verbose_name="Phone"
    )
    gstin = models.CharField(
        max_length=15,
        blank=True,
        verbose_name="GSTIN"
    )
    address = models.TextField(
        blank=True,
        verbose_name="Address"
    )
    payment_terms = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Payment terms"
    )
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        verbose_name="Rating (1-5)"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'suppliers'
        verbose_name = 'Supplier'
        verbose_name_plural = 'Suppliers'
        ordering = ['name']

    def __str__(self):
        return self.name


class Material(BaseModelWithHistory):
    """
    Material - stocked item (resins, fibres, core materials, consumables).

    current_stock is the single source of truth for the on-hand quantity;
    it only changes through stock movements recorded by the inventory services.
    """

    CATEGORY_CHOICES = [
        ('raw_material', 'Raw material'),
        ('resin', 'Resin'),
        ('fibre', 'Fibre / reinforcement'),
        ('core', 'Core material'),
        ('consumable', 'Consumable'),
        ('hardware', 'Hardware'),
        ('tooling', 'Tooling'),
        ('packing', 'Packing material'),
        ('other', 'Other'),
    ]

    code = models.CharField(
        max_length=50,
        unique=True,
        db_index=True,
        verbose_name="Code"
    )
    name = models.CharField(
        max_length=255,
        db_index=True,
        verbose_name="Name"
    )
    category = models.CharField(
        max_length=30,
        choices=CATEGORY_CHOICES,
        default='raw_material',
        verbose_name="Category"
    )
    unit = models.CharField(
        max_length=20,
        default='kg',
        verbose_name="Unit"
    )
    hsn_code = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="HSN code"
    )
    location = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Store location"
    )

    # Stock levels
    current_stock = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Current stock"
    )
    min_stock = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=0,
        verbose_name="Minimum stock"
    )
    max_stock = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name="Maximum stock"
    )

    # Prices
    last_price = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Last purchase price"
    )
    average_price = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Average price"
    )

    preferred_supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='materials',
        verbose_name="Preferred supplier"
    )
    is_batch_tracked = models.BooleanField(
        default=False,
        verbose_name="Batch tracked",
        help_text="Issues are taken from QC-passed batches, oldest first"
    )

    objects = ActiveManager()
    all_objects = AllObjectsManager()

    class Meta:
        db_table = 'materials'
        verbose_name = 'Material'
        verbose_name_plural = 'Materials'
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def unit_price(self):
        return self.last_price or self.average_price or Decimal('0')

    @property
    def stock_value(self):
        return (self.current_stock or 0) * self.unit_price

    @property
    def is_low_stock(self):
        return self.current_stock <= self.min_stock

    @property
    def stock_status(self):
        return stock_status(self.current_stock, self.min_stock).value
