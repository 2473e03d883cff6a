"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from infrastructure.persistence.models import (
    BillOfMaterials,
    BOMItem,
    FinishedGood,
    Material,
    PurchaseOrder,
    PurchaseOrderItem,
    StockBatch,
    Supplier,
)

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=6):
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(role='viewer', username=None, password='testpass123', **extra):
        """Create a user holding the role's default permissions"""
        username = username or f'{role}_{TestDataFactory.random_string()}'
        return User.objects.create_user(
            username=username,
            email=extra.pop('email', f'{username}@test.com'),
            password=password,
            role=role,
            **extra
        )

    @staticmethod
    def create_supplier(code=None, **extra):
        code = code or f'SUP{TestDataFactory.random_string(4).upper()}'
        return Supplier.objects.create(
            code=code,
            name=extra.pop('name', f'Supplier {code}'),
            payment_terms=extra.pop('payment_terms', '30 days'),
            **extra
        )

    @staticmethod
    def create_material(code=None, stock='0', min_stock='0', last_price=None, **extra):
        code = code or f'MAT{TestDataFactory.random_string(4).upper()}'
        return Material.objects.create(
            code=code,
            name=extra.pop('name', f'Material {code}'),
            unit=extra.pop('unit', 'kg'),
            current_stock=Decimal(stock),
            min_stock=Decimal(min_stock),
            last_price=Decimal(last_price) if last_price is not None else None,
            **extra
        )

    @staticmethod
    def create_bom(lines, user=None, status='draft', **extra):
        """`lines` are (material, required_quantity) pairs"""
        bom = BillOfMaterials.objects.create(
            product_name=extra.pop('product_name', 'Radome 1200'),
            project_name=extra.pop('project_name', 'Project Alpha'),
            status=status,
            created_by=user,
            **extra
        )
        for material, quantity in lines:
            BOMItem.objects.create(bom=bom, material=material, required_quantity=Decimal(quantity))
        return bom

    @staticmethod
    def create_purchase_order(supplier, lines, user=None, status='draft', gst_rate='18'):
        """`lines` are (material, quantity, unit_price) triples"""
        order = PurchaseOrder.objects.create(
            supplier=supplier,
            status=status,
            gst_rate=Decimal(gst_rate),
            created_by=user,
        )
        for material, quantity, unit_price in lines:
            PurchaseOrderItem.objects.create(
                order=order,
                material=material,
                description=material.name,
                quantity=Decimal(quantity),
                unit_price=Decimal(unit_price),
            )
        order.recalculate_totals()
        return order

    @staticmethod
    def create_batch(material, batch_number, quantity, received_date, expiry_date=None, qc_status='passed'):
        return StockBatch.objects.create(
            material=material,
            batch_number=batch_number,
            received_quantity=Decimal(quantity),
            remaining_quantity=Decimal(quantity),
            received_date=received_date,
            expiry_date=expiry_date,
            qc_status=qc_status,
        )

    @staticmethod
    def create_finished_good(status='pending_qc', **extra):
        return FinishedGood.objects.create(
            product_name=extra.pop('product_name', 'Radome 1200'),
            product_code=extra.pop('product_code', 'RD-1200'),
            quantity=Decimal(extra.pop('quantity', '2')),
            status=status,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
