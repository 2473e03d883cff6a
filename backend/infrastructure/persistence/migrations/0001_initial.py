import uuid
from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
import simple_history.models
from django.conf import settings
from django.db import migrations, models

SET_NULL = django.db.models.deletion.SET_NULL
CASCADE = django.db.models.deletion.CASCADE
PROTECT = django.db.models.deletion.PROTECT

ROLE_CHOICES = [
    ('md', 'Managing Director'),
    ('admin', 'Administrator'),
    ('hr', 'HR Manager'),
    ('pm', 'Project Manager'),
    ('supervisor', 'Supervisor'),
    ('store', 'Store Manager'),
    ('purchase', 'Purchase Officer'),
    ('design', 'Design Engineer'),
    ('quality', 'Quality Controller'),
    ('dispatch', 'Dispatch Coordinator'),
    ('viewer', 'Viewer'),
]
URGENCY_CHOICES = [('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('critical', 'Critical')]
PRIORITY_CHOICES = [('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('urgent', 'Urgent')]


def quantity(verbose_name, **kwargs):
    return models.DecimalField(decimal_places=3, max_digits=15, verbose_name=verbose_name, **kwargs)


def money(verbose_name, **kwargs):
    return models.DecimalField(decimal_places=2, max_digits=15, verbose_name=verbose_name, **kwargs)


def user_fk(related_name, verbose_name, blank=True):
    return models.ForeignKey(
        blank=blank, null=True, on_delete=SET_NULL, related_name=related_name,
        to=settings.AUTH_USER_MODEL, verbose_name=verbose_name,
    )


def number_field():
    return models.CharField(blank=True, db_index=True, max_length=30, unique=True, verbose_name='Document number')


def base_fields(accessor):
    """Columns every BaseModel table carries; `accessor` prefixes the user back-references."""
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False,
                                verbose_name='ID')),
        ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
        ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
        ('deleted_at', models.DateTimeField(blank=True, null=True, verbose_name='Deleted at')),
        ('version', models.PositiveIntegerField(default=1, verbose_name='Version')),
        ('is_active', models.BooleanField(db_index=True, default=True, verbose_name='Active')),
        ('created_by', user_fk(f'{accessor}_created', 'Created by')),
        ('updated_by', user_fk(f'{accessor}_updated', 'Updated by')),
        ('deleted_by', user_fk(f'{accessor}_deleted', 'Deleted by')),
    ]


def historical(fields):
    """Copies of tracked columns as django-simple-history stores them: indexed, unconstrained."""
    copied = []
    for name, field in fields:
        if field.many_to_many:
            continue
        _, _, args, kwargs = field.deconstruct()
        kwargs.pop('serialize', None)
        if kwargs.pop('primary_key', False):
            kwargs['db_index'] = True
        if kwargs.pop('unique', False):
            kwargs['db_index'] = True
        if kwargs.pop('auto_now', False) or kwargs.pop('auto_now_add', False):
            kwargs.update(blank=True, editable=False)
        if field.is_relation:
            kwargs.update(
                blank=True, null=True, db_constraint=False, related_name='+',
                on_delete=django.db.models.deletion.DO_NOTHING,
            )
        copied.append((name, field.__class__(*args, **kwargs)))
    return copied


def history_fields():
    return [
        ('history_id', models.AutoField(primary_key=True, serialize=False)),
        ('history_date', models.DateTimeField(db_index=True)),
        ('history_change_reason', models.CharField(max_length=100, null=True)),
        ('history_type', models.CharField(
            choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
        ('history_user', models.ForeignKey(
            null=True, on_delete=SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
    ]


def base_model(name, fields, verbose_name, verbose_name_plural, **options):
    return migrations.CreateModel(
        name=name,
        fields=base_fields(name.lower()) + fields,
        options={'verbose_name': verbose_name, 'verbose_name_plural': verbose_name_plural, **options},
    )


def tracked_model(name, fields, verbose_name, verbose_name_plural, **options):
    """A BaseModelWithHistory table and its history table; `fields` builds fresh field instances."""
    accessor = name.lower()
    return [
        migrations.CreateModel(
            name=name,
            fields=base_fields(accessor) + fields(),
            options={'verbose_name': verbose_name, 'verbose_name_plural': verbose_name_plural, **options},
        ),
        migrations.CreateModel(
            name=f'Historical{name}',
            fields=historical(base_fields(accessor) + fields()) + history_fields(),
            options={
                'verbose_name': f'historical {verbose_name}',
                'verbose_name_plural': f'historical {verbose_name_plural}',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]


# =============================================================================
# CATALOG & BOM
# =============================================================================

def supplier_fields():
    return [
        ('code', models.CharField(max_length=30, unique=True, verbose_name='Code')),
        ('name', models.CharField(db_index=True, max_length=255, verbose_name='Name')),
        ('contact_person', models.CharField(blank=True, max_length=150, verbose_name='Contact person')),
        ('email', models.EmailField(blank=True, max_length=254, verbose_name='Email')),
        ('phone', models.CharField(blank=True, max_length=30, verbose_name='Phone')),
        ('gstin', models.CharField(blank=True, max_length=15, verbose_name='GSTIN')),
        ('address', models.TextField(blank=True, verbose_name='Address')),
        ('payment_terms', models.CharField(blank=True, max_length=100, verbose_name='Payment terms')),
        ('rating', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='Rating (1-5)')),
    ]


def material_fields():
    return [
        ('code', models.CharField(db_index=True, max_length=50, unique=True, verbose_name='Code')),
        ('name', models.CharField(db_index=True, max_length=255, verbose_name='Name')),
        ('category', models.CharField(choices=[
            ('raw_material', 'Raw material'), ('resin', 'Resin'), ('fibre', 'Fibre / reinforcement'),
            ('core', 'Core material'), ('consumable', 'Consumable'), ('hardware', 'Hardware'),
            ('tooling', 'Tooling'), ('packing', 'Packing material'), ('other', 'Other'),
        ], default='raw_material', max_length=30, verbose_name='Category')),
        ('unit', models.CharField(default='kg', max_length=20, verbose_name='Unit')),
        ('hsn_code', models.CharField(blank=True, max_length=20, verbose_name='HSN code')),
        ('location', models.CharField(blank=True, max_length=100, verbose_name='Store location')),
        ('current_stock', quantity('Current stock', default=0)),
        ('min_stock', quantity('Minimum stock', default=0)),
        ('max_stock', quantity('Maximum stock', blank=True, null=True)),
        ('last_price', money('Last purchase price', blank=True, null=True)),
        ('average_price', money('Average price', blank=True, null=True)),
        ('preferred_supplier', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='materials',
            to='persistence.supplier', verbose_name='Preferred supplier')),
        ('is_batch_tracked', models.BooleanField(
            default=False, help_text='Issues are taken from QC-passed batches, oldest first',
            verbose_name='Batch tracked')),
    ]


def bom_fields():
    return [
        ('number', number_field()),
        ('project_name', models.CharField(blank=True, max_length=255, verbose_name='Project')),
        ('product_name', models.CharField(max_length=255, verbose_name='Product')),
        ('quantity', models.DecimalField(decimal_places=3, default=1, max_digits=12,
                                         verbose_name='Quantity to produce')),
        ('status', models.CharField(choices=[
            ('draft', 'Draft'), ('submitted', 'Submitted'), ('stock_checked', 'Stock checked'),
            ('pr_generated', 'PR generated'), ('completed', 'Completed'), ('cancelled', 'Cancelled'),
        ], db_index=True, default='draft', max_length=20, verbose_name='Status')),
        ('required_date', models.DateField(blank=True, null=True, verbose_name='Required by')),
        ('items_available', models.PositiveIntegerField(default=0, verbose_name='Lines available')),
        ('items_short', models.PositiveIntegerField(default=0, verbose_name='Lines short')),
        ('stock_checked_at', models.DateTimeField(blank=True, null=True, verbose_name='Stock checked at')),
        ('stock_checked_by', user_fk('stock_checked_boms', 'Stock checked by')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


# =============================================================================
# PROCUREMENT
# =============================================================================

def material_request_fields():
    return [
        ('number', number_field()),
        ('requested_by', user_fk('material_requests', 'Requested by', blank=False)),
        ('department', models.CharField(blank=True, max_length=100, verbose_name='Department')),
        ('urgency', models.CharField(choices=URGENCY_CHOICES, default='normal', max_length=10,
                                     verbose_name='Urgency')),
        ('required_date', models.DateField(blank=True, null=True, verbose_name='Required by')),
        ('purpose', models.CharField(blank=True, max_length=500, verbose_name='Purpose')),
        ('status', models.CharField(choices=[
            ('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'),
            ('converted_to_pr', 'Converted to PR'),
        ], db_index=True, default='pending', max_length=20, verbose_name='Status')),
        ('approved_by', user_fk('approved_material_requests', 'Approved by')),
        ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Approved at')),
        ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection reason')),
        ('source_requisition', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='material_requests',
            to='persistence.materialrequisition', verbose_name='Source requisition')),
    ]


def purchase_requisition_fields():
    return [
        ('number', number_field()),
        ('source_type', models.CharField(choices=[
            ('bom', 'BOM shortfall'), ('material_request', 'Material request'), ('manual', 'Manual'),
            ('stock_alert', 'Stock alert'),
        ], default='manual', max_length=20, verbose_name='Source')),
        ('source_reference', models.CharField(blank=True, max_length=50, verbose_name='Source document')),
        ('bom', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='purchase_requisitions',
            to='persistence.billofmaterials', verbose_name='BOM')),
        ('material_request', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='purchase_requisitions',
            to='persistence.materialrequest', verbose_name='Material request')),
        ('priority', models.CharField(choices=PRIORITY_CHOICES, db_index=True, default='normal', max_length=10,
                                      verbose_name='Priority')),
        ('status', models.CharField(choices=[
            ('pending_enquiry', 'Pending enquiry'), ('enquiry_in_progress', 'Enquiry in progress'),
            ('quotes_received', 'Quotes received'), ('po_created', 'PO created'), ('completed', 'Completed'),
            ('cancelled', 'Cancelled'),
        ], db_index=True, default='pending_enquiry', max_length=25, verbose_name='Status')),
        ('requested_by', user_fk('purchase_requisitions', 'Requested by')),
        ('assigned_to', user_fk('assigned_requisitions', 'Assigned to')),
        ('required_date', models.DateField(blank=True, null=True, verbose_name='Required by')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


def enquiry_fields():
    return [
        ('number', number_field()),
        ('requisition', models.ForeignKey(
            on_delete=PROTECT, related_name='enquiries', to='persistence.purchaserequisition',
            verbose_name='Purchase requisition')),
        ('suppliers', models.ManyToManyField(
            blank=True, related_name='enquiries', to='persistence.supplier', verbose_name='Suppliers')),
        ('due_date', models.DateField(blank=True, null=True, verbose_name='Quotes due')),
        ('status', models.CharField(choices=[
            ('open', 'Open'), ('quoted', 'Quoted'), ('closed', 'Closed'), ('cancelled', 'Cancelled'),
        ], default='open', max_length=20, verbose_name='Status')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


def purchase_order_fields():
    return [
        ('number', number_field()),
        ('supplier', models.ForeignKey(
            on_delete=PROTECT, related_name='purchase_orders', to='persistence.supplier',
            verbose_name='Supplier')),
        ('requisition', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='purchase_orders',
            to='persistence.purchaserequisition', verbose_name='Purchase requisition')),
        ('enquiry', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='purchase_orders',
            to='persistence.enquiry', verbose_name='Enquiry')),
        ('status', models.CharField(choices=[
            ('draft', 'Draft'), ('pending_md_approval', 'Pending MD approval'), ('approved', 'Approved'),
            ('rejected', 'Rejected'), ('ordered', 'Ordered'), ('partially_received', 'Partially received'),
            ('received', 'Received'), ('cancelled', 'Cancelled'),
        ], db_index=True, default='draft', max_length=25, verbose_name='Status')),
        ('order_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Order date')),
        ('expected_delivery_date', models.DateField(blank=True, null=True, verbose_name='Expected delivery')),
        ('delivery_address', models.TextField(blank=True, verbose_name='Delivery address')),
        ('payment_terms', models.CharField(blank=True, max_length=200, verbose_name='Payment terms')),
        ('subtotal', money('Subtotal', default=0)),
        ('gst_rate', models.DecimalField(decimal_places=2, default=Decimal('18'), max_digits=5,
                                         verbose_name='GST rate (%)')),
        ('gst_amount', money('GST amount', default=0)),
        ('total', money('Total', default=0)),
        ('requires_md_approval', models.BooleanField(default=False, verbose_name='Requires MD approval')),
        ('submitted_at', models.DateTimeField(blank=True, null=True, verbose_name='Submitted at')),
        ('approved_by', user_fk('approved_purchase_orders', 'Approved by')),
        ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Approved at')),
        ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection reason')),
        ('ordered_at', models.DateTimeField(blank=True, null=True, verbose_name='Ordered at')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


def goods_receipt_fields():
    return [
        ('number', number_field()),
        ('purchase_order', models.ForeignKey(
            on_delete=PROTECT, related_name='goods_receipts', to='persistence.purchaseorder',
            verbose_name='Purchase order')),
        ('status', models.CharField(choices=[
            ('pending', 'Pending'), ('quality_check', 'Quality check'), ('verified', 'Verified'),
            ('stock_updated', 'Stock updated'), ('completed', 'Completed'), ('rejected', 'Rejected'),
        ], db_index=True, default='pending', max_length=20, verbose_name='Status')),
        ('received_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Received date')),
        ('received_by', user_fk('goods_receipts', 'Received by', blank=False)),
        ('vehicle_number', models.CharField(blank=True, max_length=30, verbose_name='Vehicle number')),
        ('supplier_dc_number', models.CharField(blank=True, max_length=50, verbose_name='Supplier DC number')),
        ('supplier_invoice_number', models.CharField(blank=True, max_length=50,
                                                     verbose_name='Supplier invoice number')),
        ('inspected_by', user_fk('inspected_receipts', 'Inspected by')),
        ('inspected_at', models.DateTimeField(blank=True, null=True, verbose_name='Inspected at')),
        ('posted_by', user_fk('posted_receipts', 'Posted by')),
        ('posted_at', models.DateTimeField(blank=True, null=True, verbose_name='Posted to stock at')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


def purchase_invoice_fields():
    return [
        ('number', number_field()),
        ('purchase_order', models.ForeignKey(
            on_delete=PROTECT, related_name='invoices', to='persistence.purchaseorder',
            verbose_name='Purchase order')),
        ('goods_receipt', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='invoices',
            to='persistence.goodsreceipt', verbose_name='Goods receipt')),
        ('supplier_invoice_number', models.CharField(max_length=50, verbose_name='Supplier invoice number')),
        ('invoice_date', models.DateField(verbose_name='Invoice date')),
        ('due_date', models.DateField(blank=True, null=True, verbose_name='Due date')),
        ('subtotal', money('Subtotal', default=0)),
        ('gst_amount', money('GST amount', default=0)),
        ('total', money('Total', default=0)),
        ('paid_amount', money('Paid amount', default=0)),
        ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Paid at')),
        ('payment_reference', models.CharField(blank=True, max_length=100, verbose_name='Payment reference')),
        ('status', models.CharField(choices=[
            ('pending', 'Pending'), ('verified', 'Verified'), ('payment_pending', 'Payment pending'),
            ('paid', 'Paid'), ('disputed', 'Disputed'),
        ], db_index=True, default='pending', max_length=20, verbose_name='Status')),
        ('dispute_reason', models.TextField(blank=True, verbose_name='Dispute reason')),
    ]


# =============================================================================
# INVENTORY
# =============================================================================

def stock_batch_fields():
    return [
        ('material', models.ForeignKey(
            on_delete=CASCADE, related_name='batches', to='persistence.material', verbose_name='Material')),
        ('batch_number', models.CharField(max_length=50, verbose_name='Batch number')),
        ('received_quantity', quantity('Received quantity')),
        ('remaining_quantity', quantity('Remaining quantity')),
        ('received_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Received date')),
        ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry date')),
        ('qc_status', models.CharField(choices=[
            ('pending', 'Pending QC'), ('passed', 'Passed'), ('quarantined', 'Quarantined'),
            ('rejected', 'Rejected'),
        ], default='passed', max_length=15, verbose_name='QC status')),
        ('goods_receipt', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='batches',
            to='persistence.goodsreceipt', verbose_name='Goods receipt')),
        ('unit_cost', money('Unit cost', blank=True, null=True)),
    ]


def material_requisition_fields():
    return [
        ('number', number_field()),
        ('requested_by', user_fk('material_requisitions', 'Requested by', blank=False)),
        ('project', models.CharField(blank=True, max_length=255, verbose_name='Project')),
        ('team', models.CharField(blank=True, max_length=100, verbose_name='Team')),
        ('urgency', models.CharField(choices=URGENCY_CHOICES, default='normal', max_length=10,
                                     verbose_name='Urgency')),
        ('required_date', models.DateField(blank=True, null=True, verbose_name='Required by')),
        ('status', models.CharField(choices=[
            ('pending', 'Pending'), ('stock_available', 'Stock available'),
            ('stock_partial', 'Stock partially available'), ('stock_unavailable', 'Stock unavailable'),
            ('ready_to_issue', 'Ready to issue'), ('issued', 'Issued'), ('rejected', 'Rejected'),
            ('sent_to_purchase', 'Sent to purchase'),
        ], db_index=True, default='pending', max_length=20, verbose_name='Status')),
        ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection reason')),
        ('workflow_log', models.JSONField(blank=True, default=list, verbose_name='Workflow log')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


# =============================================================================
# PRODUCTION & DISPATCH
# =============================================================================

def finished_good_fields():
    return [
        ('number', number_field()),
        ('product_name', models.CharField(db_index=True, max_length=255, verbose_name='Product')),
        ('product_code', models.CharField(blank=True, max_length=50, verbose_name='Product code')),
        ('project', models.CharField(blank=True, max_length=255, verbose_name='Project')),
        ('bom', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='finished_goods',
            to='persistence.billofmaterials', verbose_name='BOM')),
        ('quantity', models.DecimalField(decimal_places=3, default=1, max_digits=12, verbose_name='Quantity')),
        ('unit', models.CharField(default='nos', max_length=20, verbose_name='Unit')),
        ('serial_number', models.CharField(blank=True, max_length=100, verbose_name='Batch / serial number')),
        ('hsn_code', models.CharField(blank=True, max_length=20, verbose_name='HSN code')),
        ('status', models.CharField(choices=[
            ('pending_qc', 'Pending QC'), ('qc_passed', 'QC passed'), ('qc_failed', 'QC failed'),
            ('in_stock', 'In stock'), ('dispatched', 'Dispatched'),
        ], db_index=True, default='pending_qc', max_length=15, verbose_name='Status')),
        ('produced_by', user_fk('produced_goods', 'Produced by')),
        ('produced_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Produced at')),
        ('qc_inspector', user_fk('inspected_goods', 'QC inspector')),
        ('qc_date', models.DateTimeField(blank=True, null=True, verbose_name='QC date')),
        ('qc_notes', models.TextField(blank=True, verbose_name='QC notes')),
        ('rework_count', models.PositiveSmallIntegerField(default=0, verbose_name='Rework count')),
        ('storage_location', models.CharField(blank=True, max_length=100, verbose_name='Storage location')),
    ]


def delivery_challan_fields():
    return [
        ('number', number_field()),
        ('challan_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Challan date')),
        ('status', models.CharField(choices=[
            ('draft', 'Draft'), ('dispatched', 'Dispatched'), ('delivered', 'Delivered'),
            ('cancelled', 'Cancelled'),
        ], db_index=True, default='draft', max_length=15, verbose_name='Status')),
        ('reason', models.CharField(choices=[
            ('supply', 'Supply'), ('job_work', 'Job work'), ('return', 'Return'), ('sample', 'Sample'),
            ('other', 'Other'),
        ], default='supply', max_length=15, verbose_name='Reason')),
        ('consignor', models.JSONField(blank=True, default=dict, verbose_name='Consignor')),
        ('consignee_name', models.CharField(max_length=255, verbose_name='Consignee')),
        ('consignee_address', models.TextField(blank=True, verbose_name='Consignee address')),
        ('consignee_gstin', models.CharField(blank=True, max_length=15, verbose_name='Consignee GSTIN')),
        ('consignee_phone', models.CharField(blank=True, max_length=30, verbose_name='Consignee phone')),
        ('transport_mode', models.CharField(choices=[
            ('road', 'Road'), ('rail', 'Rail'), ('air', 'Air'), ('courier', 'Courier'), ('hand', 'By hand'),
        ], default='road', max_length=10, verbose_name='Transport mode')),
        ('vehicle_number', models.CharField(blank=True, max_length=30, verbose_name='Vehicle number')),
        ('driver_name', models.CharField(blank=True, max_length=100, verbose_name='Driver')),
        ('driver_phone', models.CharField(blank=True, max_length=30, verbose_name='Driver phone')),
        ('lr_number', models.CharField(blank=True, max_length=50, verbose_name='LR number')),
        ('dispatched_at', models.DateTimeField(blank=True, null=True, verbose_name='Dispatched at')),
        ('delivered_at', models.DateTimeField(blank=True, null=True, verbose_name='Delivered at')),
        ('received_by_name', models.CharField(blank=True, max_length=150, verbose_name='Received by')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


def dispatch_record_fields():
    return [
        ('finished_good', models.ForeignKey(
            blank=True, null=True, on_delete=PROTECT, related_name='dispatch_records',
            to='persistence.finishedgood', verbose_name='Finished good')),
        ('challan', models.ForeignKey(
            blank=True, null=True, on_delete=SET_NULL, related_name='dispatch_records',
            to='persistence.deliverychallan', verbose_name='Delivery challan')),
        ('customer', models.CharField(max_length=255, verbose_name='Customer')),
        ('destination', models.CharField(blank=True, max_length=500, verbose_name='Destination')),
        ('quantity', models.DecimalField(decimal_places=3, default=1, max_digits=12, verbose_name='Quantity')),
        ('status', models.CharField(choices=[
            ('ready', 'Ready'), ('in_transit', 'In transit'), ('delivered', 'Delivered'),
        ], db_index=True, default='ready', max_length=15, verbose_name='Status')),
        ('dispatch_date', models.DateTimeField(blank=True, null=True, verbose_name='Dispatch date')),
        ('delivered_date', models.DateTimeField(blank=True, null=True, verbose_name='Delivered date')),
        ('tracking_reference', models.CharField(blank=True, max_length=100, verbose_name='Tracking reference')),
        ('dispatched_by', user_fk('dispatch_records', 'Dispatched by')),
        ('notes', models.TextField(blank=True, verbose_name='Notes')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        # =====================================================================
        # USERS
        # =====================================================================
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(
                    default=False,
                    help_text='Designates that this user has all permissions without explicitly assigning them.',
                    verbose_name='superuser status')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(
                    default=False, help_text='Designates whether the user can log into this admin site.',
                    verbose_name='staff status')),
                ('is_active', models.BooleanField(
                    default=True,
                    help_text='Designates whether this user should be treated as active. '
                              'Unselect this instead of deleting accounts.',
                    verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('username', models.CharField(
                    max_length=150, unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name='Username')),
                ('email', models.EmailField(max_length=254, unique=True, verbose_name='Email')),
                ('role', models.CharField(choices=ROLE_CHOICES, db_index=True, default='viewer', max_length=20,
                                          verbose_name='Role')),
                ('department', models.CharField(blank=True, max_length=100, verbose_name='Department')),
                ('phone', models.CharField(blank=True, max_length=20, verbose_name='Phone')),
                ('permissions', models.JSONField(
                    blank=True, default=list,
                    help_text="Permission codes such as 'purchase:approve'; '*' grants everything",
                    verbose_name='Permissions')),
                ('last_activity', models.DateTimeField(blank=True, null=True, verbose_name='Last activity')),
                ('groups', models.ManyToManyField(
                    blank=True,
                    help_text='The groups this user belongs to. A user will get all permissions granted to '
                              'each of their groups.',
                    related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(
                    blank=True, help_text='Specific permissions for this user.', related_name='user_set',
                    related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'users',
                'ordering': ['first_name', 'last_name'],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Role',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(choices=ROLE_CHOICES, max_length=20, unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('default_permissions', models.JSONField(blank=True, default=list,
                                                         verbose_name='Default permissions')),
                ('dashboard', models.CharField(default='summary', max_length=30, verbose_name='Dashboard')),
                ('is_system_role', models.BooleanField(default=True, verbose_name='System role')),
            ],
            options={
                'verbose_name': 'Role',
                'verbose_name_plural': 'Roles',
                'db_table': 'roles',
                'ordering': ['code'],
            },
        ),

        # =====================================================================
        # CATALOG & BOM
        # =====================================================================
        *tracked_model('Supplier', supplier_fields, 'Supplier', 'Suppliers',
                       db_table='suppliers', ordering=['name']),
        *tracked_model('Material', material_fields, 'Material', 'Materials',
                       db_table='materials', ordering=['code']),
        *tracked_model('BillOfMaterials', bom_fields, 'Bill of materials', 'Bills of materials',
                       db_table='bills_of_materials', ordering=['-created_at']),
        base_model('BOMItem', [
            ('bom', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.billofmaterials', verbose_name='BOM')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='bom_items', to='persistence.material', verbose_name='Material')),
            ('required_quantity', quantity('Required quantity')),
            ('unit', models.CharField(blank=True, max_length=20, verbose_name='Unit')),
            ('notes', models.CharField(blank=True, max_length=500, verbose_name='Notes')),
            ('available_quantity', quantity('Available at check', blank=True, null=True)),
            ('shortfall_quantity', quantity('Shortfall at check', blank=True, null=True)),
        ], 'BOM item', 'BOM items', db_table='bom_items', ordering=['created_at'],
            unique_together={('bom', 'material')}),

        # =====================================================================
        # SUPERVISOR REQUISITIONS (referenced by material requests)
        # =====================================================================
        *tracked_model('MaterialRequisition', material_requisition_fields,
                       'Material requisition', 'Material requisitions',
                       db_table='material_requisitions', ordering=['-created_at']),
        base_model('MaterialRequisitionItem', [
            ('requisition', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.materialrequisition',
                verbose_name='Requisition')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='requisition_lines', to='persistence.material',
                verbose_name='Material')),
            ('requested_quantity', quantity('Requested')),
            ('available_quantity', quantity('In stock at check', blank=True, null=True)),
            ('issued_quantity', quantity('Issued', default=0)),
            ('notes', models.CharField(blank=True, max_length=500, verbose_name='Notes')),
        ], 'Material requisition item', 'Material requisition items',
            db_table='material_requisition_items', ordering=['created_at']),

        # =====================================================================
        # PROCUREMENT
        # =====================================================================
        *tracked_model('MaterialRequest', material_request_fields, 'Material request', 'Material requests',
                       db_table='material_requests', ordering=['-created_at']),
        base_model('MaterialRequestItem', [
            ('request', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.materialrequest',
                verbose_name='Material request')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='material_request_items', to='persistence.material',
                verbose_name='Material')),
            ('quantity', quantity('Quantity')),
            ('unit', models.CharField(blank=True, max_length=20, verbose_name='Unit')),
            ('notes', models.CharField(blank=True, max_length=500, verbose_name='Notes')),
        ], 'Material request item', 'Material request items',
            db_table='material_request_items', ordering=['created_at']),
        *tracked_model('PurchaseRequisition', purchase_requisition_fields,
                       'Purchase requisition', 'Purchase requisitions',
                       db_table='purchase_requisitions', ordering=['-created_at']),
        base_model('PurchaseRequisitionItem', [
            ('requisition', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.purchaserequisition',
                verbose_name='Purchase requisition')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='requisition_items', to='persistence.material',
                verbose_name='Material')),
            ('quantity', quantity('Quantity')),
            ('unit', models.CharField(blank=True, max_length=20, verbose_name='Unit')),
            ('estimated_unit_price', money('Estimated unit price', default=0)),
            ('estimated_total', money('Estimated total', default=0)),
            ('suggested_supplier', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='suggested_requisition_items',
                to='persistence.supplier', verbose_name='Suggested supplier')),
            ('notes', models.CharField(blank=True, max_length=500, verbose_name='Notes')),
        ], 'Purchase requisition item', 'Purchase requisition items',
            db_table='purchase_requisition_items', ordering=['created_at']),
        *tracked_model('Enquiry', enquiry_fields, 'Enquiry', 'Enquiries',
                       db_table='enquiries', ordering=['-created_at']),
        base_model('SupplierQuote', [
            ('enquiry', models.ForeignKey(
                on_delete=CASCADE, related_name='quotes', to='persistence.enquiry', verbose_name='Enquiry')),
            ('supplier', models.ForeignKey(
                on_delete=PROTECT, related_name='quotes', to='persistence.supplier', verbose_name='Supplier')),
            ('quote_reference', models.CharField(blank=True, max_length=100, verbose_name='Supplier quote ref.')),
            ('delivery_days', models.PositiveIntegerField(blank=True, null=True, verbose_name='Delivery (days)')),
            ('valid_until', models.DateField(blank=True, null=True, verbose_name='Valid until')),
            ('is_selected', models.BooleanField(default=False, verbose_name='Selected')),
            ('notes', models.TextField(blank=True, verbose_name='Notes')),
        ], 'Supplier quote', 'Supplier quotes', db_table='supplier_quotes', ordering=['created_at'],
            unique_together={('enquiry', 'supplier')}),
        base_model('SupplierQuoteItem', [
            ('quote', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.supplierquote', verbose_name='Quote')),
            ('requisition_item', models.ForeignKey(
                on_delete=CASCADE, related_name='quote_items', to='persistence.purchaserequisitionitem',
                verbose_name='Requisition item')),
            ('quantity', quantity('Quantity')),
            ('unit_price', money('Unit price')),
        ], 'Supplier quote item', 'Supplier quote items',
            db_table='supplier_quote_items', ordering=['created_at']),
        *tracked_model('PurchaseOrder', purchase_order_fields, 'Purchase order', 'Purchase orders',
                       db_table='purchase_orders', ordering=['-created_at']),
        migrations.AddIndex(
            model_name='purchaseorder',
            index=models.Index(fields=['status', 'order_date'], name='po_status_date_idx'),
        ),
        base_model('PurchaseOrderItem', [
            ('order', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.purchaseorder',
                verbose_name='Purchase order')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='purchase_order_items', to='persistence.material',
                verbose_name='Material')),
            ('requisition_item', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='order_items',
                to='persistence.purchaserequisitionitem', verbose_name='Requisition item')),
            ('description', models.CharField(blank=True, max_length=500, verbose_name='Description')),
            ('quantity', quantity('Quantity')),
            ('unit', models.CharField(blank=True, max_length=20, verbose_name='Unit')),
            ('unit_price', money('Unit price')),
            ('received_quantity', quantity('Received quantity', default=0)),
        ], 'Purchase order item', 'Purchase order items',
            db_table='purchase_order_items', ordering=['created_at']),
        migrations.CreateModel(
            name='ApprovalStep',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('purchase_order', models.ForeignKey(
                    on_delete=CASCADE, related_name='approval_steps', to='persistence.purchaseorder',
                    verbose_name='Purchase order')),
                ('role', models.CharField(max_length=20, verbose_name='Approver role')),
                ('approver', user_fk('approval_steps', 'Approver')),
                ('decision', models.CharField(choices=[
                    ('approved', 'Approved'), ('rejected', 'Rejected'), ('auto_approved', 'Auto-approved'),
                ], max_length=20, verbose_name='Decision')),
                ('comments', models.TextField(blank=True, verbose_name='Comments')),
                ('amount', money('Order total at decision', default=0)),
                ('decided_at', models.DateTimeField(auto_now_add=True, verbose_name='Decided at')),
            ],
            options={
                'verbose_name': 'Approval step',
                'verbose_name_plural': 'Approval steps',
                'db_table': 'po_approval_steps',
                'ordering': ['decided_at'],
            },
        ),
        *tracked_model('GoodsReceipt', goods_receipt_fields, 'Goods receipt', 'Goods receipts',
                       db_table='goods_receipts', ordering=['-received_date', '-created_at']),
        base_model('GoodsReceiptItem', [
            ('receipt', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.goodsreceipt',
                verbose_name='Goods receipt')),
            ('purchase_order_item', models.ForeignKey(
                on_delete=PROTECT, related_name='receipt_items', to='persistence.purchaseorderitem',
                verbose_name='PO item')),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='receipt_items', to='persistence.material',
                verbose_name='Material')),
            ('ordered_quantity', quantity('Ordered')),
            ('received_quantity', quantity('Received')),
            ('accepted_quantity', quantity('Accepted', default=0)),
            ('rejected_quantity', quantity('Rejected', default=0)),
            ('quality_status', models.CharField(choices=[
                ('pending', 'Pending'), ('passed', 'Passed'), ('failed', 'Failed'), ('partial', 'Partial'),
            ], default='pending', max_length=10, verbose_name='Quality status')),
            ('rejection_reason', models.CharField(blank=True, max_length=500, verbose_name='Rejection reason')),
            ('batch_number', models.CharField(blank=True, max_length=50, verbose_name='Batch number')),
            ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry date')),
        ], 'Goods receipt item', 'Goods receipt items',
            db_table='goods_receipt_items', ordering=['created_at']),
        *tracked_model('PurchaseInvoice', purchase_invoice_fields, 'Purchase invoice', 'Purchase invoices',
                       db_table='purchase_invoices', ordering=['-invoice_date', '-created_at'],
                       unique_together={('purchase_order', 'supplier_invoice_number')}),

        # =====================================================================
        # INVENTORY
        # =====================================================================
        *tracked_model('StockBatch', stock_batch_fields, 'Batch', 'Batches',
                       db_table='stock_batches', ordering=['received_date', 'batch_number'],
                       unique_together={('material', 'batch_number')}),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('material', models.ForeignKey(
                    on_delete=CASCADE, related_name='movements', to='persistence.material',
                    verbose_name='Material')),
                ('movement_type', models.CharField(choices=[
                    ('inward', 'Inward'), ('issue', 'Issue'), ('adjustment', 'Adjustment'), ('return', 'Return'),
                    ('dispatch', 'Dispatch'),
                ], db_index=True, max_length=20, verbose_name='Movement type')),
                ('quantity', quantity('Quantity')),
                ('balance_after', quantity('Balance after')),
                ('batch', models.ForeignKey(
                    blank=True, null=True, on_delete=SET_NULL, related_name='movements',
                    to='persistence.stockbatch', verbose_name='Batch')),
                ('reference', models.CharField(blank=True, db_index=True, max_length=100,
                                               verbose_name='Reference document')),
                ('project', models.CharField(blank=True, max_length=255, verbose_name='Project')),
                ('performed_by', user_fk('stock_movements', 'Performed by', blank=False)),
                ('performed_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now,
                                                      verbose_name='Performed at')),
                ('notes', models.CharField(blank=True, max_length=500, verbose_name='Notes')),
            ],
            options={
                'verbose_name': 'Stock movement',
                'verbose_name_plural': 'Stock movements',
                'db_table': 'stock_movements',
                'ordering': ['-performed_at', '-id'],
                'indexes': [
                    models.Index(fields=['material', 'performed_at'], name='stock_mov_material_time_idx'),
                ],
            },
        ),
        base_model('StockAdjustment', [
            ('number', number_field()),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='adjustments', to='persistence.material',
                verbose_name='Material')),
            ('previous_quantity', quantity('Previous quantity')),
            ('new_quantity', quantity('New quantity')),
            ('difference', quantity('Difference')),
            ('reason', models.CharField(choices=[
                ('physical_count', 'Physical count'), ('damage', 'Damage'), ('expiry', 'Expired'),
                ('correction', 'Data correction'), ('opening', 'Opening balance'), ('other', 'Other'),
            ], default='physical_count', max_length=20, verbose_name='Reason')),
            ('notes', models.TextField(blank=True, verbose_name='Notes')),
            ('adjusted_by', user_fk('stock_adjustments', 'Adjusted by', blank=False)),
        ], 'Stock adjustment', 'Stock adjustments', db_table='stock_adjustments', ordering=['-created_at']),
        base_model('StockAlert', [
            ('material', models.ForeignKey(
                on_delete=CASCADE, related_name='alerts', to='persistence.material', verbose_name='Material')),
            ('level', models.CharField(choices=[
                ('out_of_stock', 'Out Of Stock'), ('critical', 'Critical'), ('warning', 'Warning'),
                ('info', 'Info'),
            ], db_index=True, max_length=15, verbose_name='Level')),
            ('status', models.CharField(choices=[
                ('active', 'Active'), ('acknowledged', 'Acknowledged'), ('snoozed', 'Snoozed'),
                ('resolved', 'Resolved'),
            ], db_index=True, default='active', max_length=15, verbose_name='Status')),
            ('current_stock', quantity('Stock when raised')),
            ('min_stock', quantity('Minimum stock')),
            ('suggested_reorder_quantity', quantity('Suggested reorder quantity')),
            ('acknowledged_by', user_fk('acknowledged_alerts', 'Acknowledged by')),
            ('acknowledged_at', models.DateTimeField(blank=True, null=True, verbose_name='Acknowledged at')),
            ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved at')),
            ('resolved_by', user_fk('resolved_alerts', 'Resolved by')),
            ('purchase_order', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='resolved_alerts',
                to='persistence.purchaseorder', verbose_name='Purchase order')),
            ('snoozed_until', models.DateTimeField(blank=True, null=True, verbose_name='Snoozed until')),
        ], 'Stock alert', 'Stock alerts', db_table='stock_alerts', ordering=['-created_at']),
        base_model('MaterialIssue', [
            ('number', number_field()),
            ('requisition', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='issues',
                to='persistence.materialrequisition', verbose_name='Requisition')),
            ('issued_to', user_fk('received_issues', 'Issued to')),
            ('issued_by', user_fk('material_issues', 'Issued by', blank=False)),
            ('project', models.CharField(blank=True, max_length=255, verbose_name='Project')),
            ('team', models.CharField(blank=True, max_length=100, verbose_name='Team')),
            ('issued_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Issued at')),
        ], 'Material issue', 'Material issues', db_table='material_issues', ordering=['-issued_at']),
        migrations.CreateModel(
            name='MaterialIssueItem',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('issue', models.ForeignKey(
                    on_delete=CASCADE, related_name='items', to='persistence.materialissue', verbose_name='Issue')),
                ('material', models.ForeignKey(
                    on_delete=PROTECT, related_name='issue_items', to='persistence.material',
                    verbose_name='Material')),
                ('quantity', quantity('Quantity')),
                ('batch', models.ForeignKey(
                    blank=True, null=True, on_delete=SET_NULL, related_name='issue_items',
                    to='persistence.stockbatch', verbose_name='Batch')),
            ],
            options={
                'verbose_name': 'Material issue item',
                'verbose_name_plural': 'Material issue items',
                'db_table': 'material_issue_items',
            },
        ),
        base_model('MaterialReturn', [
            ('number', number_field()),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='returns', to='persistence.material', verbose_name='Material')),
            ('quantity', quantity('Quantity')),
            ('job_number', models.CharField(db_index=True, max_length=50, verbose_name='Job number')),
            ('batch', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='returns',
                to='persistence.stockbatch', verbose_name='Batch')),
            ('condition', models.CharField(choices=[
                ('good', 'Good'), ('damaged', 'Damaged'), ('partial', 'Partially usable'),
            ], default='good', max_length=10, verbose_name='Condition')),
            ('restocked_quantity', quantity('Restocked', default=0)),
            ('remarks', models.TextField(blank=True, verbose_name='Remarks')),
            ('returned_by', user_fk('material_returns', 'Returned by', blank=False)),
            ('returned_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Returned at')),
        ], 'Material return', 'Material returns', db_table='material_returns', ordering=['-returned_at']),
        base_model('MaterialReservation', [
            ('number', number_field()),
            ('material', models.ForeignKey(
                on_delete=PROTECT, related_name='reservations', to='persistence.material',
                verbose_name='Material')),
            ('quantity', quantity('Quantity')),
            ('job_number', models.CharField(db_index=True, max_length=50, verbose_name='Job number')),
            ('production_order', models.CharField(blank=True, max_length=50, verbose_name='Production order')),
            ('status', models.CharField(choices=[
                ('active', 'Active'), ('fulfilled', 'Fulfilled'), ('cancelled', 'Cancelled'),
            ], db_index=True, default='active', max_length=15, verbose_name='Status')),
            ('reserved_by', user_fk('material_reservations', 'Reserved by', blank=False)),
            ('issue', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='reservations',
                to='persistence.materialissue', verbose_name='Issue')),
        ], 'Material reservation', 'Material reservations',
            db_table='material_reservations', ordering=['-created_at']),

        # =====================================================================
        # PRODUCTION & DISPATCH
        # =====================================================================
        *tracked_model('FinishedGood', finished_good_fields, 'Finished good', 'Finished goods',
                       db_table='finished_goods', ordering=['-produced_at']),
        *tracked_model('DeliveryChallan', delivery_challan_fields, 'Delivery challan', 'Delivery challans',
                       db_table='delivery_challans', ordering=['-challan_date', '-created_at']),
        base_model('DeliveryChallanItem', [
            ('challan', models.ForeignKey(
                on_delete=CASCADE, related_name='items', to='persistence.deliverychallan',
                verbose_name='Delivery challan')),
            ('sl_no', models.PositiveIntegerField(default=0, verbose_name='Sl. no.')),
            ('item_code', models.CharField(blank=True, max_length=50, verbose_name='Item code')),
            ('description', models.CharField(max_length=500, verbose_name='Description')),
            ('hsn_code', models.CharField(blank=True, max_length=20, verbose_name='HSN code')),
            ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantity')),
            ('unit', models.CharField(default='nos', max_length=20, verbose_name='Unit')),
            ('finished_good', models.ForeignKey(
                blank=True, null=True, on_delete=SET_NULL, related_name='challan_items',
                to='persistence.finishedgood', verbose_name='Finished good')),
        ], 'Delivery challan item', 'Delivery challan items',
            db_table='delivery_challan_items', ordering=['sl_no']),
        *tracked_model('DispatchRecord', dispatch_record_fields, 'Dispatch record', 'Dispatch records',
                       db_table='dispatch_records', ordering=['-created_at']),

        # =====================================================================
        # AUDIT, NOTIFICATIONS, WEBHOOKS, SETTINGS
        # =====================================================================
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Time')),
                ('user', user_fk('audit_logs', 'User')),
                ('user_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='IP address')),
                ('user_agent', models.CharField(blank=True, max_length=500, verbose_name='User agent')),
                ('action', models.CharField(choices=[
                    ('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('submit', 'Submit'),
                    ('approve', 'Approve'), ('reject', 'Reject'), ('cancel', 'Cancel'),
                    ('stock_check', 'Stock check'), ('generate_pr', 'Generate PR'), ('convert', 'Convert'),
                    ('receive', 'Receive'), ('inspect', 'Inspect'), ('post_stock', 'Post to stock'),
                    ('issue', 'Issue'), ('adjust', 'Adjust'), ('return', 'Return'), ('reserve', 'Reserve'),
                    ('qc_pass', 'QC pass'), ('qc_fail', 'QC fail'), ('dispatch', 'Dispatch'),
                    ('deliver', 'Deliver'), ('status_change', 'Status change'), ('login', 'Login'),
                    ('logout', 'Logout'), ('export', 'Export'),
                ], db_index=True, max_length=20, verbose_name='Action')),
                ('document_type', models.CharField(blank=True, db_index=True, max_length=50,
                                                   verbose_name='Document type')),
                ('document_id', models.CharField(blank=True, db_index=True, max_length=100,
                                                 verbose_name='Document ID')),
                ('document_number', models.CharField(blank=True, max_length=50, verbose_name='Document number')),
                ('details', models.JSONField(blank=True, default=dict, verbose_name='Details')),
            ],
            options={
                'verbose_name': 'Audit log entry',
                'verbose_name_plural': 'Audit log',
                'db_table': 'audit_log',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['document_type', 'document_id'], name='audit_log_document_idx'),
                    models.Index(fields=['user', 'timestamp'], name='audit_log_user_time_idx'),
                    models.Index(fields=['action', 'timestamp'], name='audit_log_action_time_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('notification_type', models.CharField(choices=[
                    ('approval_required', 'Approval required'), ('approved', 'Approved'), ('rejected', 'Rejected'),
                    ('pr_created', 'Purchase requisition created'), ('po_created', 'Purchase order created'),
                    ('goods_received', 'Goods received'), ('qc_result', 'QC result'),
                    ('stock_alert', 'Stock alert'), ('requisition', 'Material requisition'),
                    ('material_issued', 'Material issued'), ('dispatch', 'Dispatch'), ('info', 'Information'),
                ], default='info', max_length=30, verbose_name='Type')),
                ('title', models.CharField(max_length=255, verbose_name='Title')),
                ('message', models.TextField(blank=True, verbose_name='Message')),
                ('document_type', models.CharField(blank=True, max_length=50, verbose_name='Document type')),
                ('document_id', models.CharField(blank=True, max_length=100, verbose_name='Document ID')),
                ('document_number', models.CharField(blank=True, max_length=50, verbose_name='Document number')),
                ('for_roles', models.JSONField(blank=True, default=list, verbose_name='Roles')),
                ('for_user', models.ForeignKey(
                    blank=True, null=True, on_delete=CASCADE, related_name='notifications',
                    to=settings.AUTH_USER_MODEL, verbose_name='User')),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='normal', max_length=10,
                                              verbose_name='Priority')),
                ('is_read', models.BooleanField(db_index=True, default=False, verbose_name='Read')),
                ('read_at', models.DateTimeField(blank=True, null=True, verbose_name='Read at')),
                ('created_by', user_fk('sent_notifications', 'Created by')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'db_table': 'notifications',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='NotificationRole',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('notification', models.ForeignKey(
                    on_delete=CASCADE, related_name='target_roles', to='persistence.notification',
                    verbose_name='Notification')),
                ('role', models.CharField(db_index=True, max_length=30, verbose_name='Role')),
            ],
            options={
                'verbose_name': 'Notification role',
                'verbose_name_plural': 'Notification roles',
                'db_table': 'notification_roles',
                'unique_together': {('notification', 'role')},
            },
        ),
        migrations.CreateModel(
            name='WebhookEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('source', models.CharField(db_index=True, default='n8n', max_length=50, verbose_name='Source')),
                ('event_type', models.CharField(blank=True, max_length=100, verbose_name='Event type')),
                ('payload', models.JSONField(blank=True, default=dict, verbose_name='Payload')),
                ('received_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Received at')),
                ('status', models.CharField(choices=[
                    ('received', 'Received'), ('processed', 'Processed'), ('failed', 'Failed'),
                ], db_index=True, default='received', max_length=15, verbose_name='Status')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='Processed at')),
                ('error', models.TextField(blank=True, verbose_name='Error')),
            ],
            options={
                'verbose_name': 'Webhook event',
                'verbose_name_plural': 'Webhook events',
                'db_table': 'webhook_events',
                'ordering': ['-received_at'],
            },
        ),
        migrations.CreateModel(
            name='SystemSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=100, unique=True, verbose_name='Key')),
                ('value', models.JSONField(default=dict, verbose_name='Value')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('updated_by', models.ForeignKey(
                    blank=True, null=True, on_delete=SET_NULL, to=settings.AUTH_USER_MODEL,
                    verbose_name='Updated by')),
            ],
            options={
                'verbose_name': 'System setting',
                'verbose_name_plural': 'System settings',
                'db_table': 'system_settings',
                'ordering': ['key'],
            },
        ),
    ]
