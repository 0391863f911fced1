"""
Stock: movement ledger, batches, serialized items and summaries.

Business Rules Enforced:
- StockMovement.quantity_change != 0
- corrections carry a reason
- StockBatch: quantity <= initial_quantity, unit_cost >= 0
- StockBatch.is_active exactly while quantity > 0
- batch number unique per product, serial number unique per product

Generated manually
"""
import uuid

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('products', '0001_initial'),
        ('sales', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='StockBatch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('batch_number', models.CharField(
                    help_text='Unique batch/lot number per product', max_length=100, verbose_name='Batch Number'
                )),
                ('expiry_date', models.DateField(verbose_name='Expiry Date')),
                ('quantity', models.PositiveIntegerField(verbose_name='Remaining Quantity')),
                ('initial_quantity', models.PositiveIntegerField(verbose_name='Initial Quantity')),
                ('unit_cost', models.DecimalField(decimal_places=4, max_digits=12, verbose_name='Unit Cost')),
                ('total_cost', models.DecimalField(decimal_places=4, max_digits=14, verbose_name='Total Cost')),
                ('location_id', models.UUIDField(blank=True, null=True, verbose_name='Location')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('received_at', models.DateField(default=django.utils.timezone.localdate, verbose_name='Received Date')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('product', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='batches',
                    to='products.product', verbose_name='Product'
                )),
            ],
            options={
                'verbose_name': 'Stock Batch',
                'verbose_name_plural': 'Stock Batches',
                'db_table': 'stock_batches',
                'ordering': ['expiry_date', 'batch_number'],
            },
        ),
        migrations.CreateModel(
            name='StockItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('serial_number', models.CharField(max_length=100, verbose_name='Serial Number')),
                ('lot_number', models.CharField(blank=True, max_length=100, verbose_name='Lot Number')),
                ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry Date')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True, verbose_name='Unit Cost')),
                ('status', models.CharField(
                    choices=[('IN_STOCK', 'In Stock'), ('SOLD', 'Sold'), ('REMOVED', 'Removed')],
                    default='IN_STOCK', max_length=10, verbose_name='Status'
                )),
                ('tracking_status', models.CharField(
                    choices=[('TRACKED', 'Tracked'), ('UNTRACKED', 'Untracked')],
                    default='TRACKED', max_length=10, verbose_name='Tracking Status'
                )),
                ('received_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Received At')),
                ('sold_at', models.DateTimeField(blank=True, null=True, verbose_name='Sold At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('product', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='serial_items',
                    to='products.product', verbose_name='Product'
                )),
                ('sale_item', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name='serial_items', to='sales.saleitem', verbose_name='Sale Item'
                )),
            ],
            options={
                'verbose_name': 'Serialized Stock Item',
                'verbose_name_plural': 'Serialized Stock Items',
                'db_table': 'stock_items',
                'ordering': ['product', 'serial_number'],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('movement_number', models.CharField(max_length=20, unique=True, verbose_name='Movement Number')),
                ('movement_type', models.CharField(
                    choices=[
                        ('PURCHASE', 'Purchase'),
                        ('RETURN', 'Customer Return'),
                        ('TRANSFER_IN', 'Transfer In'),
                        ('SALE', 'Sale'),
                        ('WASTE', 'Waste'),
                        ('EXPIRY', 'Expired Stock Removal'),
                        ('TRANSFER_OUT', 'Transfer Out'),
                        ('CORRECTION', 'Correction'),
                    ],
                    max_length=20, verbose_name='Movement Type'
                )),
                ('quantity_change', models.IntegerField(help_text='Positive for IN, negative for OUT', verbose_name='Quantity Change')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True, verbose_name='Unit Cost')),
                ('total_cost', models.DecimalField(
                    blank=True, decimal_places=4, help_text='quantity_change * unit_cost, signed',
                    max_digits=14, null=True, verbose_name='Total Cost'
                )),
                ('serial_number', models.CharField(blank=True, max_length=100, verbose_name='Serial Number')),
                ('lot_number', models.CharField(blank=True, max_length=100, verbose_name='Lot Number')),
                ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry Date')),
                ('reference_type', models.CharField(blank=True, max_length=50, verbose_name='Reference Type')),
                ('reference_id', models.CharField(blank=True, max_length=255, verbose_name='Reference ID')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('is_correction', models.BooleanField(default=False, verbose_name='Correction')),
                ('correction_reason', models.TextField(blank=True, verbose_name='Correction Reason')),
                ('created_by', models.CharField(blank=True, max_length=150, verbose_name='Created By')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name='Created At')),
                ('batch', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name='movements', to='stock.stockbatch', verbose_name='Batch'
                )),
                ('product', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements',
                    to='products.product', verbose_name='Product'
                )),
            ],
            options={
                'verbose_name': 'Stock Movement',
                'verbose_name_plural': 'Stock Movements',
                'db_table': 'stock_movements',
                'ordering': ['-created_at', '-movement_number'],
            },
        ),
        migrations.CreateModel(
            name='StockSummary',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('total_tracked', models.IntegerField(default=0, verbose_name='Serialized Units')),
                ('total_untracked', models.IntegerField(default=0, verbose_name='Untracked Units')),
                ('batch_quantity', models.IntegerField(default=0, verbose_name='Batch Units')),
                ('total_quantity', models.IntegerField(default=0, verbose_name='Total Quantity')),
                ('total_value', models.DecimalField(decimal_places=2, default=0, max_digits=14, verbose_name='Total Value')),
                ('average_cost', models.DecimalField(decimal_places=4, default=0, max_digits=12, verbose_name='Average Cost')),
                ('nearest_expiry_date', models.DateField(blank=True, null=True, verbose_name='Nearest Expiry')),
                ('last_movement_date', models.DateTimeField(blank=True, null=True, verbose_name='Last Movement')),
                ('has_low_stock', models.BooleanField(default=False, verbose_name='Low Stock')),
                ('has_expiring_soon', models.BooleanField(default=False, verbose_name='Expiring Soon')),
                ('has_expired', models.BooleanField(default=False, verbose_name='Expired Stock')),
                ('needs_attention', models.BooleanField(default=False, verbose_name='Needs Attention')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('product', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name='stock_summary',
                    to='products.product', verbose_name='Product'
                )),
            ],
            options={
                'verbose_name': 'Stock Summary',
                'verbose_name_plural': 'Stock Summaries',
                'db_table': 'stock_summary',
                'ordering': ['product__name'],
            },
        ),
        migrations.AddConstraint(
            model_name='stockbatch',
            constraint=models.UniqueConstraint(fields=('product', 'batch_number'), name='unique_batch_per_product'),
        ),
        migrations.AddConstraint(
            model_name='stockbatch',
            constraint=models.CheckConstraint(
                check=models.Q(quantity__lte=models.F('initial_quantity')),
                name='stock_batch_quantity_within_initial'
            ),
        ),
        migrations.AddConstraint(
            model_name='stockbatch',
            constraint=models.CheckConstraint(
                check=models.Q(is_active=True, quantity__gt=0) | models.Q(is_active=False, quantity=0),
                name='stock_batch_active_iff_quantity'
            ),
        ),
        migrations.AddConstraint(
            model_name='stockbatch',
            constraint=models.CheckConstraint(check=models.Q(unit_cost__gte=0), name='stock_batch_unit_cost_non_negative'),
        ),
        migrations.AddIndex(
            model_name='stockbatch',
            index=models.Index(fields=['product', 'is_active', 'expiry_date'], name='idx_batch_fifo'),
        ),
        migrations.AddIndex(
            model_name='stockbatch',
            index=models.Index(fields=['expiry_date'], name='idx_batch_expiry'),
        ),
        migrations.AddConstraint(
            model_name='stockitem',
            constraint=models.UniqueConstraint(fields=('product', 'serial_number'), name='unique_serial_per_product'),
        ),
        migrations.AddIndex(
            model_name='stockitem',
            index=models.Index(fields=['product', 'status'], name='idx_item_product_status'),
        ),
        migrations.AddConstraint(
            model_name='stockmovement',
            constraint=models.CheckConstraint(check=~models.Q(quantity_change=0), name='stock_movement_quantity_non_zero'),
        ),
        migrations.AddConstraint(
            model_name='stockmovement',
            constraint=models.CheckConstraint(
                check=models.Q(is_correction=False) | ~models.Q(correction_reason=''),
                name='stock_movement_correction_has_reason'
            ),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['product', '-created_at'], name='idx_movement_product'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['movement_type', '-created_at'], name='idx_movement_type'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['batch'], name='idx_movement_batch'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['reference_type', 'reference_id'], name='idx_movement_reference'),
        ),
        migrations.AddIndex(
            model_name='stocksummary',
            index=models.Index(fields=['needs_attention'], name='idx_summary_attention'),
        ),
        migrations.AddIndex(
            model_name='stocksummary',
            index=models.Index(fields=['has_low_stock'], name='idx_summary_low_stock'),
        ),
        migrations.AddIndex(
            model_name='stocksummary',
            index=models.Index(fields=['has_expiring_soon'], name='idx_summary_expiring'),
        ),
    ]
