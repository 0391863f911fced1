"""
Sales: settled sales and their items.

Business Rules Enforced:
- subtotal, discount, total >= 0
- SaleItem.quantity > 0
- 0 <= SaleItem.discount_rate <= 100

Generated manually
"""
from decimal import Decimal
import uuid

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sale_number', models.CharField(
                    help_text='Sequential sale number (e.g., SL-20250114-000007)',
                    max_length=30, unique=True, verbose_name='Sale Number'
                )),
                ('sale_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Sale Date')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Subtotal')),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Discount')),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Total')),
                ('payment_method', models.CharField(
                    choices=[
                        ('CASH', 'Cash'),
                        ('CARD', 'Card'),
                        ('CREDIT', 'Credit'),
                        ('CONSIGNMENT', 'Consignment'),
                        ('IBAN', 'Bank Transfer'),
                        ('QR', 'QR Payment'),
                    ],
                    max_length=20, verbose_name='Payment Method'
                )),
                ('payment_amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Payment Amount')),
                ('payment_transaction_id', models.CharField(blank=True, max_length=100, verbose_name='Payment Transaction ID')),
                ('payment_status', models.CharField(
                    choices=[('COMPLETED', 'Completed')], default='COMPLETED',
                    max_length=20, verbose_name='Payment Status'
                )),
                ('sale_type', models.CharField(
                    choices=[('NORMAL', 'Normal'), ('CONSIGNMENT', 'Consignment')], default='NORMAL',
                    max_length=20, verbose_name='Sale Type'
                )),
                ('customer_id', models.CharField(blank=True, max_length=100, verbose_name='Customer ID')),
                ('customer_name', models.CharField(blank=True, max_length=255, verbose_name='Customer Name')),
                ('customer_national_id', models.CharField(blank=True, max_length=20, verbose_name='Customer National ID')),
                ('customer_phone', models.CharField(blank=True, max_length=30, verbose_name='Customer Phone')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('draft_tab_id', models.CharField(blank=True, max_length=100, verbose_name='Draft Tab ID')),
                ('fiscal_receipt_number', models.CharField(blank=True, max_length=100, null=True, verbose_name='Fiscal Receipt Number')),
                ('fiscal_status', models.CharField(blank=True, max_length=50, verbose_name='Fiscal Status')),
                ('created_by', models.CharField(blank=True, max_length=150, verbose_name='Created By')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
            ],
            options={
                'verbose_name': 'Sale',
                'verbose_name_plural': 'Sales',
                'db_table': 'sales',
                'ordering': ['-sale_date', '-sale_number'],
            },
        ),
        migrations.CreateModel(
            name='SaleItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_name', models.CharField(max_length=255, verbose_name='Product Name')),
                ('product_category', models.CharField(blank=True, max_length=50, verbose_name='Product Category')),
                ('gtin', models.CharField(blank=True, max_length=14, verbose_name='GTIN')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Unit Price')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True, verbose_name='Unit Cost')),
                ('discount_rate', models.DecimalField(
                    decimal_places=2, default=Decimal('0.00'), help_text='Percentage, 0-100',
                    max_digits=5, verbose_name='Discount Rate'
                )),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Discount Amount')),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Total Price')),
                ('serial_number', models.CharField(blank=True, max_length=100, verbose_name='Serial Number')),
                ('lot_number', models.CharField(blank=True, max_length=100, verbose_name='Lot Number')),
                ('expiry_date', models.DateField(blank=True, null=True, verbose_name='Expiry Date')),
                ('stock_deducted', models.BooleanField(default=False, verbose_name='Stock Deducted')),
                ('sale', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='items',
                    to='sales.sale', verbose_name='Sale'
                )),
                ('product', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='sale_items',
                    to='products.product', verbose_name='Product'
                )),
            ],
            options={
                'verbose_name': 'Sale Item',
                'verbose_name_plural': 'Sale Items',
                'db_table': 'sale_items',
                'ordering': ['sale', 'id'],
            },
        ),
        migrations.AddIndex(
            model_name='sale',
            index=models.Index(fields=['-sale_date'], name='idx_sale_date'),
        ),
        migrations.AddIndex(
            model_name='sale',
            index=models.Index(fields=['payment_method'], name='idx_sale_payment_method'),
        ),
        migrations.AddIndex(
            model_name='sale',
            index=models.Index(fields=['draft_tab_id'], name='idx_sale_draft_tab'),
        ),
        migrations.AddConstraint(
            model_name='sale',
            constraint=models.CheckConstraint(check=models.Q(subtotal__gte=0), name='sale_subtotal_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='sale',
            constraint=models.CheckConstraint(check=models.Q(discount__gte=0), name='sale_discount_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='sale',
            constraint=models.CheckConstraint(check=models.Q(total__gte=0), name='sale_total_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='saleitem',
            constraint=models.CheckConstraint(check=models.Q(quantity__gt=0), name='sale_item_quantity_positive'),
        ),
        migrations.AddConstraint(
            model_name='saleitem',
            constraint=models.CheckConstraint(
                check=models.Q(discount_rate__gte=0) & models.Q(discount_rate__lte=100),
                name='sale_item_discount_rate_range'
            ),
        ),
        migrations.AddConstraint(
            model_name='saleitem',
            constraint=models.CheckConstraint(check=models.Q(unit_price__gte=0), name='sale_item_unit_price_non_negative'),
        ),
    ]
