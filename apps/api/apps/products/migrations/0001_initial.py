"""
Products: pharmacy product catalog.

Generated manually
"""
import uuid

from django.db import migrations, models

import apps.products.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sku', models.CharField(max_length=100, unique=True, verbose_name='SKU')),
                ('gtin', models.CharField(blank=True, max_length=14, null=True, unique=True, verbose_name='GTIN')),
                ('name', models.CharField(max_length=255, verbose_name='Name')),
                ('manufacturer', models.CharField(blank=True, max_length=255, verbose_name='Manufacturer')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('category', models.CharField(
                    choices=[
                        ('PHARMACEUTICAL', 'Pharmaceutical'),
                        ('OTC', 'Over the counter'),
                        ('MEDICAL_DEVICE', 'Medical device'),
                        ('COSMETIC', 'Cosmetic'),
                        ('OTHER', 'Other'),
                    ],
                    default='OTC',
                    max_length=20,
                    verbose_name='Category'
                )),
                ('price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Price')),
                ('cost', models.DecimalField(decimal_places=4, default=0, max_digits=12, verbose_name='Cost')),
                ('low_stock_threshold', models.PositiveIntegerField(
                    default=apps.products.models.default_low_stock_threshold,
                    verbose_name='Low Stock Threshold'
                )),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'db_table': 'products',
                'ordering': ['name'],
            },
        ),
        migrations.AddIndex(
            model_name='product',
            index=models.Index(fields=['name'], name='idx_product_name'),
        ),
        migrations.AddIndex(
            model_name='product',
            index=models.Index(fields=['category'], name='idx_product_category'),
        ),
        migrations.AddConstraint(
            model_name='product',
            constraint=models.CheckConstraint(check=models.Q(price__gte=0), name='product_price_non_negative'),
        ),
    ]
