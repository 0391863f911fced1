"""
Product models - pharmacy product catalog.
"""
import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


def default_low_stock_threshold():
    return getattr(settings, 'STOCK_LOW_STOCK_THRESHOLD', 10)


class ProductCategoryChoices(models.TextChoices):
    PHARMACEUTICAL = 'PHARMACEUTICAL', _('Pharmaceutical')
    OTC = 'OTC', _('Over the counter')
    MEDICAL_DEVICE = 'MEDICAL_DEVICE', _('Medical device')
    COSMETIC = 'COSMETIC', _('Cosmetic')
    OTHER = 'OTHER', _('Other')


class Product(models.Model):
    """
    Product sold by the pharmacy.

    ``low_stock_threshold`` is the reorder point used by the stock summary:
    a product is low on stock while its total quantity is below it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Basic info
    sku = models.CharField(_('SKU'), max_length=100, unique=True)
    gtin = models.CharField(_('GTIN'), max_length=14, unique=True, null=True, blank=True)
    name = models.CharField(_('Name'), max_length=255)
    manufacturer = models.CharField(_('Manufacturer'), max_length=255, blank=True)
    description = models.TextField(_('Description'), blank=True)
    category = models.CharField(
        _('Category'),
        max_length=20,
        choices=ProductCategoryChoices.choices,
        default=ProductCategoryChoices.OTC
    )

    # Pricing
    price = models.DecimalField(_('Price'), max_digits=12, decimal_places=2)
    cost = models.DecimalField(_('Cost'), max_digits=12, decimal_places=4, default=0)

    # Inventory
    low_stock_threshold = models.PositiveIntegerField(
        _('Low Stock Threshold'),
        default=default_low_stock_threshold
    )

    # Status
    is_active = models.BooleanField(_('Active'), default=True)

    # Metadata
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='idx_product_name'),
            models.Index(fields=['category'], name='idx_product_category'),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
        ]
        verbose_name = _('Product')
        verbose_name_plural = _('Products')

    def __str__(self):
        return f"{self.name} ({self.sku})"
