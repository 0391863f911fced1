"""Sales models - settled point-of-sale transactions."""
from decimal import Decimal
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class PaymentMethodChoices(models.TextChoices):
    CASH = 'CASH', _('Cash')
    CARD = 'CARD', _('Card')
    CREDIT = 'CREDIT', _('Credit')
    CONSIGNMENT = 'CONSIGNMENT', _('Consignment')
    IBAN = 'IBAN', _('Bank Transfer')
    QR = 'QR', _('QR Payment')


class PaymentStatusChoices(models.TextChoices):
    COMPLETED = 'COMPLETED', _('Completed')


class SaleTypeChoices(models.TextChoices):
    NORMAL = 'NORMAL', _('Normal')
    CONSIGNMENT = 'CONSIGNMENT', _('Consignment')


class Sale(models.Model):
    """
    Settled sale.

    Business Rules:
    - created only by settlement, together with its items and stock movements
    - subtotal, discount and total are non-negative; total = subtotal - discount
    - the fiscal receipt number is the only field written after settlement
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale_number = models.CharField(
        _('Sale Number'),
        max_length=30,
        unique=True,
        help_text=_('Sequential sale number (e.g., SL-20250114-000007)')
    )
    sale_date = models.DateTimeField(_('Sale Date'), default=timezone.now)

    # Financial fields
    subtotal = models.DecimalField(_('Subtotal'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(_('Discount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(_('Total'), max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # Payment
    payment_method = models.CharField(_('Payment Method'), max_length=20, choices=PaymentMethodChoices.choices)
    payment_amount = models.DecimalField(_('Payment Amount'), max_digits=12, decimal_places=2)
    payment_transaction_id = models.CharField(_('Payment Transaction ID'), max_length=100, blank=True)
    payment_status = models.CharField(
        _('Payment Status'),
        max_length=20,
        choices=PaymentStatusChoices.choices,
        default=PaymentStatusChoices.COMPLETED
    )
    sale_type = models.CharField(
        _('Sale Type'),
        max_length=20,
        choices=SaleTypeChoices.choices,
        default=SaleTypeChoices.NORMAL
    )

    # Customer (optional, PII: never logged)
    customer_id = models.CharField(_('Customer ID'), max_length=100, blank=True)
    customer_name = models.CharField(_('Customer Name'), max_length=255, blank=True)
    customer_national_id = models.CharField(_('Customer National ID'), max_length=20, blank=True)
    customer_phone = models.CharField(_('Customer Phone'), max_length=30, blank=True)

    notes = models.TextField(_('Notes'), blank=True)
    draft_tab_id = models.CharField(_('Draft Tab ID'), max_length=100, blank=True)

    # Fiscal receipt (backfilled once the fiscal device has printed it)
    fiscal_receipt_number = models.CharField(
        _('Fiscal Receipt Number'), max_length=100, null=True, blank=True
    )
    fiscal_status = models.CharField(_('Fiscal Status'), max_length=50, blank=True)

    created_by = models.CharField(_('Created By'), max_length=150, blank=True)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'sales'
        ordering = ['-sale_date', '-sale_number']
        verbose_name = _('Sale')
        verbose_name_plural = _('Sales')
        indexes = [
            models.Index(fields=['-sale_date'], name='idx_sale_date'),
            models.Index(fields=['payment_method'], name='idx_sale_payment_method'),
            models.Index(fields=['draft_tab_id'], name='idx_sale_draft_tab'),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(subtotal__gte=0),
                name='sale_subtotal_non_negative'
            ),
            models.CheckConstraint(
                check=models.Q(discount__gte=0),
                name='sale_discount_non_negative'
            ),
            models.CheckConstraint(
                check=models.Q(total__gte=0),
                name='sale_total_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.sale_number} - {self.total}"

    def save(self, *args, **kwargs):
        if not kwargs.pop('skip_validation', False):
            self.full_clean()
        super().save(*args, **kwargs)

    def clean(self):
        """Validate sale amounts."""
        super().clean()

        # INVARIANT: total = subtotal - discount
        if None not in (self.subtotal, self.discount, self.total):
            if self.total != self.subtotal - self.discount:
                raise ValidationError({
                    'total': f'Total {self.total} must equal subtotal {self.subtotal} - discount {self.discount}'
                })

        if self.discount is not None and self.subtotal is not None and self.discount > self.subtotal:
            raise ValidationError({'discount': 'Discount cannot exceed subtotal'})


class SaleItem(models.Model):
    """
    Line of a settled sale.

    Product name, category and GTIN are copied at settlement so the line
    reads the same after catalog edits.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Sale')
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='sale_items',
        verbose_name=_('Product')
    )
    product_name = models.CharField(_('Product Name'), max_length=255)
    product_category = models.CharField(_('Product Category'), max_length=50, blank=True)
    gtin = models.CharField(_('GTIN'), max_length=14, blank=True)

    quantity = models.PositiveIntegerField(_('Quantity'))
    unit_price = models.DecimalField(_('Unit Price'), max_digits=12, decimal_places=2)
    unit_cost = models.DecimalField(_('Unit Cost'), max_digits=12, decimal_places=4, null=True, blank=True)
    discount_rate = models.DecimalField(
        _('Discount Rate'), max_digits=5, decimal_places=2, default=Decimal('0.00'),
        help_text=_('Percentage, 0-100')
    )
    discount_amount = models.DecimalField(
        _('Discount Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00')
    )
    total_price = models.DecimalField(_('Total Price'), max_digits=12, decimal_places=2)

    serial_number = models.CharField(_('Serial Number'), max_length=100, blank=True)
    lot_number = models.CharField(_('Lot Number'), max_length=100, blank=True)
    expiry_date = models.DateField(_('Expiry Date'), null=True, blank=True)
    stock_deducted = models.BooleanField(_('Stock Deducted'), default=False)

    class Meta:
        db_table = 'sale_items'
        ordering = ['sale', 'id']
        verbose_name = _('Sale Item')
        verbose_name_plural = _('Sale Items')
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gt=0),
                name='sale_item_quantity_positive'
            ),
            models.CheckConstraint(
                check=models.Q(discount_rate__gte=0) & models.Q(discount_rate__lte=100),
                name='sale_item_discount_rate_range'
            ),
            models.CheckConstraint(
                check=models.Q(unit_price__gte=0),
                name='sale_item_unit_price_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    def clean(self):
        super().clean()

        if self.serial_number and self.quantity != 1:
            raise ValidationError({'quantity': 'A serialized line sells exactly one unit'})
