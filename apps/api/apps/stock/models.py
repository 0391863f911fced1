"""
Stock models: movement ledger, batches, serialized items, summary cache.

- StockMovement: append-only ledger of signed quantity changes (system of record)
- StockBatch: lot with remaining quantity, expiry and cost (FIFO by expiry)
- StockItem: unit-tracked item identified by serial number
- StockSummary: derived per-product snapshot, rebuilt from the two above
"""
from decimal import Decimal, ROUND_HALF_UP
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class MovementTypeChoices(models.TextChoices):
    """
    Ledger movement types.

    Inbound types carry a positive quantity_change, outbound types a negative
    one. CORRECTION may go either way and is always flagged is_correction.
    """
    PURCHASE = 'PURCHASE', _('Purchase')
    RETURN = 'RETURN', _('Customer Return')
    TRANSFER_IN = 'TRANSFER_IN', _('Transfer In')

    SALE = 'SALE', _('Sale')
    WASTE = 'WASTE', _('Waste')
    EXPIRY = 'EXPIRY', _('Expired Stock Removal')
    TRANSFER_OUT = 'TRANSFER_OUT', _('Transfer Out')

    CORRECTION = 'CORRECTION', _('Correction')


INBOUND_MOVEMENT_TYPES = frozenset([
    MovementTypeChoices.PURCHASE,
    MovementTypeChoices.RETURN,
    MovementTypeChoices.TRANSFER_IN,
])

OUTBOUND_MOVEMENT_TYPES = frozenset([
    MovementTypeChoices.SALE,
    MovementTypeChoices.WASTE,
    MovementTypeChoices.EXPIRY,
    MovementTypeChoices.TRANSFER_OUT,
])

COST_QUANTUM = Decimal('0.0001')


class StockBatch(models.Model):
    """
    Batch/lot of one product sharing expiry date and unit cost.

    Business Rules:
    - batch_number unique per product
    - 0 <= quantity <= initial_quantity
    - is_active is False exactly when quantity reaches 0
    - total_cost = quantity * unit_cost (remaining value)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Product')
    )
    batch_number = models.CharField(
        _('Batch Number'),
        max_length=100,
        help_text=_('Unique batch/lot number per product')
    )
    expiry_date = models.DateField(_('Expiry Date'))
    quantity = models.PositiveIntegerField(_('Remaining Quantity'))
    initial_quantity = models.PositiveIntegerField(_('Initial Quantity'))
    unit_cost = models.DecimalField(_('Unit Cost'), max_digits=12, decimal_places=4)
    total_cost = models.DecimalField(_('Total Cost'), max_digits=14, decimal_places=4)
    location_id = models.UUIDField(_('Location'), null=True, blank=True)
    is_active = models.BooleanField(_('Active'), default=True)
    received_at = models.DateField(_('Received Date'), default=timezone.localdate)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'stock_batches'
        ordering = ['expiry_date', 'batch_number']
        verbose_name = _('Stock Batch')
        verbose_name_plural = _('Stock Batches')
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'batch_number'],
                name='unique_batch_per_product'
            ),
            models.CheckConstraint(
                check=models.Q(quantity__lte=models.F('initial_quantity')),
                name='stock_batch_quantity_within_initial'
            ),
            models.CheckConstraint(
                check=(
                    models.Q(is_active=True, quantity__gt=0)
                    | models.Q(is_active=False, quantity=0)
                ),
                name='stock_batch_active_iff_quantity'
            ),
            models.CheckConstraint(
                check=models.Q(unit_cost__gte=0),
                name='stock_batch_unit_cost_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'is_active', 'expiry_date'], name='idx_batch_fifo'),
            models.Index(fields=['expiry_date'], name='idx_batch_expiry'),
        ]

    def __str__(self):
        return f"{self.batch_number} (exp: {self.expiry_date}, qty: {self.quantity})"

    def save(self, *args, **kwargs):
        if not kwargs.pop('skip_validation', False):
            self.full_clean()
        super().save(*args, **kwargs)

    def clean(self):
        """Validate batch rules."""
        super().clean()

        # INVARIANT: 0 <= quantity <= initial_quantity
        if self.quantity is not None and self.initial_quantity is not None:
            if self.quantity > self.initial_quantity:
                raise ValidationError({
                    'quantity': (
                        f'Remaining quantity {self.quantity} exceeds initial '
                        f'quantity {self.initial_quantity}'
                    )
                })

        # INVARIANT: is_active <=> quantity > 0
        if self.quantity is not None and self.is_active != (self.quantity > 0):
            raise ValidationError({
                'is_active': 'A batch is active exactly while it has remaining quantity'
            })

    def apply_quantity(self, new_quantity):
        """Set remaining quantity and the fields derived from it."""
        self.quantity = new_quantity
        self.total_cost = (Decimal(new_quantity) * self.unit_cost).quantize(
            COST_QUANTUM, rounding=ROUND_HALF_UP
        )
        self.is_active = new_quantity > 0
        return self

    @property
    def is_expired(self):
        return self.expiry_date < timezone.localdate()

    @property
    def days_until_expiry(self):
        return (self.expiry_date - timezone.localdate()).days


class StockItemStatusChoices(models.TextChoices):
    IN_STOCK = 'IN_STOCK', _('In Stock')
    SOLD = 'SOLD', _('Sold')
    REMOVED = 'REMOVED', _('Removed')


class TrackingStatusChoices(models.TextChoices):
    """Whether the unit is registered with the national drug tracking system."""
    TRACKED = 'TRACKED', _('Tracked')
    UNTRACKED = 'UNTRACKED', _('Untracked')


class StockItem(models.Model):
    """
    Serialized (unit-tracked) item.

    Exactly one row per (product, serial_number). Receiving a serial that was
    sold or removed earlier puts the same row back IN_STOCK.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='serial_items',
        verbose_name=_('Product')
    )
    serial_number = models.CharField(_('Serial Number'), max_length=100)
    lot_number = models.CharField(_('Lot Number'), max_length=100, blank=True)
    expiry_date = models.DateField(_('Expiry Date'), null=True, blank=True)
    unit_cost = models.DecimalField(
        _('Unit Cost'), max_digits=12, decimal_places=4, null=True, blank=True
    )
    status = models.CharField(
        _('Status'),
        max_length=10,
        choices=StockItemStatusChoices.choices,
        default=StockItemStatusChoices.IN_STOCK
    )
    tracking_status = models.CharField(
        _('Tracking Status'),
        max_length=10,
        choices=TrackingStatusChoices.choices,
        default=TrackingStatusChoices.TRACKED
    )
    sale_item = models.ForeignKey(
        'sales.SaleItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='serial_items',
        verbose_name=_('Sale Item')
    )

    received_at = models.DateTimeField(_('Received At'), default=timezone.now)
    sold_at = models.DateTimeField(_('Sold At'), null=True, blank=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'stock_items'
        ordering = ['product', 'serial_number']
        verbose_name = _('Serialized Stock Item')
        verbose_name_plural = _('Serialized Stock Items')
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'serial_number'],
                name='unique_serial_per_product'
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'status'], name='idx_item_product_status'),
        ]

    def __str__(self):
        return f"{self.serial_number} [{self.get_status_display()}]"


class StockMovementQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of ledger rows."""

    def update(self, **kwargs):
        raise ValidationError('Stock movements are immutable and cannot be updated')

    def delete(self):
        raise ValidationError('Stock movements are immutable and cannot be deleted')


class StockMovement(models.Model):
    """
    Immutable ledger entry: one signed stock quantity change.

    Business Rules:
    - created once, never updated or deleted
    - quantity_change != 0; positive = in, negative = out
    - inbound types positive, outbound types negative
    - corrections are new offsetting entries with is_correction=True and a reason
    - serial-bearing movements move exactly one unit
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    movement_number = models.CharField(_('Movement Number'), max_length=20, unique=True)
    movement_type = models.CharField(
        _('Movement Type'),
        max_length=20,
        choices=MovementTypeChoices.choices
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        verbose_name=_('Product')
    )
    quantity_change = models.IntegerField(
        _('Quantity Change'),
        help_text=_('Positive for IN, negative for OUT')
    )
    unit_cost = models.DecimalField(
        _('Unit Cost'), max_digits=12, decimal_places=4, null=True, blank=True
    )
    total_cost = models.DecimalField(
        _('Total Cost'), max_digits=14, decimal_places=4, null=True, blank=True,
        help_text=_('quantity_change * unit_cost, signed')
    )

    # Tracking references
    serial_number = models.CharField(_('Serial Number'), max_length=100, blank=True)
    lot_number = models.CharField(_('Lot Number'), max_length=100, blank=True)
    expiry_date = models.DateField(_('Expiry Date'), null=True, blank=True)
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.PROTECT,
        related_name='movements',
        null=True,
        blank=True,
        verbose_name=_('Batch')
    )

    # Reference to originating document (Sale, SaleItem, StockBatch, StockImport)
    reference_type = models.CharField(_('Reference Type'), max_length=50, blank=True)
    reference_id = models.CharField(_('Reference ID'), max_length=255, blank=True)

    notes = models.TextField(_('Notes'), blank=True)
    is_correction = models.BooleanField(_('Correction'), default=False)
    correction_reason = models.TextField(_('Correction Reason'), blank=True)

    created_by = models.CharField(_('Created By'), max_length=150, blank=True)
    created_at = models.DateTimeField(_('Created At'), default=timezone.now, editable=False)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at', '-movement_number']
        verbose_name = _('Stock Movement')
        verbose_name_plural = _('Stock Movements')
        constraints = [
            models.CheckConstraint(
                check=~models.Q(quantity_change=0),
                name='stock_movement_quantity_non_zero'
            ),
            models.CheckConstraint(
                check=models.Q(is_correction=False) | ~models.Q(correction_reason=''),
                name='stock_movement_correction_has_reason'
            ),
        ]
        indexes = [
            models.Index(fields=['product', '-created_at'], name='idx_movement_product'),
            models.Index(fields=['movement_type', '-created_at'], name='idx_movement_type'),
            models.Index(fields=['batch'], name='idx_movement_batch'),
            models.Index(fields=['reference_type', 'reference_id'], name='idx_movement_reference'),
        ]

    def __str__(self):
        return f"{self.movement_number} {self.movement_type} {self.quantity_change:+d}"

    def save(self, *args, **kwargs):
        # INVARIANT: ledger rows are written once
        if not self._state.adding:
            raise ValidationError('Stock movements are immutable and cannot be updated')

        if self.unit_cost is not None and self.quantity_change:
            self.total_cost = (Decimal(self.quantity_change) * self.unit_cost).quantize(
                COST_QUANTUM, rounding=ROUND_HALF_UP
            )
        else:
            self.total_cost = None

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Stock movements are immutable and cannot be deleted')

    def clean(self):
        """Validate ledger entry rules."""
        super().clean()

        # INVARIANT: quantity_change != 0
        if self.quantity_change == 0:
            raise ValidationError({'quantity_change': 'Quantity change cannot be zero'})

        if self.movement_type in INBOUND_MOVEMENT_TYPES and self.quantity_change < 0:
            raise ValidationError({
                'quantity_change': f'{self.movement_type} must have a positive quantity change'
            })

        if self.movement_type in OUTBOUND_MOVEMENT_TYPES and self.quantity_change > 0:
            raise ValidationError({
                'quantity_change': f'{self.movement_type} must have a negative quantity change'
            })

        # INVARIANT: corrections are flagged and explained
        if self.movement_type == MovementTypeChoices.CORRECTION and not self.is_correction:
            raise ValidationError({'is_correction': 'CORRECTION movements must set is_correction'})

        if self.is_correction and not (self.correction_reason or '').strip():
            raise ValidationError({'correction_reason': 'A correction requires a reason'})

        if self.serial_number and abs(self.quantity_change or 0) != 1:
            raise ValidationError({
                'quantity_change': 'Serialized movements move exactly one unit'
            })

        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValidationError({'unit_cost': 'Unit cost cannot be negative'})

        if self.batch_id and self.product_id and self.batch.product_id != self.product_id:
            raise ValidationError({'batch': 'Batch does not belong to product'})

    @property
    def is_inbound(self):
        return self.quantity_change > 0

    @property
    def is_outbound(self):
        return self.quantity_change < 0


class StockSummary(models.Model):
    """
    Per-product stock snapshot derived from the ledger and the batch store.

    Rebuilt in full by ``recompute_summary``; nothing else writes it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.OneToOneField(
        'products.Product',
        on_delete=models.CASCADE,
        related_name='stock_summary',
        verbose_name=_('Product')
    )

    total_tracked = models.IntegerField(_('Serialized Units'), default=0)
    total_untracked = models.IntegerField(_('Untracked Units'), default=0)
    batch_quantity = models.IntegerField(_('Batch Units'), default=0)
    total_quantity = models.IntegerField(_('Total Quantity'), default=0)
    total_value = models.DecimalField(_('Total Value'), max_digits=14, decimal_places=2, default=0)
    average_cost = models.DecimalField(_('Average Cost'), max_digits=12, decimal_places=4, default=0)

    nearest_expiry_date = models.DateField(_('Nearest Expiry'), null=True, blank=True)
    last_movement_date = models.DateTimeField(_('Last Movement'), null=True, blank=True)

    has_low_stock = models.BooleanField(_('Low Stock'), default=False)
    has_expiring_soon = models.BooleanField(_('Expiring Soon'), default=False)
    has_expired = models.BooleanField(_('Expired Stock'), default=False)
    needs_attention = models.BooleanField(_('Needs Attention'), default=False)

    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'stock_summary'
        ordering = ['product__name']
        verbose_name = _('Stock Summary')
        verbose_name_plural = _('Stock Summaries')
        indexes = [
            models.Index(fields=['needs_attention'], name='idx_summary_attention'),
            models.Index(fields=['has_low_stock'], name='idx_summary_low_stock'),
            models.Index(fields=['has_expiring_soon'], name='idx_summary_expiring'),
        ]

    def __str__(self):
        return f"{self.product} total={self.total_quantity}"

    @property
    def alert_level(self):
        if self.has_expired:
            return 'expired'
        if self.has_low_stock:
            return 'low_stock'
        if self.has_expiring_soon:
            return 'expiring_soon'
        return 'other' if self.needs_attention else 'none'
