"""
Stock services - Business logic for stock operations.

Sections:
- Ledger: append-only movements, queries, manual movement posting
- Batches: creation, FIFO consumption (earliest expiry first), adjustment
- Serialized items: receive / release by serial number
- Summary: full-rescan recompute of the per-product snapshot, alerts
- Import: row-by-row execution of confirmed purchase imports

Every mutating function runs inside ``tenant_atomic()`` and recomputes the
affected product's summary before returning.
"""
import time
import uuid
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import IntegrityError
from django.db.models import Case, IntegerField, Max, Min, Q, Sum, When
from django.utils import timezone

from apps.core.exceptions import InsufficientStockError, NotFoundError
from apps.core.observability import metrics, log_domain_event, get_sanitized_logger
from apps.core.observability.events import log_batch_created, log_movement_recorded
from apps.core.observability.tracing import add_span_attribute, trace_span
from apps.core.sequences import next_batch_number, next_movement_number
from apps.core.tenancy import tenant_atomic
from apps.products.models import Product

from .models import (
    MovementTypeChoices,
    StockBatch,
    StockItem,
    StockItemStatusChoices,
    StockMovement,
    StockSummary,
)

logger = get_sanitized_logger(__name__)

MONEY_QUANTUM = Decimal('0.01')
COST_QUANTUM = Decimal('0.0001')


def get_product(product_id, lock=False) -> Product:
    """Fetch a product of the bound tenant or raise NotFoundError."""
    queryset = Product.objects.select_for_update() if lock else Product.objects.all()
    try:
        return queryset.get(pk=product_id)
    except (Product.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError('Product', product_id)


# ============================================================================
# Ledger
# ============================================================================

def record_movement(
    product,
    movement_type: str,
    quantity_change: int,
    *,
    unit_cost: Optional[Decimal] = None,
    serial_number: str = '',
    lot_number: str = '',
    expiry_date: Optional[date] = None,
    batch: Optional[StockBatch] = None,
    reference_type: str = '',
    reference_id: str = '',
    notes: str = '',
    is_correction: bool = False,
    correction_reason: str = '',
    created_by: str = '',
) -> StockMovement:
    """
    Append one immutable ledger entry.

    The movement number comes from the tenant's atomic counter inside the
    same transaction, so a rejected entry does not burn a number.

    Raises:
        ValidationError: entry violates ledger rules (sign, correction reason...)
    """
    with tenant_atomic():
        movement = StockMovement(
            movement_number=next_movement_number(),
            movement_type=movement_type,
            product=product,
            quantity_change=quantity_change,
            unit_cost=unit_cost,
            serial_number=serial_number or '',
            lot_number=lot_number or '',
            expiry_date=expiry_date,
            batch=batch,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes or '',
            is_correction=is_correction,
            correction_reason=correction_reason or '',
            created_by=created_by or '',
        )
        try:
            movement.save()
        except ValidationError:
            metrics.stock_movements_total.labels(
                movement_type=movement_type, result='invalid'
            ).inc()
            raise

    metrics.stock_movements_total.labels(movement_type=movement_type, result='success').inc()
    log_movement_recorded(movement)
    return movement


@dataclass(frozen=True)
class MovementFilters:
    """Typed movement query filters; each set field becomes one ORM predicate."""
    product_id: Optional[str] = None
    movement_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_correction: Optional[bool] = None

    def predicates(self) -> List[Q]:
        predicates = []
        if self.product_id is not None:
            predicates.append(Q(product_id=self.product_id))
        if self.movement_type:
            predicates.append(Q(movement_type=self.movement_type))
        if self.start_date is not None:
            predicates.append(Q(created_at__date__gte=self.start_date))
        if self.end_date is not None:
            predicates.append(Q(created_at__date__lte=self.end_date))
        if self.is_correction is not None:
            predicates.append(Q(is_correction=self.is_correction))
        return predicates


def query_movements(filters: Optional[MovementFilters] = None):
    """Movements matching ``filters``, newest first."""
    queryset = StockMovement.objects.select_related('product', 'batch')
    for predicate in (filters or MovementFilters()).predicates():
        queryset = queryset.filter(predicate)
    return queryset.order_by('-created_at', '-movement_number')


def query_by_product(product_id, filters: Optional[MovementFilters] = None):
    """Movements of one product; NotFoundError for an unknown product."""
    product = get_product(product_id)
    return query_movements(replace(filters or MovementFilters(), product_id=product.pk))


def get_movement(movement_id) -> StockMovement:
    try:
        return StockMovement.objects.select_related('product', 'batch').get(pk=movement_id)
    except (StockMovement.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError('StockMovement', movement_id)


def untracked_on_hand(product) -> int:
    """Bulk units that are neither serialized nor held in a batch."""
    total = StockMovement.objects.filter(
        product=product, serial_number='', batch__isnull=True
    ).aggregate(total=Sum('quantity_change'))['total']
    return total or 0


def post_movement(
    product_id,
    movement_type: str,
    quantity_change: int,
    *,
    unit_cost: Optional[Decimal] = None,
    serial_number: str = '',
    lot_number: str = '',
    expiry_date: Optional[date] = None,
    batch_id=None,
    reference_type: str = '',
    reference_id: str = '',
    notes: str = '',
    is_correction: bool = False,
    correction_reason: str = '',
    created_by: str = '',
) -> StockMovement:
    """
    Apply a manual movement's physical effect, record it, refresh the summary.

    - batch_id: the batch quantity moves by quantity_change
    - serial_number: +1 receives the unit, -1 removes it
    - otherwise: untracked bulk stock, never driven below zero

    Raises:
        NotFoundError: unknown product, batch or serial
        InsufficientStockError: outbound change exceeds what is on hand
        ValidationError: ledger or batch rules violated
    """
    with trace_span('stock.post_movement', attributes={'movement_type': movement_type}):
        with tenant_atomic():
            product = get_product(product_id, lock=True)
            batch = None

            if batch_id:
                batch = _lock_batch(batch_id, product=product)
                new_quantity = batch.quantity + quantity_change
                if new_quantity < 0:
                    raise InsufficientStockError(product, -quantity_change, batch.quantity)
                if new_quantity > batch.initial_quantity:
                    raise ValidationError({
                        'quantity_change': (
                            f'Batch {batch.batch_number} would exceed its initial '
                            f'quantity {batch.initial_quantity}'
                        )
                    })
                batch.apply_quantity(new_quantity)
                batch.save()
                lot_number = lot_number or batch.batch_number
                expiry_date = expiry_date or batch.expiry_date
                if unit_cost is None:
                    unit_cost = batch.unit_cost
            elif serial_number:
                if quantity_change > 0:
                    receive_serial(
                        product, serial_number,
                        lot_number=lot_number, expiry_date=expiry_date, unit_cost=unit_cost,
                    )
                else:
                    release_serial(product, serial_number, status=StockItemStatusChoices.REMOVED)
            elif quantity_change < 0:
                available = untracked_on_hand(product)
                if available < -quantity_change:
                    raise InsufficientStockError(product, -quantity_change, available)

            movement = record_movement(
                product,
                movement_type,
                quantity_change,
                unit_cost=unit_cost,
                serial_number=serial_number,
                lot_number=lot_number,
                expiry_date=expiry_date,
                batch=batch,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
                is_correction=is_correction,
                correction_reason=correction_reason,
                created_by=created_by,
            )
            recompute_summary(product)

    return movement


# ============================================================================
# Batches
# ============================================================================

def _lock_batch(batch_id, product=None) -> StockBatch:
    queryset = StockBatch.objects.select_for_update().select_related('product')
    if product is not None:
        queryset = queryset.filter(product=product)
    try:
        return queryset.get(pk=batch_id)
    except (StockBatch.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError('StockBatch', batch_id)


def create_batch(
    product_id,
    expiry_date: date,
    quantity: int,
    unit_cost: Decimal,
    batch_number: Optional[str] = None,
    location_id=None,
    received_at: Optional[date] = None,
    created_by: str = '',
    source: str = 'api',
    notes: str = '',
) -> StockBatch:
    """
    Receive a new batch and record its PURCHASE movement.

    Returns:
        The created, active StockBatch

    Raises:
        NotFoundError: unknown product
        ValidationError: non-positive quantity, negative cost, duplicate batch number
    """
    if quantity is None or quantity <= 0:
        raise ValidationError({'quantity': 'Batch quantity must be positive'})
    if unit_cost is None or unit_cost < 0:
        raise ValidationError({'unit_cost': 'Unit cost cannot be negative'})

    with trace_span('stock.create_batch', attributes={'product_id': str(product_id)}):
        with tenant_atomic():
            product = get_product(product_id, lock=True)
            batch_number = batch_number or next_batch_number()

            if StockBatch.objects.filter(product=product, batch_number=batch_number).exists():
                raise ValidationError({
                    'batch_number': f'Batch {batch_number} already exists for {product.sku}'
                })

            batch = StockBatch(
                product=product,
                batch_number=batch_number,
                expiry_date=expiry_date,
                initial_quantity=quantity,
                unit_cost=unit_cost,
                location_id=location_id,
                received_at=received_at or timezone.localdate(),
            )
            batch.apply_quantity(quantity)
            batch.save()

            record_movement(
                product,
                MovementTypeChoices.PURCHASE,
                quantity,
                unit_cost=unit_cost,
                lot_number=batch_number,
                expiry_date=expiry_date,
                batch=batch,
                reference_type='StockBatch',
                reference_id=str(batch.id),
                notes=notes,
                created_by=created_by,
            )
            recompute_summary(product)

    metrics.stock_batches_created_total.labels(source=source).inc()
    log_batch_created(batch, source=source)
    return batch


def _consumable_batches(product, skip_expired: Optional[bool] = None):
    """Active batches FIFO may draw from, in consumption order."""
    if skip_expired is None:
        skip_expired = getattr(settings, 'STOCK_FIFO_SKIP_EXPIRED', False)

    batches = StockBatch.objects.filter(product=product, is_active=True, quantity__gt=0)
    if skip_expired:
        batches = batches.filter(expiry_date__gte=timezone.localdate())
    return batches.order_by('expiry_date', 'received_at', 'batch_number')


def fifo_available(product, skip_expired: Optional[bool] = None) -> int:
    return _consumable_batches(product, skip_expired).aggregate(total=Sum('quantity'))['total'] or 0


def consume_fifo(product, quantity: int, skip_expired: Optional[bool] = None) -> List[Tuple[StockBatch, int]]:
    """
    Consume ``quantity`` units across the product's active batches,
    earliest expiry first.

    Batch rows are locked in expiry order, the full availability is checked
    before any row changes, and a batch reaching 0 becomes inactive. Expired
    batches are consumed like any other unless ``skip_expired`` (default from
    ``STOCK_FIFO_SKIP_EXPIRED``).

    Returns:
        List of (batch, quantity taken) allocations, in consumption order

    Raises:
        InsufficientStockError: active batches cannot cover ``quantity``
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    start_time = time.time()

    with tenant_atomic():
        batches = list(_consumable_batches(product, skip_expired).select_for_update())

        available = sum(batch.quantity for batch in batches)
        if available < quantity:
            metrics.stock_fifo_consume_total.labels(result='insufficient_stock').inc()
            log_domain_event(
                'stock.fifo_consumed',
                entity_type='Product',
                entity_id=str(product.id),
                result='insufficient_stock',
                requested=quantity,
                available=available,
            )
            raise InsufficientStockError(product, quantity, available)

        allocations = []
        remaining = quantity
        for batch in batches:
            if remaining <= 0:
                break
            taken = min(batch.quantity, remaining)
            batch.apply_quantity(batch.quantity - taken)
            batch.save()
            allocations.append((batch, taken))
            remaining -= taken
        add_span_attribute('batches_touched', len(allocations))

    metrics.stock_fifo_consume_total.labels(result='success').inc()
    metrics.stock_fifo_allocation_duration_seconds.observe(time.time() - start_time)
    log_domain_event(
        'stock.fifo_consumed',
        entity_type='Product',
        entity_id=str(product.id),
        quantity=quantity,
        batches_touched=len(allocations),
    )
    return allocations


def reserve_stock(product, quantity: int) -> Tuple[List[Tuple[StockBatch, int]], int]:
    """
    Take ``quantity`` non-serialized units out of stock: batches first
    (FIFO by expiry), the rest from the untracked pool.

    Only physical quantities change here; the caller records the matching
    outbound movements.

    Returns:
        (batch allocations, units taken from the untracked pool)

    Raises:
        InsufficientStockError: batches plus untracked pool cannot cover ``quantity``
    """
    with tenant_atomic():
        from_batches_available = fifo_available(product)
        untracked = max(untracked_on_hand(product), 0)
        available = from_batches_available + untracked
        if available < quantity:
            raise InsufficientStockError(product, quantity, available)

        from_batches = min(quantity, from_batches_available)
        allocations = consume_fifo(product, from_batches) if from_batches else []
    return allocations, quantity - from_batches


def adjust_quantity(batch_id, new_quantity: int, reason: str = '', created_by: str = '') -> StockBatch:
    """
    Set a batch's remaining quantity and record the delta as a correction.

    Raises:
        NotFoundError: unknown batch
        ValidationError: new_quantity outside 0..initial_quantity
    """
    if new_quantity is None or new_quantity < 0:
        raise ValidationError({'new_quantity': 'Quantity cannot be negative'})

    with tenant_atomic():
        batch = _lock_batch(batch_id)
        if new_quantity > batch.initial_quantity:
            raise ValidationError({
                'new_quantity': f'Quantity cannot exceed initial quantity {batch.initial_quantity}'
            })

        delta = new_quantity - batch.quantity
        batch.apply_quantity(new_quantity)
        batch.save()

        if delta:
            record_movement(
                batch.product,
                MovementTypeChoices.CORRECTION,
                delta,
                unit_cost=batch.unit_cost,
                lot_number=batch.batch_number,
                expiry_date=batch.expiry_date,
                batch=batch,
                reference_type='StockBatch',
                reference_id=str(batch.id),
                is_correction=True,
                correction_reason=reason or 'Batch quantity adjustment',
                created_by=created_by,
            )
        recompute_summary(batch.product)

    logger.info(
        'Batch quantity adjusted',
        extra={
            'event': 'stock.batch_adjusted',
            'batch_id': str(batch.id),
            'delta': delta,
            'new_quantity': new_quantity,
        }
    )
    return batch


def list_batches_for_product(product_id, active_only: bool = False):
    product = get_product(product_id)
    queryset = StockBatch.objects.filter(product=product)
    if active_only:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('expiry_date', 'batch_number')


def list_active_batches():
    return StockBatch.objects.filter(is_active=True).select_related('product').order_by(
        'expiry_date', 'batch_number'
    )


def list_expiring(within_days: int = 180):
    """Active batches expiring between today and today + within_days, soonest first."""
    if within_days < 0:
        raise ValidationError({'days_ahead': 'Must be zero or positive'})
    today = timezone.localdate()
    return list_active_batches().filter(
        expiry_date__gte=today,
        expiry_date__lte=today + timedelta(days=within_days),
    )


# ============================================================================
# Serialized items
# ============================================================================

def receive_serial(product, serial_number: str, lot_number: str = '',
                   expiry_date: Optional[date] = None, unit_cost: Optional[Decimal] = None) -> StockItem:
    """
    Put a serialized unit IN_STOCK, re-activating a sold or removed one.

    Raises:
        ValidationError: the serial is already in stock
    """
    item = StockItem.objects.select_for_update().filter(
        product=product, serial_number=serial_number
    ).first()

    if item is None:
        return StockItem.objects.create(
            product=product,
            serial_number=serial_number,
            lot_number=lot_number or '',
            expiry_date=expiry_date,
            unit_cost=unit_cost,
        )

    if item.status == StockItemStatusChoices.IN_STOCK:
        raise ValidationError({'serial_number': f'Serial {serial_number} is already in stock'})

    item.status = StockItemStatusChoices.IN_STOCK
    item.lot_number = lot_number or item.lot_number
    item.expiry_date = expiry_date or item.expiry_date
    item.unit_cost = unit_cost if unit_cost is not None else item.unit_cost
    item.received_at = timezone.now()
    item.sold_at = None
    item.sale_item = None
    item.save()
    return item


def release_serial(product, serial_number: str, status=StockItemStatusChoices.SOLD, sale_item=None) -> StockItem:
    """
    Take an IN_STOCK serialized unit out of stock (SOLD or REMOVED).

    Raises:
        NotFoundError: no IN_STOCK unit with this serial
    """
    item = StockItem.objects.select_for_update().filter(
        product=product,
        serial_number=serial_number,
        status=StockItemStatusChoices.IN_STOCK,
    ).first()
    if item is None:
        raise NotFoundError('StockItem', serial_number)

    item.status = status
    item.sale_item = sale_item
    if status == StockItemStatusChoices.SOLD:
        item.sold_at = timezone.now()
    item.save()
    return item


# ============================================================================
# Summary
# ============================================================================

def compute_snapshot(product) -> dict:
    """Full rescan of the ledger, batches and serials of one product."""
    ledger = StockMovement.objects.filter(product=product).aggregate(
        tracked=Sum('quantity_change', filter=~Q(serial_number='')),
        untracked=Sum('quantity_change', filter=Q(serial_number='', batch__isnull=True)),
        total_value=Sum('total_cost'),
        inbound_cost=Sum('total_cost', filter=Q(quantity_change__gt=0, unit_cost__isnull=False)),
        inbound_quantity=Sum('quantity_change', filter=Q(quantity_change__gt=0, unit_cost__isnull=False)),
        last_movement=Max('created_at'),
    )

    active_batches = StockBatch.objects.filter(product=product, is_active=True)
    batches = active_batches.aggregate(quantity=Sum('quantity'), nearest=Min('expiry_date'))
    in_stock_serials = StockItem.objects.filter(
        product=product, status=StockItemStatusChoices.IN_STOCK, expiry_date__isnull=False
    )

    today = timezone.localdate()
    horizon = today + timedelta(days=settings.STOCK_EXPIRY_WARNING_DAYS)

    total_tracked = ledger['tracked'] or 0
    total_untracked = ledger['untracked'] or 0
    batch_quantity = batches['quantity'] or 0
    total_quantity = total_tracked + total_untracked + batch_quantity

    inbound_quantity = ledger['inbound_quantity'] or 0
    if inbound_quantity:
        average_cost = (ledger['inbound_cost'] / inbound_quantity).quantize(
            COST_QUANTUM, rounding=ROUND_HALF_UP
        )
    else:
        average_cost = Decimal('0')

    has_low_stock = total_quantity < product.low_stock_threshold
    has_expired = (
        active_batches.filter(expiry_date__lt=today).exists()
        or in_stock_serials.filter(expiry_date__lt=today).exists()
    )
    has_expiring_soon = (
        active_batches.filter(expiry_date__gte=today, expiry_date__lte=horizon).exists()
        or in_stock_serials.filter(expiry_date__gte=today, expiry_date__lte=horizon).exists()
    )

    return {
        'total_tracked': total_tracked,
        'total_untracked': total_untracked,
        'batch_quantity': batch_quantity,
        'total_quantity': total_quantity,
        'total_value': (ledger['total_value'] or Decimal('0')).quantize(
            MONEY_QUANTUM, rounding=ROUND_HALF_UP
        ),
        'average_cost': average_cost,
        'nearest_expiry_date': batches['nearest'],
        'last_movement_date': ledger['last_movement'],
        'has_low_stock': has_low_stock,
        'has_expiring_soon': has_expiring_soon,
        'has_expired': has_expired,
        'needs_attention': has_low_stock or has_expiring_soon or has_expired,
    }


@metrics.track_duration(metrics.stock_summary_recompute_duration_seconds)
def recompute_summary(product) -> StockSummary:
    """
    Rebuild the product's StockSummary from scratch and store it.

    Idempotent: an unchanged ledger always yields the same snapshot.
    """
    try:
        with tenant_atomic():
            snapshot = compute_snapshot(product)
            summary, _ = StockSummary.objects.update_or_create(product=product, defaults=snapshot)
    except Exception:
        metrics.stock_summary_recompute_total.labels(result='failure').inc()
        logger.error(
            'Stock summary recompute failed',
            extra={'event': 'stock.summary_recomputed', 'product_id': str(product.id)},
            exc_info=True,
        )
        raise

    metrics.stock_summary_recompute_total.labels(result='success').inc()
    logger.debug(
        'Stock summary recomputed',
        extra={
            'event': 'stock.summary_recomputed',
            'product_id': str(product.id),
            'total_quantity': summary.total_quantity,
            'needs_attention': summary.needs_attention,
        }
    )
    return summary


def get_summary(product_id) -> StockSummary:
    """Summary of one product, computed on demand when none is stored yet."""
    product = get_product(product_id)
    summary = StockSummary.objects.select_related('product').filter(product=product).first()
    if summary is None:
        summary = recompute_summary(product)
    return summary


def list_summaries(has_low_stock: Optional[bool] = None,
                   has_expiring_soon: Optional[bool] = None,
                   needs_attention: Optional[bool] = None):
    queryset = StockSummary.objects.select_related('product')
    if has_low_stock is not None:
        queryset = queryset.filter(has_low_stock=has_low_stock)
    if has_expiring_soon is not None:
        queryset = queryset.filter(has_expiring_soon=has_expiring_soon)
    if needs_attention is not None:
        queryset = queryset.filter(needs_attention=needs_attention)
    return queryset.order_by('product__name')


def get_alerts() -> List[StockSummary]:
    """Summaries needing attention: expired, then low stock, then expiring soon, newest first."""
    priority = Case(
        When(has_expired=True, then=0),
        When(has_low_stock=True, then=1),
        When(has_expiring_soon=True, then=2),
        default=3,
        output_field=IntegerField(),
    )
    alerts = list(
        StockSummary.objects.select_related('product')
        .filter(needs_attention=True)
        .annotate(alert_priority=priority)
        .order_by('alert_priority', '-updated_at')
    )
    metrics.stock_alert_products.set(len(alerts))
    return alerts


def recalculate_all() -> int:
    """Rebuild every product's summary in the bound tenant; returns the count."""
    count = 0
    for product in Product.objects.order_by('name').iterator():
        recompute_summary(product)
        count += 1
    logger.info('Stock summaries rebuilt', extra={'event': 'stock.summary_rebuilt', 'products': count})
    return count


# ============================================================================
# Import
# ============================================================================

def _import_product(row: dict) -> Product:
    if row.get('product_id'):
        return get_product(row['product_id'], lock=True)

    new_product = row.get('new_product') or {}
    gtin = new_product.get('gtin') or None
    if gtin:
        existing = Product.objects.filter(gtin=gtin).first()
        if existing is not None:
            return existing

    name = (new_product.get('name') or '').strip()
    if not name:
        raise ValidationError({'new_product': 'A product_id or a new product name is required'})

    sku = f"GTIN-{gtin}" if gtin else f"IMP-{uuid.uuid4().hex[:12].upper()}"
    product = Product(
        sku=sku,
        gtin=gtin,
        name=name,
        manufacturer=new_product.get('manufacturer') or '',
        price=new_product.get('price') or Decimal('0'),
    )
    product.full_clean()
    product.save()
    return product


def _import_row(row: dict, created_by: str) -> None:
    product = _import_product(row)
    row_number = row.get('row_number')
    quantity = row['quantity']
    bonus = row.get('bonus_quantity') or 0
    received = quantity + bonus
    unit_cost = row.get('unit_cost')

    # Bonus units arrive free: spread the paid cost over everything received
    effective_cost = None
    if unit_cost is not None:
        effective_cost = (unit_cost * quantity / received).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)

    serial_number = row.get('serial_number') or ''
    lot_number = row.get('lot_number') or ''
    expiry_date = row.get('expiry_date')
    notes = f'Import row {row_number}'

    if serial_number:
        if received != 1:
            raise ValidationError({'quantity': 'A serialized row must receive exactly one unit'})
        receive_serial(product, serial_number, lot_number=lot_number,
                       expiry_date=expiry_date, unit_cost=effective_cost)
        record_movement(
            product, MovementTypeChoices.PURCHASE, 1,
            unit_cost=effective_cost, serial_number=serial_number, lot_number=lot_number,
            expiry_date=expiry_date, reference_type='StockImport',
            reference_id=str(row_number or ''), notes=notes, created_by=created_by,
        )
        recompute_summary(product)
    elif lot_number and expiry_date:
        create_batch(
            product.id, expiry_date, received, effective_cost or Decimal('0'),
            batch_number=lot_number, created_by=created_by, source='import', notes=notes,
        )
    else:
        record_movement(
            product, MovementTypeChoices.PURCHASE, received,
            unit_cost=effective_cost, lot_number=lot_number, expiry_date=expiry_date,
            reference_type='StockImport', reference_id=str(row_number or ''),
            notes=notes, created_by=created_by,
        )
        recompute_summary(product)


def _error_message(error) -> str:
    if isinstance(error, ValidationError):
        if hasattr(error, 'error_dict'):
            return '; '.join(
                f"{field}: {' '.join(messages)}"
                for field, messages in error.message_dict.items()
            )
        return ' '.join(error.messages)
    return str(error)


def execute_import(rows: List[dict], created_by: str = '') -> dict:
    """
    Execute confirmed import rows, each in its own transaction.

    A failed row is rolled back, reported in ``errors`` and logged; the
    remaining rows still run.
    """
    successful = 0
    errors = []

    for index, row in enumerate(rows, start=1):
        row_number = row.get('row_number') or index
        row = dict(row, row_number=row_number)
        try:
            with tenant_atomic():
                _import_row(row, created_by)
        except (ValidationError, ObjectDoesNotExist, IntegrityError) as e:
            message = _error_message(e)
            metrics.stock_import_rows_total.labels(result='failure').inc()
            logger.warning(
                'Import row rejected',
                extra={
                    'event': 'stock.import_row_failed',
                    'row_number': row_number,
                    'error_type': e.__class__.__name__,
                    'error': message,
                }
            )
            errors.append({'row_number': row_number, 'error': message})
        else:
            metrics.stock_import_rows_total.labels(result='success').inc()
            successful += 1

    result = {
        'total_processed': len(rows),
        'successful': successful,
        'failed': len(errors),
        'errors': errors,
    }
    log_domain_event(
        'stock.import_executed',
        result='success' if not errors else 'warning',
        total_processed=result['total_processed'],
        successful=successful,
        failed=result['failed'],
    )
    return result
