"""
Sales service layer - atomic sale settlement.

Settlement: Requested -> ItemsValidated -> StockReserved -> Persisted ->
SummaryRefreshed -> DraftCleared -> Completed. Every step after validation
runs in one tenant transaction; any failure rolls all of it back.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
import time

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.db.models import Count

from apps.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
)
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_sale_completed,
    log_sale_failed,
)
from apps.core.observability.tracing import add_span_attribute, trace_span
from apps.core.sequences import next_sale_number
from apps.core.tenancy import tenant_atomic
from apps.drafts.models import DraftSaleTab
from apps.products.models import Product
from apps.stock.models import MovementTypeChoices
from apps.stock.services import (
    record_movement,
    recompute_summary,
    release_serial,
    reserve_stock,
)

from .models import Sale, SaleItem, SaleTypeChoices

logger = get_sanitized_logger(__name__)

MONEY_QUANTUM = Decimal('0.01')
PRICE_TOLERANCE = Decimal('0.01')


def _money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def validate_sale_request(data: dict) -> None:
    """
    Check the shape of a settlement request before anything is written.

    Raises:
        ValidationError: with per-field detail
    """
    items = data.get('items') or []
    if not items:
        raise ValidationError({'items': 'A sale needs at least one item'})

    payment = data.get('payment') or {}
    if not payment.get('method'):
        raise ValidationError({'payment': 'Payment method is required'})
    if payment.get('amount') is None or payment['amount'] < 0:
        raise ValidationError({'payment': 'Payment amount must be zero or positive'})

    errors = {}
    for index, item in enumerate(items):
        prefix = f'items[{index}]'
        if not item.get('product_id'):
            errors[f'{prefix}.product_id'] = 'Product is required'
        quantity = item.get('quantity')
        if quantity is None or quantity <= 0:
            errors[f'{prefix}.quantity'] = 'Quantity must be positive'
            continue
        unit_price = item.get('unit_price')
        if unit_price is None or unit_price < 0:
            errors[f'{prefix}.unit_price'] = 'Unit price must be zero or positive'
            continue
        rate = item.get('discount_rate') or Decimal('0')
        if rate < 0 or rate > 100:
            errors[f'{prefix}.discount_rate'] = 'Discount rate must be between 0 and 100'
        if item.get('serial_number') and quantity != 1:
            errors[f'{prefix}.quantity'] = 'A serialized line sells exactly one unit'
        total_price = item.get('total_price')
        if total_price is not None and abs(total_price - quantity * unit_price) > PRICE_TOLERANCE:
            errors[f'{prefix}.total_price'] = (
                f'Total price {total_price} does not match quantity x unit price '
                f'({quantity * unit_price})'
            )

    if errors:
        raise ValidationError(errors)


def _price_lines(items: List[dict]):
    """Line totals and per-line discounts (half-up to cents)."""
    priced = []
    for item in items:
        line_total = _money(item['quantity'] * item['unit_price'])
        rate = item.get('discount_rate') or Decimal('0')
        discount = _money(line_total * rate / Decimal('100'))
        priced.append((item, line_total, discount))
    return priced


def _lock_products(items: List[dict]) -> dict:
    """Lock every referenced product in id order; NotFoundError for unknown ids."""
    product_ids = sorted({str(item['product_id']) for item in items})
    products = {
        str(product.pk): product
        for product in Product.objects.select_for_update().filter(pk__in=product_ids).order_by('pk')
    }
    for product_id in product_ids:
        if product_id not in products:
            raise NotFoundError('Product', product_id)
    return products


def _deduct_item(sale, sale_item, item, product, created_by) -> int:
    """Reserve stock for one line and record its SALE movements; returns movement count."""
    reference = {'reference_type': 'Sale', 'reference_id': str(sale.id), 'created_by': created_by}
    notes = f'Sale {sale.sale_number}'

    if sale_item.serial_number:
        stock_item = release_serial(product, sale_item.serial_number, sale_item=sale_item)
        unit_cost = _first_cost(item.get('unit_cost'), stock_item.unit_cost, product.cost)
        record_movement(
            product,
            MovementTypeChoices.SALE,
            -1,
            unit_cost=unit_cost,
            serial_number=sale_item.serial_number,
            lot_number=stock_item.lot_number or sale_item.lot_number,
            expiry_date=stock_item.expiry_date or sale_item.expiry_date,
            notes=notes,
            **reference
        )
        metrics.sales_items_total.labels(tracking='serial').inc()
        return 1

    allocations, untracked = reserve_stock(product, sale_item.quantity)
    for batch, taken in allocations:
        record_movement(
            product,
            MovementTypeChoices.SALE,
            -taken,
            unit_cost=_first_cost(item.get('unit_cost'), batch.unit_cost, product.cost),
            lot_number=batch.batch_number,
            expiry_date=batch.expiry_date,
            batch=batch,
            notes=notes,
            **reference
        )
    if untracked:
        record_movement(
            product,
            MovementTypeChoices.SALE,
            -untracked,
            unit_cost=_first_cost(item.get('unit_cost'), product.cost),
            lot_number=sale_item.lot_number,
            expiry_date=sale_item.expiry_date,
            notes=notes,
            **reference
        )
    metrics.sales_items_total.labels(tracking='batch').inc()
    return len(allocations) + (1 if untracked else 0)


def _first_cost(*costs):
    for cost in costs:
        if cost is not None:
            return cost
    return None


def complete_sale(data: dict, created_by: str = '') -> dict:
    """
    Settle a sale atomically.

    Args:
        data: validated request with items, payment, sale_type, customer,
              notes and draft_tab_id
        created_by: username of the cashier

    Returns:
        Receipt dict (sale_id, sale_number, sale_date, total, payment_method,
        item_count, stock_deducted, fiscal_receipt_number)

    Raises:
        ValidationError: malformed request, nothing written
        ConflictError: the draft tab was already settled
        NotFoundError: unknown product or serial not in stock
        InsufficientStockError: a line cannot be covered; nothing persists
        PersistenceError: storage failure; cause in logs
    """
    start_time = time.time()
    tab_id = data.get('draft_tab_id') or ''

    try:
        validate_sale_request(data)

        with trace_span('complete_sale', attributes={'item_count': len(data['items'])}):
            with tenant_atomic():
                tab = None
                if tab_id:
                    tab = DraftSaleTab.objects.select_for_update().filter(tab_id=tab_id).first()
                    if tab is not None and tab.is_completed:
                        raise ConflictError(f"Draft tab '{tab_id}' has already been settled")

                products = _lock_products(data['items'])
                priced = _price_lines(data['items'])
                subtotal = sum((line_total for _, line_total, _ in priced), Decimal('0.00'))
                discount = sum((line_discount for _, _, line_discount in priced), Decimal('0.00'))

                payment = data['payment']
                customer = data.get('customer') or {}
                sale = Sale(
                    sale_number=next_sale_number(),
                    subtotal=subtotal,
                    discount=discount,
                    total=subtotal - discount,
                    payment_method=payment['method'],
                    payment_amount=payment['amount'],
                    payment_transaction_id=payment.get('transaction_id') or '',
                    sale_type=data.get('sale_type') or SaleTypeChoices.NORMAL,
                    customer_id=customer.get('id') or '',
                    customer_name=customer.get('name') or '',
                    customer_national_id=customer.get('national_id') or '',
                    customer_phone=customer.get('phone') or '',
                    notes=data.get('notes') or '',
                    draft_tab_id=tab_id,
                    created_by=created_by,
                )
                sale.save()
                add_span_attribute('sale_number', sale.sale_number)

                movements_count = 0
                for item, line_total, line_discount in priced:
                    product = products[str(item['product_id'])]
                    sale_item = SaleItem(
                        sale=sale,
                        product=product,
                        product_name=item.get('product_name') or product.name,
                        product_category=item.get('category') or product.category,
                        gtin=item.get('gtin') or product.gtin or '',
                        quantity=item['quantity'],
                        unit_price=item['unit_price'],
                        unit_cost=item.get('unit_cost'),
                        discount_rate=item.get('discount_rate') or Decimal('0'),
                        discount_amount=line_discount,
                        total_price=line_total,
                        serial_number=item.get('serial_number') or '',
                        lot_number=item.get('lot_number') or '',
                        expiry_date=item.get('expiry_date'),
                        stock_deducted=True,
                    )
                    sale_item.full_clean()
                    sale_item.save()
                    movements_count += _deduct_item(sale, sale_item, item, product, created_by)

                for product in products.values():
                    recompute_summary(product)

                if tab is not None:
                    tab.is_completed = True
                    tab.completed_at = sale.sale_date
                    tab.save(update_fields=['is_completed', 'completed_at', 'updated_at'])

    except InsufficientStockError as e:
        metrics.sales_complete_total.labels(result='insufficient_stock').inc()
        log_sale_failed('insufficient_stock', tab_id or None, **e.as_payload())
        raise
    except ConflictError:
        metrics.sales_complete_total.labels(result='conflict').inc()
        log_sale_failed('conflict', tab_id or None)
        raise
    except ValidationError:
        metrics.sales_complete_total.labels(result='validation_error').inc()
        log_sale_failed('validation_error', tab_id or None)
        raise
    except NotFoundError as e:
        metrics.sales_complete_total.labels(result='not_found').inc()
        log_sale_failed('not_found', tab_id or None, entity=e.entity, entity_id=e.entity_id)
        raise
    except DatabaseError as e:
        metrics.sales_complete_total.labels(result='error').inc()
        metrics.exceptions_total.labels(
            exception_type=e.__class__.__name__,
            location='complete_sale'
        ).inc()
        logger.error(
            'Sale settlement failed - storage error',
            extra={'draft_tab_id': tab_id, 'error_type': e.__class__.__name__},
            exc_info=True,
        )
        raise PersistenceError('The sale could not be saved') from e

    duration = time.time() - start_time
    item_count = len(priced)
    metrics.sales_complete_total.labels(result='success').inc()
    metrics.sales_complete_duration_seconds.observe(duration)
    log_sale_completed(sale, item_count, movements_count, duration_ms=int(duration * 1000))
    log_consistency_checkpoint(
        'sale_settlement_consistency',
        entity_ids={'sale_id': str(sale.id)},
        checks_passed={
            'items_persisted': sale.items.count() == item_count,
            'movements_recorded': movements_count >= item_count,
            'draft_cleared': tab is None or tab.is_completed,
        },
    )

    return {
        'sale_id': str(sale.id),
        'sale_number': sale.sale_number,
        'sale_date': sale.sale_date,
        'total': sale.total,
        'payment_method': sale.payment_method,
        'item_count': item_count,
        'stock_deducted': True,
        'fiscal_receipt_number': sale.fiscal_receipt_number,
    }


def list_sales(start_date=None, end_date=None, payment_method: Optional[str] = None,
               sale_type: Optional[str] = None):
    """Sales newest first, annotated with item_count."""
    queryset = Sale.objects.annotate(item_count=Count('items'))
    if start_date:
        queryset = queryset.filter(sale_date__date__gte=start_date)
    if end_date:
        queryset = queryset.filter(sale_date__date__lte=end_date)
    if payment_method:
        queryset = queryset.filter(payment_method=payment_method)
    if sale_type:
        queryset = queryset.filter(sale_type=sale_type)
    return queryset.order_by('-sale_date', '-sale_number')


def get_sale(sale_id) -> Sale:
    try:
        return Sale.objects.prefetch_related('items').get(pk=sale_id)
    except (Sale.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError('Sale', sale_id)


def attach_fiscal_receipt(sale_id, receipt_number: str, fiscal_status: str = '') -> Sale:
    """
    Record the fiscal receipt number printed for a settled sale.

    Raises:
        NotFoundError: unknown sale
        ConflictError: a receipt number is already recorded
    """
    with tenant_atomic():
        try:
            sale = Sale.objects.select_for_update().get(pk=sale_id)
        except (Sale.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError('Sale', sale_id)

        if sale.fiscal_receipt_number:
            raise ConflictError(
                f"Sale {sale.sale_number} already has fiscal receipt {sale.fiscal_receipt_number}"
            )

        sale.fiscal_receipt_number = receipt_number
        sale.fiscal_status = fiscal_status or ''
        sale.save(update_fields=['fiscal_receipt_number', 'fiscal_status'])

    logger.info(
        'Fiscal receipt attached',
        extra={'event': 'sale.fiscal_receipt_attached', 'sale_id': str(sale.id)}
    )
    return sale
