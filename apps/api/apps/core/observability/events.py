"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'sale.completed', 'stock.fifo_consumed')
        entity_type: Type of entity (e.g., 'Sale', 'StockMovement')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'stock.fifo_consumed',
            entity_type='Product',
            entity_id=str(product.id),
            result='success',
            batches_touched=2,
            quantity=12
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    # Log at appropriate level based on result
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'conflict', 'insufficient_stock']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used to verify data integrity at critical points, e.g. after a sale has
    been settled:

        log_consistency_checkpoint(
            'sale_settlement_consistency',
            entity_ids={'sale_id': str(sale.id)},
            checks_passed={'items_persisted': True, 'movements_recorded': True},
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_movement_recorded(movement):
    """Log a ledger append."""
    log_domain_event(
        'stock.movement_recorded',
        entity_type='StockMovement',
        entity_id=str(movement.id),
        entity_ids={'product_id': str(movement.product_id)},
        movement_number=movement.movement_number,
        movement_type=movement.movement_type,
        quantity_change=movement.quantity_change,
        is_correction=movement.is_correction,
    )


def log_batch_created(batch, source='api'):
    """Log creation of a stock batch."""
    log_domain_event(
        'stock.batch_created',
        entity_type='StockBatch',
        entity_id=str(batch.id),
        entity_ids={'product_id': str(batch.product_id)},
        batch_number=batch.batch_number,
        quantity=batch.quantity,
        expiry_date=str(batch.expiry_date),
        source=source,
    )


def log_sale_completed(sale, item_count, movements_count, duration_ms=None):
    """Log a settled sale."""
    extra = {
        'sale_number': sale.sale_number,
        'item_count': item_count,
        'movements_count': movements_count,
        'total': str(sale.total),
        'payment_method': sale.payment_method,
    }
    if duration_ms is not None:
        extra['duration_ms'] = duration_ms

    log_domain_event(
        'sale.completed',
        entity_type='Sale',
        entity_id=str(sale.id),
        entity_ids={'sale_id': str(sale.id)},
        result='success',
        **extra
    )


def log_sale_failed(reason, tab_id=None, **extra):
    """Log a settlement that was rolled back."""
    result = reason if reason in ('insufficient_stock', 'conflict') else 'failure'
    log_domain_event(
        'sale.failed',
        entity_type='DraftSaleTab',
        entity_id=tab_id,
        result=result,
        reason=reason,
        **extra
    )
