"""
Monotonic, collision-free document numbers.

Each call increments a ``SequenceCounter`` row with a single UPDATE inside a
transaction on the bound tenant database. The row lock taken by the UPDATE
serializes concurrent callers until their transactions end; a rolled back
caller releases its value.
"""
from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.core.models import SequenceCounter
from apps.core.observability import get_sanitized_logger
from apps.core.tenancy import tenant_db_alias

logger = get_sanitized_logger(__name__)

STOCK_MOVEMENT = 'stock_movement'
SALE = 'sale'
STOCK_BATCH = 'stock_batch'


def next_value(name: str) -> int:
    """
    Return the next value of sequence ``name`` (first value is 1).

    Joins the caller's transaction when there is one, so the value is
    consumed only if the caller commits.
    """
    alias = tenant_db_alias()
    with transaction.atomic(using=alias):
        updated = SequenceCounter.objects.filter(name=name).update(value=F('value') + 1)
        if not updated:
            try:
                # Savepoint: a concurrent first use must not poison the outer transaction
                with transaction.atomic(using=alias):
                    SequenceCounter.objects.create(name=name, value=1)
                logger.debug('sequence_allocated', extra={'sequence_name': name, 'value': 1})
                return 1
            except IntegrityError:
                logger.debug('sequence_counter_race_retry', extra={'sequence_name': name})
                SequenceCounter.objects.filter(name=name).update(value=F('value') + 1)

        value = SequenceCounter.objects.filter(name=name).values_list('value', flat=True).get()

    logger.debug('sequence_allocated', extra={'sequence_name': name, 'value': value})
    return value


def next_movement_number() -> str:
    """Ledger movement number, e.g. SM000042."""
    return f"SM{next_value(STOCK_MOVEMENT):06d}"


def next_sale_number(on: Optional[date] = None) -> str:
    """Sale number, e.g. SL-20250114-000007."""
    on = on or timezone.localdate()
    return f"SL-{on:%Y%m%d}-{next_value(SALE):06d}"


def next_batch_number(on: Optional[date] = None) -> str:
    """Generated batch number, e.g. BT-20250114-00003."""
    on = on or timezone.localdate()
    return f"BT-{on:%Y%m%d}-{next_value(STOCK_BATCH):05d}"
