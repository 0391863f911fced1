"""
Draft cart services.

Terminals push their whole set of open tabs; the store reconciles it with
what is persisted (full replace, completed tabs untouched).
"""
import re
from collections import Counter
from typing import Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.core.exceptions import ConflictError, NotFoundError
from apps.core.observability import metrics, log_domain_event, get_sanitized_logger
from apps.core.observability.tracing import trace_span
from apps.core.tenancy import tenant_atomic

from .models import DraftSaleTab

logger = get_sanitized_logger(__name__)

_TRAILING_NUMBER = re.compile(r'(\d+)\s*$')


def label_number(label: Optional[str]) -> int:
    """Numeric suffix of a tab label ('Sale 7' -> 7); 0 when there is none."""
    match = _TRAILING_NUMBER.search(label or '')
    return int(match.group(1)) if match else 0


def load_open_tabs() -> dict:
    """
    Open tabs in display order, the tab to activate and the next label counter.
    """
    tabs = list(DraftSaleTab.objects.filter(is_completed=False).order_by('display_order', 'created_at'))
    tab_counter = max((label_number(tab.tab_label) for tab in tabs), default=0) + 1
    return {
        'tabs': tabs,
        'active_tab_id': tabs[0].tab_id if tabs else None,
        'tab_counter': tab_counter,
    }


def get_tab(tab_id: str) -> DraftSaleTab:
    try:
        return DraftSaleTab.objects.get(tab_id=tab_id)
    except DraftSaleTab.DoesNotExist:
        raise NotFoundError('DraftSaleTab', tab_id)


def sync(tabs: List[dict], known_tab_ids: Optional[Iterable[str]] = None, created_by: str = '') -> dict:
    """
    Replace the persisted open tabs with ``tabs`` in one transaction.

    Open tabs missing from ``tabs`` are deleted. When ``known_tab_ids`` is
    given, only open tabs the client had loaded may be deleted, so tabs
    opened meanwhile on another terminal survive a stale push. Completed
    tabs are never reopened or overwritten.

    Raises:
        ValidationError: duplicate tab ids in ``tabs``
    """
    incoming_ids = [tab['tab_id'] for tab in tabs]
    duplicates = sorted(tab_id for tab_id, count in Counter(incoming_ids).items() if count > 1)
    if duplicates:
        metrics.draft_sync_total.labels(result='validation_error').inc()
        raise ValidationError({'tabs': f"Duplicate tab ids: {', '.join(duplicates)}"})

    with trace_span('drafts.sync', attributes={'tab_count': len(tabs)}):
        with tenant_atomic():
            stale = DraftSaleTab.objects.filter(is_completed=False).exclude(tab_id__in=incoming_ids)
            if known_tab_ids is not None:
                stale = stale.filter(tab_id__in=list(known_tab_ids))
            deleted, _ = stale.delete()

            existing = {
                tab.tab_id: tab
                for tab in DraftSaleTab.objects.select_for_update().filter(tab_id__in=incoming_ids)
            }

            saved = 0
            skipped_completed = []
            for index, incoming in enumerate(tabs):
                tab = existing.get(incoming['tab_id'])
                if tab is None:
                    tab = DraftSaleTab(tab_id=incoming['tab_id'], created_by=created_by)
                elif tab.is_completed:
                    skipped_completed.append(tab.tab_id)
                    continue

                tab.tab_label = incoming.get('tab_label', '')
                tab.items = incoming.get('items', [])
                tab.display_order = index
                tab.save()
                saved += 1

    metrics.draft_sync_total.labels(result='success').inc()
    if deleted:
        metrics.draft_tabs_deleted_total.inc(deleted)
    log_domain_event(
        'draft.synced',
        entity_type='DraftSaleTab',
        result='success',
        saved=saved,
        deleted=deleted,
        skipped_completed=len(skipped_completed),
        guarded=known_tab_ids is not None,
    )
    return {
        'saved': saved,
        'deleted': deleted,
        'skipped_completed': skipped_completed,
    }


def complete(tab_id: str) -> DraftSaleTab:
    """
    Soft-complete a tab (kept for audit, hidden from open tabs).

    Idempotent on an already completed tab.

    Raises:
        NotFoundError: unknown tab
    """
    with tenant_atomic():
        try:
            tab = DraftSaleTab.objects.select_for_update().get(tab_id=tab_id)
        except DraftSaleTab.DoesNotExist:
            raise NotFoundError('DraftSaleTab', tab_id)

        if not tab.is_completed:
            tab.is_completed = True
            tab.completed_at = timezone.now()
            tab.save(update_fields=['is_completed', 'completed_at', 'updated_at'])
    return tab


def remove(tab_id: str) -> None:
    """
    Delete an open tab.

    Raises:
        NotFoundError: unknown tab
        ConflictError: the tab is completed and kept for audit
    """
    with tenant_atomic():
        tab = get_tab(tab_id)
        if tab.is_completed:
            raise ConflictError(f"Draft tab '{tab_id}' is completed and cannot be deleted")
        tab.delete()

    logger.info('Draft tab removed', extra={'event': 'draft.removed', 'tab_id': tab_id})
