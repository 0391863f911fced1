"""Draft sale tabs - open point-of-sale carts persisted across terminals."""
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


class DraftSaleTab(models.Model):
    """
    Open cart (tab) of the point of sale.

    Business Rules:
    - tab_id is chosen by the client and unique per tenant
    - completed tabs are kept for audit and never reopened or overwritten
    - items is the full list of draft lines as last synced
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tab_id = models.CharField(_('Tab ID'), max_length=100, unique=True)
    tab_label = models.CharField(_('Tab Label'), max_length=100, blank=True)
    items = models.JSONField(_('Items'), default=list, blank=True, encoder=DjangoJSONEncoder)
    display_order = models.PositiveIntegerField(_('Display Order'), default=0)

    is_completed = models.BooleanField(_('Completed'), default=False)
    completed_at = models.DateTimeField(_('Completed At'), null=True, blank=True)

    created_by = models.CharField(_('Created By'), max_length=150, blank=True)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'draft_sale_tabs'
        ordering = ['display_order', 'created_at']
        verbose_name = _('Draft Sale Tab')
        verbose_name_plural = _('Draft Sale Tabs')
        indexes = [
            models.Index(fields=['is_completed', 'display_order'], name='idx_draft_open_order'),
        ]

    def __str__(self):
        state = 'completed' if self.is_completed else 'open'
        return f"{self.tab_label or self.tab_id} ({state})"

    @property
    def item_count(self):
        return len(self.items or [])
