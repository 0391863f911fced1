"""
Core models: sequence_counters
"""
from django.db import models
from django.utils.translation import gettext_lazy as _


class SequenceCounter(models.Model):
    """
    Named, tenant-local counter backing human-readable document numbers.

    One row per sequence (stock_movement, sale, stock_batch). The row is
    incremented in place with ``UPDATE ... SET value = value + 1`` inside the
    caller's transaction, never read-then-incremented in Python.
    """
    name = models.CharField(_('Name'), max_length=50, unique=True)
    value = models.BigIntegerField(_('Current Value'), default=0)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'sequence_counters'
        verbose_name = _('Sequence Counter')
        verbose_name_plural = _('Sequence Counters')
        constraints = [
            models.CheckConstraint(
                check=models.Q(value__gte=0),
                name='sequence_counter_value_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.name}={self.value}"
