from django.contrib import admin
from .models import SequenceCounter


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    """Counters only move forward through the sequence service."""
    list_display = ['name', 'value', 'updated_at']
    readonly_fields = ['name', 'value', 'updated_at']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
