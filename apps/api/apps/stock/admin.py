"""Stock admin: batches, serialized items, read-only ledger and summaries."""
from django.contrib import admin
from .models import StockBatch, StockItem, StockMovement, StockSummary


@admin.register(StockBatch)
class StockBatchAdmin(admin.ModelAdmin):
    list_display = [
        'batch_number', 'product', 'expiry_date', 'quantity', 'initial_quantity',
        'is_active', 'is_expired', 'received_at'
    ]
    list_filter = ['is_active', 'expiry_date', 'received_at']
    search_fields = ['batch_number', 'product__sku', 'product__name']
    date_hierarchy = 'expiry_date'
    ordering = ['expiry_date', 'batch_number']
    readonly_fields = ['quantity', 'initial_quantity', 'total_cost', 'is_active']

    def is_expired(self, obj):
        return obj.is_expired
    is_expired.boolean = True


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ['serial_number', 'product', 'status', 'tracking_status', 'expiry_date', 'sold_at']
    list_filter = ['status', 'tracking_status']
    search_fields = ['serial_number', 'lot_number', 'product__sku', 'product__name']


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    """The ledger is append-only; the admin only shows it."""

    list_display = [
        'movement_number', 'movement_type', 'product', 'quantity_change',
        'total_cost', 'is_correction', 'created_by', 'created_at'
    ]
    list_filter = ['movement_type', 'is_correction', 'created_at']
    search_fields = ['movement_number', 'product__sku', 'serial_number', 'lot_number', 'reference_id']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockSummary)
class StockSummaryAdmin(admin.ModelAdmin):
    list_display = [
        'product', 'total_quantity', 'total_value', 'nearest_expiry_date',
        'has_low_stock', 'has_expiring_soon', 'has_expired', 'updated_at'
    ]
    list_filter = ['needs_attention', 'has_low_stock', 'has_expiring_soon', 'has_expired']
    search_fields = ['product__sku', 'product__name']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
