from django.contrib import admin
from .models import Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    """Settled lines are read-only."""
    model = SaleItem
    extra = 0
    fields = ['product_name', 'quantity', 'unit_price', 'discount_rate', 'total_price', 'serial_number', 'lot_number']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_number', 'sale_date', 'total', 'payment_method', 'sale_type', 'fiscal_receipt_number']
    list_filter = ['payment_method', 'sale_type', 'sale_date']
    search_fields = ['sale_number', 'fiscal_receipt_number', 'draft_tab_id']
    date_hierarchy = 'sale_date'
    inlines = [SaleItemInline]
    readonly_fields = [
        'sale_number', 'sale_date', 'subtotal', 'discount', 'total',
        'payment_method', 'payment_amount', 'draft_tab_id', 'created_by', 'created_at',
    ]

    def has_delete_permission(self, request, obj=None):
        return False
