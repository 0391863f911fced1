from django.contrib import admin
from .models import DraftSaleTab


@admin.register(DraftSaleTab)
class DraftSaleTabAdmin(admin.ModelAdmin):
    list_display = ['tab_id', 'tab_label', 'display_order', 'is_completed', 'completed_at', 'updated_at']
    list_filter = ['is_completed']
    search_fields = ['tab_id', 'tab_label', 'created_by']
    readonly_fields = ['items', 'created_at', 'updated_at']
