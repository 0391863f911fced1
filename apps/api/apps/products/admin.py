from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['sku', 'gtin', 'name', 'category', 'price', 'low_stock_threshold', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['sku', 'gtin', 'name', 'manufacturer']
