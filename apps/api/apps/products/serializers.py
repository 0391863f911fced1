"""Product serializers."""
from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):

    class Meta:
        model = Product
        fields = [
            'id', 'sku', 'gtin', 'name', 'manufacturer', 'description',
            'category', 'price', 'cost', 'low_stock_threshold', 'is_active',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_gtin(self, value):
        # Blank GTINs are stored as NULL so the unique constraint ignores them
        return value or None

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value
