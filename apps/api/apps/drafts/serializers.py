"""Draft sale serializers."""
from rest_framework import serializers

from .models import DraftSaleTab


class DraftItemSerializer(serializers.Serializer):
    """One draft cart line as the terminal holds it."""

    product_id = serializers.UUIDField()
    gtin = serializers.CharField(max_length=14, required=False, allow_blank=True, allow_null=True)
    name = serializers.CharField(max_length=255)
    manufacturer = serializers.CharField(max_length=255, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    quantity = serializers.IntegerField(min_value=1)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)


class DraftTabInputSerializer(serializers.Serializer):
    tab_id = serializers.CharField(max_length=100)
    tab_label = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    items = DraftItemSerializer(many=True, required=False, default=list)


class DraftSyncSerializer(serializers.Serializer):
    """Full set of open tabs pushed by a terminal."""

    tabs = DraftTabInputSerializer(many=True, allow_empty=True)
    known_tab_ids = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False,
        allow_null=True,
        default=None,
    )


class DraftSaleTabSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = DraftSaleTab
        fields = [
            'tab_id', 'tab_label', 'items', 'item_count', 'display_order',
            'is_completed', 'completed_at', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields
