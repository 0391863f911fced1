"""Stock serializers: ledger, batches, summaries and imports."""
from rest_framework import serializers

from .models import (
    MovementTypeChoices,
    StockBatch,
    StockMovement,
    StockSummary,
)


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of a ledger entry."""

    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'movement_number', 'movement_type',
            'product', 'product_sku', 'product_name',
            'quantity_change', 'unit_cost', 'total_cost',
            'serial_number', 'lot_number', 'expiry_date',
            'batch', 'batch_number',
            'reference_type', 'reference_id', 'notes',
            'is_correction', 'correction_reason',
            'created_by', 'created_at',
        ]
        read_only_fields = fields


class MovementCreateSerializer(serializers.Serializer):
    """Input for a manually posted movement."""

    product_id = serializers.UUIDField()
    movement_type = serializers.ChoiceField(choices=MovementTypeChoices.choices)
    quantity_change = serializers.IntegerField()
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    expiry_date = serializers.DateField(required=False, allow_null=True)
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    reference_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    reference_id = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    is_correction = serializers.BooleanField(required=False, default=False)
    correction_reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity_change(self, value):
        if value == 0:
            raise serializers.ValidationError('Quantity change cannot be zero')
        return value

    def validate(self, attrs):
        if attrs['movement_type'] == MovementTypeChoices.CORRECTION:
            attrs['is_correction'] = True

        if attrs.get('is_correction') and not attrs.get('correction_reason', '').strip():
            raise serializers.ValidationError({
                'correction_reason': 'A correction requires a reason'
            })

        if attrs.get('serial_number') and attrs.get('batch_id'):
            raise serializers.ValidationError(
                'A movement references either a serial number or a batch, not both'
            )
        return attrs


class MovementFilterSerializer(serializers.Serializer):
    """Query parameters for movement listings."""

    movement_type = serializers.ChoiceField(choices=MovementTypeChoices.choices, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    is_correction = serializers.BooleanField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError({'end_date': 'end_date must not precede start_date'})
        return attrs


class StockBatchSerializer(serializers.ModelSerializer):
    """Serializer for StockBatch with expiry information."""

    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    is_expired = serializers.BooleanField(read_only=True)
    days_until_expiry = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockBatch
        fields = [
            'id', 'product', 'product_sku', 'product_name',
            'batch_number', 'expiry_date', 'quantity', 'initial_quantity',
            'unit_cost', 'total_cost', 'location_id', 'is_active', 'received_at',
            'is_expired', 'days_until_expiry',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BatchCreateSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    expiry_date = serializers.DateField()
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    received_at = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        received_at = attrs.get('received_at')
        if received_at and attrs['expiry_date'] < received_at:
            raise serializers.ValidationError({
                'expiry_date': 'Expiry date cannot be before received date'
            })
        return attrs


class BatchQuantitySerializer(serializers.Serializer):
    new_quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class StockSummarySerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    low_stock_threshold = serializers.IntegerField(source='product.low_stock_threshold', read_only=True)
    alert_level = serializers.CharField(read_only=True)

    class Meta:
        model = StockSummary
        fields = [
            'product', 'product_sku', 'product_name', 'low_stock_threshold',
            'total_tracked', 'total_untracked', 'batch_quantity', 'total_quantity',
            'total_value', 'average_cost',
            'nearest_expiry_date', 'last_movement_date',
            'has_low_stock', 'has_expiring_soon', 'has_expired', 'needs_attention',
            'alert_level', 'updated_at',
        ]
        read_only_fields = fields


class SummaryFilterSerializer(serializers.Serializer):
    has_low_stock = serializers.BooleanField(required=False, allow_null=True, default=None)
    has_expiring_soon = serializers.BooleanField(required=False, allow_null=True, default=None)
    needs_attention = serializers.BooleanField(required=False, allow_null=True, default=None)


class NewProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    gtin = serializers.CharField(max_length=14, required=False, allow_blank=True)
    manufacturer = serializers.CharField(max_length=255, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class ImportRowSerializer(serializers.Serializer):
    """One confirmed purchase-import row."""

    row_number = serializers.IntegerField(min_value=1, required=False)
    product_id = serializers.UUIDField(required=False, allow_null=True)
    new_product = NewProductSerializer(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)
    bonus_quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('product_id') and not attrs.get('new_product'):
            raise serializers.ValidationError('Each row needs product_id or new_product')
        return attrs


class ImportExecuteSerializer(serializers.Serializer):
    rows = ImportRowSerializer(many=True, allow_empty=False)
