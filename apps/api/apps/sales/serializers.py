"""Sales serializers."""
from decimal import Decimal

from rest_framework import serializers

from .models import PaymentMethodChoices, Sale, SaleItem, SaleTypeChoices


class SaleItemInputSerializer(serializers.Serializer):
    """One cart line submitted for settlement."""

    product_id = serializers.UUIDField()
    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    gtin = serializers.CharField(max_length=14, required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(
        min_value=1,
        help_text='Quantity must be a positive integer (no decimals)'
    )
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    discount_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100,
        required=False, default=Decimal('0')
    )
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)


class PaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethodChoices.choices)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)


class CustomerSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    national_id = serializers.CharField(max_length=20, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)


class SaleCompleteSerializer(serializers.Serializer):
    """Settlement request: cart lines, payment and the originating draft tab."""

    items = SaleItemInputSerializer(many=True, allow_empty=False)
    payment = PaymentSerializer()
    sale_type = serializers.ChoiceField(
        choices=SaleTypeChoices.choices, required=False, default=SaleTypeChoices.NORMAL
    )
    customer = CustomerSerializer(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    draft_tab_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class SaleReceiptSerializer(serializers.Serializer):
    sale_id = serializers.UUIDField()
    sale_number = serializers.CharField()
    sale_date = serializers.DateTimeField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.CharField()
    item_count = serializers.IntegerField()
    stock_deducted = serializers.BooleanField()
    fiscal_receipt_number = serializers.CharField(allow_null=True)


class SaleItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleItem
        fields = [
            'id', 'product', 'product_name', 'product_category', 'gtin',
            'quantity', 'unit_price', 'unit_cost', 'discount_rate', 'discount_amount',
            'total_price', 'serial_number', 'lot_number', 'expiry_date', 'stock_deducted',
        ]
        read_only_fields = fields


class SaleListSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Sale
        fields = [
            'id', 'sale_number', 'sale_date', 'subtotal', 'discount', 'total',
            'payment_method', 'payment_status', 'sale_type', 'item_count',
            'fiscal_receipt_number', 'created_by',
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """Sale with its items."""

    items = SaleItemSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            'id', 'sale_number', 'sale_date', 'subtotal', 'discount', 'total',
            'payment_method', 'payment_amount', 'payment_transaction_id', 'payment_status',
            'sale_type', 'customer_id', 'customer_name', 'customer_national_id', 'customer_phone',
            'notes', 'draft_tab_id', 'fiscal_receipt_number', 'fiscal_status',
            'created_by', 'created_at', 'items',
        ]
        read_only_fields = fields


class SaleFilterSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethodChoices.choices, required=False)
    sale_type = serializers.ChoiceField(choices=SaleTypeChoices.choices, required=False)


class FiscalReceiptSerializer(serializers.Serializer):
    receipt_number = serializers.CharField(max_length=100)
    fiscal_status = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
