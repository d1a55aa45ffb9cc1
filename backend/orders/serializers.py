from decimal import Decimal

from rest_framework import serializers

from backend.core.validators import UniqueFieldInArray
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'price', 'total_price', 'voucher_code']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'user', 'username', 'status', 'subtotal', 'discount_amount', 'total',
                  'voucher', 'voucher_code', 'reason', 'shipping_address', 'items', 'created_at', 'updated_at']
        read_only_fields = fields


class CreateOrderFromCartSerializer(serializers.Serializer):
    voucher_code = serializers.CharField(max_length=100, required=False, allow_blank=True)
    shipping_address = serializers.CharField(required=False, allow_blank=True, default='')


class CreateOrderItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))


class CreateOrderSerializer(serializers.Serializer):
    items = serializers.ListField(child=serializers.DictField(), allow_empty=False)
    voucher_code = serializers.CharField(max_length=100, required=False, allow_blank=True)
    shipping_address = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        serializer = CreateOrderItemSerializer(data=value, many=True)
        serializer.is_valid(raise_exception=True)
        # compared after coercion: 1 and "1" are the same product
        UniqueFieldInArray('product_id')(serializer.validated_data)
        return serializer.validated_data


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='Cancelled at customer request')
