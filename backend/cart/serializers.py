from rest_framework import serializers

from backend.catalog.models import Product
from .models import Cart, CartItem
from .services import cart_totals


class CartProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'image', 'final_price', 'stock', 'status']


class CartItemSerializer(serializers.ModelSerializer):
    product = CartProductSerializer(read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = ['id', 'product', 'quantity', 'price', 'line_total', 'created_at', 'updated_at']


class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)
    voucher = serializers.SerializerMethodField()
    subtotal = serializers.SerializerMethodField()
    discount = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = ['id', 'items', 'voucher', 'subtotal', 'discount', 'total_price', 'updated_at']

    def get_voucher(self, obj):
        if not obj.voucher:
            return None
        return {'id': obj.voucher.id, 'code': obj.voucher.code, 'discount_type': obj.voucher.discount_type,
                'value_discount': str(obj.voucher.value_discount)}

    def get_subtotal(self, obj):
        return str(cart_totals(obj)[0])

    def get_discount(self, obj):
        return str(cart_totals(obj)[1])


class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class ApplyVoucherSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=100)
