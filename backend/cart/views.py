import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.utils import create_audit_log
from . import services
from .models import Cart
from .serializers import CartSerializer, AddToCartSerializer, UpdateCartItemSerializer, ApplyVoucherSerializer

logger = logging.getLogger(__name__)


def cart_response(cart, message='Success', status_code=status.HTTP_200_OK):
    cart = Cart.objects.prefetch_related('items__product').select_related('voucher').get(pk=cart.pk)
    return Response({'message': message, 'data': CartSerializer(cart).data}, status=status_code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cart_detail(request):
    """Current user's cart, created on first access"""
    cart = services.get_or_create_cart(request.user)
    return cart_response(cart)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_add_item(request):
    serializer = AddToCartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    cart = services.add_to_cart(request.user, data['product_id'], data['quantity'])
    create_audit_log(request=request, action='cart_add', model_name='Cart', object_id=cart.id,
                     changes={'product_id': data['product_id'], 'quantity': data['quantity']})
    return cart_response(cart, 'Product added to cart', status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_item_detail(request, pk):
    """Change a line's quantity (zero removes it) or remove the line"""
    if request.method == 'DELETE':
        cart = services.remove_from_cart(request.user, pk)
        create_audit_log(request=request, action='cart_remove', model_name='CartItem', object_id=pk)
        return cart_response(cart, 'Item removed from cart')

    serializer = UpdateCartItemSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    quantity = serializer.validated_data['quantity']
    cart = services.update_cart_item(request.user, pk, quantity)
    create_audit_log(request=request, action='cart_update', model_name='CartItem', object_id=pk,
                     changes={'quantity': quantity})
    return cart_response(cart, 'Cart updated')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def cart_clear(request):
    cart = services.clear_cart(services.get_or_create_cart(request.user))
    create_audit_log(request=request, action='cart_clear', model_name='Cart', object_id=cart.id)
    return cart_response(cart, 'Cart cleared')


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_voucher(request):
    """Apply a voucher code to the cart or remove the applied one"""
    if request.method == 'DELETE':
        cart = services.remove_voucher(request.user)
        create_audit_log(request=request, action='voucher_remove', model_name='Cart', object_id=cart.id)
        return cart_response(cart, 'Voucher removed')

    serializer = ApplyVoucherSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    cart = services.apply_voucher(request.user, serializer.validated_data['code'])
    create_audit_log(request=request, action='voucher_apply', model_name='Cart', object_id=cart.id,
                     object_reference=cart.voucher.code)
    return cart_response(cart, 'Voucher applied')
