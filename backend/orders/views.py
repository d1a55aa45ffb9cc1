import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.permissions import IsManagement
from backend.core.utils import create_audit_log, paginate_queryset, apply_ordering
from . import services
from .filters import OrderFilter
from .models import Order
from .serializers import (
    OrderSerializer, CreateOrderFromCartSerializer, CreateOrderSerializer,
    UpdateOrderStatusSerializer, CancelOrderSerializer
)

logger = logging.getLogger(__name__)

ORDER_ORDERING_FIELDS = {'id', 'order_number', 'status', 'total', 'created_at', 'updated_at'}


def order_queryset():
    return Order.objects.select_related('user').prefetch_related('items')


def filtered_orders(request, queryset):
    filterset = OrderFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return None, Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return apply_ordering(filterset.qs, request.query_params, ORDER_ORDERING_FIELDS), None


def audit_order_created(request, order):
    create_audit_log(
        request=request,
        action='order_create',
        model_name='Order',
        object_id=order.id,
        object_name=order.order_number,
        object_reference=order.order_number,
        changes={'total': order.total, 'discount_amount': order.discount_amount, 'voucher_code': order.voucher_code}
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_from_cart(request):
    """Create an order from the current user's cart"""
    serializer = CreateOrderFromCartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    order = services.create_order_from_cart(
        request.user,
        voucher_code=data.get('voucher_code') or None,
        shipping_address=data.get('shipping_address', ''),
    )
    audit_order_created(request, order)
    return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List the current user's orders or place a direct order"""
    if request.method == 'GET':
        queryset, error = filtered_orders(request, order_queryset().filter(user=request.user))
        if error:
            return error
        return Response(paginate_queryset(queryset, request, OrderSerializer, paginate_by_default=True))

    serializer = CreateOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    order = services.create_order(
        request.user,
        data['items'],
        voucher_code=data.get('voucher_code') or None,
        shipping_address=data.get('shipping_address', ''),
    )
    audit_order_created(request, order)
    return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsManagement])
def order_admin_list(request):
    """All orders, filterable by status, user and date range"""
    queryset, error = filtered_orders(request, order_queryset())
    if error:
        return error
    return Response(paginate_queryset(queryset, request, OrderSerializer, paginate_by_default=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    order = get_object_or_404(order_queryset(), pk=pk)
    if not services.can_view_order(request.user, order):
        return Response({'error': 'You do not have permission to view this order'}, status=status.HTTP_403_FORBIDDEN)
    return Response(OrderSerializer(order).data)


def change_status(request, order, new_status, reason):
    order, old_status = services.update_order_status(order, new_status, request.user, reason=reason)
    create_audit_log(
        request=request,
        action='order_status',
        model_name='Order',
        object_id=order.id,
        object_name=order.order_number,
        object_reference=order.order_number,
        changes={'status': {'old': old_status, 'new': new_status}, 'reason': reason or ''}
    )
    return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def order_update_status(request, pk):
    """Move an order to a new status"""
    order = get_object_or_404(Order, pk=pk)
    serializer = UpdateOrderStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return change_status(request, order, serializer.validated_data['status'], serializer.validated_data.get('reason'))


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def order_cancel(request, pk):
    order = get_object_or_404(Order, pk=pk)
    serializer = CancelOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return change_status(request, order, Order.STATUS_CANCELLED, serializer.validated_data['reason'])


@api_view(['GET'])
@permission_classes([IsManagement])
def order_statistics(request):
    """Totals per day, week, month or year for the filtered orders"""
    queryset, error = filtered_orders(request, Order.objects.all())
    if error:
        return error
    group_by = request.query_params.get('groupBy', 'day')
    data = services.order_statistics(queryset.order_by(), group_by)
    return Response({'message': 'Success', 'groupBy': group_by, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_reorder(request, pk):
    """Place an earlier order again; price or stock changes come back as warnings"""
    order = get_object_or_404(order_queryset(), pk=pk)
    if order.user_id != request.user.id:
        return Response({'error': 'You do not have permission to reorder this order'}, status=status.HTTP_403_FORBIDDEN)
    new_order, warnings = services.reorder(request.user, order)
    if new_order is None:
        return Response({
            'message': 'Prices or stock have changed, please review the order',
            'order': None,
            'warnings': warnings,
        })
    audit_order_created(request, new_order)
    return Response({
        'message': 'Order placed again successfully',
        'order': OrderSerializer(order_queryset().get(pk=new_order.pk)).data,
    }, status=status.HTTP_201_CREATED)
