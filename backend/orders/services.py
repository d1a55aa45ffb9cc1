"""
Order placement, status workflow and order statistics
"""
import logging
import random
import time
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncDay, TruncWeek, TruncMonth, TruncYear
from rest_framework.exceptions import ValidationError, PermissionDenied, NotFound

from backend.cart.models import Cart
from backend.cart.services import clear_cart
from backend.catalog.models import Product
from backend.core import roles
from backend.vouchers.services import (
    get_voucher_by_code, check_voucher, calculate_voucher_discount, record_voucher_usage
)
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

PERIOD_FUNCTIONS = {
    'day': TruncDay,
    'week': TruncWeek,
    'month': TruncMonth,
    'year': TruncYear,
}


class InsufficientStockError(ValidationError):
    pass


class PriceChangedError(ValidationError):
    pass


def generate_order_number():
    """ORD + millisecond timestamp + 3 random digits"""
    while True:
        number = f"ORD{int(time.time() * 1000)}{random.randint(0, 999):03d}"
        if not Order.objects.filter(order_number=number).exists():
            return number


def lock_product(product_id):
    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if not product:
        raise NotFound(f'Product not found: {product_id}')
    return product


def reserve_stock(product, quantity):
    """Take `quantity` units out of a locked product row"""
    if product.stock < quantity:
        raise InsufficientStockError(
            {'stock': f'Not enough stock for {product.name}: requested {quantity}, available {product.stock}'}
        )
    product.stock -= quantity
    product.sold_count += quantity
    update_fields = ['stock', 'sold_count', 'updated_at']
    if product.stock == 0:
        product.status = Product.STATUS_OUT_OF_STOCK
        update_fields.append('status')
    product.save(update_fields=update_fields)


def restore_stock(order):
    """Put the units of a cancelled order back on the shelf"""
    for item in order.items.all():
        if not item.product_id:
            continue
        product = Product.all_objects.select_for_update().filter(pk=item.product_id).first()
        if not product:
            continue
        product.stock += item.quantity
        product.sold_count = max(product.sold_count - item.quantity, 0)
        update_fields = ['stock', 'sold_count', 'updated_at']
        if product.status == Product.STATUS_OUT_OF_STOCK and product.stock > 0:
            product.status = Product.STATUS_ACTIVE
            update_fields.append('status')
        product.save(update_fields=update_fields)


def place_order(user, lines, voucher=None, shipping_address=''):
    """
    Create the order rows for already-validated lines.

    `lines` is a list of (locked product, quantity, unit price). Must run
    inside a transaction.
    """
    subtotal = sum((price * quantity for _, quantity, price in lines), Decimal('0.00'))
    discount = calculate_voucher_discount(subtotal, voucher) if voucher else Decimal('0.00')
    discount = min(discount, subtotal)

    order = Order.objects.create(
        order_number=generate_order_number(),
        user=user,
        status=Order.STATUS_PENDING,
        subtotal=subtotal,
        discount_amount=discount,
        total=subtotal - discount,
        voucher=voucher,
        voucher_code=voucher.code if voucher else '',
        shipping_address=shipping_address or '',
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product=product,
            product_name=product.name,
            quantity=quantity,
            price=price,
            total_price=price * quantity,
            voucher_code=voucher.code if voucher else '',
        )
        for product, quantity, price in lines
    ])
    for product, quantity, _ in lines:
        reserve_stock(product, quantity)

    if voucher:
        record_voucher_usage(voucher, user, discount, order.order_number)

    logger.info(f"Order {order.order_number} created for user {user.id}: subtotal={subtotal}, discount={discount}, total={order.total}")
    return order


def resolve_voucher(user, voucher_code, product_ids, subtotal, fallback=None):
    voucher = get_voucher_by_code(voucher_code) if voucher_code else fallback
    if voucher:
        check_voucher(voucher, product_ids, user=user, subtotal=subtotal)
    return voucher


@transaction.atomic
def create_order_from_cart(user, voucher_code=None, shipping_address=''):
    """Turn the user's cart into an order and empty the cart"""
    cart = Cart.objects.filter(user=user).select_related('voucher').first()
    items = list(cart.items.select_related('product').order_by('id')) if cart else []
    if not items:
        raise ValidationError({'cart': 'Cart is empty, cannot create an order'})

    lines = []
    for item in items:
        product = lock_product(item.product_id)
        if product.stock < item.quantity:
            raise InsufficientStockError(
                {'stock': f'Not enough stock for {product.name}: requested {item.quantity}, available {product.stock}'}
            )
        lines.append((product, item.quantity, item.price))

    subtotal = sum((price * quantity for _, quantity, price in lines), Decimal('0.00'))
    voucher = resolve_voucher(user, voucher_code, [p.id for p, _, _ in lines], subtotal, fallback=cart.voucher)
    order = place_order(user, lines, voucher, shipping_address)
    clear_cart(cart)
    return order


@transaction.atomic
def create_order(user, items, voucher_code=None, shipping_address=''):
    """
    Direct order from explicit lines.

    Each submitted price must match the product's current selling price
    within ORDER_PRICE_TOLERANCE.
    """
    if not items:
        raise ValidationError({'items': 'Order must contain at least one item'})
    tolerance = Decimal(str(settings.ORDER_PRICE_TOLERANCE))
    product_ids = [int(entry['product_id']) for entry in items]
    if len(product_ids) != len(set(product_ids)):
        raise ValidationError({'items': 'Each product may appear only once per order'})

    lines = []
    for entry in items:
        product = lock_product(entry['product_id'])
        if not product.is_active:
            raise ValidationError({'items': f'Product {product.name} is currently unavailable'})
        quantity = entry['quantity']
        if product.stock < quantity:
            raise InsufficientStockError(
                {'stock': f'Not enough stock for {product.name}: requested {quantity}, available {product.stock}'}
            )
        price = Decimal(str(entry['price']))
        if abs(price - product.final_price) > tolerance:
            raise PriceChangedError(
                {'price': f'Price of {product.name} has changed: submitted {price}, current {product.final_price}'}
            )
        lines.append((product, quantity, product.final_price))

    subtotal = sum((price * quantity for _, quantity, price in lines), Decimal('0.00'))
    voucher = resolve_voucher(user, voucher_code, [p.id for p, _, _ in lines], subtotal)
    return place_order(user, lines, voucher, shipping_address)


def can_view_order(user, order):
    return roles.is_management(user) or order.user_id == user.id


@transaction.atomic
def update_order_status(order, new_status, user, reason=None):
    """
    Move an order along its workflow.

    Owners may only cancel; management may apply any allowed transition.
    Cancelling returns the units to stock.
    """
    order = Order.objects.select_for_update().get(pk=order.pk)
    if not roles.is_management(user):
        if order.user_id != user.id:
            raise PermissionDenied('You do not have permission to update this order')
        if new_status != Order.STATUS_CANCELLED:
            raise PermissionDenied('You can only cancel your own orders')

    if not order.can_transition_to(new_status):
        raise ValidationError({'status': f'Cannot change status from {order.status} to {new_status}'})

    old_status = order.status
    order.status = new_status
    if reason:
        order.reason = reason
    if new_status == Order.STATUS_CANCELLED:
        restore_stock(order)
    order.save(update_fields=['status', 'reason', 'updated_at'])

    logger.info(
        f"Order {order.order_number} status changed from {old_status} to {new_status}"
        + (f" - Reason: {reason}" if reason else "")
    )
    return order, old_status


def order_statistics(queryset, group_by='day'):
    """Order count, revenue and average order value per period, newest first"""
    trunc = PERIOD_FUNCTIONS.get(group_by)
    if trunc is None:
        raise ValidationError({'groupBy': f"Must be one of: {', '.join(PERIOD_FUNCTIONS)}"})
    rows = (
        queryset.annotate(period=trunc('created_at'))
        .values('period')
        .annotate(total_orders=Count('id'), total_revenue=Sum('total'))
        .order_by('-period')
    )
    result = []
    for row in rows:
        revenue = row['total_revenue'] or Decimal('0.00')
        orders = row['total_orders']
        result.append({
            'period': row['period'].date().isoformat() if hasattr(row['period'], 'date') else str(row['period']),
            'totalOrders': orders,
            'totalRevenue': str(revenue),
            'averageOrderValue': str((revenue / orders).quantize(Decimal('0.01')) if orders else Decimal('0.00')),
        })
    return result


def reorder(user, order):
    """
    Place the lines of a previous order again at the prices paid then.

    A price change or a stock shortage yields warnings instead of an error.
    """
    items = [
        {'product_id': item.product_id, 'quantity': item.quantity, 'price': item.price}
        for item in order.items.all() if item.product_id
    ]
    if not items:
        raise ValidationError({'items': 'None of the products of this order are available any more'})
    try:
        new_order = create_order(user, items, voucher_code=order.voucher_code or None,
                                 shipping_address=order.shipping_address)
    except (PriceChangedError, InsufficientStockError) as e:
        warnings = [
            str(message)
            for detail in e.detail.values()
            for message in (detail if isinstance(detail, list) else [detail])
        ]
        logger.warning(f"Reorder of {order.order_number} needs review: {warnings}")
        return None, warnings
    return new_order, []
