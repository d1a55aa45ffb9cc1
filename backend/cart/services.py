"""
Cart operations: one cart per user, price snapshots per line and an optional voucher
"""
import logging
from decimal import Decimal

from django.db import transaction
from rest_framework.exceptions import ValidationError, NotFound

from backend.catalog.models import Product
from backend.vouchers.services import get_voucher_by_code, check_voucher, calculate_voucher_discount
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


def get_or_create_cart(user):
    cart, created = Cart.objects.get_or_create(user=user)
    if created:
        logger.info(f"Created new cart for user {user.id}")
    return cart


def cart_product_ids(cart):
    return list(cart.items.values_list('product_id', flat=True))


def cart_totals(cart):
    """Subtotal, voucher discount and total of a cart"""
    subtotal = cart.subtotal
    discount = calculate_voucher_discount(subtotal, cart.voucher) if cart.voucher else Decimal('0.00')
    return subtotal, discount, max(subtotal - discount, Decimal('0.00'))


def recalculate(cart):
    _, _, total = cart_totals(cart)
    cart.total_price = total
    cart.save(update_fields=['total_price', 'updated_at'])
    return cart


def get_available_product(product_id):
    product = Product.objects.filter(pk=product_id).first()
    if not product:
        raise NotFound(f'Product not found: {product_id}')
    if not product.is_active:
        raise ValidationError({'product_id': 'Product is currently unavailable'})
    return product


@transaction.atomic
def add_to_cart(user, product_id, quantity):
    """Add a product, merging with an existing line and refreshing its price"""
    if quantity <= 0:
        raise ValidationError({'quantity': 'Quantity must be greater than 0'})
    product = get_available_product(product_id)
    cart = get_or_create_cart(user)

    item = cart.items.filter(product=product).first()
    if item:
        item.quantity += quantity
        item.price = product.final_price
        item.save(update_fields=['quantity', 'price', 'updated_at'])
        logger.info(f"Updated cart item: product {product.id}, new quantity {item.quantity}")
    else:
        CartItem.objects.create(cart=cart, product=product, quantity=quantity, price=product.final_price)
        logger.info(f"Added cart item: product {product.id}, quantity {quantity}")
    return recalculate(cart)


@transaction.atomic
def update_cart_item(user, item_id, quantity):
    """Set a line's quantity; zero or less removes the line"""
    cart = get_or_create_cart(user)
    item = cart.items.filter(pk=item_id).select_related('product').first()
    if not item:
        raise NotFound('Cart item not found')
    if quantity <= 0:
        item.delete()
    else:
        item.quantity = quantity
        item.price = item.product.final_price
        item.save(update_fields=['quantity', 'price', 'updated_at'])
    return recalculate(cart)


@transaction.atomic
def remove_from_cart(user, item_id):
    cart = get_or_create_cart(user)
    deleted, _ = cart.items.filter(pk=item_id).delete()
    if not deleted:
        raise NotFound('Cart item not found')
    return recalculate(cart)


@transaction.atomic
def clear_cart(cart):
    """Drop every line and the applied voucher"""
    cart.items.all().delete()
    cart.voucher = None
    cart.total_price = Decimal('0.00')
    cart.save(update_fields=['voucher', 'total_price', 'updated_at'])
    return cart


@transaction.atomic
def apply_voucher(user, code):
    cart = get_or_create_cart(user)
    product_ids = cart_product_ids(cart)
    if not product_ids:
        raise ValidationError({'cart': 'Cart is empty'})
    voucher = get_voucher_by_code(code)
    check_voucher(voucher, product_ids, user=user, subtotal=cart.subtotal)
    cart.voucher = voucher
    cart.save(update_fields=['voucher', 'updated_at'])
    logger.info(f"Voucher {voucher.code} applied to cart of user {user.id}")
    return recalculate(cart)


@transaction.atomic
def remove_voucher(user):
    cart = get_or_create_cart(user)
    if not cart.voucher_id:
        raise ValidationError({'voucher': 'No voucher applied to this cart'})
    cart.voucher = None
    cart.save(update_fields=['voucher', 'updated_at'])
    return recalculate(cart)
