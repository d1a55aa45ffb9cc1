"""
Voucher rules shared by the cart and order flows
"""
import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError, NotFound

from backend.catalog.models import Product
from backend.catalog.utils import check_product_ids, to_money
from backend.core import roles
from .models import Voucher, VoucherRecipient

logger = logging.getLogger(__name__)

RECEIVER_GROUP_ROLES = {
    Voucher.GROUP_ALL: roles.ALL_ROLES,
    Voucher.GROUP_CUSTOMERS: roles.CUSTOMERS,
    Voucher.GROUP_VIP: roles.VIP,
    Voucher.GROUP_EMPLOYEES: roles.EMPLOYEES,
}


def get_voucher_by_code(code):
    voucher = Voucher.objects.filter(code__iexact=(code or '').strip()).first()
    if not voucher:
        raise NotFound('Voucher not found')
    return voucher


def get_recipient(voucher, user):
    if not user or not user.is_authenticated:
        return None
    return VoucherRecipient.objects.filter(voucher=voucher, user=user).first()


def user_usage_count(voucher, user):
    """Orders placed by the user with this voucher that were not cancelled"""
    from backend.orders.models import Order

    return Order.objects.filter(user=user, voucher=voucher).exclude(status=Order.STATUS_CANCELLED).count()


def products_match_target(voucher, product_ids):
    """True when every product falls inside the voucher's brand/category/product targets"""
    if voucher.target_type == Voucher.TARGET_ALL:
        return True
    products = Product.objects.filter(id__in=product_ids)
    if voucher.target_type == Voucher.TARGET_PRODUCT:
        allowed = set(voucher.products.values_list('id', flat=True))
        return set(product_ids) <= allowed
    if voucher.target_type == Voucher.TARGET_BRAND:
        allowed = set(voucher.brands.values_list('id', flat=True))
        return all(product.brand_id in allowed for product in products)
    if voucher.target_type == Voucher.TARGET_CATEGORY:
        allowed = set(voucher.categories.values_list('id', flat=True))
        matching = products.filter(categories__id__in=allowed).values_list('id', flat=True).distinct()
        return set(matching) == set(product_ids)
    return False


def check_voucher(voucher, product_ids, user=None, subtotal=None):
    """
    Validate that `voucher` may be used for `product_ids` by `user`.

    Raises ValidationError with the first failing rule, returns True otherwise.
    """
    now = timezone.now()

    if not voucher.is_active or voucher.deleted_at is not None:
        raise ValidationError({'voucher': 'Voucher is not active'})
    if voucher.status != Voucher.STATUS_ACTIVE:
        raise ValidationError({'voucher': f'Voucher is {voucher.status.lower()}'})
    if voucher.valid_from > now:
        raise ValidationError({'voucher': 'Voucher is not valid yet'})
    if voucher.valid_to < now:
        raise ValidationError({'voucher': 'Voucher has expired'})
    if voucher.used_count >= voucher.usage_limit:
        raise ValidationError({'voucher': 'Voucher usage limit has been reached'})

    if user is not None and user.is_authenticated:
        allowed_roles = RECEIVER_GROUP_ROLES.get(voucher.target_receiver_group, [])
        if roles.user_role(user) not in allowed_roles:
            raise ValidationError({'voucher': 'Voucher is not available for your account'})

        recipient = get_recipient(voucher, user)
        if not voucher.is_public:
            if not recipient or recipient.status != VoucherRecipient.STATUS_ACTIVE:
                raise ValidationError({'voucher': 'Voucher was not issued to you'})
            if recipient.expires_at and recipient.expires_at < now:
                raise ValidationError({'voucher': 'Your voucher has expired'})

        max_usages = voucher.per_user_limit
        if recipient and recipient.max_usages:
            max_usages = recipient.max_usages
        if user_usage_count(voucher, user) >= max_usages:
            raise ValidationError({'voucher': 'You have already used this voucher the maximum number of times'})

    if subtotal is not None and Decimal(str(subtotal)) < voucher.min_order_value:
        raise ValidationError({'voucher': f'Order value must be at least {voucher.min_order_value}'})

    if product_ids:
        check_product_ids(product_ids)
        if not products_match_target(voucher, product_ids):
            raise ValidationError({'voucher': 'Voucher does not apply to the selected products'})

    return True


def calculate_voucher_discount(subtotal, voucher):
    """Discount amount for a subtotal; never above the subtotal itself"""
    subtotal = Decimal(str(subtotal or 0))
    if voucher is None or not voucher.is_active:
        return Decimal('0.00')
    if subtotal < voucher.min_order_value:
        return Decimal('0.00')

    if voucher.discount_type == Voucher.PERCENTAGE:
        discount = subtotal * voucher.value_discount / Decimal('100')
        if voucher.max_discount_value is not None:
            discount = min(discount, voucher.max_discount_value)
    elif voucher.discount_type == Voucher.AMOUNT:
        discount = voucher.value_discount
    else:
        discount = Decimal('0')

    return to_money(max(min(discount, subtotal), Decimal('0')))


def record_voucher_usage(voucher, user, discount, order_number):
    """Count one use of the voucher globally and on the user's recipient row"""
    Voucher.all_objects.filter(pk=voucher.pk).update(used_count=F('used_count') + 1)
    voucher.refresh_from_db(fields=['used_count'])

    recipient = get_recipient(voucher, user)
    if recipient:
        now = timezone.now()
        recipient.used_count += 1
        recipient.first_used_at = recipient.first_used_at or now
        recipient.last_used_at = now
        recipient.total_discount_applied += Decimal(str(discount))
        recipient.usage_history = list(recipient.usage_history or []) + [
            {'order_number': order_number, 'discount': str(discount), 'used_at': now.isoformat()}
        ]
        limit = recipient.max_usages or voucher.per_user_limit
        if recipient.used_count >= limit:
            recipient.status = VoucherRecipient.STATUS_USED
        recipient.save()

    logger.info(f"Voucher {voucher.code} used by user {getattr(user, 'id', None)} on order {order_number}")


def available_vouchers(user):
    """Vouchers the user could apply right now, ignoring cart contents"""
    now = timezone.now()
    queryset = Voucher.objects.filter(
        is_active=True,
        status=Voucher.STATUS_ACTIVE,
        valid_from__lte=now,
        valid_to__gte=now,
        used_count__lt=F('usage_limit'),
    ).prefetch_related('brands', 'categories', 'products')

    result = []
    for voucher in queryset:
        try:
            check_voucher(voucher, [], user=user)
        except ValidationError:
            continue
        result.append(voucher)
    return result
