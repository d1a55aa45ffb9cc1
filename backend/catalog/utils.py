"""
Utility functions for catalog operations
"""
from decimal import Decimal, ROUND_HALF_UP

from rest_framework.exceptions import NotFound, ValidationError

from backend.catalog.models import Brand, Category, Product

TWO_PLACES = Decimal('0.01')


def to_money(value):
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def discount_price(price, discount, type_discount):
    """
    Selling price after the product discount.

    PERCENTAGE needs 0 <= discount <= 100, AMOUNT needs 0 <= discount <= price;
    anything else (NO_DISCOUNT) sells at the list price.
    """
    price = Decimal(str(price or 0))
    discount = Decimal(str(discount or 0))
    if type_discount == Product.PERCENTAGE:
        if discount < 0 or discount > 100:
            raise ValidationError({'discount': 'Percentage discount must be between 0 and 100'})
        return to_money(price - price * discount / Decimal('100'))
    if type_discount == Product.AMOUNT:
        if discount < 0 or discount > price:
            raise ValidationError({'discount': 'Amount discount must be between 0 and the product price'})
        return to_money(price - discount)
    return to_money(price)


def check_product_ids(product_ids):
    """
    Ensure every id refers to an active, non-deleted product.
    Returns False for an empty list, raises NotFound listing the bad ids.
    """
    if not product_ids:
        return False
    wanted = set(product_ids)
    found = set(
        Product.objects.filter(id__in=wanted, is_active=True).values_list('id', flat=True)
    )
    missing = sorted(wanted - found)
    if missing:
        raise NotFound(f"Products not found or inactive: {', '.join(str(i) for i in missing)}")
    return True


def check_category_ids(category_ids):
    if not category_ids:
        return False
    wanted = set(category_ids)
    found = set(
        Category.objects.filter(id__in=wanted, is_active=True).values_list('id', flat=True)
    )
    missing = sorted(wanted - found)
    if missing:
        raise NotFound(f"Categories not found or inactive: {', '.join(str(i) for i in missing)}")
    return True


def check_brand_ids(brand_ids):
    if not brand_ids:
        return False
    wanted = set(brand_ids)
    found = set(
        Brand.objects.filter(id__in=wanted, is_active=True).values_list('id', flat=True)
    )
    missing = sorted(wanted - found)
    if missing:
        raise NotFound(f"Brands not found or inactive: {', '.join(str(i) for i in missing)}")
    return True
