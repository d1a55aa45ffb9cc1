"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
from decimal import Decimal
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.core import roles
from backend.core.models import UserProfile
from backend.catalog.models import Category, Brand, Product
from backend.catalog.utils import discount_price
from backend.vouchers.models import Voucher, VoucherRecipient
from backend.cart.models import Cart, CartItem
from backend.orders.models import Order, OrderItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=roles.CUSTOMER,
                    is_superuser=False, with_profile=True, **extra):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
            is_staff=is_superuser,
            **extra
        )
        if with_profile:
            UserProfile.objects.create(user=user, full_name=username.title(), code=roles.generate_code(role, user.id))
        return user

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=roles.ADMINISTRATOR, **kwargs)

    @staticmethod
    def create_hr(**kwargs):
        return TestDataFactory.create_user(role=roles.HUMAN_RESOURCES, **kwargs)

    @staticmethod
    def create_employee(**kwargs):
        return TestDataFactory.create_user(role=roles.EMPLOYEE, **kwargs)

    @staticmethod
    def create_customer(**kwargs):
        return TestDataFactory.create_user(role=roles.CUSTOMER, **kwargs)

    @staticmethod
    def create_category(name=None, description=None, is_active=True):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Test category {name}',
            is_active=is_active
        )

    @staticmethod
    def create_brand(name=None, description=None, country='', is_active=True):
        """Create a test brand"""
        if not name:
            name = f'Brand_{TestDataFactory.random_string(6)}'
        return Brand.objects.create(
            name=name,
            description=description or f'Test brand {name}',
            country=country,
            is_active=is_active
        )

    @staticmethod
    def create_product(name=None, price=None, stock=10, discount=None, type_discount=Product.NO_DISCOUNT,
                       brand=None, categories=None, is_active=True):
        """Create a test product with its selling price derived from the discount"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('100.00')
        discount = discount if discount is not None else Decimal('0.00')
        product = Product.objects.create(
            name=name,
            price=price,
            stock=stock,
            discount=discount,
            type_discount=type_discount,
            final_price=discount_price(price, discount, type_discount),
            brand=brand,
            is_active=is_active,
        )
        if categories:
            product.categories.set(categories)
        return product

    @staticmethod
    def create_voucher(code=None, value_discount=Decimal('10.00'), discount_type=Voucher.PERCENTAGE,
                       days_valid=30, **extra):
        """Create a voucher that is valid from yesterday for `days_valid` days"""
        if not code:
            code = f'VC{TestDataFactory.random_string(6).upper()}'
        now = timezone.now()
        extra.setdefault('usage_limit', 100)
        brands = extra.pop('brands', None)
        categories = extra.pop('categories', None)
        products = extra.pop('products', None)
        voucher = Voucher.objects.create(
            code=code,
            value_discount=value_discount,
            discount_type=discount_type,
            valid_from=now - timedelta(days=1),
            valid_to=now + timedelta(days=days_valid),
            **extra
        )
        if brands:
            voucher.brands.set(brands)
        if categories:
            voucher.categories.set(categories)
        if products:
            voucher.products.set(products)
        return voucher

    @staticmethod
    def create_recipient(voucher, user, **extra):
        return VoucherRecipient.objects.create(voucher=voucher, user=user, **extra)

    @staticmethod
    def create_cart_item(user, product, quantity=1, price=None):
        """Put a product in the user's cart at its current selling price"""
        cart, _ = Cart.objects.get_or_create(user=user)
        return CartItem.objects.create(
            cart=cart,
            product=product,
            quantity=quantity,
            price=price if price is not None else product.final_price
        )

    @staticmethod
    def create_order(user, items=None, status=Order.STATUS_PENDING, discount=Decimal('0.00'), created_at=None,
                     voucher=None):
        """
        Create an order without touching stock.

        `items` is a list of (product, quantity) pairs priced at final_price.
        """
        items = items or []
        subtotal = sum((product.final_price * quantity for product, quantity in items), Decimal('0.00'))
        order = Order.objects.create(
            order_number=f'ORD{TestDataFactory.random_string(12).upper()}',
            user=user,
            status=status,
            subtotal=subtotal,
            discount_amount=discount,
            total=subtotal - discount,
            voucher=voucher,
            voucher_code=voucher.code if voucher else '',
        )
        for product, quantity in items:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.name,
                quantity=quantity,
                price=product.final_price,
                total_price=product.final_price * quantity,
            )
        if created_at:
            Order.objects.filter(pk=order.pk).update(created_at=created_at)
            order.refresh_from_db()
        return order


class AuthenticatedAPIClient(APIClient):
    """API client with JWT authentication"""

    def authenticate_user(self, user):
        """Authenticate user and set JWT token"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return refresh

    def logout(self):
        """Clear authentication"""
        self.credentials()
