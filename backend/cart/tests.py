"""
Test suite for the cart module
Tests: adding, updating and removing lines, totals with vouchers and clearing the cart
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.cart.models import Cart, CartItem
from backend.cart.services import add_to_cart, update_cart_item, cart_totals, apply_voucher, clear_cart
from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.vouchers.models import Voucher


class CartServiceTests(TestCase):
    """Test cart operations directly"""

    def setUp(self):
        self.user = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(price=Decimal('100.00'), stock=20)

    def test_add_merges_existing_line(self):
        """Test adding the same product twice increments quantity"""
        add_to_cart(self.user, self.product.id, 2)
        cart = add_to_cart(self.user, self.product.id, 3)
        self.assertEqual(cart.items.count(), 1)
        self.assertEqual(cart.items.get().quantity, 5)
        self.assertEqual(cart.total_price, Decimal('500.00'))

    def test_add_refreshes_price_snapshot(self):
        add_to_cart(self.user, self.product.id, 1)
        self.product.final_price = Decimal('80.00')
        self.product.save()
        cart = add_to_cart(self.user, self.product.id, 1)
        self.assertEqual(cart.items.get().price, Decimal('80.00'))

    def test_update_to_zero_removes_line(self):
        cart = add_to_cart(self.user, self.product.id, 2)
        item = cart.items.get()
        cart = update_cart_item(self.user, item.id, 0)
        self.assertFalse(cart.items.exists())
        self.assertEqual(cart.total_price, Decimal('0.00'))

    def test_totals_with_voucher(self):
        """Test voucher discount is applied to the subtotal"""
        add_to_cart(self.user, self.product.id, 2)
        TestDataFactory.create_voucher(code='TWENTY', value_discount=Decimal('20'))
        cart = apply_voucher(self.user, 'twenty')
        subtotal, discount, total = cart_totals(cart)
        self.assertEqual(subtotal, Decimal('200.00'))
        self.assertEqual(discount, Decimal('40.00'))
        self.assertEqual(total, Decimal('160.00'))
        self.assertEqual(cart.total_price, Decimal('160.00'))

    def test_clear_cart_drops_voucher(self):
        add_to_cart(self.user, self.product.id, 1)
        TestDataFactory.create_voucher(code='TWENTY')
        cart = apply_voucher(self.user, 'TWENTY')
        cart = clear_cart(cart)
        self.assertIsNone(cart.voucher)
        self.assertFalse(CartItem.objects.filter(cart=cart).exists())


class CartAPITests(TestCase):
    """Test cart endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_customer()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('50.00'), stock=10)

    def test_cart_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_creates_empty_cart(self):
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [])
        self.assertTrue(Cart.objects.filter(user=self.user).exists())

    def test_add_item(self):
        """Test adding a product returns the updated cart"""
        response = self.client.post('/api/v1/cart/items/', {'product_id': self.product.id, 'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['data']['items']), 1)
        self.assertEqual(Decimal(response.data['data']['total_price']), Decimal('100.00'))
        self.assertTrue(AuditLog.objects.filter(action='cart_add', user=self.user).exists())

    def test_add_unknown_product(self):
        response = self.client.post('/api/v1/cart/items/', {'product_id': 999999, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_add_inactive_product(self):
        self.product.is_active = False
        self.product.save()
        response = self.client.post('/api/v1/cart/items/', {'product_id': self.product.id, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_zero_quantity(self):
        response = self.client.post('/api/v1/cart/items/', {'product_id': self.product.id, 'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_item_quantity(self):
        item = TestDataFactory.create_cart_item(self.user, self.product, quantity=1)
        response = self.client.patch(f'/api/v1/cart/items/{item.id}/', {'quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertEqual(item.quantity, 4)

    def test_cannot_touch_other_users_item(self):
        """Test lines of another cart are not found"""
        other = TestDataFactory.create_customer()
        item = TestDataFactory.create_cart_item(other, self.product)
        response = self.client.delete(f'/api/v1/cart/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(CartItem.objects.filter(pk=item.pk).exists())

    def test_remove_item(self):
        item = TestDataFactory.create_cart_item(self.user, self.product)
        response = self.client.delete(f'/api/v1/cart/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.filter(pk=item.pk).exists())

    def test_clear(self):
        TestDataFactory.create_cart_item(self.user, self.product)
        response = self.client.delete('/api/v1/cart/clear/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [])

    def test_apply_voucher_to_empty_cart(self):
        TestDataFactory.create_voucher(code='SAVE')
        response = self.client.post('/api/v1/cart/voucher/', {'code': 'SAVE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_apply_and_remove_voucher(self):
        """Test voucher round trip on the cart"""
        TestDataFactory.create_cart_item(self.user, self.product, quantity=2)
        TestDataFactory.create_voucher(code='SAVE', value_discount=Decimal('30'), discount_type=Voucher.AMOUNT)
        response = self.client.post('/api/v1/cart/voucher/', {'code': 'save'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['voucher']['code'], 'SAVE')
        self.assertEqual(Decimal(response.data['data']['discount']), Decimal('30.00'))
        self.assertEqual(Decimal(response.data['data']['total_price']), Decimal('70.00'))

        response = self.client.delete('/api/v1/cart/voucher/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['data']['voucher'])
        self.assertEqual(Decimal(response.data['data']['total_price']), Decimal('100.00'))

    def test_remove_voucher_when_none_applied(self):
        response = self.client.delete('/api/v1/cart/voucher/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deleting_product_removes_cart_line(self):
        item = TestDataFactory.create_cart_item(self.user, self.product)
        Product.all_objects.filter(pk=self.product.pk).delete()
        self.assertFalse(CartItem.objects.filter(pk=item.pk).exists())
