"""
Test suite for the orders module
Tests: ordering from the cart and directly, stock reservation, voucher usage,
status workflow, cancellation, statistics and reorder
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError

from backend.cart.models import Cart
from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order
from backend.orders.services import create_order, create_order_from_cart, update_order_status, reorder
from backend.vouchers.models import Voucher


class OrderWorkflowTests(TestCase):
    """Test the status transition table"""

    def test_allowed_transitions(self):
        order = Order(status=Order.STATUS_PENDING)
        self.assertTrue(order.can_transition_to(Order.STATUS_PROCESSING))
        self.assertTrue(order.can_transition_to(Order.STATUS_CANCELLED))
        self.assertFalse(order.can_transition_to(Order.STATUS_DELIVERED))

    def test_terminal_states(self):
        self.assertFalse(Order(status=Order.STATUS_CANCELLED).can_transition_to(Order.STATUS_PENDING))
        self.assertFalse(Order(status=Order.STATUS_REFUNDED).can_transition_to(Order.STATUS_RETURNED))


class OrderFromCartTests(TestCase):
    """Test turning a cart into an order"""

    def setUp(self):
        self.user = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(price=Decimal('100.00'), stock=5)

    def test_creates_order_and_clears_cart(self):
        """Test order rows, stock and cart after checkout"""
        TestDataFactory.create_cart_item(self.user, self.product, quantity=2)
        order = create_order_from_cart(self.user, shipping_address='1 Main St')

        self.assertTrue(order.order_number.startswith('ORD'))
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(order.total, Decimal('200.00'))
        self.assertEqual(order.items.get().product_name, self.product.name)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)
        self.assertEqual(self.product.sold_count, 2)
        self.assertFalse(Cart.objects.get(user=self.user).items.exists())

    def test_uses_cart_price_snapshot(self):
        TestDataFactory.create_cart_item(self.user, self.product, quantity=1, price=Decimal('90.00'))
        order = create_order_from_cart(self.user)
        self.assertEqual(order.subtotal, Decimal('90.00'))

    def test_stock_reaching_zero_marks_out_of_stock(self):
        TestDataFactory.create_cart_item(self.user, self.product, quantity=5)
        create_order_from_cart(self.user)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)
        self.assertEqual(self.product.status, Product.STATUS_OUT_OF_STOCK)

    def test_cart_voucher_applied_and_recorded(self):
        """Test the voucher applied on the cart is used when no code is sent"""
        voucher = TestDataFactory.create_voucher(code='CART10', value_discount=Decimal('10'))
        item = TestDataFactory.create_cart_item(self.user, self.product, quantity=2)
        Cart.objects.filter(pk=item.cart_id).update(voucher=voucher)

        order = create_order_from_cart(self.user)
        self.assertEqual(order.discount_amount, Decimal('20.00'))
        self.assertEqual(order.total, Decimal('180.00'))
        self.assertEqual(order.voucher_code, 'CART10')
        voucher.refresh_from_db()
        self.assertEqual(voucher.used_count, 1)


class OrderAPITests(TestCase):
    """Test order endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_customer()
        self.other = TestDataFactory.create_customer()
        self.hr = TestDataFactory.create_hr()
        self.product = TestDataFactory.create_product(price=Decimal('100.00'), stock=10)
        self.client.authenticate_user(self.customer)

    def test_order_from_empty_cart(self):
        response = self.client.post('/api/v1/orders/from-cart/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_from_cart_insufficient_stock(self):
        """Test checkout fails without touching stock"""
        TestDataFactory.create_cart_item(self.customer, self.product, quantity=11)
        response = self.client.post('/api/v1/orders/from-cart/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(Order.objects.exists())

    def test_order_from_cart_with_code(self):
        TestDataFactory.create_cart_item(self.customer, self.product, quantity=1)
        TestDataFactory.create_voucher(code='FLAT15', value_discount=Decimal('15'), discount_type=Voucher.AMOUNT)
        response = self.client.post('/api/v1/orders/from-cart/', {'voucher_code': 'flat15'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total']), Decimal('85.00'))
        self.assertTrue(AuditLog.objects.filter(action='order_create', user=self.customer).exists())

    def test_direct_order(self):
        """Test direct order priced at the current selling price"""
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 3, 'price': '100.00'}],
            'shipping_address': 'Somewhere',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('300.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)

    def test_direct_order_price_changed(self):
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 1, 'price': '95.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)

    def test_direct_order_duplicate_products(self):
        response = self.client.post('/api/v1/orders/', {
            'items': [
                {'product_id': self.product.id, 'quantity': 1, 'price': '100.00'},
                {'product_id': self.product.id, 'quantity': 2, 'price': '100.00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_direct_order_duplicate_products_mixed_id_types(self):
        """Test 1 and "1" are treated as the same product"""
        response = self.client.post('/api/v1/orders/', {
            'items': [
                {'product_id': self.product.id, 'quantity': 4, 'price': '100.00'},
                {'product_id': str(self.product.id), 'quantity': 4, 'price': '100.00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertEqual(self.product.sold_count, 0)
        self.assertFalse(Order.objects.exists())

    def test_create_order_service_rejects_repeated_product(self):
        items = [
            {'product_id': self.product.id, 'quantity': 6, 'price': Decimal('100.00')},
            {'product_id': self.product.id, 'quantity': 6, 'price': Decimal('100.00')},
        ]
        with self.assertRaises(ValidationError):
            create_order(self.customer, items)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_list_only_own_orders(self):
        TestDataFactory.create_order(self.customer, [(self.product, 1)])
        TestDataFactory.create_order(self.other, [(self.product, 1)])
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)

    def test_detail_forbidden_for_other_user(self):
        order = TestDataFactory.create_order(self.other, [(self.product, 1)])
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_list_requires_management(self):
        response = self.client.get('/api/v1/orders/admin/all/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.hr)
        TestDataFactory.create_order(self.customer, [(self.product, 1)], status=Order.STATUS_SHIPPED)
        TestDataFactory.create_order(self.other, [(self.product, 1)])
        response = self.client.get('/api/v1/orders/admin/all/', {'status': Order.STATUS_SHIPPED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)

    def test_customer_can_only_cancel(self):
        """Test owners cannot move orders forward"""
        order = TestDataFactory.create_order(self.customer, [(self.product, 1)])
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': Order.STATUS_PROCESSING}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_management_moves_order_forward(self):
        order = TestDataFactory.create_order(self.customer, [(self.product, 1)])
        self.client.authenticate_user(self.hr)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': Order.STATUS_PROCESSING}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Order.STATUS_PROCESSING)
        log = AuditLog.objects.get(action='order_status', object_id=str(order.id))
        self.assertEqual(log.changes['status'], {'old': Order.STATUS_PENDING, 'new': Order.STATUS_PROCESSING})

    def test_invalid_transition(self):
        order = TestDataFactory.create_order(self.customer, [(self.product, 1)])
        self.client.authenticate_user(self.hr)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': Order.STATUS_DELIVERED}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_restores_stock(self):
        """Test cancellation returns the units to stock"""
        TestDataFactory.create_cart_item(self.customer, self.product, quantity=4)
        order = create_order_from_cart(self.customer)
        response = self.client.delete(f'/api/v1/orders/{order.id}/cancel/', {'reason': 'Changed my mind'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Order.STATUS_CANCELLED)
        self.assertEqual(response.data['reason'], 'Changed my mind')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertEqual(self.product.sold_count, 0)

    def test_cannot_cancel_shipped_order(self):
        order = TestDataFactory.create_order(self.customer, [(self.product, 1)], status=Order.STATUS_SHIPPED)
        response = self.client.delete(f'/api/v1/orders/{order.id}/cancel/', format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_cancel_other_users_order(self):
        order = TestDataFactory.create_order(self.other, [(self.product, 1)])
        response = self.client.delete(f'/api/v1/orders/{order.id}/cancel/', format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_statistics(self):
        """Test per-day totals"""
        TestDataFactory.create_order(self.customer, [(self.product, 2)])
        TestDataFactory.create_order(self.other, [(self.product, 1)])
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/orders/stats/overview/', {'groupBy': 'day'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        row = response.data['data'][0]
        self.assertEqual(row['totalOrders'], 2)
        self.assertEqual(Decimal(row['totalRevenue']), Decimal('300.00'))
        self.assertEqual(Decimal(row['averageOrderValue']), Decimal('150.00'))

    def test_statistics_invalid_group(self):
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/orders/stats/overview/', {'groupBy': 'hour'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ReorderTests(TestCase):
    """Test placing a previous order again"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(price=Decimal('40.00'), stock=10)
        self.order = TestDataFactory.create_order(self.customer, [(self.product, 2)], status=Order.STATUS_DELIVERED)
        self.client.authenticate_user(self.customer)

    def test_reorder_same_prices(self):
        response = self.client.post(f'/api/v1/orders/{self.order.id}/reorder/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['order']['total']), Decimal('80.00'))
        self.assertEqual(Order.objects.filter(user=self.customer).count(), 2)

    def test_reorder_after_price_change_returns_warnings(self):
        """Test price change yields warnings and no new order"""
        self.product.final_price = Decimal('45.00')
        self.product.save()
        new_order, warnings = reorder(self.customer, self.order)
        self.assertIsNone(new_order)
        self.assertEqual(len(warnings), 1)
        self.assertIn('has changed', warnings[0])
        self.assertEqual(Order.objects.filter(user=self.customer).count(), 1)

    def test_reorder_out_of_stock(self):
        Product.objects.filter(pk=self.product.pk).update(stock=1)
        response = self.client.post(f'/api/v1/orders/{self.order.id}/reorder/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['order'])
        self.assertEqual(len(response.data['warnings']), 1)
        self.assertIn('Not enough stock', response.data['warnings'][0])

    def test_reorder_other_users_order(self):
        other = TestDataFactory.create_customer()
        self.client.authenticate_user(other)
        response = self.client.post(f'/api/v1/orders/{self.order.id}/reorder/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_status_service_returns_old_status(self):
        hr = TestDataFactory.create_hr()
        order, old_status = update_order_status(self.order, Order.STATUS_RETURNED, hr, reason='Damaged')
        self.assertEqual(old_status, Order.STATUS_DELIVERED)
        self.assertEqual(order.reason, 'Damaged')
