"""
Test suite for the vouchers module
Tests: voucher validation rules, discount calculation, usage recording and voucher endpoints
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError, NotFound

from backend.core import roles
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order
from backend.vouchers.models import Voucher, VoucherRecipient
from backend.vouchers.services import (
    get_voucher_by_code, check_voucher, calculate_voucher_discount, record_voucher_usage, available_vouchers
)


class VoucherDiscountTests(TestCase):
    """Test discount amounts"""

    def test_percentage_discount(self):
        voucher = TestDataFactory.create_voucher(value_discount=Decimal('10'))
        self.assertEqual(calculate_voucher_discount(Decimal('250.00'), voucher), Decimal('25.00'))

    def test_percentage_capped_by_max_discount(self):
        """Test max_discount_value caps percentage vouchers"""
        voucher = TestDataFactory.create_voucher(value_discount=Decimal('50'), max_discount_value=Decimal('30.00'))
        self.assertEqual(calculate_voucher_discount(Decimal('200.00'), voucher), Decimal('30.00'))

    def test_amount_never_exceeds_subtotal(self):
        voucher = TestDataFactory.create_voucher(value_discount=Decimal('80'), discount_type=Voucher.AMOUNT)
        self.assertEqual(calculate_voucher_discount(Decimal('50.00'), voucher), Decimal('50.00'))

    def test_below_min_order_value(self):
        voucher = TestDataFactory.create_voucher(min_order_value=Decimal('100.00'))
        self.assertEqual(calculate_voucher_discount(Decimal('99.99'), voucher), Decimal('0.00'))


class CheckVoucherTests(TestCase):
    """Test voucher eligibility rules"""

    def setUp(self):
        self.customer = TestDataFactory.create_customer()
        self.brand = TestDataFactory.create_brand()
        self.other_brand = TestDataFactory.create_brand()
        self.category = TestDataFactory.create_category()
        self.product = TestDataFactory.create_product(brand=self.brand, categories=[self.category])
        self.other_product = TestDataFactory.create_product(brand=self.other_brand)

    def test_lookup_is_case_insensitive(self):
        voucher = TestDataFactory.create_voucher(code='SUMMER10')
        self.assertEqual(get_voucher_by_code(' summer10 '), voucher)
        with self.assertRaises(NotFound):
            get_voucher_by_code('WINTER')

    def test_valid_voucher(self):
        voucher = TestDataFactory.create_voucher()
        self.assertTrue(check_voucher(voucher, [self.product.id], user=self.customer))

    def test_inactive_voucher(self):
        voucher = TestDataFactory.create_voucher(is_active=False)
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)

    def test_expired_voucher(self):
        """Test validity window end"""
        voucher = TestDataFactory.create_voucher()
        voucher.valid_to = timezone.now() - timedelta(minutes=1)
        voucher.save()
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)

    def test_not_started_voucher(self):
        voucher = TestDataFactory.create_voucher()
        voucher.valid_from = timezone.now() + timedelta(days=1)
        voucher.save()
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)

    def test_usage_limit_reached(self):
        voucher = TestDataFactory.create_voucher(usage_limit=2, used_count=2)
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)

    def test_receiver_group(self):
        """Test VIP vouchers reject regular customers"""
        voucher = TestDataFactory.create_voucher(target_receiver_group=Voucher.GROUP_VIP)
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)
        vip = TestDataFactory.create_user(role=roles.CUSTOMER_VIP2)
        self.assertTrue(check_voucher(voucher, [self.product.id], user=vip))

    def test_private_voucher_requires_recipient(self):
        voucher = TestDataFactory.create_voucher(is_public=False)
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)
        TestDataFactory.create_recipient(voucher, self.customer)
        self.assertTrue(check_voucher(voucher, [self.product.id], user=self.customer))

    def test_per_user_limit_counts_non_cancelled_orders(self):
        """Test cancelled orders do not count against the per-user limit"""
        voucher = TestDataFactory.create_voucher(per_user_limit=1)
        order = TestDataFactory.create_order(self.customer, [(self.product, 1)], voucher=voucher)
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)
        order.status = Order.STATUS_CANCELLED
        order.save()
        self.assertTrue(check_voucher(voucher, [self.product.id], user=self.customer))

    def test_min_order_value(self):
        voucher = TestDataFactory.create_voucher(min_order_value=Decimal('500.00'))
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer, subtotal=Decimal('100.00'))

    def test_brand_target(self):
        """Test every product must belong to a targeted brand"""
        voucher = TestDataFactory.create_voucher(target_type=Voucher.TARGET_BRAND, brands=[self.brand])
        self.assertTrue(check_voucher(voucher, [self.product.id], user=self.customer))
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id, self.other_product.id], user=self.customer)

    def test_category_target(self):
        voucher = TestDataFactory.create_voucher(target_type=Voucher.TARGET_CATEGORY, categories=[self.category])
        self.assertTrue(check_voucher(voucher, [self.product.id], user=self.customer))
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.other_product.id], user=self.customer)

    def test_product_target(self):
        voucher = TestDataFactory.create_voucher(target_type=Voucher.TARGET_PRODUCT, products=[self.other_product])
        with self.assertRaises(ValidationError):
            check_voucher(voucher, [self.product.id], user=self.customer)

    def test_inactive_product_rejected(self):
        voucher = TestDataFactory.create_voucher()
        self.product.is_active = False
        self.product.save()
        with self.assertRaises(NotFound):
            check_voucher(voucher, [self.product.id], user=self.customer)


class RecordUsageTests(TestCase):
    def test_usage_updates_voucher_and_recipient(self):
        """Test used_count and recipient history after one use"""
        customer = TestDataFactory.create_customer()
        voucher = TestDataFactory.create_voucher(per_user_limit=1)
        recipient = TestDataFactory.create_recipient(voucher, customer)

        record_voucher_usage(voucher, customer, Decimal('12.50'), 'ORD1')

        voucher.refresh_from_db()
        recipient.refresh_from_db()
        self.assertEqual(voucher.used_count, 1)
        self.assertEqual(recipient.used_count, 1)
        self.assertEqual(recipient.status, VoucherRecipient.STATUS_USED)
        self.assertEqual(recipient.total_discount_applied, Decimal('12.50'))
        self.assertEqual(recipient.usage_history[0]['order_number'], 'ORD1')
        self.assertIsNotNone(recipient.first_used_at)

    def test_available_vouchers(self):
        customer = TestDataFactory.create_customer()
        usable = TestDataFactory.create_voucher()
        TestDataFactory.create_voucher(target_receiver_group=Voucher.GROUP_EMPLOYEES)
        TestDataFactory.create_voucher(is_public=False)
        self.assertEqual(available_vouchers(customer), [usable])


class VoucherAPITests(TestCase):
    """Test voucher endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.hr = TestDataFactory.create_hr()
        self.employee = TestDataFactory.create_employee()
        self.customer = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(price=Decimal('200.00'))
        self.now = timezone.now()

    def voucher_payload(self, **overrides):
        payload = {
            'code': 'newyear',
            'value_discount': '15',
            'discount_type': Voucher.PERCENTAGE,
            'valid_from': self.now.isoformat(),
            'valid_to': (self.now + timedelta(days=10)).isoformat(),
            'usage_limit': 50,
        }
        payload.update(overrides)
        return payload

    def test_create_voucher(self):
        """Test code is uppercased and window snapped to whole days"""
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        voucher = Voucher.objects.get(code='NEWYEAR')
        local_from = timezone.localtime(voucher.valid_from)
        self.assertEqual((local_from.hour, local_from.minute), (0, 0))
        self.assertTrue(AuditLog.objects.filter(model_name='Voucher', action='create').exists())

    def test_customer_cannot_create(self):
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_duplicate_code(self):
        TestDataFactory.create_voucher(code='NEWYEAR')
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data)

    def test_percentage_above_100(self):
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(value_discount='120'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_before_start(self):
        """Test valid_from must precede valid_to"""
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(
            valid_from=(self.now + timedelta(days=20)).isoformat()
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_target_type_requires_ids(self):
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(target_type=Voucher.TARGET_PRODUCT),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_ids', response.data)

    def test_create_with_products_and_recipients(self):
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/vouchers/', self.voucher_payload(
            target_type=Voucher.TARGET_PRODUCT,
            product_ids=[self.product.id],
            user_ids=[self.customer.id],
            is_public=False,
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        voucher = Voucher.objects.get(code='NEWYEAR')
        self.assertEqual(list(voucher.products.values_list('id', flat=True)), [self.product.id])
        self.assertTrue(VoucherRecipient.objects.filter(voucher=voucher, user=self.customer).exists())

    def test_employee_can_view_but_not_update(self):
        voucher = TestDataFactory.create_voucher()
        self.client.authenticate_user(self.employee)
        self.assertEqual(self.client.get(f'/api/v1/vouchers/{voucher.id}/').status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/v1/vouchers/{voucher.id}/', {'description': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_hard_delete_requires_administrator(self):
        voucher = TestDataFactory.create_voucher()
        self.client.authenticate_user(self.hr)
        self.assertEqual(self.client.delete(f'/api/v1/vouchers/{voucher.id}/').status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.admin)
        self.assertEqual(self.client.delete(f'/api/v1/vouchers/{voucher.id}/').status_code, status.HTTP_204_NO_CONTENT)

    def test_soft_delete_and_restore(self):
        voucher = TestDataFactory.create_voucher()
        self.client.authenticate_user(self.hr)
        self.assertEqual(self.client.delete(f'/api/v1/vouchers/{voucher.id}/soft-delete/').status_code, status.HTTP_200_OK)
        self.assertFalse(Voucher.objects.filter(pk=voucher.pk).exists())
        self.assertEqual(self.client.patch(f'/api/v1/vouchers/{voucher.id}/restore/').status_code, status.HTTP_200_OK)
        self.assertTrue(Voucher.objects.filter(pk=voucher.pk).exists())

    def test_assign_recipients(self):
        """Test issuing a voucher to users"""
        voucher = TestDataFactory.create_voucher(is_public=False)
        self.client.authenticate_user(self.hr)
        response = self.client.post(f'/api/v1/vouchers/{voucher.id}/recipients/',
                                    {'user_ids': [self.customer.id], 'max_usages': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        recipient = VoucherRecipient.objects.get(voucher=voucher, user=self.customer)
        self.assertEqual(recipient.max_usages, 3)

        response = self.client.get(f'/api/v1/vouchers/{voucher.id}/recipients/')
        self.assertEqual(response.data['total'], 1)

    def test_check_endpoint(self):
        """Test check returns the discount for a subtotal"""
        TestDataFactory.create_voucher(code='TENOFF', value_discount=Decimal('10'))
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/vouchers/check/', {
            'code': 'tenoff',
            'product_ids': [self.product.id],
            'subtotal': '200.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(Decimal(response.data['discount']), Decimal('20.00'))

    def test_check_unknown_code(self):
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/vouchers/check/', {'code': 'NOPE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_available_endpoint(self):
        TestDataFactory.create_voucher()
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/vouchers/available/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)

    def test_list_filter_by_status(self):
        TestDataFactory.create_voucher(status=Voucher.STATUS_DISABLED)
        TestDataFactory.create_voucher()
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/vouchers/', {'status': Voucher.STATUS_DISABLED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
