"""
Test suite for the catalog module
Tests: categories, brands, products, discount pricing, soft delete/restore and list caching
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError

from backend.catalog.models import Category, Brand, Product
from backend.catalog.utils import discount_price, check_product_ids
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DiscountPriceTests(TestCase):
    """Test selling price calculation"""

    def test_percentage_discount(self):
        self.assertEqual(discount_price(Decimal('200.00'), Decimal('15'), Product.PERCENTAGE), Decimal('170.00'))

    def test_amount_discount(self):
        self.assertEqual(discount_price(Decimal('200.00'), Decimal('50'), Product.AMOUNT), Decimal('150.00'))

    def test_no_discount_ignores_value(self):
        self.assertEqual(discount_price(Decimal('99.99'), Decimal('10'), Product.NO_DISCOUNT), Decimal('99.99'))

    def test_percentage_out_of_range(self):
        """Test percentage above 100 is rejected"""
        with self.assertRaises(ValidationError):
            discount_price(Decimal('100'), Decimal('101'), Product.PERCENTAGE)

    def test_amount_above_price(self):
        with self.assertRaises(ValidationError):
            discount_price(Decimal('100'), Decimal('150'), Product.AMOUNT)

    def test_rounding(self):
        """Test half-up rounding to cents"""
        self.assertEqual(discount_price(Decimal('10.00'), Decimal('33.33'), Product.PERCENTAGE), Decimal('6.67'))


class CheckIdsTests(TestCase):
    def test_empty_list(self):
        self.assertFalse(check_product_ids([]))

    def test_inactive_product_reported(self):
        """Test inactive and missing ids raise NotFound"""
        active = TestDataFactory.create_product()
        inactive = TestDataFactory.create_product(is_active=False)
        self.assertTrue(check_product_ids([active.id]))
        with self.assertRaises(NotFound):
            check_product_ids([active.id, inactive.id, 999999])


class CategoryAPITests(TestCase):
    """Test category endpoints and permissions"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.hr = TestDataFactory.create_hr()
        self.customer = TestDataFactory.create_customer()
        self.category = TestDataFactory.create_category(name='Phones')

    def test_list_is_public(self):
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)

    def test_create_requires_administrator(self):
        """Test HR cannot create categories"""
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/categories/', {'name': 'Laptops'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_category(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/categories/', {'name': 'Laptops'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(model_name='Category', action='create').exists())

    def test_duplicate_name_rejected(self):
        """Test live names are unique case-insensitively"""
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/categories/', {'name': 'phones'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_management_can_update(self):
        self.client.authenticate_user(self.hr)
        response = self.client.patch(f'/api/v1/categories/{self.category.id}/', {'description': 'Smart'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.category.refresh_from_db()
        self.assertEqual(self.category.description, 'Smart')

    def test_customer_cannot_update(self):
        self.client.authenticate_user(self.customer)
        response = self.client.patch(f'/api/v1/categories/{self.category.id}/', {'description': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_soft_delete_and_restore(self):
        """Test soft-deleted categories leave the list and come back on restore"""
        self.client.authenticate_user(self.hr)
        response = self.client.delete(f'/api/v1/categories/{self.category.id}/soft-delete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/categories/').data['total'], 0)
        self.assertEqual(self.client.get('/api/v1/categories/', {'isDeleted': 'true'}).data['total'], 1)

        response = self.client.patch(f'/api/v1/categories/{self.category.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/categories/').data['total'], 1)

    def test_restore_blocked_by_live_name(self):
        """Test restore fails when the name was taken meanwhile"""
        self.category.soft_delete(self.admin)
        TestDataFactory.create_category(name='Phones')
        self.client.authenticate_user(self.hr)
        response = self.client.patch(f'/api/v1/categories/{self.category.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_name_reusable_after_soft_delete(self):
        self.category.soft_delete(self.admin)
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/categories/', {'name': 'Phones'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_hard_delete(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{self.category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Category.all_objects.filter(pk=self.category.pk).exists())


class BrandAPITests(TestCase):
    """Test brand endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.hr = TestDataFactory.create_hr()

    def test_list_paginated_by_default(self):
        """Test brand list is paginated without isPagination"""
        for i in range(12):
            TestDataFactory.create_brand(name=f'Brand {i:02d}')
        response = self.client.get('/api/v1/brands/', {'limit': 5, 'orderBy': 'name', 'order': 'ASC'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 12)
        self.assertEqual(len(response.data['data']), 5)
        self.assertEqual(response.data['totalPages'], 3)
        self.assertEqual(response.data['data'][0]['name'], 'Brand 00')

    def test_list_ignores_malformed_page_params(self):
        for i in range(3):
            TestDataFactory.create_brand(name=f'Brand {i}')
        response = self.client.get('/api/v1/brands/', {'isPagination': 'true', 'page': 'abc', 'limit': '0'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page'], 1)
        self.assertEqual(response.data['limit'], 1)
        self.assertEqual(response.data['totalPages'], 3)

    def test_filter_by_country(self):
        TestDataFactory.create_brand(name='Apple', country='USA')
        TestDataFactory.create_brand(name='Samsung', country='Korea')
        response = self.client.get('/api/v1/brands/', {'country': 'usa'})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['name'], 'Apple')

    def test_invalid_ordering_field(self):
        response = self.client.get('/api/v1/brands/', {'orderBy': 'password'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_hr_cannot_create(self):
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/brands/', {'name': 'Sony'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_create_and_soft_delete(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/brands/', {'name': 'Sony', 'country': 'Japan'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        brand_id = response.data['id']

        response = self.client.delete(f'/api/v1/brands/{brand_id}/soft-delete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Brand.all_objects.get(pk=brand_id).is_deleted)


class ProductAPITests(TestCase):
    """Test product endpoints, filters and cache invalidation"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_customer()
        self.brand = TestDataFactory.create_brand(name='Apple')
        self.phones = TestDataFactory.create_category(name='Phones')
        self.laptops = TestDataFactory.create_category(name='Laptops')
        self.phone = TestDataFactory.create_product(name='Phone X', price=Decimal('1000.00'), brand=self.brand,
                                                    categories=[self.phones])
        self.laptop = TestDataFactory.create_product(name='Laptop Y', price=Decimal('2000.00'), brand=self.brand,
                                                     categories=[self.laptops])

    def test_create_product_computes_final_price(self):
        """Test final price derived from percentage discount"""
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/products/', {
            'name': 'iPad',
            'price': '500.00',
            'stock': 5,
            'discount': '10',
            'type_discount': Product.PERCENTAGE,
            'brand_id': self.brand.id,
            'category_ids': [self.phones.id, self.laptops.id],
            'sub_images': ['/media/uploads/a.png', '/media/uploads/b.png'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['final_price']), Decimal('450.00'))
        self.assertEqual(len(response.data['categories']), 2)
        self.assertEqual([image['url'] for image in response.data['sub_images']],
                         ['/media/uploads/a.png', '/media/uploads/b.png'])

    def test_create_rejects_unknown_category(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/products/', {
            'name': 'Ghost',
            'price': '10.00',
            'category_ids': [999999],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_cannot_create(self):
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/products/', {'name': 'X', 'price': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_recomputes_final_price(self):
        """Test switching to an amount discount"""
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/products/{self.phone.id}/', {
            'discount': '100',
            'type_discount': Product.AMOUNT,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.phone.refresh_from_db()
        self.assertEqual(self.phone.final_price, Decimal('900.00'))
        log = AuditLog.objects.filter(model_name='Product', action='update').latest('created_at')
        self.assertIn('final_price', log.changes)

    def test_list_default_ordering_by_name_desc(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['data']], ['Phone X', 'Laptop Y'])

    def test_filter_by_category_ids(self):
        """Test categoryIds[] filter"""
        response = self.client.get(f'/api/v1/products/?categoryIds[]={self.phones.id}')
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['id'], self.phone.id)

    def test_filter_by_price_range(self):
        response = self.client.get('/api/v1/products/', {'priceRangeFrom': 1500})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['id'], self.laptop.id)

    def test_not_in_ids(self):
        response = self.client.get(f'/api/v1/products/?notInIds={self.phone.id}')
        self.assertEqual([p['id'] for p in response.data['data']], [self.laptop.id])

    def test_list_cache_invalidated_on_change(self):
        """Test a product update is visible on the next list call"""
        self.client.get('/api/v1/products/')
        self.phone.name = 'Phone X Pro'
        self.phone.save()
        response = self.client.get('/api/v1/products/')
        self.assertIn('Phone X Pro', [p['name'] for p in response.data['data']])

    def test_soft_delete_hides_product(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{self.phone.id}/soft-delete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f'/api/v1/products/{self.phone.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.patch(f'/api/v1/products/{self.phone.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.get(pk=self.phone.pk).is_deleted)

    def test_hard_delete(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{self.laptop.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.all_objects.filter(pk=self.laptop.pk).exists())


class SeedCatalogCommandTests(TestCase):
    """Test the seed_catalog management command"""

    def test_seed_is_repeatable(self):
        call_command('seed_catalog', stdout=StringIO())
        brands = Brand.objects.count()
        out = StringIO()
        call_command('seed_catalog', stdout=out)
        self.assertEqual(Brand.objects.count(), brands)
        self.assertIn('Brands Created: 0', out.getvalue())

    def test_clear_soft_deletes_existing(self):
        legacy = TestDataFactory.create_brand(name='Legacy')
        call_command('seed_catalog', '--clear', stdout=StringIO())
        self.assertFalse(Brand.objects.filter(pk=legacy.pk).exists())
        self.assertTrue(Brand.all_objects.filter(pk=legacy.pk).exists())
