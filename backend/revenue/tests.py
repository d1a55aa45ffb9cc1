"""
Test suite for the revenue module
Tests: daily calculation, weekly/monthly rollups, period reports, dashboard growth and the management command
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError

from backend.cart.models import Cart
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import start_of_day, week_bounds, month_bounds
from backend.orders.models import Order
from backend.revenue.models import RevenueStatistics
from backend.revenue.services import (
    calculate_daily_revenue, recalculate_day, auto_calculate_daily_revenue, get_revenue_statistics, growth_rate,
    get_dashboard_metrics
)


def at_noon(day):
    return start_of_day(day) + timedelta(hours=12)


class DailyRevenueTests(TestCase):
    """Test the daily statistics row"""

    def setUp(self):
        cache.clear()
        self.day = timezone.localdate() - timedelta(days=1)
        self.customer = TestDataFactory.create_customer()
        self.returning = TestDataFactory.create_customer()
        self.category = TestDataFactory.create_category(name='Audio')
        self.headphones = TestDataFactory.create_product(name='Headphones', price=Decimal('50.00'),
                                                         categories=[self.category])
        self.speaker = TestDataFactory.create_product(name='Speaker', price=Decimal('200.00'))

    def test_only_delivered_orders_count(self):
        """Test pending and cancelled orders are ignored"""
        TestDataFactory.create_order(self.customer, [(self.headphones, 2)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day))
        TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_PENDING,
                                     created_at=at_noon(self.day))
        TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_CANCELLED,
                                     created_at=at_noon(self.day))

        record = calculate_daily_revenue(self.day)
        self.assertEqual(record.statistic_type, RevenueStatistics.DAILY)
        self.assertEqual(record.total_orders, 1)
        self.assertEqual(record.total_revenue, Decimal('100.00'))
        self.assertEqual(record.total_products_sold, 2)
        self.assertEqual(record.average_order_value, Decimal('100.00'))

    def test_customer_split(self):
        """Test new versus returning customers"""
        TestDataFactory.create_order(self.returning, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day - timedelta(days=10)))
        TestDataFactory.create_order(self.returning, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day))
        TestDataFactory.create_order(self.customer, [(self.headphones, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day))

        record = calculate_daily_revenue(self.day)
        self.assertEqual(record.unique_customers, 2)
        self.assertEqual(record.new_customers, 1)
        self.assertEqual(record.returning_customers, 1)

    def test_top_products_and_categories(self):
        TestDataFactory.create_order(self.customer, [(self.headphones, 3), (self.speaker, 1)],
                                     status=Order.STATUS_DELIVERED, created_at=at_noon(self.day))
        record = calculate_daily_revenue(self.day)
        self.assertEqual(record.top_products[0]['product_id'], self.headphones.id)
        self.assertEqual(record.top_products[0]['quantity'], 3)
        self.assertEqual(record.top_categories[0]['name'], 'Audio')

    def test_voucher_usage_counted(self):
        voucher = TestDataFactory.create_voucher()
        TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day), voucher=voucher)
        record = calculate_daily_revenue(self.day)
        self.assertEqual(record.total_voucher_used, 1)

    def test_conversion_rate_above_hundred(self):
        """Test more orders than active carts gives a rate above 100"""
        for _ in range(3):
            TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                         created_at=at_noon(self.day))
        item = TestDataFactory.create_cart_item(self.returning, self.headphones)
        Cart.objects.filter(pk=item.cart_id).update(updated_at=at_noon(self.day))

        record = calculate_daily_revenue(self.day)
        record.refresh_from_db()
        self.assertEqual(record.conversion_rate, Decimal('300.00'))
        self.assertEqual(record.metadata['active_carts'], 1)

    def test_recalculation_is_idempotent(self):
        """Test recalculating the same day updates the single row"""
        TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day))
        calculate_daily_revenue(self.day)
        calculate_daily_revenue(self.day)
        self.assertEqual(RevenueStatistics.objects.filter(statistic_type=RevenueStatistics.DAILY).count(), 1)

    def test_rollups_created(self):
        """Test recalculating a day also writes its week and month rows"""
        TestDataFactory.create_order(self.customer, [(self.speaker, 1)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(self.day))
        recalculate_day(self.day)

        monday, sunday = week_bounds(self.day)
        weekly = RevenueStatistics.objects.get(statistic_type=RevenueStatistics.WEEKLY, period_start=monday,
                                               period_end=sunday)
        self.assertEqual(weekly.total_revenue, Decimal('200.00'))
        first, last = month_bounds(self.day)
        monthly = RevenueStatistics.objects.get(statistic_type=RevenueStatistics.MONTHLY, period_start=first,
                                                period_end=last)
        self.assertEqual(monthly.total_orders, 1)


class RevenueReportTests(TestCase):
    """Test period reports and growth"""

    def setUp(self):
        cache.clear()

    def make_daily(self, day, revenue, orders):
        return RevenueStatistics.objects.create(
            statistic_type=RevenueStatistics.DAILY,
            period_start=day,
            period_end=day,
            total_revenue=Decimal(revenue),
            total_orders=orders,
        )

    def test_growth_rate(self):
        self.assertEqual(growth_rate(Decimal('150'), Decimal('100')), 50.0)
        self.assertEqual(growth_rate(Decimal('50'), Decimal('100')), -50.0)
        self.assertEqual(growth_rate(Decimal('50'), None), 0.0)
        self.assertEqual(growth_rate(Decimal('50'), Decimal('0')), 0.0)

    def test_daily_report_newest_first(self):
        today = timezone.localdate()
        self.make_daily(today - timedelta(days=2), '10.00', 1)
        self.make_daily(today - timedelta(days=1), '20.00', 2)
        rows = get_revenue_statistics(today - timedelta(days=5), today)
        self.assertEqual([row.total_revenue for row in rows], [Decimal('20.00'), Decimal('10.00')])

    def test_monthly_grouping(self):
        """Test monthly groups sum revenue and recompute the average"""
        first = timezone.localdate().replace(day=1)
        self.make_daily(first, '100.00', 1)
        self.make_daily(first + timedelta(days=1), '300.00', 3)
        rows = get_revenue_statistics(first, first + timedelta(days=1), 'monthly')
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['period'], first.strftime('%Y-%m'))
        self.assertEqual(Decimal(rows[0]['totalRevenue']), Decimal('400.00'))
        self.assertEqual(Decimal(rows[0]['averageOrderValue']), Decimal('100.00'))

    def test_invalid_period(self):
        with self.assertRaises(ValidationError):
            get_revenue_statistics(None, None, 'hourly')

    def test_start_after_end(self):
        today = timezone.localdate()
        with self.assertRaises(ValidationError):
            get_revenue_statistics(today, today - timedelta(days=1))

    def test_dashboard_growth(self):
        today = timezone.localdate()
        self.make_daily(today, '150.00', 3)
        self.make_daily(today - timedelta(days=1), '100.00', 2)
        metrics = get_dashboard_metrics()
        self.assertEqual(metrics['today']['totalOrders'], 3)
        self.assertEqual(metrics['growthMetrics']['dailyGrowth'], 50.0)
        self.assertEqual(metrics['growthMetrics']['weeklyGrowth'], 0.0)

    def test_dashboard_cache_invalidated_on_new_statistics(self):
        """Test saving statistics refreshes the cached dashboard"""
        today = timezone.localdate()
        self.assertEqual(get_dashboard_metrics()['today']['totalOrders'], 0)
        self.make_daily(today, '50.00', 1)
        self.assertEqual(get_dashboard_metrics()['today']['totalOrders'], 1)


class RevenueAPITests(TestCase):
    """Test revenue endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.hr = TestDataFactory.create_hr()
        self.customer = TestDataFactory.create_customer()

    def test_requires_management(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/revenue/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard(self):
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/revenue/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('growthMetrics', response.data['data'])

    def test_statistics_invalid_date(self):
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/revenue/statistics/', {'startDate': '01-01-2024'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recalculate(self):
        """Test recalculation endpoint writes the row and an audit entry"""
        product = TestDataFactory.create_product(price=Decimal('30.00'))
        day = timezone.localdate() - timedelta(days=1)
        TestDataFactory.create_order(self.customer, [(product, 2)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(day))
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/revenue/recalculate/', {'date': day.isoformat()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['total_revenue']), Decimal('60.00'))
        self.assertTrue(AuditLog.objects.filter(action='revenue_calculate').exists())

        response = self.client.get('/api/v1/revenue/statistics/', {'startDate': day.isoformat()})
        self.assertEqual(response.data['total'], 1)

    def test_recalculate_future_date(self):
        self.client.authenticate_user(self.hr)
        tomorrow = timezone.localdate() + timedelta(days=1)
        response = self.client.post('/api/v1/revenue/recalculate/', {'date': tomorrow.isoformat()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AutoCalculateRevenueTests(TestCase):
    """Test the scheduled daily job"""

    def setUp(self):
        cache.clear()

    def test_defaults_to_yesterday(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        customer = TestDataFactory.create_customer()
        product = TestDataFactory.create_product(price=Decimal('25.00'))
        TestDataFactory.create_order(customer, [(product, 2)], status=Order.STATUS_DELIVERED,
                                     created_at=at_noon(yesterday))

        record = auto_calculate_daily_revenue()
        self.assertEqual(record.period_start, yesterday)
        self.assertEqual(record.total_revenue, Decimal('50.00'))
        self.assertTrue(RevenueStatistics.objects.filter(statistic_type=RevenueStatistics.WEEKLY).exists())
        self.assertTrue(RevenueStatistics.objects.filter(statistic_type=RevenueStatistics.MONTHLY).exists())

    def test_failure_is_logged_and_swallowed(self):
        """Test a failing calculation returns None instead of raising"""
        with patch('backend.revenue.services.recalculate_day', side_effect=RuntimeError('database unavailable')):
            with self.assertLogs('backend.revenue.services', level='ERROR') as logs:
                record = auto_calculate_daily_revenue()
        self.assertIsNone(record)
        self.assertIn('database unavailable', logs.output[0])
        self.assertFalse(RevenueStatistics.objects.exists())


class CalculateRevenueCommandTests(TestCase):
    """Test the calculate_revenue management command"""

    def test_calculates_requested_days(self):
        out = StringIO()
        last_day = timezone.localdate() - timedelta(days=1)
        call_command('calculate_revenue', '--date', last_day.isoformat(), '--days', '3', stdout=out)
        self.assertEqual(RevenueStatistics.objects.filter(statistic_type=RevenueStatistics.DAILY).count(), 3)
        self.assertIn('3 day(s)', out.getvalue())

    def test_invalid_date(self):
        with self.assertRaises(CommandError):
            call_command('calculate_revenue', '--date', 'yesterday', stdout=StringIO())
