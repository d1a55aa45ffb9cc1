"""
Revenue aggregation: daily statistics from delivered orders, weekly and
monthly rollups, period reports and the dashboard growth metrics.
"""
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Count, Sum, Avg
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from backend.cart.models import Cart
from backend.core.cache_utils import cached_query, REVENUE_DASHBOARD_CACHE_TTL, REVENUE_DASHBOARD_NAMESPACE
from backend.core.utils import start_of_day, end_of_day, week_bounds, month_bounds, shift_months
from backend.orders.models import Order, OrderItem
from .models import RevenueStatistics

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
TOP_LIMIT = 5
PERIODS = ('daily', 'weekly', 'monthly', 'yearly')


def money(value):
    return Decimal(str(value or 0)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def delivered_orders(first_day, last_day):
    return Order.objects.filter(
        status=Order.STATUS_DELIVERED,
        created_at__gte=start_of_day(first_day),
        created_at__lte=end_of_day(last_day),
    )


def top_products(orders):
    rows = (
        OrderItem.objects.filter(order__in=orders, product__isnull=False)
        .values('product_id', 'product_name')
        .annotate(quantity=Sum('quantity'), revenue=Sum('total_price'))
        .order_by('-quantity', 'product_id')[:TOP_LIMIT]
    )
    return [
        {'product_id': row['product_id'], 'name': row['product_name'],
         'quantity': row['quantity'], 'revenue': str(money(row['revenue']))}
        for row in rows
    ]


def top_categories(orders):
    rows = (
        OrderItem.objects.filter(order__in=orders, product__categories__isnull=False)
        .values('product__categories__id', 'product__categories__name')
        .annotate(quantity=Sum('quantity'), revenue=Sum('total_price'))
        .order_by('-quantity', 'product__categories__id')[:TOP_LIMIT]
    )
    return [
        {'category_id': row['product__categories__id'], 'name': row['product__categories__name'],
         'quantity': row['quantity'], 'revenue': str(money(row['revenue']))}
        for row in rows
    ]


def customer_split(orders, first_day):
    """(unique, new, returning) customers; new means no delivered order before the period"""
    customer_ids = set(orders.exclude(user__isnull=True).values_list('user_id', flat=True))
    returning_ids = set(
        Order.objects.filter(
            status=Order.STATUS_DELIVERED,
            user_id__in=customer_ids,
            created_at__lt=start_of_day(first_day),
        ).values_list('user_id', flat=True)
    )
    return len(customer_ids), len(customer_ids - returning_ids), len(returning_ids)


@transaction.atomic
def calculate_daily_revenue(day):
    """Compute and upsert the DAILY statistics row for `day`"""
    orders = delivered_orders(day, day)
    stats = orders.aggregate(
        total_orders=Count('id'),
        total_revenue=Sum('total'),
        average_order_value=Avg('total'),
    )
    total_orders = stats['total_orders'] or 0
    products_sold = OrderItem.objects.filter(order__in=orders).aggregate(total=Sum('quantity'))['total'] or 0
    vouchers_used = orders.exclude(voucher_code='').count()
    unique_customers, new_customers, returning_customers = customer_split(orders, day)

    active_carts = Cart.objects.filter(
        updated_at__gte=start_of_day(day),
        updated_at__lte=end_of_day(day),
        items__isnull=False,
    ).distinct()
    cart_stats = Cart.objects.filter(pk__in=active_carts.values('pk')).aggregate(
        count=Count('id'), pending_revenue=Sum('total_price'), average_cart_value=Avg('total_price')
    )
    active_cart_count = cart_stats['count'] or 0
    conversion_rate = (Decimal(total_orders) / Decimal(active_cart_count) * 100) if active_cart_count else Decimal('0')

    record, _ = RevenueStatistics.objects.update_or_create(
        statistic_type=RevenueStatistics.DAILY,
        period_start=day,
        period_end=day,
        defaults={
            'total_revenue': money(stats['total_revenue']),
            'total_orders': total_orders,
            'total_products_sold': products_sold,
            'average_order_value': money(stats['average_order_value']),
            'total_voucher_used': vouchers_used,
            'unique_customers': unique_customers,
            'new_customers': new_customers,
            'returning_customers': returning_customers,
            'conversion_rate': money(conversion_rate),
            'top_products': top_products(orders),
            'top_categories': top_categories(orders),
            'metadata': {
                'active_carts': active_cart_count,
                'pending_revenue': str(money(cart_stats['pending_revenue'])),
                'average_cart_value': str(money(cart_stats['average_cart_value'])),
            },
            'is_calculated': True,
        }
    )
    logger.info(f"Updated daily revenue for {day.isoformat()}: {record.total_revenue} from {total_orders} orders")
    return record


def rollup(statistic_type, first_day, last_day):
    """Sum the DAILY rows of a period into one row of `statistic_type`"""
    daily_rows = RevenueStatistics.objects.filter(
        statistic_type=RevenueStatistics.DAILY,
        period_start__gte=first_day,
        period_end__lte=last_day,
    )
    sums = daily_rows.aggregate(
        total_revenue=Sum('total_revenue'),
        total_orders=Sum('total_orders'),
        total_products_sold=Sum('total_products_sold'),
        total_voucher_used=Sum('total_voucher_used'),
        conversion_rate=Avg('conversion_rate'),
        days=Count('id'),
    )
    total_revenue = money(sums['total_revenue'])
    total_orders = sums['total_orders'] or 0

    # Customers are recounted from orders; summing daily uniques would double count
    orders = delivered_orders(first_day, last_day)
    unique_customers, new_customers, returning_customers = customer_split(orders, first_day)

    record, _ = RevenueStatistics.objects.update_or_create(
        statistic_type=statistic_type,
        period_start=first_day,
        period_end=last_day,
        defaults={
            'total_revenue': total_revenue,
            'total_orders': total_orders,
            'total_products_sold': sums['total_products_sold'] or 0,
            'average_order_value': money(total_revenue / total_orders) if total_orders else Decimal('0.00'),
            'total_voucher_used': sums['total_voucher_used'] or 0,
            'unique_customers': unique_customers,
            'new_customers': new_customers,
            'returning_customers': returning_customers,
            'conversion_rate': money(sums['conversion_rate']),
            'top_products': top_products(orders),
            'top_categories': top_categories(orders),
            'metadata': {'days_included': sums['days'] or 0},
            'is_calculated': True,
        }
    )
    return record


def update_weekly_stats(day):
    """Roll the Monday-Sunday week containing `day` into a WEEKLY row"""
    return rollup(RevenueStatistics.WEEKLY, *week_bounds(day))


def update_monthly_stats(day):
    return rollup(RevenueStatistics.MONTHLY, *month_bounds(day))


def recalculate_day(day):
    """Daily row for `day` followed by the week and month rollups it feeds"""
    daily = calculate_daily_revenue(day)
    update_weekly_stats(day)
    update_monthly_stats(day)
    return daily


def auto_calculate_daily_revenue(day=None):
    """
    Scheduled entry point: recalculate yesterday (or `day`).

    Failures are logged and swallowed so the scheduler keeps running.
    """
    day = day or timezone.localdate() - timedelta(days=1)
    try:
        record = recalculate_day(day)
    except Exception as e:
        logger.error(f"Failed to auto-calculate daily revenue for {day}: {str(e)}", exc_info=True)
        return None
    logger.info(f"Auto-calculated daily revenue statistics for {day} completed")
    return record


def period_key(day, period):
    if period == 'weekly':
        return week_bounds(day)[0].isoformat()
    if period == 'monthly':
        return day.strftime('%Y-%m')
    return str(day.year)


def get_revenue_statistics(start_date, end_date, period='daily'):
    """
    DAILY rows inside [start_date, end_date], newest first.

    For weekly, monthly and yearly the rows are grouped with summed totals
    and average = revenue / orders.
    """
    if period not in PERIODS:
        raise ValidationError({'period': f"Must be one of: {', '.join(PERIODS)}"})
    if start_date and end_date and start_date > end_date:
        raise ValidationError({'startDate': 'Start date must not be after the end date'})

    rows = RevenueStatistics.objects.filter(statistic_type=RevenueStatistics.DAILY)
    if start_date:
        rows = rows.filter(period_start__gte=start_date)
    if end_date:
        rows = rows.filter(period_end__lte=end_date)
    rows = rows.order_by('-period_start')
    if period == 'daily':
        return list(rows)

    grouped = {}
    for row in rows:
        key = period_key(row.period_start, period)
        group = grouped.setdefault(key, {
            'period': key,
            'totalRevenue': Decimal('0.00'),
            'totalOrders': 0,
            'totalProductsSold': 0,
            'uniqueCustomers': 0,
            'averageOrderValue': Decimal('0.00'),
            'days': 0,
        })
        group['totalRevenue'] += row.total_revenue
        group['totalOrders'] += row.total_orders
        group['totalProductsSold'] += row.total_products_sold
        group['uniqueCustomers'] += row.unique_customers
        group['days'] += 1

    result = []
    for group in grouped.values():
        if group['totalOrders']:
            group['averageOrderValue'] = money(group['totalRevenue'] / group['totalOrders'])
        group['totalRevenue'] = str(money(group['totalRevenue']))
        group['averageOrderValue'] = str(group['averageOrderValue'])
        result.append(group)
    return result


def growth_rate(current, previous):
    """Percentage change; 0 when either side is missing or previous is 0"""
    if not current or not previous:
        return 0.0
    return float(round((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100, 2))


def daily_row(day):
    return RevenueStatistics.objects.filter(
        statistic_type=RevenueStatistics.DAILY, period_start=day, period_end=day
    ).first()


@cached_query(cache_ttl=REVENUE_DASHBOARD_CACHE_TTL, key_prefix=REVENUE_DASHBOARD_NAMESPACE)
def dashboard_metrics_for(today):
    today_row = daily_row(today)
    yesterday_row = daily_row(today - timedelta(days=1))
    last_week_row = daily_row(today - timedelta(days=7))
    last_month_row = daily_row(shift_months(today, -1))

    def revenue(row):
        return row.total_revenue if row else None

    current = revenue(today_row)
    return {
        'date': today.isoformat(),
        'today': {
            'totalRevenue': str(today_row.total_revenue if today_row else Decimal('0.00')),
            'totalOrders': today_row.total_orders if today_row else 0,
            'averageOrderValue': str(today_row.average_order_value if today_row else Decimal('0.00')),
            'uniqueCustomers': today_row.unique_customers if today_row else 0,
            'conversionRate': str(today_row.conversion_rate if today_row else Decimal('0.00')),
        },
        'growthMetrics': {
            'dailyGrowth': growth_rate(current, revenue(yesterday_row)),
            'weeklyGrowth': growth_rate(current, revenue(last_week_row)),
            'monthlyGrowth': growth_rate(current, revenue(last_month_row)),
        },
    }


def get_dashboard_metrics():
    """Today's figures and revenue growth versus yesterday, last week and last month"""
    return dashboard_metrics_for(timezone.localdate())
