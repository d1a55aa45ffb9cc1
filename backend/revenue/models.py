from decimal import Decimal

from django.db import models


class RevenueStatistics(models.Model):
    """Aggregated sales figures for one day, week, month or year"""
    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'
    YEARLY = 'YEARLY'
    STATISTIC_TYPE_CHOICES = [
        (DAILY, 'Daily'),
        (WEEKLY, 'Weekly'),
        (MONTHLY, 'Monthly'),
        (YEARLY, 'Yearly'),
    ]

    statistic_type = models.CharField(max_length=10, choices=STATISTIC_TYPE_CHOICES, default=DAILY)
    period_start = models.DateField()
    period_end = models.DateField()
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_orders = models.PositiveIntegerField(default=0)
    total_products_sold = models.PositiveIntegerField(default=0)
    average_order_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_voucher_used = models.PositiveIntegerField(default=0)
    unique_customers = models.PositiveIntegerField(default=0)
    new_customers = models.PositiveIntegerField(default=0)
    returning_customers = models.PositiveIntegerField(default=0)
    # orders per active cart x 100; exceeds 100 when carts are emptied at checkout
    conversion_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    top_products = models.JSONField(default=list, blank=True)
    top_categories = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    is_calculated = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.statistic_type} {self.period_start} - {self.period_end}"

    class Meta:
        db_table = 'revenue_statistics'
        verbose_name_plural = 'revenue statistics'
        ordering = ['-period_start']
        unique_together = [['statistic_type', 'period_start', 'period_end']]
        indexes = [
            models.Index(fields=['statistic_type', 'period_start'], name='revenue_type_start_idx'),
        ]
