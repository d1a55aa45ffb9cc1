from django.contrib import admin
from .models import RevenueStatistics


@admin.register(RevenueStatistics)
class RevenueStatisticsAdmin(admin.ModelAdmin):
    list_display = ['statistic_type', 'period_start', 'period_end', 'total_revenue', 'total_orders',
                    'unique_customers', 'conversion_rate', 'is_calculated']
    list_filter = ['statistic_type', 'is_calculated']
    date_hierarchy = 'period_start'
    readonly_fields = ['created_at', 'updated_at']
