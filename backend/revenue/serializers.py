from rest_framework import serializers

from .models import RevenueStatistics


class RevenueStatisticsSerializer(serializers.ModelSerializer):
    class Meta:
        model = RevenueStatistics
        fields = ['id', 'statistic_type', 'period_start', 'period_end', 'total_revenue', 'total_orders',
                  'total_products_sold', 'average_order_value', 'total_voucher_used', 'unique_customers',
                  'new_customers', 'returning_customers', 'conversion_rate', 'top_products', 'top_categories',
                  'metadata', 'notes', 'is_calculated', 'created_at', 'updated_at']
        read_only_fields = fields


class RecalculateRevenueSerializer(serializers.Serializer):
    date = serializers.DateField()
