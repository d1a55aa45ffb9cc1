import django_filters
from django.db.models import Q

from .models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(field_name='status', choices=Order.STATUS_CHOICES)
    fromDate = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    toDate = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    userId = django_filters.NumberFilter(field_name='user_id')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Order
        fields = ['status', 'fromDate', 'toDate', 'userId', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) | Q(user__username__icontains=value) | Q(user__email__icontains=value)
        )
