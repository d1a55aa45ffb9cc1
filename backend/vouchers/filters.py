import django_filters
from django.db.models import Q

from backend.catalog.filters import IdListFilterMixin
from .models import Voucher


class VoucherFilter(IdListFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(field_name='status', choices=Voucher.STATUS_CHOICES)
    discountType = django_filters.ChoiceFilter(field_name='discount_type', choices=Voucher.DISCOUNT_TYPE_CHOICES)
    targetType = django_filters.TypedChoiceFilter(field_name='target_type', choices=Voucher.TARGET_TYPE_CHOICES, coerce=int)
    receiverGroup = django_filters.ChoiceFilter(field_name='target_receiver_group', choices=Voucher.RECEIVER_GROUP_CHOICES)
    isActive = django_filters.BooleanFilter(field_name='is_active')
    isPublic = django_filters.BooleanFilter(field_name='is_public')
    validAt = django_filters.IsoDateTimeFilter(method='filter_valid_at')

    class Meta:
        model = Voucher
        fields = ['search', 'status', 'discountType', 'targetType', 'receiverGroup', 'isActive', 'isPublic', 'validAt']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(code__icontains=value) | Q(description__icontains=value))

    def filter_valid_at(self, queryset, name, value):
        return queryset.filter(valid_from__lte=value, valid_to__gte=value)
