import django_filters
from django.db.models import Q

from backend.core.utils import parse_id_list
from .models import Product, Brand, Category


class IdListFilterMixin:
    """
    Apply inIds/notInIds style list params.

    List params arrive either as repeated keys with a [] suffix or as a
    comma separated value, so they are read from the raw query data.
    """
    id_list_params = {
        'inIds': ('id__in', False),
        'notInIds': ('id__in', True),
    }

    def filter_queryset(self, queryset):
        queryset = super().filter_queryset(queryset)
        for param, (lookup, exclude) in self.id_list_params.items():
            ids = parse_id_list(self.data, param)
            if not ids:
                continue
            if exclude:
                queryset = queryset.exclude(**{lookup: ids})
            else:
                queryset = queryset.filter(**{lookup: ids})
        return queryset


class ProductFilter(IdListFilterMixin, django_filters.FilterSet):
    """Filter for Product model using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    name = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    description = django_filters.CharFilter(field_name='description', lookup_expr='icontains')
    price = django_filters.NumberFilter(field_name='price')
    final_price = django_filters.NumberFilter(field_name='final_price')
    typeDiscount = django_filters.ChoiceFilter(field_name='type_discount', choices=Product.DISCOUNT_TYPE_CHOICES)
    stock = django_filters.NumberFilter(field_name='stock')
    status = django_filters.ChoiceFilter(field_name='status', choices=Product.STATUS_CHOICES)
    isActive = django_filters.BooleanFilter(field_name='is_active')
    brandId = django_filters.NumberFilter(field_name='brand_id')
    creatorId = django_filters.NumberFilter(field_name='creator_id')
    priceRangeFrom = django_filters.NumberFilter(field_name='final_price', lookup_expr='gte')
    priceRangeTo = django_filters.NumberFilter(field_name='final_price', lookup_expr='lte')

    id_list_params = {
        **IdListFilterMixin.id_list_params,
        'categoryIds': ('categories__id__in', False),
    }

    class Meta:
        model = Product
        fields = ['search', 'name', 'description', 'price', 'final_price', 'typeDiscount', 'stock',
                  'status', 'isActive', 'brandId', 'creatorId', 'priceRangeFrom', 'priceRangeTo']

    def filter_search(self, queryset, name, value):
        """Case-insensitive match on name or description"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_queryset(self, queryset):
        # categoryIds joins through the m2m table
        return super().filter_queryset(queryset).distinct()


class BrandFilter(IdListFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    name = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    description = django_filters.CharFilter(field_name='description', lookup_expr='icontains')
    country = django_filters.CharFilter(field_name='country', lookup_expr='iexact')
    isActive = django_filters.BooleanFilter(field_name='is_active')
    creatorId = django_filters.NumberFilter(field_name='creator_id')

    class Meta:
        model = Brand
        fields = ['search', 'name', 'description', 'country', 'isActive', 'creatorId']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(description__icontains=value) | Q(country__icontains=value)
        )


class CategoryFilter(IdListFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    name = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    isActive = django_filters.BooleanFilter(field_name='is_active')
    creatorId = django_filters.NumberFilter(field_name='creator_id')

    class Meta:
        model = Category
        fields = ['search', 'name', 'isActive', 'creatorId']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))
