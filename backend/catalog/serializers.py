from django.db import transaction
from rest_framework import serializers

from backend.core.utils import check_duplicate_by_field
from .models import Category, Brand, Product, ProductSubImage
from .utils import discount_price, check_category_ids


class UniqueAliveNameMixin:
    """Reject names already used by another non-deleted row (case-insensitive)"""

    def validate_name(self, value):
        value = value.strip()
        model = self.Meta.model
        exclude_id = self.instance.pk if self.instance else None
        if check_duplicate_by_field(model, 'name', value, exclude_id=exclude_id, case_insensitive=True):
            raise serializers.ValidationError(f'{model.__name__} with this name already exists')
        return value


class CategorySerializer(UniqueAliveNameMixin, serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'is_active', 'created_at', 'updated_at', 'deleted_at']
        read_only_fields = ['created_at', 'updated_at', 'deleted_at']


class BrandSerializer(UniqueAliveNameMixin, serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ['id', 'name', 'description', 'logo', 'country', 'is_active', 'created_at', 'updated_at', 'deleted_at']
        read_only_fields = ['created_at', 'updated_at', 'deleted_at']


class BrandSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ['id', 'name', 'logo']


class CategorySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name']


class ProductSubImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductSubImage
        fields = ['id', 'url', 'position']


class ProductSerializer(serializers.ModelSerializer):
    brand = BrandSummarySerializer(read_only=True)
    categories = CategorySummarySerializer(many=True, read_only=True)
    sub_images = ProductSubImageSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price', 'stock', 'discount', 'type_discount', 'final_price',
                  'status', 'image', 'is_active', 'sold_count', 'brand', 'categories', 'sub_images',
                  'creator', 'created_at', 'updated_at', 'deleted_at']
        read_only_fields = fields


class ProductWriteSerializer(UniqueAliveNameMixin, serializers.ModelSerializer):
    """Create/update payload; final_price is always derived from price and discount"""
    brand_id = serializers.PrimaryKeyRelatedField(
        source='brand', queryset=Brand.objects.all(), required=False, allow_null=True
    )
    category_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    sub_images = serializers.ListField(child=serializers.CharField(max_length=500), required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    class Meta:
        model = Product
        fields = ['name', 'description', 'price', 'stock', 'discount', 'type_discount', 'status',
                  'image', 'is_active', 'brand_id', 'category_ids', 'sub_images']

    def validate_category_ids(self, value):
        check_category_ids(value)
        return list(dict.fromkeys(value))

    def validate(self, attrs):
        instance = self.instance

        def current(field, default=None):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field) if instance else default

        attrs['final_price'] = discount_price(
            current('price', 0),
            current('discount', 0),
            current('type_discount', Product.NO_DISCOUNT),
        )
        return attrs

    def _set_relations(self, product, category_ids, sub_images):
        if category_ids is not None:
            product.categories.set(category_ids)
        if sub_images is not None:
            product.sub_images.all().delete()
            ProductSubImage.objects.bulk_create([
                ProductSubImage(product=product, url=url, position=index)
                for index, url in enumerate(sub_images)
            ])

    @transaction.atomic
    def create(self, validated_data):
        category_ids = validated_data.pop('category_ids', None)
        sub_images = validated_data.pop('sub_images', None)
        product = Product.objects.create(**validated_data)
        self._set_relations(product, category_ids, sub_images)
        return product

    @transaction.atomic
    def update(self, instance, validated_data):
        category_ids = validated_data.pop('category_ids', None)
        sub_images = validated_data.pop('sub_images', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save()
        self._set_relations(instance, category_ids, sub_images)
        return instance
