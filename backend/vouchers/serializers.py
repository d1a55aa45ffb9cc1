from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework import serializers

from backend.catalog.models import Brand, Category, Product
from backend.catalog.serializers import BrandSummarySerializer, CategorySummarySerializer
from backend.core.utils import check_duplicate_by_field, start_of_day, end_of_day
from backend.core.validators import Comparison
from .models import Voucher, VoucherRecipient

User = get_user_model()


def active_ids(model, ids, label):
    """Reject ids that do not point at active, non-deleted rows"""
    ids = list(dict.fromkeys(ids))
    found = set(model.objects.filter(id__in=ids, is_active=True).values_list('id', flat=True))
    missing = [i for i in ids if i not in found]
    if missing:
        raise serializers.ValidationError(f"{label} not found or inactive: {', '.join(str(i) for i in missing)}")
    return ids


class ProductSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'final_price']


class VoucherSerializer(serializers.ModelSerializer):
    brands = BrandSummarySerializer(many=True, read_only=True)
    categories = CategorySummarySerializer(many=True, read_only=True)
    products = ProductSummarySerializer(many=True, read_only=True)
    remaining_uses = serializers.IntegerField(read_only=True)

    class Meta:
        model = Voucher
        fields = ['id', 'code', 'value_discount', 'discount_type', 'description', 'target_receiver_group',
                  'target_type', 'brands', 'categories', 'products', 'min_order_value', 'max_discount_value',
                  'usage_limit', 'used_count', 'remaining_uses', 'per_user_limit', 'is_active', 'status',
                  'valid_from', 'valid_to', 'is_public', 'created_at', 'updated_at', 'deleted_at']
        read_only_fields = fields


class VoucherWriteSerializer(serializers.ModelSerializer):
    """Create/update payload with the voucher business rules"""
    brand_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    category_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    product_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    user_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, write_only=True)
    value_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    min_order_value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    max_discount_value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                                  required=False, allow_null=True)
    usage_limit = serializers.IntegerField(min_value=1, required=False)
    per_user_limit = serializers.IntegerField(min_value=1, required=False)
    used_count = serializers.IntegerField(min_value=0, required=False)
    valid_from = serializers.DateTimeField()
    valid_to = serializers.DateTimeField()

    class Meta:
        model = Voucher
        fields = ['code', 'value_discount', 'discount_type', 'description', 'target_receiver_group',
                  'target_type', 'brand_ids', 'category_ids', 'product_ids', 'user_ids', 'min_order_value',
                  'max_discount_value', 'usage_limit', 'used_count', 'per_user_limit', 'is_active', 'status',
                  'valid_from', 'valid_to', 'is_public']
        validators = [Comparison('valid_from', 'valid_to', 'lt', message='Start date must be before the end date')]

    def validate_code(self, value):
        value = value.strip().upper()
        exclude_id = self.instance.pk if self.instance else None
        if check_duplicate_by_field(Voucher, 'code', value, exclude_id=exclude_id, case_insensitive=True):
            raise serializers.ValidationError('Voucher code already exists')
        return value

    def validate_brand_ids(self, value):
        return active_ids(Brand, value, 'Brands')

    def validate_category_ids(self, value):
        return active_ids(Category, value, 'Categories')

    def validate_product_ids(self, value):
        return active_ids(Product, value, 'Products')

    def validate_user_ids(self, value):
        value = list(dict.fromkeys(value))
        found = set(User.objects.filter(id__in=value, is_active=True).values_list('id', flat=True))
        missing = [i for i in value if i not in found]
        if missing:
            raise serializers.ValidationError(f"Users not found or inactive: {', '.join(str(i) for i in missing)}")
        return value

    def validate_valid_from(self, value):
        return start_of_day(value)

    def validate_valid_to(self, value):
        value = end_of_day(value)
        if value <= timezone.now():
            raise serializers.ValidationError('End date must be in the future')
        return value

    def validate(self, attrs):
        instance = self.instance

        def current(field, default=None):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field) if instance else default

        discount_type = current('discount_type', Voucher.PERCENTAGE)
        value = current('value_discount')
        if discount_type == Voucher.PERCENTAGE:
            if value is None or value < 1 or value > 100:
                raise serializers.ValidationError({'value_discount': 'Percentage discount must be between 1 and 100'})
        elif discount_type == Voucher.AMOUNT:
            if value is None or value <= 0:
                raise serializers.ValidationError({'value_discount': 'Amount discount must be greater than 0'})
        else:
            raise serializers.ValidationError({'discount_type': 'Invalid discount type'})

        usage_limit = current('usage_limit', 1)
        if current('used_count', 0) >= usage_limit:
            raise serializers.ValidationError({'used_count': 'Used count must be lower than the usage limit'})

        if 'valid_from' in attrs or 'valid_to' in attrs:
            Comparison('valid_from', 'valid_to', 'lt', message='Start date must be before the end date')(
                {'valid_from': current('valid_from'), 'valid_to': current('valid_to')}
            )

        target_type = current('target_type', Voucher.TARGET_ALL)
        required = {
            Voucher.TARGET_BRAND: 'brand_ids',
            Voucher.TARGET_CATEGORY: 'category_ids',
            Voucher.TARGET_PRODUCT: 'product_ids',
        }.get(target_type)
        if required and not instance and not attrs.get(required):
            raise serializers.ValidationError({required: 'This field is required for the selected target type'})
        return attrs

    def _set_relations(self, voucher, relations, user_ids):
        for field, ids in relations.items():
            if ids is not None:
                getattr(voucher, field).set(ids)
        if user_ids:
            for user_id in user_ids:
                VoucherRecipient.objects.get_or_create(
                    voucher=voucher, user_id=user_id,
                    defaults={'expires_at': voucher.valid_to, 'max_usages': voucher.per_user_limit}
                )

    def _pop_relations(self, validated_data):
        return {
            'brands': validated_data.pop('brand_ids', None),
            'categories': validated_data.pop('category_ids', None),
            'products': validated_data.pop('product_ids', None),
        }

    @transaction.atomic
    def create(self, validated_data):
        relations = self._pop_relations(validated_data)
        user_ids = validated_data.pop('user_ids', None)
        voucher = Voucher.objects.create(**validated_data)
        self._set_relations(voucher, relations, user_ids)
        return voucher

    @transaction.atomic
    def update(self, instance, validated_data):
        relations = self._pop_relations(validated_data)
        user_ids = validated_data.pop('user_ids', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save()
        self._set_relations(instance, relations, user_ids)
        return instance


class VoucherRecipientSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    voucher_code = serializers.CharField(source='voucher.code', read_only=True)

    class Meta:
        model = VoucherRecipient
        fields = ['id', 'voucher', 'voucher_code', 'user', 'username', 'quantity', 'used_count', 'max_usages',
                  'received_at', 'status', 'first_used_at', 'last_used_at', 'total_discount_applied',
                  'usage_history', 'source', 'expires_at']
        read_only_fields = fields


class AssignRecipientsSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    max_usages = serializers.IntegerField(min_value=1, required=False)
    expires_at = serializers.DateTimeField(required=False)
    source = serializers.ChoiceField(choices=VoucherRecipient.SOURCE_CHOICES, default='MANUAL')

    def validate_user_ids(self, value):
        value = list(dict.fromkeys(value))
        found = set(User.objects.filter(id__in=value, is_active=True).values_list('id', flat=True))
        missing = [i for i in value if i not in found]
        if missing:
            raise serializers.ValidationError(f"Users not found or inactive: {', '.join(str(i) for i in missing)}")
        return value


class CheckVoucherSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=100)
    product_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
