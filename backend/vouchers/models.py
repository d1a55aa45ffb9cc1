from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from backend.core.models import TrackingModel


class Voucher(TrackingModel):
    """Discount voucher with receiver-group and product targeting"""
    PERCENTAGE = 'PERCENTAGE'
    AMOUNT = 'AMOUNT'
    NO_DISCOUNT = 'NO_DISCOUNT'
    DISCOUNT_TYPE_CHOICES = [
        (PERCENTAGE, 'Percentage'),
        (AMOUNT, 'Amount'),
        (NO_DISCOUNT, 'No Discount'),
    ]

    GROUP_ALL = 'ALL'
    GROUP_CUSTOMERS = 'CUSTOMERS'
    GROUP_VIP = 'VIP'
    GROUP_EMPLOYEES = 'EMPLOYEES'
    RECEIVER_GROUP_CHOICES = [
        (GROUP_ALL, 'All'),
        (GROUP_CUSTOMERS, 'Customers'),
        (GROUP_VIP, 'VIP Customers'),
        (GROUP_EMPLOYEES, 'Employees'),
    ]

    TARGET_ALL = 0
    TARGET_BRAND = 1
    TARGET_CATEGORY = 2
    TARGET_PRODUCT = 3
    TARGET_TYPE_CHOICES = [
        (TARGET_ALL, 'All products'),
        (TARGET_BRAND, 'Brands'),
        (TARGET_CATEGORY, 'Categories'),
        (TARGET_PRODUCT, 'Products'),
    ]

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_EXPIRED = 'EXPIRED'
    STATUS_DISABLED = 'DISABLED'
    STATUS_UPCOMING = 'UPCOMING'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_DISABLED, 'Disabled'),
        (STATUS_UPCOMING, 'Upcoming'),
    ]

    code = models.CharField(max_length=100)
    value_discount = models.DecimalField(max_digits=12, decimal_places=2)
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=PERCENTAGE)
    description = models.TextField(blank=True)
    target_receiver_group = models.CharField(max_length=20, choices=RECEIVER_GROUP_CHOICES, default=GROUP_ALL)
    target_type = models.PositiveSmallIntegerField(choices=TARGET_TYPE_CHOICES, default=TARGET_ALL)
    brands = models.ManyToManyField('catalog.Brand', blank=True, related_name='vouchers', db_table='voucher_brands')
    categories = models.ManyToManyField('catalog.Category', blank=True, related_name='vouchers', db_table='voucher_categories')
    products = models.ManyToManyField('catalog.Product', blank=True, related_name='vouchers', db_table='voucher_products')
    min_order_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    max_discount_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(default=1)
    used_count = models.PositiveIntegerField(default=0)
    per_user_limit = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    valid_from = models.DateTimeField()
    valid_to = models.DateTimeField()
    is_public = models.BooleanField(default=True)

    def __str__(self):
        return self.code

    @property
    def remaining_uses(self):
        return max(self.usage_limit - self.used_count, 0)

    class Meta:
        db_table = 'vouchers'
        constraints = [
            models.UniqueConstraint(fields=['code'], condition=Q(deleted_at__isnull=True), name='uniq_voucher_code_alive'),
        ]
        indexes = [
            models.Index(fields=['valid_from', 'valid_to'], name='vouchers_window_idx'),
        ]


class VoucherRecipient(models.Model):
    """A user a voucher was handed out to, with per-user usage tracking"""
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_USED = 'USED'
    STATUS_EXPIRED = 'EXPIRED'
    STATUS_REVOKED = 'REVOKED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_USED, 'Used'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_REVOKED, 'Revoked'),
    ]

    SOURCE_CHOICES = [
        ('MANUAL', 'Manual'),
        ('CAMPAIGN', 'Campaign'),
        ('REWARD', 'Reward'),
    ]

    voucher = models.ForeignKey(Voucher, on_delete=models.CASCADE, related_name='recipients')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='voucher_recipients')
    quantity = models.PositiveIntegerField(default=1)
    used_count = models.PositiveIntegerField(default=0)
    max_usages = models.PositiveIntegerField(null=True, blank=True)
    received_at = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    first_used_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    total_discount_applied = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    usage_history = models.JSONField(default=list, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='MANUAL')
    expires_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.voucher.code} -> {self.user.username}"

    class Meta:
        db_table = 'voucher_recipients'
        unique_together = [['voucher', 'user']]
        ordering = ['-received_at']
