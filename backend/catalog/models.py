from decimal import Decimal

from django.db import models
from django.db.models import Q

from backend.core.models import TrackingModel


class Brand(TrackingModel):
    """Product brands"""
    name = models.CharField(max_length=100, db_index=True)
    description = models.TextField(blank=True)
    logo = models.CharField(max_length=500, blank=True)
    country = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'brands'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['name'], condition=Q(deleted_at__isnull=True), name='uniq_brand_name_alive'),
        ]


class Category(TrackingModel):
    """Product categories"""
    name = models.CharField(max_length=191, db_index=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['name'], condition=Q(deleted_at__isnull=True), name='uniq_category_name_alive'),
        ]


class Product(TrackingModel):
    """Sellable product with discount pricing"""
    PERCENTAGE = 'PERCENTAGE'
    AMOUNT = 'AMOUNT'
    NO_DISCOUNT = 'NO_DISCOUNT'
    DISCOUNT_TYPE_CHOICES = [
        (PERCENTAGE, 'Percentage'),
        (AMOUNT, 'Amount'),
        (NO_DISCOUNT, 'No Discount'),
    ]

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_OUT_OF_STOCK = 'OUT_OF_STOCK'
    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('INACTIVE', 'Inactive'),
        ('OUT_OF_STOCK', 'Out of Stock'),
        ('COMING_SOON', 'Coming Soon'),
        ('DISCONTINUED', 'Discontinued'),
    ]

    name = models.CharField(max_length=191, db_index=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    stock = models.PositiveIntegerField(default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    type_discount = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=NO_DISCOUNT)
    final_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    image = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    sold_count = models.PositiveIntegerField(default=0)
    brand = models.ForeignKey(Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    categories = models.ManyToManyField(Category, blank=True, related_name='products', db_table='product_categories')

    def __str__(self):
        return self.name

    @property
    def is_available(self):
        return self.is_active and self.deleted_at is None

    class Meta:
        db_table = 'products'
        constraints = [
            models.UniqueConstraint(fields=['name'], condition=Q(deleted_at__isnull=True), name='uniq_product_name_alive'),
        ]
        indexes = [
            models.Index(fields=['final_price'], name='products_final_price_idx'),
            models.Index(fields=['created_at'], name='products_created_idx'),
        ]


class ProductSubImage(models.Model):
    """Secondary gallery images of a product"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='sub_images')
    url = models.CharField(max_length=500)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.url

    class Meta:
        db_table = 'product_sub_images'
        ordering = ['position', 'id']
