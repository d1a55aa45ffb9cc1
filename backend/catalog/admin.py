from django.contrib import admin
from .models import Category, Brand, Product, ProductSubImage


class SoftDeleteAdminMixin:
    """Show soft-deleted rows in the admin as well"""

    def get_queryset(self, request):
        return self.model.all_objects.all()


@admin.register(Category)
class CategoryAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at', 'deleted_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Brand)
class BrandAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'country', 'is_active', 'created_at', 'deleted_at']
    list_filter = ['is_active', 'country', 'created_at']
    search_fields = ['name', 'country']
    ordering = ['name']


class ProductSubImageInline(admin.TabularInline):
    model = ProductSubImage
    extra = 0


@admin.register(Product)
class ProductAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'brand', 'price', 'type_discount', 'final_price', 'stock', 'status', 'is_active']
    list_filter = ['is_active', 'status', 'type_discount', 'brand', 'created_at']
    search_fields = ['name', 'description']
    filter_horizontal = ['categories']
    ordering = ['name']
    readonly_fields = ['final_price', 'sold_count', 'created_at', 'updated_at']
    inlines = [ProductSubImageInline]
