from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    raw_id_fields = ['product']
    readonly_fields = ['product_name', 'quantity', 'price', 'total_price', 'voucher_code']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'user', 'status', 'subtotal', 'discount_amount', 'total', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['order_number', 'user__username', 'user__email']
    raw_id_fields = ['user', 'voucher']
    readonly_fields = ['order_number', 'subtotal', 'discount_amount', 'total', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
