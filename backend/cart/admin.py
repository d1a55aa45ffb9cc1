from django.contrib import admin
from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    raw_id_fields = ['product']


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['user', 'voucher', 'total_price', 'updated_at']
    search_fields = ['user__username', 'user__email']
    raw_id_fields = ['user', 'voucher']
    readonly_fields = ['total_price', 'created_at', 'updated_at']
    inlines = [CartItemInline]
