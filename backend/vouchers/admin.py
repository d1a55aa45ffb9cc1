from django.contrib import admin
from .models import Voucher, VoucherRecipient


class VoucherRecipientInline(admin.TabularInline):
    model = VoucherRecipient
    extra = 0
    raw_id_fields = ['user']
    readonly_fields = ['used_count', 'first_used_at', 'last_used_at', 'total_discount_applied', 'usage_history']


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = ['code', 'discount_type', 'value_discount', 'status', 'used_count', 'usage_limit',
                    'valid_from', 'valid_to', 'is_active', 'is_public']
    list_filter = ['status', 'discount_type', 'target_type', 'target_receiver_group', 'is_active', 'is_public']
    search_fields = ['code', 'description']
    filter_horizontal = ['brands', 'categories', 'products']
    readonly_fields = ['used_count', 'created_at', 'updated_at']
    inlines = [VoucherRecipientInline]

    def get_queryset(self, request):
        return Voucher.all_objects.all()
