from django.urls import path
from .views import (
    voucher_list_create, voucher_detail, voucher_soft_delete, voucher_restore,
    voucher_recipients, voucher_check, voucher_available
)

urlpatterns = [
    path('vouchers/', voucher_list_create, name='voucher-list-create'),
    path('vouchers/check/', voucher_check, name='voucher-check'),
    path('vouchers/available/', voucher_available, name='voucher-available'),
    path('vouchers/<int:pk>/', voucher_detail, name='voucher-detail'),
    path('vouchers/<int:pk>/soft-delete/', voucher_soft_delete, name='voucher-soft-delete'),
    path('vouchers/<int:pk>/restore/', voucher_restore, name='voucher-restore'),
    path('vouchers/<int:pk>/recipients/', voucher_recipients, name='voucher-recipients'),
]
