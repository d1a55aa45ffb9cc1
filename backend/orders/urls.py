from django.urls import path
from .views import (
    order_from_cart, order_list_create, order_admin_list, order_detail,
    order_update_status, order_cancel, order_statistics, order_reorder
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/from-cart/', order_from_cart, name='order-from-cart'),
    path('orders/admin/all/', order_admin_list, name='order-admin-list'),
    path('orders/stats/overview/', order_statistics, name='order-statistics'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_update_status, name='order-update-status'),
    path('orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),
    path('orders/<int:pk>/reorder/', order_reorder, name='order-reorder'),
]
