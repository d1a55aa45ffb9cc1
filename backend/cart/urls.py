from django.urls import path
from .views import cart_detail, cart_add_item, cart_item_detail, cart_clear, cart_voucher

urlpatterns = [
    path('cart/', cart_detail, name='cart-detail'),
    path('cart/items/', cart_add_item, name='cart-add-item'),
    path('cart/items/<int:pk>/', cart_item_detail, name='cart-item-detail'),
    path('cart/clear/', cart_clear, name='cart-clear'),
    path('cart/voucher/', cart_voucher, name='cart-voucher'),
]
