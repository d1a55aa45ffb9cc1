from django.urls import path
from .views import (
    category_list_create, category_detail, category_soft_delete, category_restore,
    brand_list_create, brand_detail, brand_soft_delete, brand_restore,
    product_list_create, product_detail, product_soft_delete, product_restore,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('categories/<int:pk>/soft-delete/', category_soft_delete, name='category-soft-delete'),
    path('categories/<int:pk>/restore/', category_restore, name='category-restore'),

    # Brand endpoints
    path('brands/', brand_list_create, name='brand-list-create'),
    path('brands/<int:pk>/', brand_detail, name='brand-detail'),
    path('brands/<int:pk>/soft-delete/', brand_soft_delete, name='brand-soft-delete'),
    path('brands/<int:pk>/restore/', brand_restore, name='brand-restore'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/soft-delete/', product_soft_delete, name='product-soft-delete'),
    path('products/<int:pk>/restore/', product_restore, name='product-restore'),
]
