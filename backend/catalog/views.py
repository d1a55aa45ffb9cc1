import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core import roles
from backend.core.permissions import IsAdministrator, IsAdministratorOrReadOnly, IsManagement, IsManagementOrReadOnly
from backend.core.cache_utils import get_cached_products_list, cache_products_list
from backend.core.utils import (
    create_audit_log, diff_changes, paginate_queryset, apply_soft_delete_filter, apply_ordering
)
from .filters import ProductFilter, BrandFilter, CategoryFilter
from .models import Category, Brand, Product
from .serializers import CategorySerializer, BrandSerializer, ProductSerializer, ProductWriteSerializer

logger = logging.getLogger(__name__)

BRAND_ORDERING_FIELDS = {'id', 'name', 'country', 'created_at', 'updated_at'}
CATEGORY_ORDERING_FIELDS = {'id', 'name', 'created_at', 'updated_at'}
PRODUCT_ORDERING_FIELDS = {'id', 'name', 'price', 'final_price', 'stock', 'sold_count', 'created_at', 'updated_at'}
PRODUCT_AUDIT_FIELDS = ('name', 'price', 'discount', 'type_discount', 'final_price', 'stock', 'status', 'is_active')


def forbidden():
    return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)


def soft_delete_object(request, obj, model_name):
    obj.soft_delete(request.user)
    create_audit_log(request=request, action='soft_delete', model_name=model_name,
                     object_id=obj.id, object_name=str(obj))
    return Response({'message': f'{model_name} deleted successfully'})


def restore_object(request, model, pk, serializer_class):
    obj = get_object_or_404(model.all_objects, pk=pk, deleted_at__isnull=False)
    # Restoring must not collide with a live row that took the name meanwhile
    if model.objects.filter(name__iexact=obj.name).exists():
        return Response({'name': [f'{model.__name__} with this name already exists']}, status=status.HTTP_400_BAD_REQUEST)
    obj.restore(request.user)
    create_audit_log(request=request, action='restore', model_name=model.__name__,
                     object_id=obj.id, object_name=str(obj))
    return Response(serializer_class(obj).data)


def hard_delete_object(request, model, pk):
    obj = get_object_or_404(model.all_objects, pk=pk)
    name = str(obj)
    obj.delete()
    create_audit_log(request=request, action='delete', model_name=model.__name__, object_id=pk, object_name=name)
    return Response(status=status.HTTP_204_NO_CONTENT)


def filtered_list(request, model, filter_class, ordering_fields, serializer_class, paginate_by_default=None, default_order_field='created_at', default_order='DESC'):
    queryset = apply_soft_delete_filter(model, request.query_params)
    filterset = filter_class(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = apply_ordering(filterset.qs, request.query_params, ordering_fields,
                              default_field=default_order_field, default_order=default_order)
    return Response(paginate_queryset(queryset, request, serializer_class, paginate_by_default=paginate_by_default))


# Category views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def category_list_create(request):
    """List categories (public) or create a category (administrator)"""
    if request.method == 'GET':
        return filtered_list(request, Category, CategoryFilter, CATEGORY_ORDERING_FIELDS, CategorySerializer)

    if not roles.has_role(request.user, (roles.ADMINISTRATOR,)):
        return forbidden()
    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        category = serializer.save(creator=request.user)
        create_audit_log(request=request, action='create', model_name='Category',
                         object_id=category.id, object_name=category.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsManagementOrReadOnly])
def category_detail(request, pk):
    """Retrieve (public), update (management) or permanently delete (administrator) a category"""
    if request.method == 'DELETE':
        if not roles.has_role(request.user, (roles.ADMINISTRATOR,)):
            return forbidden()
        return hard_delete_object(request, Category, pk)

    category = get_object_or_404(Category, pk=pk)
    if request.method == 'GET':
        return Response(CategorySerializer(category).data)

    old_data = {'name': category.name, 'is_active': category.is_active}
    serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save(editor=request.user)
        create_audit_log(request=request, action='update', model_name='Category', object_id=category.id,
                         object_name=category.name,
                         changes=diff_changes(old_data, {'name': category.name, 'is_active': category.is_active}))
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsManagement])
def category_soft_delete(request, pk):
    category = get_object_or_404(Category, pk=pk)
    return soft_delete_object(request, category, 'Category')


@api_view(['PATCH'])
@permission_classes([IsManagement])
def category_restore(request, pk):
    return restore_object(request, Category, pk, CategorySerializer)


# Brand views
@api_view(['GET', 'POST'])
@permission_classes([IsAdministratorOrReadOnly])
def brand_list_create(request):
    """List brands (public) or create a brand (administrator)"""
    if request.method == 'GET':
        return filtered_list(request, Brand, BrandFilter, BRAND_ORDERING_FIELDS, BrandSerializer, paginate_by_default=True)

    serializer = BrandSerializer(data=request.data)
    if serializer.is_valid():
        brand = serializer.save(creator=request.user)
        create_audit_log(request=request, action='create', model_name='Brand',
                         object_id=brand.id, object_name=brand.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdministratorOrReadOnly])
def brand_detail(request, pk):
    """Retrieve (public), update or permanently delete (administrator) a brand"""
    if request.method == 'DELETE':
        return hard_delete_object(request, Brand, pk)

    brand = get_object_or_404(Brand, pk=pk)
    if request.method == 'GET':
        return Response(BrandSerializer(brand).data)

    old_data = {'name': brand.name, 'country': brand.country, 'is_active': brand.is_active}
    serializer = BrandSerializer(brand, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save(editor=request.user)
        create_audit_log(request=request, action='update', model_name='Brand', object_id=brand.id,
                         object_name=brand.name,
                         changes=diff_changes(old_data, {'name': brand.name, 'country': brand.country, 'is_active': brand.is_active}))
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAdministrator])
def brand_soft_delete(request, pk):
    brand = get_object_or_404(Brand, pk=pk)
    return soft_delete_object(request, brand, 'Brand')


@api_view(['PATCH'])
@permission_classes([IsAdministrator])
def brand_restore(request, pk):
    return restore_object(request, Brand, pk, BrandSerializer)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAdministratorOrReadOnly])
def product_list_create(request):
    """List products (public, cached) or create a product (administrator)"""
    if request.method == 'GET':
        filters_dict = {key: request.query_params.getlist(key) for key in sorted(request.query_params.keys())}
        cached_data, cache_key = get_cached_products_list(filters_dict)
        if cached_data is not None:
            return Response(cached_data)

        queryset = apply_soft_delete_filter(Product, request.query_params).select_related('brand').prefetch_related('categories', 'sub_images')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = apply_ordering(filterset.qs, request.query_params, PRODUCT_ORDERING_FIELDS, default_field='name')
        data = paginate_queryset(queryset, request, ProductSerializer)
        cache_products_list(cache_key, data)
        return Response(data)

    serializer = ProductWriteSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save(creator=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
            changes={field: getattr(product, field) for field in PRODUCT_AUDIT_FIELDS}
        )
        logger.info(f"Product created: {product.name} (id={product.id}, final_price={product.final_price})")
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdministratorOrReadOnly])
def product_detail(request, pk):
    """Retrieve (public), update or permanently delete (administrator) a product"""
    if request.method == 'DELETE':
        return hard_delete_object(request, Product, pk)

    product = get_object_or_404(Product.objects.select_related('brand'), pk=pk)
    if request.method == 'GET':
        return Response(ProductSerializer(product).data)

    old_data = {field: getattr(product, field) for field in PRODUCT_AUDIT_FIELDS}
    serializer = ProductWriteSerializer(product, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save(editor=request.user)
        new_data = {field: getattr(product, field) for field in PRODUCT_AUDIT_FIELDS}
        changes = diff_changes(old_data, new_data)
        if changes:
            create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                             object_name=product.name, changes=changes)
        return Response(ProductSerializer(product).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAdministrator])
def product_soft_delete(request, pk):
    product = get_object_or_404(Product, pk=pk)
    return soft_delete_object(request, product, 'Product')


@api_view(['PATCH'])
@permission_classes([IsAdministrator])
def product_restore(request, pk):
    return restore_object(request, Product, pk, ProductSerializer)
