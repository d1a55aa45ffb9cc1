import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core import roles
from backend.core.permissions import IsManagement, IsManagementOrEmployee, IsAdministrator
from backend.core.utils import (
    create_audit_log, diff_changes, paginate_queryset, apply_soft_delete_filter, apply_ordering
)
from .filters import VoucherFilter
from .models import Voucher, VoucherRecipient
from .serializers import (
    VoucherSerializer, VoucherWriteSerializer, VoucherRecipientSerializer,
    AssignRecipientsSerializer, CheckVoucherSerializer
)
from .services import get_voucher_by_code, check_voucher, calculate_voucher_discount, available_vouchers

logger = logging.getLogger(__name__)

VOUCHER_ORDERING_FIELDS = {'id', 'code', 'value_discount', 'valid_from', 'valid_to', 'used_count', 'created_at', 'updated_at'}
VOUCHER_AUDIT_FIELDS = ('code', 'value_discount', 'discount_type', 'status', 'is_active', 'is_public',
                        'usage_limit', 'per_user_limit', 'valid_from', 'valid_to')


def voucher_snapshot(voucher):
    return {field: getattr(voucher, field) for field in VOUCHER_AUDIT_FIELDS}


@api_view(['GET', 'POST'])
@permission_classes([IsManagement])
def voucher_list_create(request):
    """List vouchers with filters or create a new voucher"""
    if request.method == 'GET':
        queryset = apply_soft_delete_filter(Voucher, request.query_params).prefetch_related('brands', 'categories', 'products')
        filterset = VoucherFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = apply_ordering(filterset.qs, request.query_params, VOUCHER_ORDERING_FIELDS)
        return Response(paginate_queryset(queryset, request, VoucherSerializer))

    serializer = VoucherWriteSerializer(data=request.data)
    if serializer.is_valid():
        voucher = serializer.save(creator=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='Voucher',
            object_id=voucher.id,
            object_name=voucher.code,
            object_reference=voucher.code,
            changes=voucher_snapshot(voucher)
        )
        logger.info(f"Voucher created: {voucher.code} by {request.user.username}")
        return Response(VoucherSerializer(voucher).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsManagementOrEmployee])
def voucher_detail(request, pk):
    """Retrieve (management or employee), update (management) or permanently delete (administrator)"""
    if request.method == 'DELETE':
        if not roles.has_role(request.user, (roles.ADMINISTRATOR,)):
            return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
        voucher = get_object_or_404(Voucher.all_objects, pk=pk)
        code = voucher.code
        voucher.delete()
        create_audit_log(request=request, action='delete', model_name='Voucher', object_id=pk,
                         object_name=code, object_reference=code)
        return Response(status=status.HTTP_204_NO_CONTENT)

    voucher = get_object_or_404(Voucher.objects.prefetch_related('brands', 'categories', 'products'), pk=pk)
    if request.method == 'GET':
        return Response(VoucherSerializer(voucher).data)

    if not roles.is_management(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    old_data = voucher_snapshot(voucher)
    serializer = VoucherWriteSerializer(voucher, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save(editor=request.user)
        changes = diff_changes(old_data, voucher_snapshot(voucher))
        if changes:
            create_audit_log(request=request, action='update', model_name='Voucher', object_id=voucher.id,
                             object_name=voucher.code, object_reference=voucher.code, changes=changes)
        return Response(VoucherSerializer(voucher).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsManagement])
def voucher_soft_delete(request, pk):
    voucher = get_object_or_404(Voucher, pk=pk)
    voucher.soft_delete(request.user)
    create_audit_log(request=request, action='soft_delete', model_name='Voucher', object_id=voucher.id,
                     object_name=voucher.code, object_reference=voucher.code)
    return Response({'message': 'Voucher deleted successfully'})


@api_view(['PATCH'])
@permission_classes([IsManagement])
def voucher_restore(request, pk):
    voucher = get_object_or_404(Voucher.all_objects, pk=pk, deleted_at__isnull=False)
    if Voucher.objects.filter(code__iexact=voucher.code).exists():
        return Response({'code': ['Voucher code already exists']}, status=status.HTTP_400_BAD_REQUEST)
    voucher.restore(request.user)
    create_audit_log(request=request, action='restore', model_name='Voucher', object_id=voucher.id,
                     object_name=voucher.code, object_reference=voucher.code)
    return Response(VoucherSerializer(voucher).data)


@api_view(['GET', 'POST'])
@permission_classes([IsManagement])
def voucher_recipients(request, pk):
    """List the users a voucher was issued to, or issue it to more users"""
    voucher = get_object_or_404(Voucher, pk=pk)
    if request.method == 'GET':
        queryset = VoucherRecipient.objects.filter(voucher=voucher).select_related('user', 'voucher')
        return Response(paginate_queryset(queryset, request, VoucherRecipientSerializer))

    serializer = AssignRecipientsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    created_ids = []
    with transaction.atomic():
        for user_id in data['user_ids']:
            recipient, created = VoucherRecipient.objects.get_or_create(
                voucher=voucher,
                user_id=user_id,
                defaults={
                    'max_usages': data.get('max_usages', voucher.per_user_limit),
                    'expires_at': data.get('expires_at', voucher.valid_to),
                    'source': data['source'],
                }
            )
            if created:
                created_ids.append(user_id)
    create_audit_log(request=request, action='update', model_name='Voucher', object_id=voucher.id,
                     object_name=voucher.code, object_reference=voucher.code,
                     changes={'recipients_added': created_ids})
    recipients = VoucherRecipient.objects.filter(voucher=voucher, user_id__in=data['user_ids']).select_related('user', 'voucher')
    return Response({
        'message': f'Voucher issued to {len(created_ids)} new users',
        'data': VoucherRecipientSerializer(recipients, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def voucher_check(request):
    """Check whether a voucher code applies to the given products for the current user"""
    serializer = CheckVoucherSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    voucher = get_voucher_by_code(data['code'])
    check_voucher(voucher, data['product_ids'], user=request.user, subtotal=data.get('subtotal'))
    response = {'valid': True, 'voucher': VoucherSerializer(voucher).data}
    if data.get('subtotal') is not None:
        response['discount'] = str(calculate_voucher_discount(data['subtotal'], voucher))
    return Response(response)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def voucher_available(request):
    """Vouchers the current user may use right now"""
    vouchers = available_vouchers(request.user)
    return Response({'message': 'Success', 'data': VoucherSerializer(vouchers, many=True).data, 'total': len(vouchers)})
