import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsManagement
from backend.core.utils import create_audit_log, parse_date
from . import services
from .serializers import RevenueStatisticsSerializer, RecalculateRevenueSerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsManagement])
def revenue_statistics(request):
    """Daily rows in a date range, optionally grouped by week, month or year"""
    params = request.query_params
    start_date = parse_date(params.get('startDate'), 'startDate')
    end_date = parse_date(params.get('endDate'), 'endDate')
    period = params.get('period', 'daily')
    data = services.get_revenue_statistics(start_date, end_date, period)
    if period == 'daily':
        data = RevenueStatisticsSerializer(data, many=True).data
    return Response({'message': 'Success', 'period': period, 'data': data, 'total': len(data)})


@api_view(['GET'])
@permission_classes([IsManagement])
def revenue_dashboard(request):
    return Response({'message': 'Success', 'data': services.get_dashboard_metrics()})


@api_view(['POST'])
@permission_classes([IsManagement])
def revenue_recalculate(request):
    """Recalculate one day and the week and month it belongs to"""
    serializer = RecalculateRevenueSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    day = serializer.validated_data['date']
    if day > timezone.localdate():
        return Response({'date': ['Date cannot be in the future']}, status=status.HTTP_400_BAD_REQUEST)

    record = services.recalculate_day(day)
    create_audit_log(
        request=request,
        action='revenue_calculate',
        model_name='RevenueStatistics',
        object_id=record.id,
        object_name=str(record),
        changes={'date': day.isoformat(), 'total_revenue': record.total_revenue, 'total_orders': record.total_orders}
    )
    logger.info(f"Revenue recalculated for {day} by {request.user.username}")
    return Response({'message': 'Revenue recalculated', 'data': RevenueStatisticsSerializer(record).data})
