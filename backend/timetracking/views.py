import logging

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsBusinessMember
from backend.core.utils import create_audit_log
from .filters import TimeRecordFilter
from .models import TimeRecord
from .serializers import TimeRecordSerializer, TimerStartSerializer, TimerStopSerializer
from .utils import InvalidPeriod, check_span, resolve_period, filter_params, iter_days

logger = logging.getLogger('backend.timetracking')


def business_records(request):
    return (
        TimeRecord.objects.filter(business_id=request.user.business_id)
        .select_related('user', 'task', 'client')
    )


def filtered_records(request, default_view=None):
    """Apply view/date or explicit range params plus field filters; returns (queryset, date_from, date_to)"""
    date_from, date_to = resolve_period(request.query_params, default_view=default_view)
    params = filter_params(request.query_params, date_from, date_to)
    queryset = TimeRecordFilter(params, queryset=business_records(request)).qs
    return queryset, date_from, date_to


def can_modify(user, record):
    return record.user_id == user.id or user.is_business_manager


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def time_record_list_create(request):
    """List time records or log a finished record manually"""
    if request.method == 'GET':
        try:
            queryset, date_from, date_to = filtered_records(request)
        except InvalidPeriod as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        serializer = TimeRecordSerializer(queryset.order_by('-start_time', '-id'), many=True)
        return Response(serializer.data)

    serializer = TimeRecordSerializer(data=request.data, context={'business': request.user.business})
    if serializer.is_valid():
        record = serializer.save(business=request.user.business, user=request.user)
        logger.info(f"Time record {record.id} ({record.duration} min) logged by {request.user.email}")
        return Response(TimeRecordSerializer(record).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def time_record_detail(request, pk):
    """Retrieve, update or delete a time record (owner or manager to modify)"""
    record = get_object_or_404(business_records(request), pk=pk)

    if request.method == 'GET':
        return Response(TimeRecordSerializer(record).data)

    if not can_modify(request.user, record):
        logger.warning(f"User {request.user.email} attempted to modify time record {record.id} of user {record.user_id}")
        return Response({'error': _('You can only modify your own time records.')}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = TimeRecordSerializer(
            record, data=request.data, partial=request.method == 'PATCH',
            context={'business': request.user.business},
        )
        if serializer.is_valid():
            try:
                serializer.save()
            except IntegrityError:
                return Response({'error': _('A timer is already running.')}, status=status.HTTP_400_BAD_REQUEST)
            logger.info(f"Time record {record.id} updated by {request.user.email}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    create_audit_log(
        request=request, action='delete', model_name='TimeRecord', object_id=record.id,
        object_name=f"{record.user.email} {record.start_time:%Y-%m-%d}",
        changes={'duration': record.duration, 'category': record.category},
    )
    record.delete()
    logger.info(f"Time record {pk} deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def timer_start(request):
    """Start a timer for the current user; only one may run at a time"""
    serializer = TimerStartSerializer(data=request.data, context={'business': request.user.business})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            running = TimeRecord.objects.select_for_update().filter(user=request.user, end_time__isnull=True)
            if running.exists():
                logger.warning(f"User {request.user.email} tried to start a second timer")
                return Response({'error': _('A timer is already running.')}, status=status.HTTP_400_BAD_REQUEST)

            record = TimeRecord.objects.create(
                business=request.user.business,
                user=request.user,
                start_time=timezone.now(),
                **serializer.validated_data,
            )
    except IntegrityError:
        return Response({'error': _('A timer is already running.')}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Timer {record.id} started by {request.user.email}")
    return Response(TimeRecordSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def timer_stop(request):
    """Stop the current user's running timer"""
    serializer = TimerStopSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        record = (
            TimeRecord.objects.select_for_update()
            .filter(user=request.user, end_time__isnull=True)
            .first()
        )
        if record is None:
            return Response({'error': _('No timer is running.')}, status=status.HTTP_404_NOT_FOUND)

        record.end_time = max(timezone.now(), record.start_time)
        if 'notes' in serializer.validated_data:
            record.notes = serializer.validated_data['notes']
        record.save()

    logger.info(f"Timer {record.id} stopped by {request.user.email} after {record.duration} min")
    return Response(TimeRecordSerializer(record).data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def timer_current(request):
    """The current user's running timer, or 204 when none"""
    record = business_records(request).filter(user=request.user, end_time__isnull=True).first()
    if record is None:
        return Response(status=status.HTTP_204_NO_CONTENT)
    data = TimeRecordSerializer(record).data
    data['elapsed_seconds'] = int((timezone.now() - record.start_time).total_seconds())
    return Response(data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def time_summary(request):
    """Totals per category, user, client and day over the resolved range (default: this week)"""
    try:
        queryset, date_from, date_to = filtered_records(request, default_view='week')
    except InvalidPeriod as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    finished = queryset.filter(duration__isnull=False)

    by_category = {
        row['category']: row['minutes']
        for row in finished.values('category').annotate(minutes=Sum('duration')).order_by('category')
    }
    by_user = [
        {'user': row['user'], 'username': row['user__username'], 'minutes': row['minutes']}
        for row in finished.values('user', 'user__username').annotate(minutes=Sum('duration')).order_by('-minutes', 'user')
    ]
    by_client = [
        {'client': row['client'], 'client_name': row['client__name'], 'minutes': row['minutes']}
        for row in finished.values('client', 'client__name').annotate(minutes=Sum('duration')).order_by('-minutes', 'client')
    ]

    per_day = {
        row['day']: row['minutes']
        for row in finished.annotate(day=TruncDate('start_time')).values('day').annotate(minutes=Sum('duration')).order_by('day')
    }

    if date_from is None:
        date_from = min(per_day) if per_day else timezone.localdate()
    if date_to is None:
        date_to = max(per_day) if per_day else date_from
    try:
        check_span(date_from, date_to)
    except InvalidPeriod as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    by_day = [
        {'date': day.isoformat(), 'minutes': per_day.get(day, 0)}
        for day in iter_days(date_from, date_to)
    ]

    return Response({
        'date_from': date_from.isoformat(),
        'date_to': date_to.isoformat(),
        'total_minutes': finished.aggregate(total=Sum('duration'))['total'] or 0,
        'record_count': finished.count(),
        'by_category': by_category,
        'by_user': by_user,
        'by_client': by_client,
        'by_day': by_day,
    })
