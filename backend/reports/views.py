import logging
from datetime import timedelta

from django.db.models import Count, F, Q, Sum
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsBusinessMember
from backend.clients.models import Client
from backend.tasks.models import Task
from backend.tasks.serializers import TaskSerializer
from backend.timetracking.models import TimeRecord

logger = logging.getLogger('backend.reports')

UPCOMING_TASK_LIMIT = 5


def minutes_to_hours(minutes):
    return round((minutes or 0) / 60, 2)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def dashboard(request):
    """Dashboard summary: task progress, clients and the caller's hours"""
    business_id = request.user.business_id
    today = timezone.localdate()
    week_start = today - timedelta(days=today.weekday())
    week_end = week_start + timedelta(days=6)

    task_counts = Task.objects.filter(business_id=business_id).aggregate(
        total=Count('id'),
        completed=Count('id', filter=Q(status='done')),
    )
    total_tasks = task_counts['total'] or 0
    completed_tasks = task_counts['completed'] or 0

    client_counts = Client.objects.filter(business_id=business_id).aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
    )

    my_records = TimeRecord.objects.filter(
        business_id=business_id, user=request.user, duration__isnull=False
    )
    today_minutes = my_records.filter(start_time__date=today).aggregate(total=Sum('duration'))['total']
    weekly_minutes = my_records.filter(
        start_time__date__gte=week_start, start_time__date__lte=week_end
    ).aggregate(total=Sum('duration'))['total']

    upcoming = (
        Task.objects.filter(business_id=business_id, assignee=request.user)
        .exclude(status='done')
        .select_related('assignee', 'client', 'created_by')
        .order_by(F('due_date').asc(nulls_last=True), 'id')[:UPCOMING_TASK_LIMIT]
    )

    logger.debug(f"Dashboard computed for {request.user.email}")
    return Response({
        'total_tasks': total_tasks,
        'completed_tasks': completed_tasks,
        'pending_tasks': total_tasks - completed_tasks,
        'completion_rate': round(completed_tasks / total_tasks * 100, 1) if total_tasks else 0,
        'total_clients': client_counts['total'] or 0,
        'active_clients': client_counts['active'] or 0,
        'today_hours': minutes_to_hours(today_minutes),
        'weekly_hours': minutes_to_hours(weekly_minutes),
        'upcoming_tasks': TaskSerializer(upcoming, many=True).data,
    })
