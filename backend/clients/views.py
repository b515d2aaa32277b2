import logging

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsBusinessMember
from backend.core.utils import create_audit_log, paginated_response
from backend.tasks.models import Task
from backend.tasks.serializers import TaskSerializer
from backend.timetracking.models import TimeRecord
from .filters import ClientFilter
from .models import Client
from .serializers import ClientSerializer

logger = logging.getLogger('backend.clients')


def business_clients(request):
    return Client.objects.filter(business_id=request.user.business_id)


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def client_list_create(request):
    """List clients (paginated, filterable) or create a new client"""
    if request.method == 'GET':
        queryset = business_clients(request).annotate(
            open_task_count=Count('tasks', filter=~Q(tasks__status='done'))
        )
        queryset = ClientFilter(request.query_params, queryset=queryset).qs.order_by('name', 'id')
        return paginated_response(request, queryset, ClientSerializer)

    serializer = ClientSerializer(data=request.data)
    if serializer.is_valid():
        client = serializer.save(business=request.user.business)
        logger.info(f"Client {client.id} '{client.name}' created by {request.user.email}")
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_object_or_404(business_clients(request), pk=pk)

    if request.method == 'GET':
        return Response(ClientSerializer(client).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Client {client.id} updated by {request.user.email}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not request.user.is_business_manager:
        logger.warning(f"User {request.user.email} attempted to delete client {client.id} without manager role")
        return Response({'error': _('Only managers can delete clients.')}, status=status.HTTP_403_FORBIDDEN)

    create_audit_log(
        request=request, action='delete', model_name='Client',
        object_id=client.id, object_name=client.name,
    )
    client.delete()
    logger.info(f"Client {pk} deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def client_tasks(request, pk):
    """Tasks linked to a client"""
    client = get_object_or_404(business_clients(request), pk=pk)
    tasks = (
        Task.objects.filter(business_id=request.user.business_id, client=client)
        .select_related('assignee', 'client', 'created_by')
        .order_by('status', 'position')
    )
    return Response(TaskSerializer(tasks, many=True).data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def client_time_summary(request, pk):
    """Total and per-category minutes logged against a client"""
    client = get_object_or_404(business_clients(request), pk=pk)
    records = TimeRecord.objects.filter(
        business_id=request.user.business_id, client=client, duration__isnull=False
    )
    by_category = {
        row['category']: row['minutes']
        for row in records.values('category').annotate(minutes=Sum('duration')).order_by('category')
    }
    return Response({
        'client': client.id,
        'total_minutes': records.aggregate(total=Sum('duration'))['total'] or 0,
        'by_category': by_category,
        'record_count': records.count(),
    })
