import logging

from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsBusinessMember
from backend.core.utils import create_audit_log
from .filters import TaskFilter
from .models import Task, TaskComment
from .serializers import TaskSerializer, TaskMoveSerializer, TaskCommentSerializer
from .utils import move_task, next_position, close_gap

logger = logging.getLogger('backend.tasks')


def business_tasks(request):
    return (
        Task.objects.filter(business_id=request.user.business_id)
        .select_related('assignee', 'client', 'created_by')
        .annotate(comment_count=Count('comments'))
    )


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def task_list_create(request):
    """List tasks or create a new task at the end of its column"""
    if request.method == 'GET':
        queryset = TaskFilter(request.query_params, queryset=business_tasks(request)).qs
        serializer = TaskSerializer(queryset.order_by('status', 'position', 'id'), many=True)
        return Response(serializer.data)

    serializer = TaskSerializer(data=request.data, context={'business': request.user.business})
    if serializer.is_valid():
        task_status = serializer.validated_data.get('status', 'todo')
        task = serializer.save(
            business=request.user.business,
            created_by=request.user,
            position=next_position(request.user.business_id, task_status),
        )
        logger.info(f"Task {task.id} '{task.title}' created by {request.user.email}")
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def task_board(request):
    """Tasks grouped into kanban columns"""
    queryset = TaskFilter(request.query_params, queryset=business_tasks(request)).qs
    grouped = {key: [] for key in Task.STATUS_ORDER}
    for task in queryset.order_by('position', 'id'):
        grouped[task.status].append(task)

    columns = [
        {
            'status': key,
            'label': label,
            'tasks': TaskSerializer(grouped[key], many=True).data,
        }
        for key, label in Task.STATUS_CHOICES
    ]
    return Response({'columns': columns})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    task = get_object_or_404(business_tasks(request), pk=pk)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = TaskSerializer(
            task, data=request.data, partial=request.method == 'PATCH',
            context={'business': request.user.business},
        )
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        new_status = serializer.validated_data.pop('status', task.status)
        serializer.save()
        if new_status != task.status:
            # A status change through the form goes to the end of the new column
            move_task(task, new_status, next_position(task.business_id, new_status))
        logger.info(f"Task {task.id} updated by {request.user.email}")
        return Response(TaskSerializer(get_object_or_404(business_tasks(request), pk=pk)).data)

    # DELETE
    if not request.user.is_business_manager:
        logger.warning(f"User {request.user.email} attempted to delete task {task.id} without manager role")
        return Response({'error': _('Only managers can delete tasks.')}, status=status.HTTP_403_FORBIDDEN)

    create_audit_log(
        request=request, action='delete', model_name='Task',
        object_id=task.id, object_name=task.title,
    )
    task_status = task.status
    task.delete()
    close_gap(request.user.business_id, task_status)
    logger.info(f"Task {pk} deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def task_move(request, pk):
    """Drag-and-drop: move a task to a column and position"""
    task = get_object_or_404(Task, pk=pk, business_id=request.user.business_id)
    serializer = TaskMoveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status, old_position = task.status, task.position
    try:
        task, moved = move_task(task, serializer.validated_data['status'], serializer.validated_data['position'])
    except Exception as e:
        logger.error(f"Error moving task {pk}: {str(e)}", exc_info=True)
        return Response({'error': _('Failed to move task.')}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if moved:
        logger.info(f"Task {pk} moved {old_status}:{old_position} -> {task.status}:{task.position} by {request.user.email}")
        create_audit_log(
            request=request, action='task_move', model_name='Task', object_id=task.id, object_name=task.title,
            changes={'status': [old_status, task.status], 'position': [old_position, task.position]},
        )
    return Response(TaskSerializer(get_object_or_404(business_tasks(request), pk=pk)).data)


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def task_comments(request, pk):
    """List or add comments on a task"""
    task = get_object_or_404(Task, pk=pk, business_id=request.user.business_id)

    if request.method == 'GET':
        comments = TaskComment.objects.filter(task=task).select_related('author')
        return Response(TaskCommentSerializer(comments, many=True).data)

    serializer = TaskCommentSerializer(data=request.data)
    if serializer.is_valid():
        comment = serializer.save(task=task, author=request.user)
        logger.info(f"Comment {comment.id} added to task {task.id} by {request.user.email}")
        return Response(TaskCommentSerializer(comment).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
