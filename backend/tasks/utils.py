"""Column ordering helpers for the kanban board"""
from django.db import transaction

from .models import Task


def column_queryset(business_id, status, exclude_pk=None):
    queryset = Task.objects.select_for_update().filter(business_id=business_id, status=status)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.order_by('position', 'id')


def renumber(column, moved=None):
    """Write positions 0..n-1 for `column`, saving only rows that changed"""
    changed = []
    for index, task in enumerate(column):
        if task is moved:
            task.position = index
            continue
        if task.position != index:
            task.position = index
            changed.append(task)
    if changed:
        Task.objects.bulk_update(changed, ['position'])


def next_position(business_id, status):
    return Task.objects.filter(business_id=business_id, status=status).count()


def move_task(task, status, position):
    """
    Move `task` to index `position` of column `status`.

    Both the source and destination columns are renumbered 0..n-1.
    `position` is clamped to the destination column length.
    Returns (task, moved) where moved is False for a no-op.
    """
    with transaction.atomic():
        task = Task.objects.select_for_update().get(pk=task.pk)
        source = list(column_queryset(task.business_id, task.status, exclude_pk=task.pk))

        if status == task.status:
            destination = source
        else:
            destination = list(column_queryset(task.business_id, status, exclude_pk=task.pk))

        position = max(0, min(position, len(destination)))

        if status == task.status:
            current_index = next(
                (i for i, other in enumerate(source) if (other.position, other.id) > (task.position, task.id)),
                len(source),
            )
            if current_index == position and task.position == position:
                return task, False

        old_status = task.status
        destination.insert(position, task)
        renumber(destination, moved=task)
        if status != old_status:
            renumber(source)

        task.status = status
        task.save(update_fields=['status', 'position', 'updated_at'])
        return task, True


def close_gap(business_id, status):
    """Renumber a column after a task left it"""
    with transaction.atomic():
        renumber(list(column_queryset(business_id, status)))
