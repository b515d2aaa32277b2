from django.db import models
from backend.core.models import Business, User
from backend.clients.models import Client


class Task(models.Model):
    """Kanban task; `position` orders it within its status column"""
    STATUS_CHOICES = [
        ('todo', 'To Do'),
        ('in_progress', 'In Progress'),
        ('review', 'Review'),
        ('done', 'Done'),
    ]
    STATUS_ORDER = [choice[0] for choice in STATUS_CHOICES]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    CATEGORY_CHOICES = [
        ('tax', 'Tax'),
        ('accounting', 'Accounting'),
        ('meeting', 'Meeting'),
        ('admin', 'Admin'),
        ('other', 'Other'),
    ]

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='todo')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='medium')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, blank=True, null=True)
    due_date = models.DateField(null=True, blank=True)
    assignee = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    position = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    @property
    def is_done(self):
        return self.status == 'done'

    class Meta:
        db_table = 'tasks'
        ordering = ['status', 'position', 'id']
        indexes = [
            models.Index(fields=['business', 'status', 'position'], name='idx_task_column'),
            models.Index(fields=['business', 'due_date'], name='idx_task_due_date'),
            models.Index(fields=['assignee', 'status'], name='idx_task_assignee_status'),
        ]


class TaskComment(models.Model):
    """Comment on a task"""
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='task_comments')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Comment on {self.task.title}"

    class Meta:
        db_table = 'task_comments'
        ordering = ['created_at', 'id']
