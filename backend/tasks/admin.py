from django.contrib import admin
from .models import Task, TaskComment


class TaskCommentInline(admin.TabularInline):
    model = TaskComment
    extra = 0
    readonly_fields = ['created_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'business', 'status', 'priority', 'category', 'assignee', 'client', 'due_date', 'position']
    list_filter = ['status', 'priority', 'category', 'created_at']
    search_fields = ['title', 'description', 'business__name']
    ordering = ['business', 'status', 'position']
    inlines = [TaskCommentInline]
