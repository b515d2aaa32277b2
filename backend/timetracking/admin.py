from django.contrib import admin
from .models import TimeRecord


@admin.register(TimeRecord)
class TimeRecordAdmin(admin.ModelAdmin):
    list_display = ['user', 'business', 'category', 'task', 'client', 'start_time', 'end_time', 'duration']
    list_filter = ['category', 'start_time']
    search_fields = ['user__email', 'notes', 'task__title', 'client__name']
    ordering = ['-start_time']
    readonly_fields = ['duration', 'created_at', 'updated_at']
