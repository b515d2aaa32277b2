from django.db import models
from django.db.models import Q
from backend.core.models import Business, User
from backend.clients.models import Client
from backend.tasks.models import Task


def duration_minutes(start_time, end_time):
    """Whole minutes between two datetimes, rounded half up"""
    seconds = (end_time - start_time).total_seconds()
    return int(seconds / 60 + 0.5)


class TimeRecord(models.Model):
    """Time logged by a user; a record without end_time is a running timer"""
    CATEGORY_CHOICES = Task.CATEGORY_CHOICES

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='time_records')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='time_records')
    task = models.ForeignKey(Task, on_delete=models.SET_NULL, null=True, blank=True, related_name='time_records')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='time_records')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='other')
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes; set when the record is stopped")
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} - {self.start_time:%Y-%m-%d %H:%M} ({self.duration or 0} min)"

    @property
    def is_running(self):
        return self.end_time is None

    def save(self, *args, **kwargs):
        if self.end_time is not None:
            self.duration = duration_minutes(self.start_time, self.end_time)
        else:
            self.duration = None
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'end_time' in update_fields and 'duration' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['duration']
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'time_records'
        ordering = ['-start_time', '-id']
        indexes = [
            models.Index(fields=['business', 'start_time'], name='idx_time_business_start'),
            models.Index(fields=['user', 'start_time'], name='idx_time_user_start'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user'], condition=Q(end_time__isnull=True), name='uniq_running_timer_per_user'
            ),
        ]
