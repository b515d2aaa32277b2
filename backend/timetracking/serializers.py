from django.utils.translation import gettext as _
from rest_framework import serializers

from backend.core.utils import validate_same_business
from backend.clients.models import Client
from backend.tasks.models import Task
from .models import TimeRecord


class TimeRecordSerializer(serializers.ModelSerializer):
    task = serializers.PrimaryKeyRelatedField(queryset=Task.objects.all(), required=False, allow_null=True)
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False, allow_null=True)
    user_name = serializers.CharField(source='user.username', read_only=True)
    task_title = serializers.CharField(source='task.title', read_only=True, default=None)
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)
    is_running = serializers.BooleanField(read_only=True)

    class Meta:
        model = TimeRecord
        fields = [
            'id', 'user', 'user_name', 'task', 'task_title', 'client', 'client_name', 'category',
            'start_time', 'end_time', 'duration', 'is_running', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'duration', 'created_at', 'updated_at']

    def validate(self, attrs):
        business = self.context.get('business')
        if business is not None:
            errors = validate_same_business(business, task=attrs.get('task'), client=attrs.get('client'))
            if errors:
                raise serializers.ValidationError(errors)

        start_time = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end_time = attrs.get('end_time', getattr(self.instance, 'end_time', None))

        if self.instance is None and end_time is None:
            raise serializers.ValidationError({'end_time': [_('End time is required; use the timer to record running time.')]})
        if start_time is not None and end_time is not None and end_time < start_time:
            raise serializers.ValidationError({'end_time': [_('End time cannot be before start time.')]})

        # Inherit the task's client when none is given
        task = attrs.get('task')
        if task is not None and not attrs.get('client') and 'client' not in self.initial_data:
            attrs['client'] = task.client
        return attrs


class TimerStartSerializer(serializers.Serializer):
    task = serializers.PrimaryKeyRelatedField(queryset=Task.objects.all(), required=False, allow_null=True)
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False, allow_null=True)
    category = serializers.ChoiceField(choices=TimeRecord.CATEGORY_CHOICES, default='other')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        business = self.context['business']
        errors = validate_same_business(business, task=attrs.get('task'), client=attrs.get('client'))
        if errors:
            raise serializers.ValidationError(errors)
        task = attrs.get('task')
        if task is not None and attrs.get('client') is None:
            attrs['client'] = task.client
        return attrs


class TimerStopSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)
