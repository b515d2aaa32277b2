from django.utils.translation import gettext as _
from rest_framework import serializers

from backend.core.models import User
from backend.core.utils import validate_same_business
from backend.clients.models import Client
from .models import Task, TaskComment


class TaskCommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.username', read_only=True, default=None)

    class Meta:
        model = TaskComment
        fields = ['id', 'task', 'author', 'author_name', 'content', 'created_at']
        read_only_fields = ['task', 'author', 'created_at']

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError(_('Comment cannot be empty.'))
        return value.strip()


class TaskSerializer(serializers.ModelSerializer):
    assignee = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False, allow_null=True)
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False, allow_null=True)
    assignee_name = serializers.CharField(source='assignee.username', read_only=True, default=None)
    client_name = serializers.CharField(source='client.name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    comment_count = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            'id', 'title', 'description', 'status', 'priority', 'category', 'due_date',
            'assignee', 'assignee_name', 'client', 'client_name', 'position',
            'created_by', 'created_by_name', 'comment_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['position', 'created_by', 'created_at', 'updated_at']

    def get_comment_count(self, obj):
        count = getattr(obj, 'comment_count', None)
        if count is None:
            count = obj.comments.count()
        return count

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError(_('Title cannot be empty.'))
        return value.strip()

    def validate(self, attrs):
        business = self.context.get('business')
        if business is not None:
            errors = validate_same_business(
                business, assignee=attrs.get('assignee'), client=attrs.get('client')
            )
            if errors:
                raise serializers.ValidationError(errors)
        return attrs


class TaskMoveSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Task.STATUS_CHOICES)
    position = serializers.IntegerField(min_value=0)
