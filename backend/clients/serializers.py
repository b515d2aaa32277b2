from rest_framework import serializers
from .models import Client


class ClientSerializer(serializers.ModelSerializer):
    open_task_count = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'name', 'industry', 'address', 'contact_person', 'email', 'phone',
            'status', 'fiscal_year_end', 'notes', 'open_task_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_open_task_count(self, obj):
        # Annotated by the list view; detail falls back to a query
        count = getattr(obj, 'open_task_count', None)
        if count is None:
            count = obj.tasks.exclude(status='done').count()
        return count
