import django_filters
from django.db.models import Q
from .models import Task


class TaskFilter(django_filters.FilterSet):
    """Filter for Task model using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Task.STATUS_CHOICES)
    priority = django_filters.ChoiceFilter(choices=Task.PRIORITY_CHOICES)
    category = django_filters.ChoiceFilter(choices=Task.CATEGORY_CHOICES)
    assignee = django_filters.NumberFilter(field_name='assignee_id', lookup_expr='exact')
    client = django_filters.NumberFilter(field_name='client_id', lookup_expr='exact')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    due_after = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')

    class Meta:
        model = Task
        fields = ['search', 'status', 'priority', 'category', 'assignee', 'client', 'due_before', 'due_after']

    def filter_search(self, queryset, name, value):
        """Case-insensitive search over title and description"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))
