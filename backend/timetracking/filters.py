import django_filters
from .models import TimeRecord


class TimeRecordFilter(django_filters.FilterSet):
    """Filter for TimeRecord model; date bounds apply to the start date"""

    date_from = django_filters.DateFilter(field_name='start_time', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='start_time', lookup_expr='date__lte')
    user = django_filters.NumberFilter(field_name='user_id', lookup_expr='exact')
    client = django_filters.NumberFilter(field_name='client_id', lookup_expr='exact')
    task = django_filters.NumberFilter(field_name='task_id', lookup_expr='exact')
    category = django_filters.ChoiceFilter(choices=TimeRecord.CATEGORY_CHOICES)

    class Meta:
        model = TimeRecord
        fields = ['date_from', 'date_to', 'user', 'client', 'task', 'category']
