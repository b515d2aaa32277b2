import django_filters
from django.db.models import Q
from .models import Client


class ClientFilter(django_filters.FilterSet):
    """Filter for Client model using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Client.STATUS_CHOICES)
    industry = django_filters.CharFilter(field_name='industry', lookup_expr='iexact')

    class Meta:
        model = Client
        fields = ['search', 'status', 'industry']

    def filter_search(self, queryset, name, value):
        """Search name, contact person, email and industry"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(contact_person__icontains=value) |
            Q(email__icontains=value) |
            Q(industry__icontains=value)
        )
