from django.urls import path
from .views import client_list_create, client_detail, client_tasks, client_time_summary

urlpatterns = [
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/tasks/', client_tasks, name='client-tasks'),
    path('clients/<int:pk>/time-summary/', client_time_summary, name='client-time-summary'),
]
