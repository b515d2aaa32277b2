from django.urls import path
from .views import (
    time_record_list_create, time_record_detail,
    timer_start, timer_stop, timer_current, time_summary,
)

urlpatterns = [
    path('time-records/', time_record_list_create, name='time-record-list-create'),
    path('time-records/start/', timer_start, name='timer-start'),
    path('time-records/stop/', timer_stop, name='timer-stop'),
    path('time-records/current/', timer_current, name='timer-current'),
    path('time-records/summary/', time_summary, name='time-summary'),
    path('time-records/<int:pk>/', time_record_detail, name='time-record-detail'),
]
