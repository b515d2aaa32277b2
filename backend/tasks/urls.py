from django.urls import path
from .views import task_list_create, task_board, task_detail, task_move, task_comments

urlpatterns = [
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/board/', task_board, name='task-board'),
    path('tasks/<int:pk>/', task_detail, name='task-detail'),
    path('tasks/<int:pk>/move/', task_move, name='task-move'),
    path('tasks/<int:pk>/comments/', task_comments, name='task-comments'),
]
