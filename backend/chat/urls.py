from django.urls import path
from .views import (
    channel_list_create, channel_detail, channel_members, channel_member_remove,
    channel_messages, channel_mark_read, message_reaction_toggle, message_detail,
)

urlpatterns = [
    path('chat/channels/', channel_list_create, name='channel-list-create'),
    path('chat/channels/<str:slug>/', channel_detail, name='channel-detail'),
    path('chat/channels/<str:slug>/members/', channel_members, name='channel-members'),
    path('chat/channels/<str:slug>/members/<int:user_id>/', channel_member_remove, name='channel-member-remove'),
    path('chat/channels/<str:slug>/messages/', channel_messages, name='channel-messages'),
    path('chat/channels/<str:slug>/read/', channel_mark_read, name='channel-read'),
    path('chat/messages/<int:pk>/reactions/', message_reaction_toggle, name='message-reactions'),
    path('chat/messages/<int:pk>/', message_detail, name='message-detail'),
]
