from django.contrib import admin
from .models import Channel, ChannelMembership, Message, MessageReaction


class ChannelMembershipInline(admin.TabularInline):
    model = ChannelMembership
    extra = 0
    readonly_fields = ['joined_at', 'last_read_at']


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'business', 'is_private', 'created_by', 'last_message_at']
    list_filter = ['is_private', 'created_at']
    search_fields = ['name', 'slug', 'business__name']
    inlines = [ChannelMembershipInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['channel', 'user', 'text', 'parent', 'created_at', 'edited_at']
    list_filter = ['created_at']
    search_fields = ['text', 'user__email', 'channel__name']
    ordering = ['-created_at']


@admin.register(MessageReaction)
class MessageReactionAdmin(admin.ModelAdmin):
    list_display = ['message', 'user', 'emoji', 'created_at']
    search_fields = ['emoji', 'user__email']
