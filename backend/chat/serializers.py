from django.utils.translation import gettext as _
from rest_framework import serializers
from .models import Channel, ChannelMembership, Message


class ChannelMemberSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='user.id', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = ChannelMembership
        fields = ['id', 'username', 'email', 'joined_at', 'last_read_at']


class ChannelSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    member_count = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()
    member_ids = serializers.ListField(child=serializers.IntegerField(), write_only=True, required=False)

    class Meta:
        model = Channel
        fields = [
            'id', 'name', 'slug', 'description', 'is_private', 'created_by', 'created_by_name',
            'member_count', 'unread_count', 'member_ids', 'last_message_at', 'created_at', 'updated_at'
        ]
        read_only_fields = ['slug', 'created_by', 'last_message_at', 'created_at', 'updated_at']

    def get_member_count(self, obj):
        return obj.memberships.count()

    def get_unread_count(self, obj):
        unread = self.context.get('unread_counts')
        if unread is None:
            return None
        return unread.get(obj.id, 0)

    def validate_name(self, value):
        value = value.strip().lstrip('#')
        if not value:
            raise serializers.ValidationError(_('Channel name cannot be empty.'))
        return value


class ChannelDetailSerializer(ChannelSerializer):
    members = ChannelMemberSerializer(source='memberships', many=True, read_only=True)

    class Meta(ChannelSerializer.Meta):
        fields = ChannelSerializer.Meta.fields + ['members']


class MessageSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)
    reply_count = serializers.SerializerMethodField()
    reactions = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ['id', 'channel', 'user', 'username', 'text', 'parent', 'reply_count', 'reactions',
                  'created_at', 'edited_at']
        read_only_fields = ['channel', 'user', 'parent', 'created_at', 'edited_at']

    def get_reply_count(self, obj):
        return obj.replies.count()

    def get_reactions(self, obj):
        """Reactions grouped by emoji: [{emoji, count, users}]"""
        grouped = {}
        for reaction in obj.reactions.all():
            entry = grouped.setdefault(reaction.emoji, {'emoji': reaction.emoji, 'count': 0, 'users': []})
            entry['count'] += 1
            entry['users'].append(reaction.user_id)
        return list(grouped.values())

    def validate_text(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError(_('Message cannot be empty.'))
        return value.strip()


class MessageCreateSerializer(MessageSerializer):
    parent = serializers.PrimaryKeyRelatedField(queryset=Message.objects.all(), required=False, allow_null=True)

    class Meta(MessageSerializer.Meta):
        read_only_fields = ['channel', 'user', 'created_at', 'edited_at']


class MemberAddSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()


class ReactionSerializer(serializers.Serializer):
    emoji = serializers.CharField(max_length=32)

    def validate_emoji(self, value):
        if not value.strip():
            raise serializers.ValidationError(_('Emoji cannot be empty.'))
        return value.strip()
