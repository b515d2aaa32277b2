from django.db import models
from django.db.models import Q
from backend.core.models import Business, User
from backend.core.utils import unique_slug


class Channel(models.Model):
    """Chat channel; private channels are visible to members only"""
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='channels')
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, allow_unicode=True, blank=True)
    description = models.TextField(blank=True)
    is_private = models.BooleanField(default=False)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_channels')
    members = models.ManyToManyField(User, through='ChannelMembership', related_name='channels')
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"#{self.slug}"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Channel, self.business_id, self.name, exclude_pk=self.pk, fallback='channel')
        super().save(*args, **kwargs)

    @classmethod
    def visible_to(cls, user):
        return cls.objects.filter(business_id=user.business_id).filter(
            Q(is_private=False) | Q(memberships__user=user)
        ).distinct()

    def is_member(self, user):
        return self.memberships.filter(user=user).exists()

    def can_manage(self, user):
        return self.created_by_id == user.id or user.is_business_manager

    class Meta:
        db_table = 'chat_channels'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['business', 'slug'], name='uniq_channel_slug_per_business'),
        ]


class ChannelMembership(models.Model):
    """Channel member with read marker"""
    channel = models.ForeignKey(Channel, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='channel_memberships')
    last_read_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} in {self.channel}"

    class Meta:
        db_table = 'chat_channel_memberships'
        constraints = [
            models.UniqueConstraint(fields=['channel', 'user'], name='uniq_channel_member'),
        ]


class Message(models.Model):
    """Chat message; `parent` makes it a thread reply"""
    channel = models.ForeignKey(Channel, on_delete=models.CASCADE, related_name='messages')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='chat_messages')
    text = models.TextField()
    parent = models.ForeignKey('self', on_delete=models.CASCADE, null=True, blank=True, related_name='replies')
    created_at = models.DateTimeField(auto_now_add=True)
    edited_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.user} in {self.channel}: {self.text[:40]}"

    class Meta:
        db_table = 'chat_messages'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['channel', 'created_at'], name='idx_message_channel_created'),
        ]


class MessageReaction(models.Model):
    """Emoji reaction; one per user, message and emoji"""
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='reactions')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='message_reactions')
    emoji = models.CharField(max_length=32)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.emoji} by {self.user}"

    class Meta:
        db_table = 'chat_message_reactions'
        constraints = [
            models.UniqueConstraint(fields=['message', 'user', 'emoji'], name='uniq_message_reaction'),
        ]
