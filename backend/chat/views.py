import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, F, OuterRef, Q, Subquery
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.models import User
from backend.core.permissions import IsBusinessMember
from backend.core.utils import create_audit_log
from .models import Channel, ChannelMembership, Message, MessageReaction
from .serializers import (
    ChannelSerializer, ChannelDetailSerializer, ChannelMemberSerializer,
    MessageSerializer, MessageCreateSerializer, MemberAddSerializer, ReactionSerializer,
)

logger = logging.getLogger('backend.chat')


def get_visible_channel(request, slug):
    """Channel by slug, 404 when it is private and the caller is not a member"""
    return get_object_or_404(Channel.visible_to(request.user), slug=slug)


def unread_counts(user, channels):
    """Messages by others after the caller's read marker, per channel id"""
    channel_ids = [channel.id for channel in channels]
    marker = ChannelMembership.objects.filter(channel=OuterRef('channel'), user=user).values('last_read_at')[:1]
    rows = (
        Message.objects.filter(channel_id__in=channel_ids)
        .exclude(user=user)
        .annotate(marker=Subquery(marker))
        .filter(Q(marker__isnull=True) | Q(created_at__gt=F('marker')))
        .order_by()
        .values('channel_id')
        .annotate(unread=Count('id'))
    )
    counts = dict.fromkeys(channel_ids, 0)
    counts.update({row['channel_id']: row['unread'] for row in rows})
    return counts


def forbidden(message):
    return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)


# Channel views
@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def channel_list_create(request):
    """List channels visible to the caller or create a channel"""
    if request.method == 'GET':
        channels = Channel.visible_to(request.user).select_related('created_by')
        search = request.query_params.get('search', None)
        if search:
            channels = channels.filter(Q(name__icontains=search) | Q(description__icontains=search))
        channels = list(channels.order_by('name'))
        serializer = ChannelSerializer(channels, many=True, context={'unread_counts': unread_counts(request.user, channels)})
        return Response(serializer.data)

    serializer = ChannelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    member_ids = set(serializer.validated_data.pop('member_ids', []))
    members = list(User.objects.filter(business_id=request.user.business_id, id__in=member_ids))
    if len(members) != len(member_ids):
        return Response({'member_ids': [_('Some users do not belong to your business.')]},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            channel = serializer.save(business=request.user.business, created_by=request.user)
            ChannelMembership.objects.create(channel=channel, user=request.user)
            ChannelMembership.objects.bulk_create([
                ChannelMembership(channel=channel, user=member) for member in members if member.pk != request.user.pk
            ])
    except IntegrityError:
        logger.warning(f"Channel creation conflict for '{serializer.validated_data.get('name')}'", exc_info=True)
        return Response({'error': _('A channel with this name already exists.')}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Channel {channel.slug} created by {request.user.email}")
    return Response(ChannelDetailSerializer(channel).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def channel_detail(request, slug):
    """Retrieve, update or delete a channel (creator or manager to modify)"""
    channel = get_visible_channel(request, slug)

    if request.method == 'GET':
        counts = unread_counts(request.user, [channel])
        return Response(ChannelDetailSerializer(channel, context={'unread_counts': counts}).data)

    if not channel.can_manage(request.user):
        logger.warning(f"User {request.user.email} attempted to modify channel {channel.slug}")
        return forbidden(_('Only the channel creator or a manager can change this channel.'))

    if request.method in ('PUT', 'PATCH'):
        serializer = ChannelSerializer(channel, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.validated_data.pop('member_ids', None)
            serializer.save()
            logger.info(f"Channel {channel.slug} updated by {request.user.email}")
            return Response(ChannelDetailSerializer(channel).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    create_audit_log(
        request=request, action='delete', model_name='Channel', object_id=channel.id, object_name=channel.name,
    )
    channel.delete()
    logger.info(f"Channel {slug} deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def channel_members(request, slug):
    """List or add channel members"""
    channel = get_visible_channel(request, slug)

    if request.method == 'GET':
        memberships = channel.memberships.select_related('user').order_by('joined_at')
        return Response(ChannelMemberSerializer(memberships, many=True).data)

    if not channel.can_manage(request.user):
        return forbidden(_('Only the channel creator or a manager can add members.'))

    serializer = MemberAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = get_object_or_404(User, pk=serializer.validated_data['user_id'], business_id=request.user.business_id)
    membership, created = ChannelMembership.objects.get_or_create(channel=channel, user=user)
    if created:
        logger.info(f"User {user.email} added to channel {channel.slug} by {request.user.email}")
    return Response(ChannelMemberSerializer(membership).data,
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['DELETE'])
@permission_classes([IsBusinessMember])
def channel_member_remove(request, slug, user_id):
    """Remove a member; members may also remove themselves (leave)"""
    channel = get_visible_channel(request, slug)
    if user_id != request.user.id and not channel.can_manage(request.user):
        return forbidden(_('Only the channel creator or a manager can remove members.'))

    membership = get_object_or_404(ChannelMembership, channel=channel, user_id=user_id)
    membership.delete()
    logger.info(f"User {user_id} removed from channel {channel.slug} by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


# Message views
@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def channel_messages(request, slug):
    """List messages (top level, or a thread with ?parent=) or post a message"""
    channel = get_visible_channel(request, slug)

    if request.method == 'GET':
        messages = channel.messages.select_related('user').prefetch_related('reactions')

        parent = request.query_params.get('parent', None)
        if parent:
            if not parent.isdigit():
                return Response({'error': _('Invalid parent.')}, status=status.HTTP_400_BAD_REQUEST)
            messages = messages.filter(parent_id=int(parent))
        else:
            messages = messages.filter(parent__isnull=True)

        after = request.query_params.get('after', None)
        if after:
            after_dt = parse_datetime(after)
            if after_dt is None:
                return Response({'error': _('Invalid after timestamp.')}, status=status.HTTP_400_BAD_REQUEST)
            messages = messages.filter(created_at__gt=after_dt)

        try:
            limit = min(max(int(request.query_params.get('limit', 100)), 1), 500)
        except ValueError:
            limit = 100
        # Latest `limit` messages, oldest first
        latest = list(messages.order_by('-created_at', '-id')[:limit])
        latest.reverse()
        return Response(MessageSerializer(latest, many=True).data)

    serializer = MessageCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    parent = serializer.validated_data.get('parent')
    if parent is not None and parent.channel_id != channel.id:
        return Response({'parent': [_('The parent message belongs to another channel.')]},
                        status=status.HTTP_400_BAD_REQUEST)
    # Replies always attach to the thread root
    if parent is not None and parent.parent_id is not None:
        serializer.validated_data['parent'] = parent.parent

    with transaction.atomic():
        message = serializer.save(channel=channel, user=request.user)
        ChannelMembership.objects.get_or_create(channel=channel, user=request.user)
        ChannelMembership.objects.filter(channel=channel, user=request.user).update(last_read_at=message.created_at)
        Channel.objects.filter(pk=channel.pk).update(last_message_at=message.created_at)

    logger.info(f"Message {message.id} posted to {channel.slug} by {request.user.email}")
    return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def channel_mark_read(request, slug):
    """Mark the channel as read for the caller"""
    channel = get_visible_channel(request, slug)
    now = timezone.now()
    membership, _created = ChannelMembership.objects.get_or_create(channel=channel, user=request.user)
    membership.last_read_at = now
    membership.save(update_fields=['last_read_at'])
    return Response({'channel': channel.slug, 'last_read_at': now})


def get_visible_message(request, pk):
    message = get_object_or_404(Message.objects.select_related('channel'), pk=pk,
                                channel__business_id=request.user.business_id)
    if message.channel.is_private and not message.channel.is_member(request.user):
        return None
    return message


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def message_reaction_toggle(request, pk):
    """Add the caller's reaction, or remove it when already present"""
    message = get_visible_message(request, pk)
    if message is None:
        return Response({'error': _('Not found.')}, status=status.HTTP_404_NOT_FOUND)

    serializer = ReactionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    emoji = serializer.validated_data['emoji']

    deleted, _details = MessageReaction.objects.filter(message=message, user=request.user, emoji=emoji).delete()
    reacted = False
    if not deleted:
        try:
            MessageReaction.objects.create(message=message, user=request.user, emoji=emoji)
            reacted = True
        except IntegrityError:
            reacted = True

    return Response({
        'reacted': reacted,
        'reactions': MessageSerializer(message).data['reactions'],
    })


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def message_detail(request, pk):
    """Edit or delete a message (author only)"""
    message = get_visible_message(request, pk)
    if message is None:
        return Response({'error': _('Not found.')}, status=status.HTTP_404_NOT_FOUND)

    if message.user_id != request.user.id:
        logger.warning(f"User {request.user.email} attempted to change message {message.id} of another user")
        return forbidden(_('You can only change your own messages.'))

    if request.method == 'DELETE':
        message.delete()
        logger.info(f"Message {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = MessageSerializer(message, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save(edited_at=timezone.now())
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
