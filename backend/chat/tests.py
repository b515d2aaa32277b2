"""
Test suite for Chat module
Tests: channel visibility, membership, messages, threads, reactions and unread counts
"""
from datetime import timedelta

from django.test import TestCase
from rest_framework import status

from backend.core.models import Roles
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.chat.models import Channel, ChannelMembership, Message, MessageReaction
from backend.chat.views import unread_counts


class ChannelModelTests(TestCase):
    """Test slug generation"""

    def setUp(self):
        self.business, self.user = TestDataFactory.create_business_with_owner()

    def test_slug_from_name(self):
        """Slugs derive from the name and stay unique per business"""
        first = TestDataFactory.create_channel(self.business, self.user, name='General Chat')
        second = TestDataFactory.create_channel(self.business, self.user, name='General Chat')
        self.assertEqual(first.slug, 'general-chat')
        self.assertEqual(second.slug, 'general-chat-2')

    def test_same_slug_in_other_business(self):
        """Different businesses may reuse a slug"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        TestDataFactory.create_channel(self.business, self.user, name='general')
        other = TestDataFactory.create_channel(other_business, other_user, name='general')
        self.assertEqual(other.slug, 'general')

    def test_unicode_name(self):
        """Non-ASCII names keep their characters"""
        channel = TestDataFactory.create_channel(self.business, self.user, name='経理 チーム')
        self.assertEqual(channel.slug, '経理-チーム')


class ChannelAPITests(TestCase):
    """Test channel endpoints"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.other = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_channel(self):
        """The creator and listed members join the new channel"""
        response = self.client.post('/api/v1/chat/channels/',
                                    {'name': '#Project X', 'member_ids': [self.other.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'project-x')
        self.assertEqual(response.data['name'], 'Project X')
        member_ids = {member['id'] for member in response.data['members']}
        self.assertEqual(member_ids, {self.user.id, self.other.id})

    def test_create_channel_with_foreign_member(self):
        """Members must belong to the business"""
        stranger = TestDataFactory.create_user()
        response = self.client.post('/api/v1/chat/channels/',
                                    {'name': 'x', 'member_ids': [stranger.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Channel.objects.filter(business=self.business).exists())

    def test_private_channel_visibility(self):
        """Private channels are hidden from non-members"""
        public = TestDataFactory.create_channel(self.business, self.owner, name='general')
        private = TestDataFactory.create_channel(self.business, self.owner, name='secret', is_private=True)
        TestDataFactory.create_channel(TestDataFactory.create_business(), self.owner, name='elsewhere')

        response = self.client.get('/api/v1/chat/channels/')
        self.assertEqual([row['slug'] for row in response.data], [public.slug])

        response = self.client.get(f'/api/v1/chat/channels/{private.slug}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        ChannelMembership.objects.create(channel=private, user=self.user)
        response = self.client.get('/api/v1/chat/channels/')
        self.assertEqual(len(response.data), 2)

    def test_search_channels(self):
        """Channels can be searched by name"""
        TestDataFactory.create_channel(self.business, self.owner, name='tax-team')
        TestDataFactory.create_channel(self.business, self.owner, name='random')
        response = self.client.get('/api/v1/chat/channels/?search=tax')
        self.assertEqual([row['name'] for row in response.data], ['tax-team'])

    def test_update_requires_creator_or_manager(self):
        """Only the creator or a manager can change a channel"""
        channel = TestDataFactory.create_channel(self.business, self.other, name='ops')
        response = self.client.patch(f'/api/v1/chat/channels/{channel.slug}/', {'description': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.other)
        response = self.client.patch(f'/api/v1/chat/channels/{channel.slug}/', {'description': 'Ops talk'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['description'], 'Ops talk')

        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/chat/channels/{channel.slug}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_members_add_and_remove(self):
        """Creators manage members; members may leave"""
        channel = TestDataFactory.create_channel(self.business, self.user, name='crew', is_private=True)
        response = self.client.post(f'/api/v1/chat/channels/{channel.slug}/members/',
                                    {'user_id': self.other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(f'/api/v1/chat/channels/{channel.slug}/members/')
        self.assertEqual(len(response.data), 2)

        self.client.authenticate_user(self.other)
        response = self.client.delete(f'/api/v1/chat/channels/{channel.slug}/members/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/chat/channels/{channel.slug}/members/{self.other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_add_foreign_member(self):
        """Users of other businesses cannot be added"""
        channel = TestDataFactory.create_channel(self.business, self.user, name='crew')
        stranger = TestDataFactory.create_user()
        response = self.client.post(f'/api/v1/chat/channels/{channel.slug}/members/',
                                    {'user_id': stranger.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class MessageAPITests(TestCase):
    """Test message endpoints"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business)
        self.channel = TestDataFactory.create_channel(self.business, self.owner, name='general')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.url = f'/api/v1/chat/channels/{self.channel.slug}/messages/'

    def test_post_message_to_public_channel(self):
        """Posting joins the channel and updates last_message_at"""
        response = self.client.post(self.url, {'text': 'Hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['username'], self.user.username)
        self.assertTrue(self.channel.is_member(self.user))
        self.channel.refresh_from_db()
        self.assertIsNotNone(self.channel.last_message_at)

    def test_empty_message_rejected(self):
        """Whitespace-only text returns 400"""
        response = self.client.post(self.url, {'text': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Message.objects.exists())

    def test_threads(self):
        """Replies are listed under their parent, not at top level"""
        root = TestDataFactory.create_message(self.channel, self.owner, text='Question?')
        response = self.client.post(self.url, {'text': 'Answer', 'parent': root.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        top_level = self.client.get(self.url)
        self.assertEqual([row['text'] for row in top_level.data], ['Question?'])
        self.assertEqual(top_level.data[0]['reply_count'], 1)

        thread = self.client.get(f'{self.url}?parent={root.id}')
        self.assertEqual([row['text'] for row in thread.data], ['Answer'])

    def test_parent_from_other_channel(self):
        """A parent in another channel returns 400"""
        other_channel = TestDataFactory.create_channel(self.business, self.owner, name='random')
        foreign_root = TestDataFactory.create_message(other_channel, self.owner)
        response = self.client.post(self.url, {'text': 'Hi', 'parent': foreign_root.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_messages_of_private_channel_hidden(self):
        """Non-members cannot read or post in private channels"""
        private = TestDataFactory.create_channel(self.business, self.owner, name='board', is_private=True)
        url = f'/api/v1/chat/channels/{private.slug}/messages/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.post(url, {'text': 'hi'}, format='json').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_unread_count_and_mark_read(self):
        """Unread counts others' messages after the read marker"""
        TestDataFactory.create_message(self.channel, self.owner, text='one')
        TestDataFactory.create_message(self.channel, self.owner, text='two')
        TestDataFactory.create_message(self.channel, self.user, text='mine')

        response = self.client.get('/api/v1/chat/channels/')
        self.assertEqual(response.data[0]['unread_count'], 2)

        response = self.client.post(f'/api/v1/chat/channels/{self.channel.slug}/read/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/chat/channels/')
        self.assertEqual(response.data[0]['unread_count'], 0)

    def test_unread_counts_in_one_query(self):
        """Unread counts for several channels come from a single grouped query"""
        first = TestDataFactory.create_message(self.channel, self.owner, text='old')
        new = TestDataFactory.create_message(self.channel, self.owner, text='new')
        Message.objects.filter(pk=new.pk).update(created_at=first.created_at + timedelta(seconds=1))
        ChannelMembership.objects.create(channel=self.channel, user=self.user, last_read_at=first.created_at)
        random = TestDataFactory.create_channel(self.business, self.owner, name='random')
        TestDataFactory.create_message(random, self.owner, text='hi')
        TestDataFactory.create_message(random, self.user, text='mine')
        quiet = TestDataFactory.create_channel(self.business, self.owner, name='quiet')

        channels = [self.channel, random, quiet]
        with self.assertNumQueries(1):
            counts = unread_counts(self.user, channels)
        self.assertEqual(counts, {self.channel.id: 1, random.id: 1, quiet.id: 0})

    def test_reaction_toggle(self):
        """Posting the same reaction twice removes it"""
        message = TestDataFactory.create_message(self.channel, self.owner)
        url = f'/api/v1/chat/messages/{message.id}/reactions/'

        response = self.client.post(url, {'emoji': '👍'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['reacted'])
        self.assertEqual(response.data['reactions'], [{'emoji': '👍', 'count': 1, 'users': [self.user.id]}])

        response = self.client.post(url, {'emoji': '👍'}, format='json')
        self.assertFalse(response.data['reacted'])
        self.assertFalse(MessageReaction.objects.filter(message=message).exists())

    def test_edit_and_delete_own_message(self):
        """Authors can edit and delete their messages"""
        message = TestDataFactory.create_message(self.channel, self.user, text='typo')
        response = self.client.patch(f'/api/v1/chat/messages/{message.id}/', {'text': 'fixed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['text'], 'fixed')
        self.assertIsNotNone(response.data['edited_at'])

        response = self.client.delete(f'/api/v1/chat/messages/{message.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_cannot_edit_others_message(self):
        """Only the author may edit a message"""
        message = TestDataFactory.create_message(self.channel, self.owner)
        response = self.client.patch(f'/api/v1/chat/messages/{message.id}/', {'text': 'hijack'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/chat/messages/{message.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
