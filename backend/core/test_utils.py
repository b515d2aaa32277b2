"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from backend.core.models import Business, Invitation, Roles
from backend.core.serializers import BusinessRefreshToken
from backend.clients.models import Client
from backend.tasks.models import Task, TaskComment
from backend.timetracking.models import TimeRecord
from backend.chat.models import Channel, ChannelMembership, Message
from backend.wiki.models import WikiPage

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_business(name=None, owner=None):
        """Create a test business (tenant)"""
        if not name:
            name = f'Business_{TestDataFactory.random_string(6)}'
        business = Business.objects.create(name=name)
        if owner is not None:
            business.owner = owner
            business.save()
        return business

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', business=None, role=Roles.USER,
                    is_staff=False, is_superuser=False):
        """Create a test user inside `business` (a new business when omitted)"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username.lower()}@test.com'
        if business is None:
            business = TestDataFactory.create_business()
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            business=business,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_business_with_owner(name=None, password='testpass123'):
        """Create a business whose owner is an admin user; returns (business, owner)"""
        business = TestDataFactory.create_business(name=name)
        owner = TestDataFactory.create_user(business=business, role=Roles.ADMIN, password=password)
        business.owner = owner
        business.save()
        return business, owner

    @staticmethod
    def create_invitation(business, email=None, role=Roles.USER, invited_by=None, expires_at=None, used=False):
        """Create a test invitation"""
        if not email:
            email = f'invitee_{TestDataFactory.random_string(6).lower()}@test.com'
        invitation = Invitation(
            business=business,
            email=email,
            role=role,
            invited_by=invited_by,
            used=used,
        )
        if expires_at is not None:
            invitation.expires_at = expires_at
        invitation.save()
        return invitation

    @staticmethod
    def create_client(business, name=None, status='active', industry='Retail', fiscal_year_end='03-31'):
        """Create a test client"""
        if not name:
            name = f'Client_{TestDataFactory.random_string(6)}'
        return Client.objects.create(
            business=business,
            name=name,
            industry=industry,
            contact_person='Taro Yamada',
            email=f'{name.lower()}@client.test',
            phone='03-1234-5678',
            status=status,
            fiscal_year_end=fiscal_year_end
        )

    @staticmethod
    def create_task(business, user, title=None, status='todo', priority='medium', position=None,
                    assignee=None, client=None, category=None, due_date=None):
        """Create a test task appended to its status column"""
        if not title:
            title = f'Task_{TestDataFactory.random_string(6)}'
        if position is None:
            position = Task.objects.filter(business=business, status=status).count()
        return Task.objects.create(
            business=business,
            title=title,
            description=f'Description for {title}',
            status=status,
            priority=priority,
            category=category,
            due_date=due_date,
            assignee=assignee,
            client=client,
            position=position,
            created_by=user
        )

    @staticmethod
    def create_comment(task, author, content='Looks good'):
        """Create a test task comment"""
        return TaskComment.objects.create(task=task, author=author, content=content)

    @staticmethod
    def create_time_record(user, start_time=None, minutes=60, category='accounting', task=None, client=None,
                           running=False):
        """Create a test time record; `running` leaves it without an end time"""
        if start_time is None:
            start_time = timezone.now() - timedelta(minutes=minutes)
        end_time = None if running else start_time + timedelta(minutes=minutes)
        return TimeRecord.objects.create(
            business=user.business,
            user=user,
            task=task,
            client=client,
            category=category,
            start_time=start_time,
            end_time=end_time
        )

    @staticmethod
    def create_channel(business, user, name=None, is_private=False):
        """Create a test channel with its creator as member"""
        if not name:
            name = f'channel-{TestDataFactory.random_string(6).lower()}'
        channel = Channel.objects.create(
            business=business,
            name=name,
            is_private=is_private,
            created_by=user
        )
        ChannelMembership.objects.create(channel=channel, user=user)
        return channel

    @staticmethod
    def create_message(channel, user, text='Hello team', parent=None):
        """Create a test chat message"""
        message = Message.objects.create(channel=channel, user=user, text=text, parent=parent)
        channel.last_message_at = message.created_at
        channel.save(update_fields=['last_message_at'])
        return message

    @staticmethod
    def create_wiki_page(business, user, title=None, content='<p>Body</p>', parent=None, tags=None,
                         is_published=True):
        """Create a test wiki page"""
        if not title:
            title = f'Page {TestDataFactory.random_string(6)}'
        return WikiPage.objects.create(
            business=business,
            title=title,
            content=content,
            parent=parent,
            tags=tags or [],
            is_published=is_published,
            created_by=user,
            updated_by=user
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = BusinessRefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
