"""
Management command to seed a demo tenant with an admin, clients, tasks, a wiki home page and a general channel
Usage: python manage.py create_demo_business --email admin@demo.test --password demo-pass-123
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from backend.core.models import Business, User, Roles
from backend.clients.models import Client
from backend.tasks.models import Task
from backend.chat.models import Channel, ChannelMembership, Message
from backend.wiki.models import WikiPage


DEMO_CLIENTS = [
    {'name': 'Sakura Foods', 'industry': 'Food', 'contact_person': 'Hanako Sato', 'fiscal_year_end': '03-31'},
    {'name': 'Fuji Motors', 'industry': 'Automotive', 'contact_person': 'Kenji Tanaka', 'fiscal_year_end': '12-31'},
    {'name': 'Minato Design', 'industry': 'Creative', 'contact_person': 'Yui Ito', 'fiscal_year_end': '06-30'},
]

DEMO_TASKS = [
    ('Prepare quarterly VAT return', 'todo', 'high', 'tax'),
    ('Reconcile bank statements', 'todo', 'medium', 'accounting'),
    ('Year-end closing checklist', 'in_progress', 'high', 'accounting'),
    ('Client kickoff meeting', 'review', 'medium', 'meeting'),
    ('Renew office insurance', 'done', 'low', 'admin'),
]


class Command(BaseCommand):
    help = 'Create a demo business with sample clients, tasks, a wiki page and a chat channel'

    def add_arguments(self, parser):
        parser.add_argument('--name', default='Demo Accounting', help='Business name')
        parser.add_argument('--email', default='admin@demo.test', help='Admin email (login)')
        parser.add_argument('--password', default='demo-pass-123', help='Admin password')
        parser.add_argument('--username', default='demo-admin', help='Admin display name')

    def handle(self, *args, **options):
        if User.objects.filter(email__iexact=options['email']).exists():
            raise CommandError(f"A user with email {options['email']} already exists.")

        with transaction.atomic():
            business = Business.objects.create(name=options['name'])
            admin = User.objects.create_user(
                username=options['username'],
                email=options['email'],
                password=options['password'],
                role=Roles.ADMIN,
                business=business,
            )
            business.owner = admin
            business.save(update_fields=['owner', 'updated_at'])
            self.stdout.write(self.style.SUCCESS(f'✓ Created business: {business.name} ({business.business_code})'))

            clients = [Client.objects.create(business=business, **data) for data in DEMO_CLIENTS]
            self.stdout.write(self.style.SUCCESS(f'✓ Created {len(clients)} clients'))

            today = timezone.localdate()
            positions = {}
            for index, (title, task_status, priority, category) in enumerate(DEMO_TASKS):
                position = positions.get(task_status, 0)
                positions[task_status] = position + 1
                Task.objects.create(
                    business=business,
                    title=title,
                    status=task_status,
                    priority=priority,
                    category=category,
                    due_date=today + timedelta(days=3 * (index + 1)),
                    assignee=admin,
                    client=clients[index % len(clients)],
                    position=position,
                    created_by=admin,
                )
            self.stdout.write(self.style.SUCCESS(f'✓ Created {len(DEMO_TASKS)} tasks'))

            WikiPage.objects.create(
                business=business,
                title='Welcome',
                content='<h1>Welcome to Sphere</h1><p>Start documenting your processes here.</p>',
                tags=['getting-started'],
                created_by=admin,
                updated_by=admin,
            )
            channel = Channel.objects.create(business=business, name='general', created_by=admin,
                                             description='Company-wide announcements')
            ChannelMembership.objects.create(channel=channel, user=admin)
            message = Message.objects.create(channel=channel, user=admin, text='Welcome to the team!')
            Channel.objects.filter(pk=channel.pk).update(last_message_at=message.created_at)
            self.stdout.write(self.style.SUCCESS('✓ Created wiki home page and #general channel'))

        self.stdout.write('')
        self.stdout.write(f'Log in with business code {business.business_code}, email {admin.email}')
