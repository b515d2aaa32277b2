"""
Test suite for Reports module
Tests: dashboard summary counts, hours and upcoming tasks
"""
from datetime import datetime, time, timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DashboardTests(TestCase):
    """Test the dashboard endpoint"""

    def setUp(self):
        self.business, self.user = TestDataFactory.create_business_with_owner()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_dashboard(self):
        """A new business has zeroed statistics"""
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_tasks'], 0)
        self.assertEqual(response.data['completion_rate'], 0)
        self.assertEqual(response.data['today_hours'], 0)
        self.assertEqual(response.data['upcoming_tasks'], [])

    def test_task_and_client_counts(self):
        """Counts cover the whole business but not other tenants"""
        TestDataFactory.create_task(self.business, self.user, status='done')
        TestDataFactory.create_task(self.business, self.user, status='todo')
        TestDataFactory.create_task(self.business, self.user, status='review')
        TestDataFactory.create_task(self.business, self.user, status='done')
        TestDataFactory.create_client(self.business, status='active')
        TestDataFactory.create_client(self.business, status='inactive')
        other_business, other_user = TestDataFactory.create_business_with_owner()
        TestDataFactory.create_task(other_business, other_user)

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['total_tasks'], 4)
        self.assertEqual(response.data['completed_tasks'], 2)
        self.assertEqual(response.data['pending_tasks'], 2)
        self.assertEqual(response.data['completion_rate'], 50.0)
        self.assertEqual(response.data['total_clients'], 2)
        self.assertEqual(response.data['active_clients'], 1)

    def test_hours(self):
        """Hours count only the caller's finished records"""
        morning = timezone.make_aware(datetime.combine(timezone.localdate(), time(9, 0)))
        TestDataFactory.create_time_record(self.user, start_time=morning, minutes=90)
        TestDataFactory.create_time_record(self.user, start_time=morning + timedelta(hours=3), running=True)
        colleague = TestDataFactory.create_user(business=self.business)
        TestDataFactory.create_time_record(colleague, start_time=morning, minutes=60)

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['today_hours'], 1.5)
        self.assertEqual(response.data['weekly_hours'], 1.5)

    def test_upcoming_tasks(self):
        """Upcoming tasks are the caller's open tasks by due date, at most five"""
        today = timezone.localdate()
        for offset in range(6):
            TestDataFactory.create_task(self.business, self.user, assignee=self.user,
                                        due_date=today + timedelta(days=6 - offset), title=f'Due {offset}')
        TestDataFactory.create_task(self.business, self.user, assignee=self.user, status='done',
                                    due_date=today)
        TestDataFactory.create_task(self.business, self.user, assignee=self.user, title='No due date')

        response = self.client.get('/api/v1/reports/dashboard/')
        upcoming = response.data['upcoming_tasks']
        self.assertEqual(len(upcoming), 5)
        due_dates = [task['due_date'] for task in upcoming]
        self.assertEqual(due_dates, sorted(due_dates))
        self.assertNotIn('No due date', [task['title'] for task in upcoming])

    def test_requires_authentication(self):
        """The dashboard requires a token"""
        self.client.logout()
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
