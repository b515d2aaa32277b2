"""
Test suite for Time tracking module
Tests: durations, timers, manual records, permissions, range resolution and summaries
"""
from datetime import date, datetime, time, timedelta

from django.http import QueryDict
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import Roles
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.timetracking.models import TimeRecord, duration_minutes
from backend.timetracking.utils import InvalidPeriod, iter_days, period_bounds, resolve_period


def local_dt(day, hour, minute=0):
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


class DurationTests(TestCase):
    """Test minute rounding"""

    def test_rounding(self):
        """Durations round to the nearest minute"""
        start = timezone.now()
        self.assertEqual(duration_minutes(start, start + timedelta(seconds=29)), 0)
        self.assertEqual(duration_minutes(start, start + timedelta(seconds=30)), 1)
        self.assertEqual(duration_minutes(start, start + timedelta(minutes=90, seconds=10)), 90)

    def test_duration_set_on_save(self):
        """Finished records get a duration; running ones do not"""
        business, user = TestDataFactory.create_business_with_owner()
        record = TestDataFactory.create_time_record(user, minutes=45)
        self.assertEqual(record.duration, 45)
        running = TestDataFactory.create_time_record(user, running=True)
        self.assertIsNone(running.duration)
        self.assertTrue(running.is_running)


class PeriodTests(TestCase):
    """Test day/week/month range resolution"""

    def test_week_starts_monday(self):
        """A week runs Monday to Sunday"""
        # 2026-10-15 is a Thursday
        self.assertEqual(period_bounds('week', date(2026, 10, 15)), (date(2026, 10, 12), date(2026, 10, 18)))
        self.assertEqual(period_bounds('week', date(2026, 10, 18)), (date(2026, 10, 12), date(2026, 10, 18)))

    def test_month_bounds(self):
        """A month runs from the first to the last day"""
        self.assertEqual(period_bounds('month', date(2028, 2, 10)), (date(2028, 2, 1), date(2028, 2, 29)))
        self.assertEqual(period_bounds('month', date(2026, 12, 31)), (date(2026, 12, 1), date(2026, 12, 31)))

    def test_resolve_explicit_range(self):
        """Explicit bounds are parsed; either may be missing"""
        params = QueryDict('date_from=2026-01-05')
        self.assertEqual(resolve_period(params), (date(2026, 1, 5), None))

    def test_resolve_invalid(self):
        """Malformed dates, reversed ranges and unknown views are rejected"""
        for query in ['date_from=yesterday', 'date_from=2026-02-02&date_to=2026-02-01', 'view=year']:
            with self.assertRaises(InvalidPeriod):
                resolve_period(QueryDict(query))

    def test_week_past_end_of_calendar(self):
        """A week that would run past 9999-12-31 is rejected"""
        with self.assertRaises(InvalidPeriod):
            period_bounds('week', date(9999, 12, 31))
        self.assertEqual(period_bounds('month', date(9999, 12, 15)), (date(9999, 12, 1), date(9999, 12, 31)))

    def test_range_length_is_capped(self):
        """Ranges longer than a year are rejected"""
        params = QueryDict('date_from=2024-01-01&date_to=2024-12-31')
        self.assertEqual(resolve_period(params), (date(2024, 1, 1), date(2024, 12, 31)))
        with self.assertRaises(InvalidPeriod):
            resolve_period(QueryDict('date_from=0001-01-01&date_to=9999-12-30'))

    def test_iter_days_reaches_last_calendar_day(self):
        """Iterating up to date.max stops without overflowing"""
        self.assertEqual(list(iter_days(date(9999, 12, 30), date.max)), [date(9999, 12, 30), date(9999, 12, 31)])


class TimerAPITests(TestCase):
    """Test timer start/stop/current"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_start_and_stop(self):
        """A started timer can be read and stopped"""
        response = self.client.post('/api/v1/time-records/start/', {'category': 'meeting', 'notes': 'Kickoff'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_running'])

        response = self.client.get('/api/v1/time-records/current/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['category'], 'meeting')
        self.assertIn('elapsed_seconds', response.data)

        response = self.client.post('/api/v1/time-records/stop/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_running'])
        self.assertEqual(response.data['duration'], 0)

        response = self.client.get('/api/v1/time-records/current/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_one_running_timer_per_user(self):
        """A second start returns 400 while a timer runs"""
        self.assertEqual(self.client.post('/api/v1/time-records/start/', {}, format='json').status_code,
                         status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/time-records/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(TimeRecord.objects.filter(user=self.user, end_time__isnull=True).count(), 1)

    def test_other_users_may_run_timers(self):
        """The running-timer limit is per user"""
        TestDataFactory.create_time_record(self.owner, running=True)
        response = self.client.post('/api/v1/time-records/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_stop_without_timer(self):
        """Stopping with no running timer returns 404"""
        response = self.client.post('/api/v1/time-records/stop/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_start_inherits_task_client(self):
        """A task's client is used when no client is given"""
        client = TestDataFactory.create_client(self.business)
        task = TestDataFactory.create_task(self.business, self.user, client=client)
        response = self.client.post('/api/v1/time-records/start/', {'task': task.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['client'], client.id)

    def test_start_with_foreign_task(self):
        """Tasks of other businesses are rejected"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        task = TestDataFactory.create_task(other_business, other_user)
        response = self.client.post('/api/v1/time-records/start/', {'task': task.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TimeRecordAPITests(TestCase):
    """Test manual records, filters and permissions"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business)
        self.colleague = TestDataFactory.create_user(business=self.business)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_manual_create(self):
        """Manual records compute their duration"""
        data = {
            'category': 'accounting',
            'start_time': '2026-10-12T09:00:00Z',
            'end_time': '2026-10-12T10:30:00Z',
        }
        response = self.client.post('/api/v1/time-records/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['duration'], 90)
        self.assertEqual(response.data['user'], self.user.id)

    def test_manual_create_requires_end_time(self):
        """Manual records need an end time"""
        response = self.client.post('/api/v1/time-records/', {'start_time': '2026-10-12T09:00:00Z'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_time', response.data)

    def test_end_before_start_rejected(self):
        """End time cannot precede start time"""
        data = {'start_time': '2026-10-12T10:00:00Z', 'end_time': '2026-10-12T09:00:00Z'}
        response = self.client.post('/api/v1/time-records/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recomputes_duration(self):
        """Editing times updates the duration"""
        record = TestDataFactory.create_time_record(self.user, minutes=30)
        end_time = record.start_time + timedelta(minutes=50)
        response = self.client.patch(f'/api/v1/time-records/{record.id}/', {'end_time': end_time.isoformat()},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['duration'], 50)

    def test_only_owner_or_manager_modifies(self):
        """Colleagues cannot modify each other's records; managers can"""
        record = TestDataFactory.create_time_record(self.colleague, minutes=30)
        response = self.client.patch(f'/api/v1/time-records/{record.id}/', {'notes': 'mine now'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/time-records/{record.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/time-records/{record.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_list_filters_by_start_date(self):
        """Range filters apply to the start date, inclusive"""
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2026, 10, 11), 23, 0), minutes=120)
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2026, 10, 12), 9), minutes=60)
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2026, 10, 18), 9), minutes=60)
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2026, 10, 19), 9), minutes=60)

        response = self.client.get('/api/v1/time-records/?date_from=2026-10-12&date_to=2026-10-18')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/time-records/?view=week&date=2026-10-15')
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/time-records/?view=day&date=2026-10-11')
        self.assertEqual(len(response.data), 1)

    def test_list_filter_by_user_and_category(self):
        """User and category filters narrow the list"""
        TestDataFactory.create_time_record(self.user, category='tax')
        TestDataFactory.create_time_record(self.colleague, category='tax')
        TestDataFactory.create_time_record(self.colleague, category='admin')

        response = self.client.get(f'/api/v1/time-records/?user={self.colleague.id}&category=tax')
        self.assertEqual(len(response.data), 1)

    def test_list_invalid_date(self):
        """Malformed dates return 400"""
        response = self.client.get('/api/v1/time-records/?date_from=12/10/2026')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_records_scoped_to_business(self):
        """Other tenants' records are neither listed nor reachable"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        record = TestDataFactory.create_time_record(other_user)
        self.assertEqual(self.client.get('/api/v1/time-records/').data, [])
        response = self.client.get(f'/api/v1/time-records/{record.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TimeSummaryAPITests(TestCase):
    """Test the summary endpoint"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_week_summary_zero_fills_days(self):
        """Every day of the week is present with per-dimension totals"""
        client = TestDataFactory.create_client(self.business)
        monday = date(2026, 10, 12)
        TestDataFactory.create_time_record(self.user, start_time=local_dt(monday, 9), minutes=60,
                                           category='tax', client=client)
        TestDataFactory.create_time_record(self.owner, start_time=local_dt(monday + timedelta(days=2), 9),
                                           minutes=30, category='meeting')
        TestDataFactory.create_time_record(self.user, start_time=local_dt(monday + timedelta(days=7), 9), minutes=15)

        response = self.client.get('/api/v1/time-records/summary/?view=week&date=2026-10-14')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date_from'], '2026-10-12')
        self.assertEqual(response.data['date_to'], '2026-10-18')
        self.assertEqual(response.data['total_minutes'], 90)
        self.assertEqual(response.data['by_category'], {'meeting': 30, 'tax': 60})
        self.assertEqual(len(response.data['by_day']), 7)
        self.assertEqual(response.data['by_day'][0], {'date': '2026-10-12', 'minutes': 60})
        self.assertEqual(response.data['by_day'][1], {'date': '2026-10-13', 'minutes': 0})
        self.assertEqual(response.data['by_day'][2], {'date': '2026-10-14', 'minutes': 30})
        self.assertEqual(response.data['by_user'][0]['user'], self.user.id)
        clients = {row['client']: row['minutes'] for row in response.data['by_client']}
        self.assertEqual(clients, {client.id: 60, None: 30})

    def test_summary_excludes_running_timers(self):
        """Running timers do not count"""
        TestDataFactory.create_time_record(self.user, running=True)
        response = self.client.get('/api/v1/time-records/summary/?view=day')
        self.assertEqual(response.data['total_minutes'], 0)
        self.assertEqual(len(response.data['by_day']), 1)

    def test_summary_defaults_to_current_week(self):
        """Without a range the current week is summarised"""
        response = self.client.get('/api/v1/time-records/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['by_day']), 7)
        self.assertEqual(date.fromisoformat(response.data['date_from']).weekday(), 0)

    def test_summary_at_end_of_calendar(self):
        """Ranges touching 9999-12-31 answer normally or with 400, never 500"""
        response = self.client.get('/api/v1/time-records/summary/?date_from=9999-12-30&date_to=9999-12-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['date'] for row in response.data['by_day']], ['9999-12-30', '9999-12-31'])

        response = self.client.get('/api/v1/time-records/summary/?view=week&date=9999-12-31')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_summary_rejects_oversized_range(self):
        """A multi-year range returns 400"""
        response = self.client.get('/api/v1/time-records/summary/?date_from=0001-01-01&date_to=9999-12-30')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/time-records/?date_from=2020-01-01&date_to=2026-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary_open_range_spanning_years(self):
        """A lone date_from whose records span more than a year returns 400"""
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2024, 1, 2), 9))
        TestDataFactory.create_time_record(self.user, start_time=local_dt(date(2026, 1, 2), 9))
        response = self.client.get('/api/v1/time-records/summary/?date_from=2024-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
