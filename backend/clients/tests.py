"""
Test suite for Clients module
Tests: client CRUD, fiscal year validation, filters, tenant isolation, related tasks and time
"""
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog, Roles
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.clients.models import Client, validate_fiscal_year_end


class FiscalYearEndTests(TestCase):
    """Test the MM-DD validator"""

    def test_valid_values(self):
        """Real month-day pairs pass, including leap day"""
        for value in ['03-31', '12-31', '02-29', '']:
            validate_fiscal_year_end(value)

    def test_invalid_values(self):
        """Impossible dates and malformed strings fail"""
        for value in ['02-30', '13-01', '3-31', '0331', 'March', '04-31']:
            with self.assertRaises(ValidationError):
                validate_fiscal_year_end(value)


class ClientAPITests(TestCase):
    """Test Client API endpoints"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.member = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.member)

    def test_create_client(self):
        """Members can create clients in their business"""
        data = {
            'name': 'Yamada Trading',
            'industry': 'Retail',
            'contact_person': 'Hanako Yamada',
            'email': 'info@yamada.test',
            'fiscal_year_end': '03-31',
        }
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['open_task_count'], 0)
        self.assertEqual(Client.objects.get(pk=response.data['id']).business, self.business)

    def test_create_client_invalid_fiscal_year_end(self):
        """An impossible fiscal year end returns 400"""
        response = self.client.post('/api/v1/clients/', {'name': 'Bad', 'fiscal_year_end': '02-30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('fiscal_year_end', response.data)

    def test_list_clients_paginated_and_scoped(self):
        """The list is paginated and excludes other tenants"""
        TestDataFactory.create_client(self.business, name='Alpha')
        TestDataFactory.create_client(self.business, name='Beta')
        other_business = TestDataFactory.create_business()
        TestDataFactory.create_client(other_business, name='Gamma')

        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual([row['name'] for row in response.data['results']], ['Alpha', 'Beta'])

        response = self.client.get('/api/v1/clients/?limit=1&page=2')
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['results'][0]['name'], 'Beta')
        self.assertIsNone(response.data['next'])

    def test_filter_clients(self):
        """Search and status filters narrow the list"""
        TestDataFactory.create_client(self.business, name='Sakura Foods', industry='Food')
        TestDataFactory.create_client(self.business, name='Fuji Motors', industry='Automotive', status='inactive')

        response = self.client.get('/api/v1/clients/?search=sakura')
        self.assertEqual([row['name'] for row in response.data['results']], ['Sakura Foods'])

        response = self.client.get('/api/v1/clients/?status=inactive')
        self.assertEqual([row['name'] for row in response.data['results']], ['Fuji Motors'])

        response = self.client.get('/api/v1/clients/?industry=food')
        self.assertEqual([row['name'] for row in response.data['results']], ['Sakura Foods'])

    def test_open_task_count(self):
        """Open task count ignores finished tasks"""
        client = TestDataFactory.create_client(self.business)
        TestDataFactory.create_task(self.business, self.member, client=client)
        TestDataFactory.create_task(self.business, self.member, client=client, status='done')
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.data['results'][0]['open_task_count'], 1)

    def test_update_client(self):
        """Members can update clients"""
        client = TestDataFactory.create_client(self.business)
        response = self.client.patch(f'/api/v1/clients/{client.id}/', {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.refresh_from_db()
        self.assertEqual(client.status, 'inactive')

    def test_other_business_client_not_found(self):
        """Clients of other tenants are reported as 404"""
        other_client = TestDataFactory.create_client(TestDataFactory.create_business())
        response = self.client.get(f'/api/v1/clients/{other_client.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_requires_manager(self):
        """Plain users cannot delete clients"""
        client = TestDataFactory.create_client(self.business)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Client.objects.filter(pk=client.id).exists())

    def test_delete_by_manager(self):
        """Managers can delete clients; linked tasks are kept"""
        manager = TestDataFactory.create_user(business=self.business, role=Roles.MANAGER)
        client = TestDataFactory.create_client(self.business)
        task = TestDataFactory.create_task(self.business, manager, client=client)
        self.client.authenticate_user(manager)

        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        task.refresh_from_db()
        self.assertIsNone(task.client)
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Client').exists())

    def test_client_tasks(self):
        """The client's tasks are listed"""
        client = TestDataFactory.create_client(self.business)
        task = TestDataFactory.create_task(self.business, self.member, client=client)
        TestDataFactory.create_task(self.business, self.member)
        response = self.client.get(f'/api/v1/clients/{client.id}/tasks/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [task.id])

    def test_client_time_summary(self):
        """Minutes logged against the client are totalled per category"""
        client = TestDataFactory.create_client(self.business)
        TestDataFactory.create_time_record(self.member, client=client, minutes=30, category='tax')
        TestDataFactory.create_time_record(self.owner, client=client, minutes=45, category='meeting')
        TestDataFactory.create_time_record(self.member, minutes=120, category='tax')

        response = self.client.get(f'/api/v1/clients/{client.id}/time-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_minutes'], 75)
        self.assertEqual(response.data['by_category'], {'meeting': 45, 'tax': 30})
