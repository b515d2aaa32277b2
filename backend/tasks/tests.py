"""
Test suite for Tasks module
Tests: task CRUD, board grouping, drag-and-drop ordering, comments and tenant checks
"""
from django.test import TestCase
from rest_framework import status

from backend.core.models import Roles
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.tasks.models import Task
from backend.tasks.utils import move_task


def column(business, task_status):
    return list(
        Task.objects.filter(business=business, status=task_status)
        .order_by('position', 'id')
        .values_list('title', 'position')
    )


class MoveTaskTests(TestCase):
    """Test column renumbering when tasks move"""

    def setUp(self):
        self.business, self.user = TestDataFactory.create_business_with_owner()
        self.a = TestDataFactory.create_task(self.business, self.user, title='A')
        self.b = TestDataFactory.create_task(self.business, self.user, title='B')
        self.c = TestDataFactory.create_task(self.business, self.user, title='C')
        self.d = TestDataFactory.create_task(self.business, self.user, title='D', status='done')

    def test_reorder_within_column(self):
        """Moving inside a column shifts its neighbours"""
        task, moved = move_task(self.c, 'todo', 0)
        self.assertTrue(moved)
        self.assertEqual(column(self.business, 'todo'), [('C', 0), ('A', 1), ('B', 2)])

    def test_move_between_columns(self):
        """Both columns are renumbered from zero"""
        move_task(self.a, 'done', 0)
        self.assertEqual(column(self.business, 'todo'), [('B', 0), ('C', 1)])
        self.assertEqual(column(self.business, 'done'), [('A', 0), ('D', 1)])

    def test_position_is_clamped(self):
        """A position past the end appends to the column"""
        task, moved = move_task(self.a, 'done', 99)
        self.assertEqual(task.position, 1)
        self.assertEqual(column(self.business, 'done'), [('D', 0), ('A', 1)])

    def test_same_place_is_noop(self):
        """Moving to the current place changes nothing"""
        task, moved = move_task(self.b, 'todo', 1)
        self.assertFalse(moved)
        self.assertEqual(column(self.business, 'todo'), [('A', 0), ('B', 1), ('C', 2)])

    def test_other_business_column_untouched(self):
        """Columns of another tenant are not renumbered"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        other = TestDataFactory.create_task(other_business, other_user, title='X')
        move_task(self.c, 'todo', 0)
        other.refresh_from_db()
        self.assertEqual(other.position, 0)


class TaskAPITests(TestCase):
    """Test Task API endpoints"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_task_appends_to_column(self):
        """New tasks go to the end of their status column"""
        TestDataFactory.create_task(self.business, self.user, status='review')
        data = {'title': 'File tax return', 'status': 'review', 'priority': 'high', 'category': 'tax'}
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['position'], 1)
        self.assertEqual(response.data['created_by'], self.user.id)

    def test_create_task_defaults(self):
        """Status and priority default to todo and medium"""
        response = self.client.post('/api/v1/tasks/', {'title': 'Call client'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'todo')
        self.assertEqual(response.data['priority'], 'medium')
        self.assertIsNone(response.data['category'])

    def test_create_task_invalid_status(self):
        """Unknown status values return 400"""
        response = self.client.post('/api/v1/tasks/', {'title': 'X', 'status': 'blocked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_task_blank_title(self):
        """A blank title returns 400"""
        response = self.client.post('/api/v1/tasks/', {'title': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assignee_from_other_business_rejected(self):
        """Assignees must belong to the caller's business"""
        stranger = TestDataFactory.create_user()
        response = self.client.post('/api/v1/tasks/', {'title': 'X', 'assignee': stranger.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('assignee', response.data)

    def test_tenant_error_in_japanese(self):
        """Cross-tenant field errors follow Accept-Language"""
        stranger = TestDataFactory.create_user()
        response = self.client.post('/api/v1/tasks/', {'title': 'X', 'assignee': stranger.id}, format='json',
                                    HTTP_ACCEPT_LANGUAGE='ja')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['assignee'], ['このデータはあなたのビジネスに属していません'])

    def test_client_from_other_business_rejected(self):
        """Clients must belong to the caller's business"""
        other_client = TestDataFactory.create_client(TestDataFactory.create_business())
        response = self.client.post('/api/v1/tasks/', {'title': 'X', 'client': other_client.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('client', response.data)

    def test_list_filters(self):
        """Search, status and assignee filters narrow the list"""
        TestDataFactory.create_task(self.business, self.user, title='Quarterly VAT', assignee=self.user)
        TestDataFactory.create_task(self.business, self.user, title='Team meeting', status='done')
        TestDataFactory.create_task(TestDataFactory.create_business(), self.owner, title='Quarterly elsewhere')

        response = self.client.get('/api/v1/tasks/?search=quarterly')
        self.assertEqual([row['title'] for row in response.data], ['Quarterly VAT'])

        response = self.client.get('/api/v1/tasks/?status=done')
        self.assertEqual([row['title'] for row in response.data], ['Team meeting'])

        response = self.client.get(f'/api/v1/tasks/?assignee={self.user.id}')
        self.assertEqual([row['title'] for row in response.data], ['Quarterly VAT'])

    def test_board(self):
        """The board has the four columns in order, each sorted by position"""
        TestDataFactory.create_task(self.business, self.user, title='Second', position=1)
        TestDataFactory.create_task(self.business, self.user, title='First', position=0)
        TestDataFactory.create_task(self.business, self.user, title='Checking', status='review')

        response = self.client.get('/api/v1/tasks/board/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        columns = response.data['columns']
        self.assertEqual([col['status'] for col in columns], ['todo', 'in_progress', 'review', 'done'])
        self.assertEqual([task['title'] for task in columns[0]['tasks']], ['First', 'Second'])
        self.assertEqual([task['title'] for task in columns[2]['tasks']], ['Checking'])
        self.assertEqual(columns[1]['tasks'], [])

    def test_move_endpoint(self):
        """The move endpoint reorders columns"""
        a = TestDataFactory.create_task(self.business, self.user, title='A')
        TestDataFactory.create_task(self.business, self.user, title='B')
        response = self.client.post(f'/api/v1/tasks/{a.id}/move/', {'status': 'in_progress', 'position': 0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_progress')
        self.assertEqual(response.data['position'], 0)
        self.assertEqual(column(self.business, 'todo'), [('B', 0)])

    def test_move_invalid_payload(self):
        """Negative positions and unknown columns return 400"""
        task = TestDataFactory.create_task(self.business, self.user)
        response = self.client.post(f'/api/v1/tasks/{task.id}/move/', {'status': 'todo', 'position': -1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/tasks/{task.id}/move/', {'status': 'later', 'position': 0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_change_through_update(self):
        """Changing status in the edit form appends to the new column"""
        a = TestDataFactory.create_task(self.business, self.user, title='A')
        TestDataFactory.create_task(self.business, self.user, title='B')
        TestDataFactory.create_task(self.business, self.user, title='Z', status='done')
        response = self.client.patch(f'/api/v1/tasks/{a.id}/', {'status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(column(self.business, 'done'), [('Z', 0), ('A', 1)])
        self.assertEqual(column(self.business, 'todo'), [('B', 0)])

    def test_update_task_fields(self):
        """Members can edit task fields"""
        task = TestDataFactory.create_task(self.business, self.user)
        response = self.client.patch(f'/api/v1/tasks/{task.id}/',
                                     {'priority': 'high', 'due_date': '2026-12-31'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['priority'], 'high')
        self.assertEqual(response.data['due_date'], '2026-12-31')

    def test_delete_requires_manager(self):
        """Plain users cannot delete tasks"""
        task = TestDataFactory.create_task(self.business, self.user)
        response = self.client.delete(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_closes_gap(self):
        """Deleting a task renumbers its column"""
        a = TestDataFactory.create_task(self.business, self.user, title='A')
        TestDataFactory.create_task(self.business, self.user, title='B')
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/tasks/{a.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(column(self.business, 'todo'), [('B', 0)])

    def test_other_business_task_not_found(self):
        """Tasks of other tenants are 404"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        task = TestDataFactory.create_task(other_business, other_user)
        self.assertEqual(self.client.get(f'/api/v1/tasks/{task.id}/').status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post(f'/api/v1/tasks/{task.id}/move/', {'status': 'done', 'position': 0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_comments(self):
        """Comments can be added and listed"""
        task = TestDataFactory.create_task(self.business, self.user)
        response = self.client.post(f'/api/v1/tasks/{task.id}/comments/', {'content': ' Done by Friday '},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], 'Done by Friday')
        self.assertEqual(response.data['author'], self.user.id)

        response = self.client.get(f'/api/v1/tasks/{task.id}/comments/')
        self.assertEqual(len(response.data), 1)

        detail = self.client.get(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(detail.data['comment_count'], 1)

    def test_empty_comment_rejected(self):
        """Blank comments return 400"""
        task = TestDataFactory.create_task(self.business, self.user)
        response = self.client.post(f'/api/v1/tasks/{task.id}/comments/', {'content': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
