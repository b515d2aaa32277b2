"""
Test suite for Wiki module
Tests: page CRUD, versions, restore, hierarchy, visibility and search
"""
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog, Roles
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.wiki.models import WikiPage, WikiPageVersion


class WikiPageModelTests(TestCase):
    """Test hierarchy helpers"""

    def setUp(self):
        self.business, self.user = TestDataFactory.create_business_with_owner()
        self.root = TestDataFactory.create_wiki_page(self.business, self.user, title='Handbook')
        self.child = TestDataFactory.create_wiki_page(self.business, self.user, title='Onboarding', parent=self.root)
        self.grandchild = TestDataFactory.create_wiki_page(self.business, self.user, title='Laptop', parent=self.child)

    def test_slug_unique_per_business(self):
        """Duplicate titles get suffixed slugs"""
        duplicate = TestDataFactory.create_wiki_page(self.business, self.user, title='Handbook')
        self.assertEqual(self.root.slug, 'handbook')
        self.assertEqual(duplicate.slug, 'handbook-2')

    def test_ancestors(self):
        """Ancestors are returned root first"""
        self.assertEqual(self.grandchild.ancestors(), [self.root, self.child])
        self.assertEqual(self.root.ancestors(), [])

    def test_cycle_detection(self):
        """A page cannot become its own descendant"""
        self.assertTrue(self.root.would_create_cycle(self.grandchild))
        self.assertTrue(self.root.would_create_cycle(self.root))
        self.assertFalse(self.grandchild.would_create_cycle(self.root))


class WikiPageAPITests(TestCase):
    """Test wiki page endpoints"""

    def setUp(self):
        self.business, self.owner = TestDataFactory.create_business_with_owner()
        self.user = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.colleague = TestDataFactory.create_user(business=self.business, role=Roles.USER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_page(self):
        """Pages start at version 1 with cleaned tags"""
        data = {'title': 'Expense Policy', 'content': '<p>Keep receipts</p>', 'tags': ['policy', ' policy ', '']}
        response = self.client.post('/api/v1/wiki/pages/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'expense-policy')
        self.assertEqual(response.data['version'], 1)
        self.assertEqual(response.data['tags'], ['policy'])
        self.assertEqual(response.data['created_by'], self.user.id)

    def test_detail_with_breadcrumbs(self):
        """Detail includes the ancestor chain and children"""
        root = TestDataFactory.create_wiki_page(self.business, self.owner, title='Handbook')
        child = TestDataFactory.create_wiki_page(self.business, self.owner, title='Benefits', parent=root)
        TestDataFactory.create_wiki_page(self.business, self.owner, title='Health', parent=child)

        response = self.client.get(f'/api/v1/wiki/pages/{child.slug}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([crumb['slug'] for crumb in response.data['breadcrumbs']], ['handbook'])
        self.assertEqual([page['slug'] for page in response.data['children']], ['health'])

    def test_update_content_creates_version(self):
        """Changing content snapshots the old state and bumps the version"""
        page = TestDataFactory.create_wiki_page(self.business, self.user, title='FAQ', content='<p>v1</p>')
        response = self.client.patch(f'/api/v1/wiki/pages/{page.slug}/', {'content': '<p>v2</p>'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['version'], 2)
        snapshot = WikiPageVersion.objects.get(page=page)
        self.assertEqual(snapshot.version, 1)
        self.assertEqual(snapshot.content, '<p>v1</p>')

    def test_update_tags_keeps_version(self):
        """Tag-only changes do not create a version"""
        page = TestDataFactory.create_wiki_page(self.business, self.user, title='FAQ')
        response = self.client.patch(f'/api/v1/wiki/pages/{page.slug}/', {'tags': ['help']}, format='json')
        self.assertEqual(response.data['version'], 1)
        self.assertFalse(WikiPageVersion.objects.filter(page=page).exists())

    def test_update_parent_cycle_rejected(self):
        """Moving a page under its descendant returns 400"""
        root = TestDataFactory.create_wiki_page(self.business, self.user, title='Root')
        child = TestDataFactory.create_wiki_page(self.business, self.user, title='Child', parent=root)
        response = self.client.patch(f'/api/v1/wiki/pages/{root.slug}/', {'parent': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent', response.data)

    def test_parent_from_other_business_rejected(self):
        """Parents must be in the same business"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        foreign = TestDataFactory.create_wiki_page(other_business, other_user, title='Foreign')
        response = self.client.post('/api/v1/wiki/pages/', {'title': 'Mine', 'parent': foreign.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_versions_and_restore(self):
        """Restoring an old version is itself a new version"""
        page = TestDataFactory.create_wiki_page(self.business, self.user, title='Guide', content='first')
        self.client.patch(f'/api/v1/wiki/pages/{page.slug}/', {'content': 'second'}, format='json')
        self.client.patch(f'/api/v1/wiki/pages/{page.slug}/', {'content': 'third'}, format='json')

        response = self.client.get(f'/api/v1/wiki/pages/{page.slug}/versions/')
        self.assertEqual(response.data['current_version'], 3)
        self.assertEqual([v['version'] for v in response.data['versions']], [2, 1])

        response = self.client.post(f'/api/v1/wiki/pages/{page.slug}/versions/1/restore/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['version'], 4)
        self.assertEqual(response.data['content'], 'first')
        self.assertTrue(WikiPageVersion.objects.filter(page=page, version=3, content='third').exists())
        self.assertTrue(AuditLog.objects.filter(action='wiki_restore').exists())

    def test_restore_unknown_version(self):
        """Unknown versions return 404"""
        page = TestDataFactory.create_wiki_page(self.business, self.user, title='Guide')
        response = self.client.post(f'/api/v1/wiki/pages/{page.slug}/versions/7/restore/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unpublished_visibility(self):
        """Drafts are visible to their author and managers only"""
        draft = TestDataFactory.create_wiki_page(self.business, self.colleague, title='Draft', is_published=False)
        self.assertEqual(self.client.get(f'/api/v1/wiki/pages/{draft.slug}/').status_code,
                         status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get('/api/v1/wiki/pages/').data, [])

        self.client.authenticate_user(self.colleague)
        self.assertEqual(self.client.get(f'/api/v1/wiki/pages/{draft.slug}/').status_code, status.HTTP_200_OK)

        self.client.authenticate_user(self.owner)
        self.assertEqual(self.client.get(f'/api/v1/wiki/pages/{draft.slug}/').status_code, status.HTTP_200_OK)

    def test_delete_requires_manager_and_reparents(self):
        """Managers delete pages; children move up a level"""
        root = TestDataFactory.create_wiki_page(self.business, self.user, title='Root')
        middle = TestDataFactory.create_wiki_page(self.business, self.user, title='Middle', parent=root)
        leaf = TestDataFactory.create_wiki_page(self.business, self.user, title='Leaf', parent=middle)

        response = self.client.delete(f'/api/v1/wiki/pages/{middle.slug}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/wiki/pages/{middle.slug}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        leaf.refresh_from_db()
        self.assertEqual(leaf.parent, root)

    def test_tree(self):
        """The tree nests pages by parent"""
        root = TestDataFactory.create_wiki_page(self.business, self.user, title='Handbook')
        TestDataFactory.create_wiki_page(self.business, self.user, title='Benefits', parent=root)
        TestDataFactory.create_wiki_page(self.business, self.user, title='About')

        response = self.client.get('/api/v1/wiki/tree/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([node['title'] for node in response.data], ['About', 'Handbook'])
        self.assertEqual([node['title'] for node in response.data[1]['children']], ['Benefits'])

    def test_list_by_parent(self):
        """The list can be limited to root pages or a parent's children"""
        root = TestDataFactory.create_wiki_page(self.business, self.user, title='Handbook')
        TestDataFactory.create_wiki_page(self.business, self.user, title='Benefits', parent=root)
        response = self.client.get('/api/v1/wiki/pages/?parent=root')
        self.assertEqual([row['title'] for row in response.data], ['Handbook'])
        response = self.client.get(f'/api/v1/wiki/pages/?parent={root.id}')
        self.assertEqual([row['title'] for row in response.data], ['Benefits'])

    def test_search(self):
        """Search matches title, content and tags case-insensitively"""
        TestDataFactory.create_wiki_page(self.business, self.user, title='VPN Setup')
        TestDataFactory.create_wiki_page(self.business, self.user, title='Remote work', content='<p>Use the vpn</p>')
        TestDataFactory.create_wiki_page(self.business, self.user, title='Network', tags=['VPN'])
        TestDataFactory.create_wiki_page(self.business, self.user, title='Lunch')
        other_business, other_user = TestDataFactory.create_business_with_owner()
        TestDataFactory.create_wiki_page(other_business, other_user, title='VPN elsewhere')

        response = self.client.get('/api/v1/wiki/search/?q=vpn')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['title'] for row in response.data], ['Network', 'Remote work', 'VPN Setup'])

    def test_empty_search(self):
        """An empty query returns an empty list"""
        TestDataFactory.create_wiki_page(self.business, self.user, title='Anything')
        response = self.client.get('/api/v1/wiki/search/?q=')
        self.assertEqual(response.data, [])

    def test_other_business_page_not_found(self):
        """Pages of other tenants are 404 even with the same slug"""
        other_business, other_user = TestDataFactory.create_business_with_owner()
        TestDataFactory.create_wiki_page(other_business, other_user, title='Secret')
        response = self.client.get('/api/v1/wiki/pages/secret/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(WikiPage.objects.filter(slug='secret').count(), 1)
