import unittest
from datetime import date

from docketwise.extensions import db
from docketwise.models import User, Contractor
from tests.base import ApiTestCase


class AdminUsersApiTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user('admin', email='admin@example.com', name='Alice Admin')
        self.supervisor = self.make_user('supervisor', email='sup@example.com', name='Sam Sup')
        self.worker = self.make_user('worker', email='worker@example.com', name='Wendy Worker')

    def test_non_admin_is_forbidden(self):
        self.assertEqual(self.get('/api/admin/users', self.supervisor).status_code, 403)
        self.assertEqual(self.get('/api/admin/stats', self.worker).status_code, 403)

    def test_list_users_paginates_and_filters(self):
        resp = self.get('/api/admin/users?limit=2', self.admin)
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['total'], 3)
        self.assertEqual(len(body['items']), 2)
        self.assertEqual(body['total_pages'], 2)

        resp = self.get('/api/admin/users?role=WORKER', self.admin)
        self.assertEqual([u['email'] for u in resp.get_json()['items']], ['worker@example.com'])

        resp = self.get('/api/admin/users?search=sam', self.admin)
        self.assertEqual([u['email'] for u in resp.get_json()['items']], ['sup@example.com'])

    def test_list_users_rejects_bad_sort(self):
        resp = self.get('/api/admin/users?sort_by=password', self.admin)
        self.assertEqual(resp.status_code, 400)

    def test_get_user(self):
        resp = self.get(f'/api/admin/users/{self.worker.id}', self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['role'], 'WORKER')
        self.assertEqual(self.get('/api/admin/users/9999', self.admin).status_code, 404)

    def test_update_role(self):
        resp = self.patch(f'/api/admin/users/{self.worker.id}/role', self.admin, json={'role': 'supervisor'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['role'], 'SUPERVISOR')
        self.assertTrue(db.session.get(User, self.worker.id).has_role('supervisor'))
        self.assertFalse(db.session.get(User, self.worker.id).has_role('worker'))

    def test_update_role_rejects_unknown_role(self):
        resp = self.patch(f'/api/admin/users/{self.worker.id}/role', self.admin, json={'role': 'OWNER'})
        self.assertEqual(resp.status_code, 400)

    def test_cannot_change_own_role(self):
        resp = self.patch(f'/api/admin/users/{self.admin.id}/role', self.admin, json={'role': 'WORKER'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'Cannot change your own admin role')

    def test_cannot_delete_self(self):
        resp = self.delete(f'/api/admin/users/{self.admin.id}', self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'Cannot delete your own account')

    def test_delete_worker_unlinks_contractor(self):
        contractor = self.make_contractor('Wendy', user=self.worker)
        worker_id = self.worker.id
        resp = self.delete(f'/api/admin/users/{worker_id}', self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(db.session.get(User, worker_id))
        self.assertIsNone(db.session.get(Contractor, contractor.id).user_id)

    def test_delete_supervisor_with_dockets_conflicts(self):
        builder = self.make_builder()
        location = self.make_location(builder)
        contractor = self.make_contractor()
        self.make_docket(self.supervisor, builder, location, date(2025, 1, 6), [(contractor, 8, 0)])
        resp = self.delete(f'/api/admin/users/{self.supervisor.id}', self.admin)
        self.assertEqual(resp.status_code, 409)

    def test_stats(self):
        self.make_user('worker', verified=False)
        resp = self.get('/api/admin/stats', self.admin)
        self.assertEqual(resp.status_code, 200)
        stats = resp.get_json()
        self.assertEqual(stats['total_users'], 4)
        self.assertEqual(stats['admin_count'], 1)
        self.assertEqual(stats['supervisor_count'], 1)
        self.assertEqual(stats['worker_count'], 2)
        self.assertEqual(stats['recent_signups'], 4)
        self.assertEqual(stats['pending_verifications'], 1)


class CliCommandsTestCase(ApiTestCase):

    def test_create_admin_command(self):
        runner = self.app.test_cli_runner()
        result = runner.invoke(args=['create-admin', 'Boss@Example.com', 'pass1234'])
        self.assertEqual(result.exit_code, 0, result.output)
        user = User.query.filter_by(email='boss@example.com').first()
        self.assertTrue(user.has_role('admin'))
        self.assertIsNotNone(user.email_verified)

    def test_seed_roles_is_idempotent(self):
        result = self.app.test_cli_runner().invoke(args=['seed-roles'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('0 created', result.output)


if __name__ == '__main__':
    unittest.main()
