import unittest
from datetime import timedelta

from docketwise.extensions import db
from docketwise.models import Contractor, WorkerInvoice
from docketwise.utils.timezone_utils import local_today
from docketwise.utils.week_utils import get_week_string, start_of_iso_week
from tests.base import ApiTestCase


class WorkerWeeksApiTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.supervisor = self.make_user('supervisor')
        self.worker = self.make_user('worker', email='john@example.com')
        self.contractor = self.make_contractor('Johnny', hourly_rate=50, user=self.worker)
        self.builder = self.make_builder()
        self.location = self.make_location(self.builder)
        self.monday = self.last_monday()
        self.older_monday = self.monday - timedelta(days=14)

        self.make_docket(self.supervisor, self.builder, self.location, self.monday, [(self.contractor, 6, 2)])
        self.make_docket(self.supervisor, self.builder, self.location, self.monday + timedelta(days=1),
                         [(self.contractor, 0, 4)])
        self.make_docket(self.supervisor, self.builder, self.location, self.older_monday,
                         [(self.contractor, 5, 0)])

    def test_weeks_newest_first(self):
        resp = self.get('/api/me/weeks', self.worker)
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['total'], 2)
        self.assertEqual(body['limit'], 12)
        weeks = body['items']
        self.assertEqual([w['week'] for w in weeks],
                         [get_week_string(self.monday), get_week_string(self.older_monday)])
        self.assertEqual(weeks[0]['total_hours'], '12.00')
        self.assertEqual(weeks[0]['total_amount'], '600.00')
        self.assertEqual(weeks[0]['status'], 'DRAFT')
        self.assertTrue(weeks[0]['can_submit'])

    def test_weeks_use_invoice_snapshot(self):
        db.session.add(WorkerInvoice(
            contractor_id=self.contractor.id, week_start=self.monday, week_end=self.monday + timedelta(days=6),
            total_hours=12, hourly_rate=45, total_amount=540, status='SUBMITTED'))
        db.session.commit()
        week = self.get('/api/me/weeks', self.worker).get_json()['items'][0]
        self.assertEqual(week['status'], 'SUBMITTED')
        self.assertEqual(week['total_amount'], '540.00')
        self.assertFalse(week['can_submit'])
        self.assertIsNotNone(week['invoice_id'])

    def test_limit_is_capped(self):
        resp = self.get('/api/me/weeks?limit=500', self.worker)
        self.assertEqual(resp.get_json()['limit'], 50)

    def test_week_details(self):
        resp = self.get(f'/api/me/weeks/{get_week_string(self.monday)}', self.worker)
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(len(body['entries']), 2)
        self.assertEqual(body['entries'][0]['total_hours'], '8.00')
        self.assertEqual(body['entries'][0]['company_code'], 'ACME')
        self.assertEqual(body['hourly_rate'], '50.00')
        self.assertEqual(body['total_amount'], '600.00')

    def test_week_details_errors(self):
        self.assertEqual(self.get('/api/me/weeks/2025-38', self.worker).status_code, 400)
        empty_week = get_week_string(self.monday - timedelta(days=7))
        self.assertEqual(self.get(f'/api/me/weeks/{empty_week}', self.worker).status_code, 404)
        future_week = get_week_string(start_of_iso_week(local_today()) + timedelta(days=14))
        self.assertEqual(self.get(f'/api/me/weeks/{future_week}', self.worker).status_code, 403)

    def test_non_worker_forbidden(self):
        self.assertEqual(self.get('/api/me/weeks', self.supervisor).status_code, 403)

    def test_worker_without_profile(self):
        stranger = self.make_user('worker')
        resp = self.get('/api/me/weeks', stranger)
        self.assertEqual(resp.status_code, 404)
        self.assertIn('No contractor profile', resp.get_json()['error'])

    def test_profile_is_linked_by_email(self):
        worker = self.make_user('worker', email='mick@example.com')
        contractor = self.make_contractor('Mick', email='MICK@example.com')
        resp = self.get('/api/me/weeks', worker)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(db.session.get(Contractor, contractor.id).user_id, worker.id)


if __name__ == '__main__':
    unittest.main()
