import unittest
from datetime import timedelta

from docketwise.extensions import db
from docketwise.models import Docket, DocketEntry
from docketwise.utils.timezone_utils import local_today
from tests.base import ApiTestCase


class DocketApiTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user('admin')
        self.supervisor = self.make_user('supervisor', name='Sam Sup')
        self.other_supervisor = self.make_user('supervisor')
        self.worker = self.make_user('worker')
        self.builder = self.make_builder()
        self.location = self.make_location(self.builder)
        self.johnny = self.make_contractor('Johnny', hourly_rate=50)
        self.mick = self.make_contractor('Mick', hourly_rate=40)
        self.day = self.last_monday()

    def payload(self, **overrides):
        data = {
            'date': self.day.isoformat(),
            'builder_id': self.builder.id,
            'location_id': self.location.id,
            'schedule_no': 'S-100',
            'site_manager_name': 'Pat',
            'entries': [
                {'contractor_id': self.johnny.id, 'tonnage_hours': 6, 'day_labour_hours': 2},
                {'contractor_id': self.mick.id, 'day_labour_hours': 7.5},
            ],
            'media': [{'url': 'https://cdn.example.com/photo.jpg', 'caption': 'Slab'}],
        }
        data.update(overrides)
        return data

    def test_create_docket(self):
        resp = self.post('/api/dockets', self.supervisor, json=self.payload())
        self.assertEqual(resp.status_code, 201)
        body = resp.get_json()
        self.assertEqual(body['supervisor_id'], self.supervisor.id)
        self.assertEqual(body['totals'], {
            'tonnage_hours': 6.0, 'day_labour_hours': 9.5, 'total_hours': 15.5, 'entry_count': 2})
        self.assertEqual(body['reference'],
                         f"ACME-{self.day.strftime('%d%m%Y')}-{str(body['id']).zfill(4)}")
        self.assertEqual(body['media'][0]['type'], 'PHOTO')

    def test_worker_cannot_create(self):
        self.assertEqual(self.post('/api/dockets', self.worker, json=self.payload()).status_code, 403)

    def test_future_date_rejected(self):
        future = (local_today() + timedelta(days=1)).isoformat()
        resp = self.post('/api/dockets', self.supervisor, json=self.payload(date=future))
        self.assertEqual(resp.status_code, 400)
        self.assertIn('date', resp.get_json()['errors'])

    def test_hours_rules(self):
        bad_increment = self.payload(entries=[{'contractor_id': self.johnny.id, 'tonnage_hours': 2.25}])
        self.assertEqual(self.post('/api/dockets', self.supervisor, json=bad_increment).status_code, 400)

        too_many = self.payload(entries=[{'contractor_id': self.johnny.id, 'day_labour_hours': 24.5}])
        self.assertEqual(self.post('/api/dockets', self.supervisor, json=too_many).status_code, 400)

        no_hours = self.payload(entries=[{'contractor_id': self.johnny.id}])
        resp = self.post('/api/dockets', self.supervisor, json=no_hours)
        self.assertEqual(resp.status_code, 400)
        self.assertIn('tonnage_hours', resp.get_json()['errors']['entries']['0'])

        no_entries = self.payload(entries=[])
        self.assertEqual(self.post('/api/dockets', self.supervisor, json=no_entries).status_code, 400)

    def test_location_must_belong_to_builder(self):
        other = self.make_builder('Bravo', 'BRAVO')
        resp = self.post('/api/dockets', self.supervisor, json=self.payload(builder_id=other.id))
        self.assertEqual(resp.status_code, 422)

    def test_inactive_contractor_rejected(self):
        gone = self.make_contractor('Gone', active=False)
        resp = self.post('/api/dockets', self.supervisor,
                         json=self.payload(entries=[{'contractor_id': gone.id, 'tonnage_hours': 8}]))
        self.assertEqual(resp.status_code, 422)

    def test_supervisor_sees_only_own_dockets(self):
        mine = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)])
        theirs = self.make_docket(self.other_supervisor, self.builder, self.location, self.day, [(self.mick, 8, 0)])

        resp = self.get('/api/dockets', self.supervisor)
        self.assertEqual([d['id'] for d in resp.get_json()['items']], [mine.id])
        self.assertEqual(self.get(f'/api/dockets/{theirs.id}', self.supervisor).status_code, 403)

        resp = self.get('/api/dockets', self.admin)
        self.assertEqual(resp.get_json()['total'], 2)

    def test_list_filters_and_search(self):
        older = self.day - timedelta(days=7)
        self.make_docket(self.supervisor, self.builder, self.location, older, [(self.johnny, 8, 0)],
                         schedule_no='OLD-1')
        recent = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)],
                                  schedule_no='NEW-1')
        resp = self.get(f'/api/dockets?start_date={self.day.isoformat()}', self.admin)
        self.assertEqual([d['id'] for d in resp.get_json()['items']], [recent.id])
        resp = self.get('/api/dockets?search=old', self.admin)
        self.assertEqual([d['schedule_no'] for d in resp.get_json()['items']], ['OLD-1'])
        resp = self.get('/api/dockets?sort_by=date&sort_order=asc', self.admin)
        self.assertEqual([d['schedule_no'] for d in resp.get_json()['items']], ['OLD-1', 'NEW-1'])
        self.assertEqual(self.get('/api/dockets?start_date=yesterday', self.admin).status_code, 400)

    def test_update_replaces_entries(self):
        docket = self.make_docket(self.supervisor, self.builder, self.location, self.day,
                                  [(self.johnny, 8, 0), (self.mick, 4, 0)])
        resp = self.patch(f'/api/dockets/{docket.id}', self.supervisor, json={
            'description': 'Level 3 slab',
            'entries': [{'contractor_id': self.mick.id, 'day_labour_hours': 5}],
        })
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['description'], 'Level 3 slab')
        self.assertEqual(len(body['entries']), 1)
        self.assertEqual(body['totals']['total_hours'], 5.0)
        self.assertEqual(DocketEntry.query.count(), 1)

    def test_update_without_media_keeps_media(self):
        created = self.post('/api/dockets', self.supervisor, json=self.payload()).get_json()
        resp = self.patch(f"/api/dockets/{created['id']}", self.supervisor, json={'schedule_no': 'S-200'})
        self.assertEqual(len(resp.get_json()['media']), 1)

    def test_update_rejects_incomplete_entry(self):
        docket = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)])
        resp = self.patch(f'/api/dockets/{docket.id}', self.supervisor, json={'entries': [{'tonnage_hours': 4}]})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('contractor_id', resp.get_json()['errors']['entries']['0'])
        self.assertEqual(DocketEntry.query.one().tonnage_hours, 8)

    def test_update_rejects_media_without_url(self):
        docket = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)])
        resp = self.patch(f'/api/dockets/{docket.id}', self.supervisor, json={'media': [{'caption': 'x'}]})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('url', resp.get_json()['errors']['media']['0'])

    def test_other_supervisor_cannot_update_or_delete(self):
        docket = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)])
        self.assertEqual(
            self.patch(f'/api/dockets/{docket.id}', self.other_supervisor, json={'description': 'x'}).status_code,
            403)
        self.assertEqual(self.delete(f'/api/dockets/{docket.id}', self.other_supervisor).status_code, 403)

    def test_delete_cascades(self):
        docket = self.make_docket(self.supervisor, self.builder, self.location, self.day, [(self.johnny, 8, 0)])
        docket_id = docket.id
        resp = self.delete(f'/api/dockets/{docket_id}', self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(db.session.get(Docket, docket_id))
        self.assertEqual(DocketEntry.query.count(), 0)
        self.assertEqual(self.get(f'/api/dockets/{docket_id}', self.admin).status_code, 404)


if __name__ == '__main__':
    unittest.main()
