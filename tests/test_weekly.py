import io
import unittest
from datetime import timedelta

from openpyxl import load_workbook

from docketwise.extensions import db
from docketwise.models import WorkerInvoice
from docketwise.utils.week_utils import get_week_string
from tests.base import ApiTestCase


class WeeklyApiTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user('admin')
        self.supervisor = self.make_user('supervisor')
        self.other_supervisor = self.make_user('supervisor')
        self.builder = self.make_builder()
        self.tower = self.make_location(self.builder, 'Tower A')
        self.wharf = self.make_location(self.builder, 'Wharf')
        self.johnny = self.make_contractor('Johnny', hourly_rate=50, full_name='John Smith',
                                           email='john@example.com')
        self.mick = self.make_contractor('mick', hourly_rate=40)
        self.monday = self.last_monday()
        self.week = get_week_string(self.monday)

        self.make_docket(self.supervisor, self.builder, self.tower, self.monday, [(self.johnny, 6, 2)])
        self.make_docket(self.supervisor, self.builder, self.tower, self.monday + timedelta(days=2),
                         [(self.johnny, 0, 7.5), (self.mick, 4, 0)])
        self.make_docket(self.other_supervisor, self.builder, self.wharf, self.monday + timedelta(days=5),
                         [(self.johnny, 3, 0)])
        # Sunday is not part of the Monday to Saturday grid
        self.make_docket(self.supervisor, self.builder, self.tower, self.monday + timedelta(days=6),
                         [(self.mick, 8, 0)])

    def test_admin_weekly_grid(self):
        resp = self.get(f'/api/weekly?week={self.week}', self.admin)
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data['week_start'], self.monday.isoformat())
        self.assertEqual(data['week_end'], (self.monday + timedelta(days=6)).isoformat())

        rows = data['rows']
        self.assertEqual([(r['nickname'], r['location_label']) for r in rows],
                         [('Johnny', 'Tower A'), ('Johnny', 'Wharf'), ('mick', 'Tower A')])
        tower = rows[0]
        self.assertEqual(tower['mon'], '8.00')
        self.assertEqual(tower['wed'], '7.50')
        self.assertEqual(tower['sat'], '0.00')
        self.assertEqual(tower['tonnage_hours'], '6.00')
        self.assertEqual(tower['day_labour_hours'], '9.50')
        self.assertEqual(tower['total_hours'], '15.50')
        self.assertEqual(tower['total_amount'], '775.00')
        self.assertEqual(tower['invoice_status'], 'UNSUBMITTED')
        self.assertEqual(rows[2]['total_hours'], '4.00')

        self.assertEqual(data['totals'], {'hours': '22.50', 'amount': '1085.00'})
        self.assertEqual(data['available_builders'][0]['company_code'], 'ACME')
        self.assertEqual(data['available_locations'], [])

    def test_supervisor_sees_only_own_dockets(self):
        resp = self.get(f'/api/weekly?week={self.week}', self.supervisor)
        locations = {r['location_label'] for r in resp.get_json()['rows']}
        self.assertEqual(locations, {'Tower A'})

    def test_week_start_param_and_filters(self):
        wednesday = (self.monday + timedelta(days=2)).isoformat()
        resp = self.get(f'/api/weekly?weekStart={wednesday}&location_id={self.wharf.id}'
                        f'&builder_id={self.builder.id}', self.admin)
        data = resp.get_json()
        self.assertEqual(data['week_start'], self.monday.isoformat())
        self.assertEqual([r['location_label'] for r in data['rows']], ['Wharf'])
        self.assertEqual([loc['label'] for loc in data['available_locations']], ['Tower A', 'Wharf'])

    def test_search(self):
        resp = self.get(f'/api/weekly?week={self.week}&q=smith', self.admin)
        self.assertEqual({r['nickname'] for r in resp.get_json()['rows']}, {'Johnny'})

    def test_invoice_status_is_reported(self):
        invoice = WorkerInvoice(contractor_id=self.mick.id, week_start=self.monday,
                                week_end=self.monday + timedelta(days=6), status='PAID')
        db.session.add(invoice)
        db.session.commit()
        resp = self.get(f'/api/weekly?week={self.week}', self.admin)
        statuses = {r['nickname']: r['invoice_status'] for r in resp.get_json()['rows']}
        self.assertEqual(statuses['mick'], 'PAID')

    def test_bad_week(self):
        self.assertEqual(self.get('/api/weekly?week=2025-38', self.admin).status_code, 400)

    def test_worker_forbidden(self):
        worker = self.make_user('worker')
        self.assertEqual(self.get('/api/weekly', worker).status_code, 403)

    def test_csv_export(self):
        resp = self.get(f'/api/weekly/export?week={self.week}&format=csv', self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertIn('text/csv', resp.content_type)
        self.assertIn(f'weekly-timesheet-{self.week}.csv', resp.headers['Content-Disposition'])
        text = resp.get_data(as_text=True)
        self.assertTrue(text.startswith('# Weekly Timesheet Export'))
        self.assertIn('Contractor Name,Nickname,Email', text)
        self.assertIn('John Smith,Johnny,john@example.com', text)

    def test_contractor_name_falls_back_to_first_and_last(self):
        pat = self.make_contractor('Patto', first_name='Pat', last_name='Nguyen')
        self.make_docket(self.supervisor, self.builder, self.wharf, self.monday, [(pat, 2, 0)])
        rows = self.get(f'/api/weekly?week={self.week}', self.admin).get_json()['rows']
        self.assertEqual({r['nickname']: r['contractor_name'] for r in rows}['Patto'], 'Pat Nguyen')
        text = self.get(f'/api/weekly/export?week={self.week}&format=csv', self.admin).get_data(as_text=True)
        self.assertIn('Pat Nguyen,Patto,', text)

    def test_xlsx_export(self):
        resp = self.get(f'/api/weekly/export?week={self.week}&format=xlsx', self.admin)
        self.assertEqual(resp.status_code, 200)
        workbook = load_workbook(io.BytesIO(resp.data))
        sheet = workbook['Weekly Timesheet']
        values = [[cell.value for cell in row] for row in sheet.iter_rows()]
        self.assertTrue(any(row and row[0] == 'Contractor Name' for row in values))

    def test_unknown_export_format(self):
        resp = self.get(f'/api/weekly/export?week={self.week}&format=pdf', self.admin)
        self.assertEqual(resp.status_code, 400)


if __name__ == '__main__':
    unittest.main()
