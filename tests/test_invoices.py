import unittest
from datetime import timedelta
from unittest.mock import patch

from docketwise.extensions import db, mail
from docketwise.models import WorkerInvoice
from docketwise.services.file_storage import FileStorage
from docketwise.services.service_error import ServiceError
from docketwise.utils.week_utils import get_week_string
from tests.base import ApiTestCase


class InvoiceApiTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user('admin', name='Alice Admin')
        self.supervisor = self.make_user('supervisor')
        self.worker = self.make_user('worker')
        self.contractor = self.make_contractor('Johnny', hourly_rate=50, full_name='John Smith',
                                               email='john@example.com', user=self.worker)
        self.builder = self.make_builder()
        self.location = self.make_location(self.builder)
        self.monday = self.last_monday()
        self.make_docket(self.supervisor, self.builder, self.location, self.monday, [(self.contractor, 6, 2)])
        self.make_docket(self.supervisor, self.builder, self.location, self.monday + timedelta(days=3),
                         [(self.contractor, 0, 4.5)])

    def submit(self, day=None):
        return self.post('/api/invoices', self.worker, json={'week_start': (day or self.monday).isoformat()})

    def test_submit_invoice_emails_director_with_pdf(self):
        with mail.record_messages() as outbox:
            resp = self.submit(self.monday + timedelta(days=2))
        self.assertEqual(resp.status_code, 201)
        invoice = resp.get_json()['invoice']
        self.assertEqual(invoice['status'], 'SUBMITTED')
        self.assertEqual(invoice['week_start'], self.monday.isoformat())
        self.assertEqual(invoice['total_hours'], 12.5)
        self.assertEqual(invoice['hourly_rate'], 50.0)
        self.assertEqual(invoice['total_amount'], 625.0)
        self.assertTrue(invoice['pdf_url'].startswith('/uploads/invoices/'))
        self.assertTrue(FileStorage.pdf_exists(invoice['pdf_url']))

        self.assertEqual(len(outbox), 1)
        message = outbox[0]
        self.assertEqual(message.recipients, [self.app.config['INVOICE_DIRECTOR_EMAIL']])
        self.assertEqual(message.reply_to, 'john@example.com')
        self.assertIn('John Smith', message.subject)
        self.assertEqual(len(message.attachments), 1)
        self.assertEqual(message.attachments[0].content_type, 'application/pdf')
        self.assertTrue(message.attachments[0].data.startswith(b'%PDF'))

    def test_duplicate_week_rejected(self):
        self.assertEqual(self.submit().status_code, 201)
        resp = self.submit()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'Invoice already exists for this week')

    def test_empty_week_rejected(self):
        resp = self.submit(self.monday - timedelta(days=7))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'No timesheet data found for this week')

    def test_only_workers_submit(self):
        resp = self.post('/api/invoices', self.admin, json={'week_start': self.monday.isoformat()})
        self.assertEqual(resp.status_code, 403)

    def test_pdf_failure_still_sends_email(self):
        with patch('docketwise.services.invoice_service.InvoicePdfService.generate_invoice_pdf',
                   side_effect=RuntimeError('boom')):
            with mail.record_messages() as outbox:
                resp = self.submit()
        self.assertEqual(resp.status_code, 201)
        self.assertIsNone(resp.get_json()['invoice']['pdf_url'])
        self.assertEqual(len(outbox), 1)
        self.assertEqual(outbox[0].attachments, [])
        self.assertIn('PDF attachment could not be generated', outbox[0].body)

    def test_email_failure_reverts_to_draft(self):
        with patch('docketwise.services.invoice_service.EmailService.send_invoice_email',
                   side_effect=ServiceError('smtp down', 500)):
            resp = self.submit()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json()['error'], 'Failed to send invoice email')
        self.assertEqual(WorkerInvoice.query.one().status, 'DRAFT')

    def test_admin_lists_and_filters(self):
        self.submit()
        resp = self.get(f'/api/invoices?week={get_week_string(self.monday)}', self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['total'], 1)
        self.assertEqual(resp.get_json()['items'][0]['contractor_nickname'], 'Johnny')

        resp = self.get('/api/invoices?q=nobody', self.admin)
        self.assertEqual(resp.get_json()['total'], 0)
        self.assertEqual(self.get('/api/invoices?week=bad', self.admin).status_code, 400)
        self.assertEqual(self.get('/api/invoices', self.worker).status_code, 403)

    def test_admin_adjusts_invoice_with_audit_note(self):
        invoice_id = self.submit().get_json()['invoice']['id']
        resp = self.patch(f'/api/invoices/{invoice_id}', self.admin,
                          json={'total_hours': 12, 'total_amount': 600, 'audit_note': 'Rounded down'})
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['total_amount'], 600.0)
        self.assertEqual(body['hourly_rate'], 50.0)
        self.assertIn('Alice Admin: Rounded down', body['audit_notes'])

        missing_note = self.patch(f'/api/invoices/{invoice_id}', self.admin, json={'total_hours': 10})
        self.assertEqual(missing_note.status_code, 400)

    def test_status_change(self):
        invoice_id = self.submit().get_json()['invoice']['id']
        resp = self.patch(f'/api/invoices/{invoice_id}/status', self.admin,
                          json={'status': 'PAID', 'audit_note': 'Paid by EFT'})
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['status'], 'PAID')
        self.assertIsNotNone(body['paid_at'])
        self.assertIn('Status changed to PAID. Paid by EFT', body['audit_notes'])

        bad = self.patch(f'/api/invoices/{invoice_id}/status', self.admin, json={'status': 'LOST'})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(self.patch('/api/invoices/999/status', self.admin,
                                    json={'status': 'PAID'}).status_code, 404)

    def test_export_requires_week(self):
        self.assertEqual(self.get('/api/invoices/export', self.admin).status_code, 400)

    def test_export_csv(self):
        self.submit()
        week = get_week_string(self.monday)
        resp = self.get(f'/api/invoices/export?week={week}', self.admin)
        self.assertEqual(resp.status_code, 200)
        lines = resp.get_data(as_text=True).splitlines()
        self.assertEqual(lines[0], 'Nickname,Full Name,Week,Total Hours,Hourly Rate,Total Amount,Status,Submitted At')
        self.assertTrue(lines[1].startswith('Johnny,John Smith,'))
        self.assertIn('12.50,50.00,625.00,SUBMITTED', lines[1])

    def test_pdf_download_permissions(self):
        invoice_id = self.submit().get_json()['invoice']['id']
        resp = self.get(f'/api/invoices/{invoice_id}/pdf', self.worker)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.mimetype, 'application/pdf')
        self.assertTrue(resp.data.startswith(b'%PDF'))
        resp.close()

        resp = self.get(f'/api/invoices/{invoice_id}/pdf', self.admin)
        self.assertEqual(resp.status_code, 200)
        resp.close()

        stranger = self.make_user('worker')
        self.make_contractor('Mick', user=stranger)
        self.assertEqual(self.get(f'/api/invoices/{invoice_id}/pdf', stranger).status_code, 403)

    def test_pdf_missing_on_disk(self):
        invoice_id = self.submit().get_json()['invoice']['id']
        invoice = db.session.get(WorkerInvoice, invoice_id)
        FileStorage.delete_pdf(invoice.pdf_url)
        self.assertEqual(self.get(f'/api/invoices/{invoice_id}/pdf', self.admin).status_code, 404)


if __name__ == '__main__':
    unittest.main()
