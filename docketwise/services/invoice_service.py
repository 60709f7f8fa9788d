import logging
from datetime import datetime, timedelta
from sqlalchemy import or_
from sqlalchemy.orm import joinedload
from docketwise.extensions import db
from docketwise.models.contractor import Contractor
from docketwise.models.docket import Docket, DocketEntry
from docketwise.models.role import ADMIN
from docketwise.models.worker_invoice import WorkerInvoice, DRAFT, SUBMITTED, PAID
from docketwise.services.email_service import EmailService
from docketwise.services.file_storage import FileStorage
from docketwise.services.invoice_pdf import InvoicePdfService
from docketwise.services.service_error import ServiceError, NotFoundError, ForbiddenError
from docketwise.services.worker_service import WorkerService
from docketwise.utils.week_utils import (
    start_of_iso_week, end_of_iso_week, parse_week_string, get_week_label, format_display_date,
)

INVOICE_CREATED = "Invoice created and submitted successfully"
INVOICE_ALREADY_EXISTS = "Invoice already exists for this week"
NO_TIMESHEET_DATA = "No timesheet data found for this week"
INVOICE_NOT_FOUND = "Invoice not found"
EMAIL_SEND_FAILED = "Failed to send invoice email"
PDF_NOT_FOUND = "Invoice PDF not found"

EXPORT_HEADERS = ['Nickname', 'Full Name', 'Week', 'Total Hours', 'Hourly Rate', 'Total Amount',
                  'Status', 'Submitted At']


class InvoiceService:
    @staticmethod
    def _week_entries(contractor_id, monday, sunday):
        return DocketEntry.query.join(Docket).filter(
            DocketEntry.contractor_id == contractor_id,
            Docket.date >= monday,
            Docket.date <= sunday,
        ).options(
            joinedload(DocketEntry.docket).joinedload(Docket.builder),
            joinedload(DocketEntry.docket).joinedload(Docket.location),
        ).order_by(Docket.date.asc()).all()

    @staticmethod
    def build_invoice_data(invoice, contractor, entries):
        """Plain dict consumed by the PDF renderer and the email templates."""
        return {
            'invoice_id': invoice.id,
            'contractor_name': contractor.display_name,
            'contractor_email': contractor.email,
            'week_start': invoice.week_start.isoformat(),
            'week_end': invoice.week_end.isoformat(),
            'week_label': f"{format_display_date(invoice.week_start)} - {format_display_date(invoice.week_end)}",
            'hourly_rate': float(invoice.hourly_rate),
            'total_hours': float(invoice.total_hours),
            'total_amount': float(invoice.total_amount),
            'submitted_at': format_display_date(invoice.submitted_at),
            'entries': [
                {
                    'date': format_display_date(e.docket.date),
                    'builder_name': e.docket.builder.name,
                    'company_code': e.docket.builder.company_code,
                    'location_label': e.docket.location.label,
                    'tonnage_hours': float(e.tonnage_hours or 0),
                    'day_labour_hours': float(e.day_labour_hours or 0),
                    'total_hours': e.total_hours,
                }
                for e in entries
            ],
        }

    @staticmethod
    def create_invoice(user, week_start):
        """
        Submit the worker's invoice for the week containing ``week_start``.

        The invoice is stored as SUBMITTED, rendered to PDF and emailed to the director.
        A PDF failure is logged and the email goes out without an attachment. An email
        failure moves the invoice back to DRAFT.

        Returns:
            WorkerInvoice
        """
        contractor = WorkerService.resolve_contractor(user)
        monday = start_of_iso_week(week_start)
        sunday = end_of_iso_week(monday)

        if WorkerInvoice.query.filter_by(contractor_id=contractor.id, week_start=monday).first():
            raise ServiceError(INVOICE_ALREADY_EXISTS)
        entries = InvoiceService._week_entries(contractor.id, monday, sunday)
        if not entries:
            raise ServiceError(NO_TIMESHEET_DATA)

        total_hours = sum(e.total_hours for e in entries)
        hourly_rate = float(contractor.hourly_rate or 0)
        try:
            invoice = WorkerInvoice(
                contractor_id=contractor.id,
                week_start=monday,
                week_end=sunday,
                total_hours=total_hours,
                hourly_rate=hourly_rate,
                total_amount=round(total_hours * hourly_rate, 2),
                status=SUBMITTED,
                submitted_at=datetime.utcnow(),
            )
            db.session.add(invoice)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating invoice: {e}", exc_info=True)
            raise ServiceError("Could not create invoice. Please try again later.", 500)

        invoice_data = InvoiceService.build_invoice_data(invoice, contractor, entries)

        pdf_bytes = None
        try:
            pdf_bytes = InvoicePdfService.generate_invoice_pdf(invoice_data)
            filename = FileStorage.generate_pdf_filename(invoice.id, invoice_data['contractor_name'])
            invoice.pdf_url = FileStorage.save_pdf(pdf_bytes, filename)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"PDF generation failed for invoice {invoice.id}: {e}", exc_info=True)

        try:
            EmailService.send_invoice_email(
                invoice_data, pdf_bytes, reply_to=contractor.email or None)
        except ServiceError:
            invoice.status = DRAFT
            db.session.commit()
            logging.warning(f"Invoice {invoice.id} moved back to DRAFT after email failure")
            raise ServiceError(EMAIL_SEND_FAILED, 500)

        logging.info(f"Invoice {invoice.id} submitted by {contractor.nickname} for week {monday}")
        return invoice

    @staticmethod
    def _filtered_query(week=None, q=None):
        query = WorkerInvoice.query.join(Contractor, WorkerInvoice.contractor_id == Contractor.id)
        if week:
            monday, sunday = parse_week_string(week)
            query = query.filter(WorkerInvoice.week_start >= monday, WorkerInvoice.week_start <= sunday)
        if q:
            term = f"%{q.strip()}%"
            query = query.filter(or_(Contractor.nickname.ilike(term), Contractor.full_name.ilike(term)))
        return query.order_by(WorkerInvoice.week_start.desc(), Contractor.nickname.asc())

    @staticmethod
    def get_invoices(week=None, q=None, page=1, limit=20):
        query = InvoiceService._filtered_query(week, q)
        try:
            total = query.count()
            invoices = query.options(joinedload(WorkerInvoice.contractor)) \
                .offset((page - 1) * limit).limit(limit).all()
            return invoices, total
        except Exception as e:
            logging.error(f"Error fetching invoices: {e}", exc_info=True)
            raise ServiceError("Could not fetch invoices. Please try again later.", 500)

    @staticmethod
    def get_invoice(invoice_id):
        invoice = db.session.get(WorkerInvoice, invoice_id)
        if not invoice:
            raise NotFoundError(INVOICE_NOT_FOUND)
        return invoice

    @staticmethod
    def update_invoice(user, invoice_id, data):
        invoice = InvoiceService.get_invoice(invoice_id)
        try:
            for key in ('total_hours', 'hourly_rate', 'total_amount'):
                if data.get(key) is not None:
                    setattr(invoice, key, data[key])
            invoice.append_audit_note(user.display_name, data['audit_note'])
            db.session.commit()
            return invoice
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating invoice: {e}", exc_info=True)
            raise ServiceError("Could not update invoice. Please try again later.", 500)

    @staticmethod
    def update_invoice_status(user, invoice_id, status, audit_note=None):
        invoice = InvoiceService.get_invoice(invoice_id)
        try:
            invoice.status = status
            if status == PAID:
                invoice.paid_at = datetime.utcnow()
            note = f"Status changed to {status}"
            if audit_note:
                note = f"{note}. {audit_note}"
            invoice.append_audit_note(user.display_name, note)
            db.session.commit()
            logging.info(f"Invoice {invoice.id} status changed to {status} by {user.email}")
            return invoice
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating invoice status: {e}", exc_info=True)
            raise ServiceError("Could not update invoice status. Please try again later.", 500)

    @staticmethod
    def export_rows(week):
        invoices = InvoiceService._filtered_query(week).options(joinedload(WorkerInvoice.contractor)).all()
        return [
            [
                inv.contractor.nickname,
                inv.contractor.full_name or '',
                get_week_label(inv.week_start, inv.week_end),
                f"{float(inv.total_hours):.2f}",
                f"{float(inv.hourly_rate):.2f}",
                f"{float(inv.total_amount):.2f}",
                inv.status,
                inv.submitted_at.isoformat() if inv.submitted_at else '',
            ]
            for inv in invoices
        ]

    @staticmethod
    def get_pdf_path(user, invoice_id):
        """Path of the stored PDF. The owning worker and admins may download it."""
        invoice = InvoiceService.get_invoice(invoice_id)
        if not user.has_role(ADMIN):
            contractor = invoice.contractor
            if not contractor or contractor.user_id != user.id:
                raise ForbiddenError("You do not have permission to access this invoice")
        if not FileStorage.pdf_exists(invoice.pdf_url):
            raise NotFoundError(PDF_NOT_FOUND)
        return FileStorage.resolve_path(invoice.pdf_url)
