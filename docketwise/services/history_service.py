import logging
from sqlalchemy import or_
from sqlalchemy.orm import contains_eager, joinedload
from docketwise.models.builder import Builder, BuilderLocation
from docketwise.models.contractor import Contractor
from docketwise.models.docket import Docket, DocketEntry
from docketwise.models.worker_invoice import WorkerInvoice, PAID
from docketwise.services.service_error import ServiceError
from docketwise.utils.timezone_utils import format_datetime_for_api
from docketwise.utils.week_utils import format_display_date, get_week_label

DOCKET_EXPORT_HEADERS = ['Date', 'Builder', 'Company Code', 'Location', 'Supervisor', 'Contractor', 'Schedule No',
                         'Description', 'Tonnage Hours', 'Day Labour Hours', 'Total Hours', 'Created At']
PAYMENT_EXPORT_HEADERS = ['Contractor', 'Full Name', 'Week', 'Total Hours', 'Hourly Rate', 'Total Amount', 'Status',
                          'Submitted At', 'Paid At']


class HistoryService:
    @staticmethod
    def _dockets_query(date_from=None, date_to=None, builder_id=None, location_id=None, supervisor_id=None,
                       contractor_id=None, q=None):
        query = DocketEntry.query \
            .join(Docket, DocketEntry.docket_id == Docket.id) \
            .join(Contractor, DocketEntry.contractor_id == Contractor.id) \
            .join(Builder, Docket.builder_id == Builder.id) \
            .join(BuilderLocation, Docket.location_id == BuilderLocation.id)
        if date_from:
            query = query.filter(Docket.date >= date_from)
        if date_to:
            query = query.filter(Docket.date <= date_to)
        if builder_id:
            query = query.filter(Docket.builder_id == builder_id)
        if location_id:
            query = query.filter(Docket.location_id == location_id)
        if supervisor_id:
            query = query.filter(Docket.supervisor_id == supervisor_id)
        if contractor_id:
            query = query.filter(DocketEntry.contractor_id == contractor_id)
        if q:
            term = f"%{q.strip()}%"
            query = query.filter(or_(
                Contractor.nickname.ilike(term),
                Contractor.full_name.ilike(term),
                Builder.name.ilike(term),
                BuilderLocation.label.ilike(term),
            ))
        return query.options(
            contains_eager(DocketEntry.docket).contains_eager(Docket.builder),
            contains_eager(DocketEntry.docket).contains_eager(Docket.location),
            contains_eager(DocketEntry.docket).joinedload(Docket.supervisor),
            contains_eager(DocketEntry.contractor),
        ).order_by(Docket.date.desc(), Docket.created_at.desc(), DocketEntry.id.asc())

    @staticmethod
    def _docket_item(entry):
        docket = entry.docket
        supervisor = docket.supervisor
        tonnage = float(entry.tonnage_hours or 0)
        day_labour = float(entry.day_labour_hours or 0)
        return {
            'id': entry.id,
            'docket_id': docket.id,
            'date': format_display_date(docket.date),
            'builder_name': docket.builder.name,
            'builder_company_code': docket.builder.company_code,
            'location_label': docket.location.label,
            'supervisor_name': (supervisor.name or supervisor.email) if supervisor else 'Unknown Supervisor',
            'schedule_no': docket.schedule_no,
            'description': docket.description,
            'contractor_nickname': entry.contractor.nickname,
            'contractor_full_name': entry.contractor.full_name,
            'tonnage_hours': tonnage,
            'day_labour_hours': day_labour,
            'total_hours': tonnage + day_labour,
            'created_at': format_display_date(entry.created_at),
        }

    @staticmethod
    def get_dockets_history(limit=50, offset=0, **filters):
        """One row per docket entry, newest docket first."""
        try:
            query = HistoryService._dockets_query(**filters)
            total = query.count()
            items = [HistoryService._docket_item(e) for e in query.offset(offset).limit(limit).all()]
            totals = {
                'total_hours': sum(i['total_hours'] for i in items),
                'total_tonnage_hours': sum(i['tonnage_hours'] for i in items),
                'total_day_labour_hours': sum(i['day_labour_hours'] for i in items),
                'total_entries': len(items),
            }
            return {'items': items, 'total': total, 'limit': limit, 'offset': offset, 'totals': totals}
        except Exception as e:
            logging.error(f"Error fetching dockets history: {e}", exc_info=True)
            raise ServiceError("Could not fetch dockets history. Please try again later.", 500)

    @staticmethod
    def _payments_query(date_from=None, date_to=None, contractor_id=None, status=None, q=None):
        query = WorkerInvoice.query.join(Contractor, WorkerInvoice.contractor_id == Contractor.id)
        if date_from:
            query = query.filter(WorkerInvoice.week_start >= date_from)
        if date_to:
            query = query.filter(WorkerInvoice.week_start <= date_to)
        if contractor_id:
            query = query.filter(WorkerInvoice.contractor_id == contractor_id)
        if status:
            query = query.filter(WorkerInvoice.status == status)
        if q:
            term = f"%{q.strip()}%"
            query = query.filter(or_(Contractor.nickname.ilike(term), Contractor.full_name.ilike(term)))
        return query.options(contains_eager(WorkerInvoice.contractor)) \
            .order_by(WorkerInvoice.week_start.desc(), WorkerInvoice.submitted_at.desc())

    @staticmethod
    def _payment_item(invoice):
        return {
            'id': invoice.id,
            'contractor_id': invoice.contractor_id,
            'contractor_nickname': invoice.contractor.nickname,
            'contractor_full_name': invoice.contractor.full_name,
            'week_start': invoice.week_start.isoformat(),
            'week_end': invoice.week_end.isoformat(),
            'week_label': get_week_label(invoice.week_start, invoice.week_end),
            'total_hours': float(invoice.total_hours),
            'hourly_rate': float(invoice.hourly_rate),
            'total_amount': float(invoice.total_amount),
            'status': invoice.status,
            'submitted_at': format_datetime_for_api(invoice.submitted_at),
            'paid_at': format_datetime_for_api(invoice.paid_at),
            'updated_at': format_datetime_for_api(invoice.updated_at),
        }

    @staticmethod
    def get_payments_history(limit=50, offset=0, **filters):
        try:
            query = HistoryService._payments_query(**filters)
            total = query.count()
            items = [HistoryService._payment_item(i) for i in query.offset(offset).limit(limit).all()]
            totals = {
                'total_amount': sum(i['total_amount'] for i in items),
                'total_hours': sum(i['total_hours'] for i in items),
                'total_invoices': len(items),
                'paid_amount': sum(i['total_amount'] for i in items if i['status'] == PAID),
                'pending_amount': sum(i['total_amount'] for i in items if i['status'] != PAID),
            }
            return {'items': items, 'total': total, 'limit': limit, 'offset': offset, 'totals': totals}
        except Exception as e:
            logging.error(f"Error fetching payments history: {e}", exc_info=True)
            raise ServiceError("Could not fetch payments history. Please try again later.", 500)

    @staticmethod
    def export_dockets_rows(**filters):
        rows = []
        for entry in HistoryService._dockets_query(**filters).all():
            item = HistoryService._docket_item(entry)
            rows.append([
                item['date'], item['builder_name'], item['builder_company_code'], item['location_label'],
                item['supervisor_name'], item['contractor_nickname'], item['schedule_no'] or '',
                item['description'] or '', f"{item['tonnage_hours']:.2f}", f"{item['day_labour_hours']:.2f}",
                f"{item['total_hours']:.2f}", item['created_at'],
            ])
        return rows

    @staticmethod
    def export_payments_rows(**filters):
        rows = []
        for invoice in HistoryService._payments_query(**filters).all():
            rows.append([
                invoice.contractor.nickname,
                invoice.contractor.full_name or '',
                get_week_label(invoice.week_start, invoice.week_end),
                f"{float(invoice.total_hours):.2f}",
                f"{float(invoice.hourly_rate):.2f}",
                f"{float(invoice.total_amount):.2f}",
                invoice.status,
                format_display_date(invoice.submitted_at),
                format_display_date(invoice.paid_at),
            ])
        return rows
