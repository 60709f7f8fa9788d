import logging
from collections import OrderedDict
from datetime import timedelta
from sqlalchemy import func
from sqlalchemy.orm import joinedload
from docketwise.extensions import db
from docketwise.models.contractor import Contractor
from docketwise.models.docket import Docket, DocketEntry
from docketwise.models.role import WORKER
from docketwise.models.worker_invoice import WorkerInvoice, DRAFT
from docketwise.services.service_error import ServiceError, NotFoundError, ForbiddenError
from docketwise.utils.timezone_utils import local_today
from docketwise.utils.week_utils import (
    start_of_iso_week, end_of_iso_week, parse_week_string, get_week_string, get_week_label,
    is_current_or_past_week, format_display_date, format_decimal,
)

CONTRACTOR_NOT_FOUND = ("No contractor profile found for your account. "
                        "Please contact your administrator to set up your contractor profile.")
NO_TIMESHEET_DATA = "No timesheet data found for this period"
FORBIDDEN = "Access denied - Worker access only"
FUTURE_WEEK = "Access denied - future weeks are not available"


class WorkerService:
    @staticmethod
    def resolve_contractor(user):
        """
        Find the contractor profile behind a worker login.

        Looks up by ``user_id`` first, then by email. A match by email that is not yet
        linked to any user gets linked to this one.
        """
        contractor = Contractor.query.filter_by(user_id=user.id).first()
        if contractor:
            return contractor
        if user.email:
            by_email = Contractor.query.filter(func.lower(Contractor.email) == user.email.lower()).first()
            if by_email and by_email.user_id is None:
                try:
                    by_email.user_id = user.id
                    db.session.commit()
                    logging.info(f"Linked contractor {by_email.nickname} to user {user.email}")
                    return by_email
                except Exception as e:
                    db.session.rollback()
                    logging.error(f"Error linking contractor by email: {e}", exc_info=True)
                    raise ServiceError("Could not load your contractor profile. Please try again later.", 500)
        raise NotFoundError(CONTRACTOR_NOT_FOUND)

    @staticmethod
    def _require_worker(user):
        if not user.has_role(WORKER):
            raise ForbiddenError(FORBIDDEN)

    @staticmethod
    def get_weeks(user, page=1, limit=12):
        """Weeks with docket entries for the current worker, newest first."""
        WorkerService._require_worker(user)
        contractor = WorkerService.resolve_contractor(user)
        try:
            today = local_today()
            last_monday = start_of_iso_week(today)
            first_monday = start_of_iso_week(today - timedelta(weeks=page * limit))

            entries = DocketEntry.query.join(Docket).filter(
                DocketEntry.contractor_id == contractor.id,
                Docket.date >= first_monday,
                Docket.date < last_monday + timedelta(days=7),
            ).options(joinedload(DocketEntry.docket)).all()

            hours_by_week = {}
            for entry in entries:
                monday = start_of_iso_week(entry.docket.date)
                hours_by_week[monday] = hours_by_week.get(monday, 0.0) + entry.total_hours

            mondays = sorted(hours_by_week, reverse=True)
            start = (page - 1) * limit
            paged = mondays[start:start + limit]

            invoices = {}
            if paged:
                rows = WorkerInvoice.query.filter(
                    WorkerInvoice.contractor_id == contractor.id,
                    WorkerInvoice.week_start.in_(paged),
                ).all()
                invoices = {inv.week_start: inv for inv in rows}

            rate = float(contractor.hourly_rate or 0)
            weeks = []
            for monday in paged:
                sunday = end_of_iso_week(monday)
                snapshot = invoices.get(monday)
                if snapshot:
                    total_hours = float(snapshot.total_hours)
                    total_amount = float(snapshot.total_amount)
                    status = snapshot.status
                else:
                    total_hours = hours_by_week[monday]
                    total_amount = total_hours * rate
                    status = DRAFT
                weeks.append({
                    'week': get_week_string(monday),
                    'week_start': monday.isoformat(),
                    'week_end': sunday.isoformat(),
                    'week_label': get_week_label(monday, sunday),
                    'total_hours': format_decimal(total_hours),
                    'total_amount': format_decimal(total_amount),
                    'status': status,
                    'invoice_id': snapshot.id if snapshot else None,
                    'can_submit': status == DRAFT and total_hours > 0,
                })
            return weeks, len(mondays)
        except Exception as e:
            logging.error(f"Error fetching worker weeks: {e}", exc_info=True)
            raise ServiceError("Could not fetch your weeks. Please try again later.", 500)

    @staticmethod
    def get_week_details(user, week):
        WorkerService._require_worker(user)
        contractor = WorkerService.resolve_contractor(user)
        monday, sunday = parse_week_string(week)
        if not is_current_or_past_week(monday):
            raise ForbiddenError(FUTURE_WEEK)

        entries = DocketEntry.query.join(Docket).filter(
            DocketEntry.contractor_id == contractor.id,
            Docket.date >= monday,
            Docket.date <= sunday,
        ).options(
            joinedload(DocketEntry.docket).joinedload(Docket.builder),
            joinedload(DocketEntry.docket).joinedload(Docket.location),
        ).order_by(Docket.date.asc()).all()
        if not entries:
            raise NotFoundError(NO_TIMESHEET_DATA)

        invoice = WorkerInvoice.query.filter_by(contractor_id=contractor.id, week_start=monday).first()
        status = invoice.status if invoice else DRAFT
        rate = float(contractor.hourly_rate or 0)
        total_hours = sum(e.total_hours for e in entries)

        return {
            'week': get_week_string(monday),
            'week_start': monday.isoformat(),
            'week_end': sunday.isoformat(),
            'week_label': get_week_label(monday, sunday),
            'hourly_rate': format_decimal(rate),
            'entries': [WorkerService._format_entry(e) for e in entries],
            'total_hours': format_decimal(total_hours),
            'total_amount': format_decimal(total_hours * rate),
            'status': status,
            'invoice_id': invoice.id if invoice else None,
            'can_submit': status == DRAFT and total_hours > 0,
        }

    @staticmethod
    def _format_entry(entry):
        docket = entry.docket
        return OrderedDict([
            ('builder_id', docket.builder_id),
            ('builder_name', docket.builder.name),
            ('company_code', docket.builder.company_code),
            ('location_id', docket.location_id),
            ('location_label', docket.location.label),
            ('date', format_display_date(docket.date)),
            ('tonnage_hours', format_decimal(entry.tonnage_hours)),
            ('day_labour_hours', format_decimal(entry.day_labour_hours)),
            ('total_hours', format_decimal(entry.total_hours)),
        ])
