import logging
from datetime import timedelta
from sqlalchemy.orm import joinedload, selectinload
from docketwise.models.builder import Builder, BuilderLocation
from docketwise.models.docket import Docket, DocketEntry
from docketwise.models.role import ADMIN, SUPERVISOR
from docketwise.models.worker_invoice import WorkerInvoice
from docketwise.services.service_error import ServiceError, ForbiddenError
from docketwise.utils.timezone_utils import utc_now, format_datetime_for_api
from docketwise.utils.week_utils import format_decimal

FORBIDDEN = "You do not have permission to perform this action"
UNSUBMITTED = 'UNSUBMITTED'
WEEKDAY_KEYS = ('mon', 'tue', 'wed', 'thu', 'fri', 'sat')
WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')

EXPORT_HEADERS = [
    'Contractor Name', 'Nickname', 'Email', 'Builder', 'Company Code', 'Location',
    *WEEKDAY_NAMES,
    'Tonnage Hours', 'Day Labour Hours', 'Total Hours', 'Hourly Rate', 'Total Amount',
]


def _matches(contractor, q):
    if not q:
        return True
    term = q.lower()
    return any(term in (value or '').lower() for value in (
        contractor.nickname, contractor.full_name, contractor.first_name, contractor.last_name, contractor.email))


class WeeklyService:
    @staticmethod
    def get_weekly_data(user, week_start, builder_id=None, location_id=None, q=None):
        """
        Aggregate one week of docket hours per (contractor, builder, location).

        Args:
            user: current user, ADMIN sees every docket and SUPERVISOR only their own
            week_start: Monday of the week; the window is [Monday, next Monday)

        Returns:
            dict: week_start, week_end, rows, totals, available_builders, available_locations
        """
        if not (user.has_role(ADMIN) or user.has_role(SUPERVISOR)):
            raise ForbiddenError(FORBIDDEN)
        try:
            week_end_exclusive = week_start + timedelta(days=7)
            query = Docket.query.filter(Docket.date >= week_start, Docket.date < week_end_exclusive)
            if builder_id:
                query = query.filter(Docket.builder_id == builder_id)
            if location_id:
                query = query.filter(Docket.location_id == location_id)
            if user.has_role(SUPERVISOR) and not user.has_role(ADMIN):
                query = query.filter(Docket.supervisor_id == user.id)
            dockets = query.options(
                joinedload(Docket.builder),
                joinedload(Docket.location),
                selectinload(Docket.entries).joinedload(DocketEntry.contractor),
            ).order_by(Docket.date.asc()).all()

            aggregated = {}
            for docket in dockets:
                day_index = docket.date.weekday()
                if day_index > 5:
                    continue
                for entry in docket.entries:
                    contractor = entry.contractor
                    if not _matches(contractor, q):
                        continue
                    key = (entry.contractor_id, docket.builder_id, docket.location_id)
                    row = aggregated.get(key)
                    if row is None:
                        row = aggregated[key] = {
                            'contractor_id': contractor.id,
                            'contractor_name': contractor.display_name,
                            'nickname': contractor.nickname,
                            'first_name': contractor.first_name,
                            'last_name': contractor.last_name,
                            'full_name': contractor.full_name,
                            'email': contractor.email,
                            'builder_id': docket.builder_id,
                            'builder_name': docket.builder.name,
                            'company_code': docket.builder.company_code,
                            'location_id': docket.location_id,
                            'location_label': docket.location.label,
                            'days': [0.0] * 6,
                            'tonnage': 0.0,
                            'day_labour': 0.0,
                            'rate': float(contractor.hourly_rate or 0),
                        }
                    tonnage = float(entry.tonnage_hours or 0)
                    day_labour = float(entry.day_labour_hours or 0)
                    row['days'][day_index] += tonnage + day_labour
                    row['tonnage'] += tonnage
                    row['day_labour'] += day_labour

            statuses = WeeklyService._invoice_statuses({k[0] for k in aggregated}, week_start)
            rows = [WeeklyService._format_row(row, statuses)
                    for row in sorted(aggregated.values(), key=lambda r: r['nickname'].lower())]
            total_hours = sum(float(r['total_hours']) for r in rows)
            total_amount = sum(float(r['total_amount']) for r in rows)

            return {
                'week_start': week_start.isoformat(),
                'week_end': (week_end_exclusive - timedelta(days=1)).isoformat(),
                'rows': rows,
                'totals': {'hours': format_decimal(total_hours), 'amount': format_decimal(total_amount)},
                'available_builders': WeeklyService.get_available_builders(),
                'available_locations': WeeklyService.get_available_locations(builder_id),
            }
        except Exception as e:
            logging.error(f"Error fetching weekly data: {e}", exc_info=True)
            raise ServiceError("An error occurred while processing weekly timesheet data", 500)

    @staticmethod
    def _invoice_statuses(contractor_ids, week_start):
        if not contractor_ids:
            return {}
        invoices = WorkerInvoice.query.filter(
            WorkerInvoice.contractor_id.in_(contractor_ids),
            WorkerInvoice.week_start == week_start,
        ).all()
        return {inv.contractor_id: inv.status for inv in invoices}

    @staticmethod
    def _format_row(row, statuses):
        total_hours = sum(row['days'])
        formatted = {k: v for k, v in row.items() if k not in ('days', 'tonnage', 'day_labour', 'rate')}
        for key, hours in zip(WEEKDAY_KEYS, row['days']):
            formatted[key] = format_decimal(hours)
        formatted.update({
            'days': [format_decimal(h) for h in row['days']],
            'tonnage_hours': format_decimal(row['tonnage']),
            'day_labour_hours': format_decimal(row['day_labour']),
            'total_hours': format_decimal(total_hours),
            'rate': format_decimal(row['rate']),
            'total_amount': format_decimal(total_hours * row['rate']),
            'invoice_status': statuses.get(row['contractor_id'], UNSUBMITTED),
        })
        return formatted

    @staticmethod
    def get_available_builders():
        builders = Builder.query.order_by(Builder.name.asc()).all()
        return [{'id': b.id, 'name': b.name, 'company_code': b.company_code} for b in builders]

    @staticmethod
    def get_available_locations(builder_id=None):
        if not builder_id:
            return []
        locations = BuilderLocation.query.filter_by(builder_id=builder_id).order_by(BuilderLocation.label.asc()).all()
        return [{'id': loc.id, 'label': loc.label} for loc in locations]

    @staticmethod
    def export_rows(data):
        """Header comments and table rows for the weekly export."""
        comments = [
            "Weekly Timesheet Export",
            f"Week: {data['week_start']} to {data['week_end']}",
            f"Generated: {format_datetime_for_api(utc_now())}",
            f"Total Contractors: {len(data['rows'])}",
        ]
        rows = [
            [
                r['contractor_name'], r['nickname'], r['email'] or '', r['builder_name'], r['company_code'],
                r['location_label'], *[r[k] for k in WEEKDAY_KEYS],
                r['tonnage_hours'], r['day_labour_hours'], r['total_hours'], r['rate'], r['total_amount'],
            ]
            for r in data['rows']
        ]
        return comments, rows
