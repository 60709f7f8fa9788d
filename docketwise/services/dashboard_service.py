import calendar
import logging
from datetime import date, timedelta
from sqlalchemy.orm import joinedload, selectinload
from docketwise.models.builder import Builder, BuilderLocation
from docketwise.models.docket import Docket, DocketEntry
from docketwise.models.worker_invoice import WorkerInvoice, DRAFT, SUBMITTED, PAID
from docketwise.services.service_error import ServiceError
from docketwise.services.worker_service import WorkerService
from docketwise.utils.timezone_utils import local_today, format_datetime_for_api
from docketwise.utils.week_utils import start_of_iso_week, end_of_iso_week, parse_week_string, get_week_string

SUNDAY_FIRST_DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
WORK_DAY_NAMES = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
HIGH_HOURS_THRESHOLD = 50
SITE_STATUS_PRIORITY = {'needs-attention': 0, 'in-progress': 1, 'completed': 2, 'not-started': 3}


def _hours(entry):
    return float(entry.tonnage_hours or 0), float(entry.day_labour_hours or 0)


def _month_end(year, month):
    return date(year, month, calendar.monthrange(year, month)[1])


def resolve_date_range(date_range, today=None):
    """
    Inclusive (start, end) dates for a named range. Unknown names fall back to the current month.
    """
    today = today or local_today()
    if date_range == 'today':
        return today, today
    if date_range == 'week':
        monday = start_of_iso_week(today)
        return monday, end_of_iso_week(monday)
    if date_range == 'quarter':
        first_month = (today.month - 1) // 3 * 3 + 1
        return date(today.year, first_month, 1), _month_end(today.year, first_month + 2)
    if date_range == 'halfyear':
        first_month = 1 if today.month <= 6 else 7
        return date(today.year, first_month, 1), _month_end(today.year, first_month + 5)
    if date_range == 'year':
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return date(today.year, today.month, 1), _month_end(today.year, today.month)


class DashboardService:
    @staticmethod
    def _dockets_between(start, end, supervisor_id=None, builder_id=None, location_id=None):
        query = Docket.query.filter(Docket.date >= start, Docket.date <= end)
        if supervisor_id:
            query = query.filter(Docket.supervisor_id == supervisor_id)
        if builder_id:
            query = query.filter(Docket.builder_id == builder_id)
        if location_id:
            query = query.filter(Docket.location_id == location_id)
        return query.options(
            joinedload(Docket.builder),
            joinedload(Docket.location),
            selectinload(Docket.entries).joinedload(DocketEntry.contractor),
            selectinload(Docket.media),
        )

    @staticmethod
    def get_admin_dashboard(start_date=None, end_date=None):
        """KPIs, charts and tables across every docket dated in [start_date, end_date]."""
        end = end_date or local_today()
        start = start_date or (local_today() - timedelta(days=7))
        try:
            dockets = DashboardService._dockets_between(start, end).order_by(Docket.date.desc()).all()

            tonnage_total = day_labour_total = payout = 0.0
            hours_by_day = [
                {'day': str(i), 'day_name': name, 'tonnage': 0.0, 'day_labour': 0.0, 'total': 0.0}
                for i, name in enumerate(SUNDAY_FIRST_DAY_NAMES)
            ]
            companies = {}
            contractors = {}
            for docket in dockets:
                bucket = hours_by_day[(docket.date.weekday() + 1) % 7]
                company = companies.setdefault(docket.builder_id, {
                    'company_code': docket.builder.company_code or 'Unknown',
                    'company_name': docket.builder.name,
                    'total_hours': 0.0,
                })
                for entry in docket.entries:
                    tonnage, day_labour = _hours(entry)
                    hours = tonnage + day_labour
                    rate = float(entry.contractor.hourly_rate or 0)
                    tonnage_total += tonnage
                    day_labour_total += day_labour
                    payout += hours * rate
                    bucket['tonnage'] += tonnage
                    bucket['day_labour'] += day_labour
                    bucket['total'] += hours
                    company['total_hours'] += hours
                    stats = contractors.setdefault(entry.contractor_id, {
                        'contractor_id': entry.contractor_id,
                        'nickname': entry.contractor.nickname,
                        'total_hours': 0.0,
                        'rate': rate,
                        'days': 0,
                    })
                    stats['total_hours'] += hours
                    stats['days'] += 1

            invoice_rows = WorkerInvoice.query.filter(
                WorkerInvoice.week_start >= start, WorkerInvoice.week_start <= end)
            invoice_counts = {SUBMITTED: 0, PAID: 0, DRAFT: 0}
            for invoice in invoice_rows.all():
                invoice_counts[invoice.status] = invoice_counts.get(invoice.status, 0) + 1

            top_contractors = sorted(contractors.values(), key=lambda c: c['total_hours'], reverse=True)[:10]
            pending = invoice_rows.filter(WorkerInvoice.status == SUBMITTED) \
                .options(joinedload(WorkerInvoice.contractor)) \
                .order_by(WorkerInvoice.submitted_at.desc()).limit(10).all()
            exceptions = [
                {
                    'id': f"exc-{c['contractor_id']}-{index}",
                    'type': 'High Hours',
                    'contractor_nickname': c['nickname'],
                    'message': f"{c['total_hours']:.1f} hours logged ({c['days']} days)",
                    'date': end.isoformat(),
                }
                for index, c in enumerate(c for c in contractors.values() if c['total_hours'] > HIGH_HOURS_THRESHOLD)
            ][:5]

            recent = []
            for docket in dockets[:10]:
                total = sum(e.total_hours for e in docket.entries)
                recent.append({
                    'id': docket.id,
                    'date': docket.date.strftime('%a, %b %d'),
                    'builder_name': docket.builder.name,
                    'company_code': docket.builder.company_code or 'N/A',
                    'location_label': docket.location.label,
                    'contractor_count': len(docket.entries),
                    'total_hours': total,
                    'media_count': len(docket.media),
                    'status': 'Active' if total > 0 else 'No Hours',
                })

            return {
                'kpis': {
                    'total_dockets': len(dockets),
                    'unique_contractors': len(contractors),
                    'total_hours': {
                        'tonnage': tonnage_total,
                        'day_labour': day_labour_total,
                        'combined': tonnage_total + day_labour_total,
                    },
                    'estimated_payout': round(payout, 2),
                    'invoices': {
                        'submitted': invoice_counts[SUBMITTED],
                        'paid': invoice_counts[PAID],
                        'unsubmitted': invoice_counts[DRAFT],
                    },
                },
                'charts': {
                    'hours_by_day': hours_by_day,
                    'top_companies': sorted(companies.values(), key=lambda c: c['total_hours'], reverse=True)[:5],
                    'top_contractors': [
                        {
                            'contractor_id': c['contractor_id'],
                            'nickname': c['nickname'],
                            'total_hours': c['total_hours'],
                            'estimated_payout': round(c['total_hours'] * c['rate'], 2),
                        }
                        for c in top_contractors
                    ],
                },
                'tables': {
                    'pending_invoices': [
                        {
                            'id': inv.id,
                            'contractor_nickname': inv.contractor.nickname,
                            'week_label': f"{inv.week_start.strftime('%b %d')} - {inv.week_end.strftime('%b %d')}",
                            'total_hours': float(inv.total_hours),
                            'total_amount': float(inv.total_amount),
                            'status': inv.status,
                            'submitted_at': format_datetime_for_api(inv.submitted_at) or '',
                        }
                        for inv in pending
                    ],
                    'exceptions': exceptions,
                },
                'recent_dockets': recent,
                'date_range': {'start_date': start.isoformat(), 'end_date': end.isoformat()},
            }
        except Exception as e:
            logging.error(f"Error fetching admin dashboard data: {e}", exc_info=True)
            raise ServiceError("Failed to fetch dashboard data", 500)

    @staticmethod
    def get_supervisor_dashboard(user, date_range='month', builder_id=None, location_id=None):
        start, end = resolve_date_range(date_range)
        try:
            dockets = DashboardService._dockets_between(start, end, user.id, builder_id, location_id).all()
            tonnage_total = day_labour_total = 0.0
            media_total = 0
            sites = {}
            workers = {}
            for docket in dockets:
                media_total += len(docket.media)
                site = sites.setdefault(docket.location_id, {
                    'location_id': docket.location_id,
                    'location_label': docket.location.label,
                    'total_hours': 0.0,
                })
                for entry in docket.entries:
                    tonnage, day_labour = _hours(entry)
                    tonnage_total += tonnage
                    day_labour_total += day_labour
                    site['total_hours'] += tonnage + day_labour
                    worker = workers.setdefault(entry.contractor_id, {
                        'contractor_id': entry.contractor_id,
                        'nickname': entry.contractor.nickname,
                        'total_hours': 0.0,
                    })
                    worker['total_hours'] += tonnage + day_labour

            return {
                'kpis': {
                    'my_dockets': len(dockets),
                    'workers_added': len(workers),
                    'total_hours': {
                        'day_labour': day_labour_total,
                        'tonnage': tonnage_total,
                        'combined': tonnage_total + day_labour_total,
                    },
                    'pending_signature': sum(1 for d in dockets if not d.site_manager_signature_url),
                    'media_uploaded': media_total,
                },
                'charts': {
                    'hours_by_site': sorted(sites.values(), key=lambda s: s['total_hours'], reverse=True)[:5],
                    'work_type_composition': {'day_labour': day_labour_total, 'tonnage': tonnage_total},
                    'top_workers': sorted(workers.values(), key=lambda w: w['total_hours'], reverse=True)[:10],
                },
                'date_range': {'start_date': start.isoformat(), 'end_date': end.isoformat()},
            }
        except Exception as e:
            logging.error(f"Error fetching supervisor dashboard data: {e}", exc_info=True)
            raise ServiceError("Failed to fetch supervisor dashboard data", 500)

    @staticmethod
    def get_supervisor_dockets(user, date_range='today', builder_id=None, location_id=None):
        """The supervisor's dockets for today or this week, most recently updated first."""
        if date_range == 'week':
            start, end = resolve_date_range('week')
        else:
            start, end = resolve_date_range('today')
        try:
            dockets = DashboardService._dockets_between(start, end, user.id, builder_id, location_id) \
                .order_by(Docket.updated_at.desc()).all()
            result = []
            for docket in dockets:
                tonnage = sum(_hours(e)[0] for e in docket.entries)
                day_labour = sum(_hours(e)[1] for e in docket.entries)
                result.append({
                    'id': docket.id,
                    'date': docket.date.isoformat(),
                    'builder': {'company_code': docket.builder.company_code, 'name': docket.builder.name},
                    'location': {'label': docket.location.label},
                    'worker_count': len({e.contractor_id for e in docket.entries}),
                    'total_hours': {'day_labour': day_labour, 'tonnage': tonnage, 'combined': tonnage + day_labour},
                    'media_count': len(docket.media),
                    'has_signature': bool(docket.site_manager_signature_url),
                })
            return result
        except Exception as e:
            logging.error(f"Error fetching supervisor dockets: {e}", exc_info=True)
            raise ServiceError("Failed to fetch supervisor dockets", 500)

    @staticmethod
    def get_site_operations(user, builder_id=None, location_id=None):
        """
        Today's activity per site for the supervisor.

        Every location starts as ``not-started``; a docket dated today moves it to
        ``in-progress`` when hours are logged and ``needs-attention`` when nothing is.
        Only sites with a docket today are returned.
        """
        today = local_today()
        try:
            locations = BuilderLocation.query.join(Builder)
            if builder_id:
                locations = locations.filter(BuilderLocation.builder_id == builder_id)
            if location_id:
                locations = locations.filter(BuilderLocation.id == location_id)
            sites = {}
            for location in locations.order_by(Builder.name.asc(), BuilderLocation.label.asc()).all():
                sites[location.id] = {
                    'location_id': location.id,
                    'location_label': location.label,
                    'builder_id': location.builder_id,
                    'builder_code': location.builder.company_code,
                    'builder_name': location.builder.name,
                    'status': 'not-started',
                    'workers_on_site': 0,
                    'current_hours': {'day_labour': 0.0, 'tonnage': 0.0, 'combined': 0.0},
                    'media_count': 0,
                    'last_update': None,
                    'docket_id': None,
                    'alerts': [],
                }

            for docket in DashboardService._dockets_between(today, today, user.id, builder_id, location_id).all():
                site = sites.get(docket.location_id)
                if site is None:
                    continue
                tonnage = sum(_hours(e)[0] for e in docket.entries)
                day_labour = sum(_hours(e)[1] for e in docket.entries)
                combined = tonnage + day_labour
                workers = len({e.contractor_id for e in docket.entries})
                site.update({
                    'docket_id': docket.id,
                    'last_update': docket.updated_at,
                    'workers_on_site': workers,
                    'current_hours': {'day_labour': day_labour, 'tonnage': tonnage, 'combined': combined},
                    'media_count': len(docket.media),
                    'alerts': [],
                })
                if workers == 0 and combined == 0:
                    site['status'] = 'needs-attention'
                    site['alerts'].append('No activity today')
                elif combined > 0:
                    site['status'] = 'in-progress'
                else:
                    site['status'] = 'not-started'
                if workers == 0 and combined > 0:
                    site['alerts'].append('Hours logged but no workers assigned')
                if site['media_count'] == 0 and combined > 0:
                    site['alerts'].append('No photos uploaded')

            active = [s for s in sites.values() if s['docket_id'] or s['status'] != 'not-started']
            # priority first, then newest update, then label
            active.sort(key=lambda s: s['location_label'])
            active.sort(key=lambda s: s['last_update'].timestamp() if s['last_update'] else 0, reverse=True)
            active.sort(key=lambda s: SITE_STATUS_PRIORITY.get(s['status'], 3))
            for site in active:
                site['last_update'] = format_datetime_for_api(site['last_update'])

            return {
                'active_sites': active,
                'summary': {
                    'total_active_sites': len(active),
                    'total_workers': sum(s['workers_on_site'] for s in active),
                    'sites_with_issues': sum(1 for s in active if s['status'] == 'needs-attention' or s['alerts']),
                },
            }
        except Exception as e:
            logging.error(f"Error fetching site operations data: {e}", exc_info=True)
            raise ServiceError("Failed to fetch site operations data", 500)

    @staticmethod
    def _worker_entries(contractor_id, start, end):
        return DocketEntry.query.join(Docket).filter(
            DocketEntry.contractor_id == contractor_id,
            Docket.date >= start,
            Docket.date <= end,
        ).options(
            joinedload(DocketEntry.docket).joinedload(Docket.builder),
            joinedload(DocketEntry.docket).joinedload(Docket.location),
        ).all()

    @staticmethod
    def get_worker_dashboard(user, week=None):
        """
        The worker's own week: hours, estimated pay, per-day and per-site charts,
        the last six weeks of hours and the five most recent invoices.

        Raises:
            ValueError: when ``week`` is not ``YYYY-Www``
        """
        contractor = WorkerService.resolve_contractor(user)
        if week:
            monday, sunday = parse_week_string(week)
        else:
            monday = start_of_iso_week(local_today())
            sunday = end_of_iso_week(monday)
        try:
            entries = DashboardService._worker_entries(contractor.id, monday, sunday)
            rate = float(contractor.hourly_rate or 0)
            tonnage_total = sum(_hours(e)[0] for e in entries)
            day_labour_total = sum(_hours(e)[1] for e in entries)
            combined = tonnage_total + day_labour_total

            hours_by_day = []
            for offset, name in enumerate(WORK_DAY_NAMES):
                day = monday + timedelta(days=offset)
                day_entries = [e for e in entries if e.docket.date == day]
                tonnage = sum(_hours(e)[0] for e in day_entries)
                day_labour = sum(_hours(e)[1] for e in day_entries)
                hours_by_day.append({
                    'day': day.isoformat(),
                    'day_name': name,
                    'day_labour': day_labour,
                    'tonnage': tonnage,
                    'total': tonnage + day_labour,
                })

            sites = {}
            for entry in entries:
                site = sites.setdefault(entry.docket.location_id, {
                    'location_name': entry.docket.location.label,
                    'builder_name': entry.docket.builder.name,
                    'total_hours': 0.0,
                })
                site['total_hours'] += entry.total_hours
            site_hours = sum(s['total_hours'] for s in sites.values())
            for site in sites.values():
                site['percentage'] = (site['total_hours'] / site_hours * 100) if site_hours > 0 else 0

            weekly_trend = []
            for weeks_back in range(5, -1, -1):
                trend_monday = monday - timedelta(weeks=weeks_back)
                trend_entries = DashboardService._worker_entries(
                    contractor.id, trend_monday, end_of_iso_week(trend_monday))
                iso_year, iso_week, _ = trend_monday.isocalendar()
                weekly_trend.append({
                    'week_start': trend_monday.isoformat(),
                    'week_label': f"W{iso_week}",
                    'total_hours': sum(e.total_hours for e in trend_entries),
                    'year': iso_year,
                    'week_number': iso_week,
                })

            week_breakdown = sorted([
                {
                    'date': e.docket.date.isoformat(),
                    'day_name': SUNDAY_FIRST_DAY_NAMES[(e.docket.date.weekday() + 1) % 7],
                    'company_code': e.docket.builder.company_code or 'N/A',
                    'location_label': e.docket.location.label,
                    'day_labour': _hours(e)[1],
                    'tonnage': _hours(e)[0],
                    'total': e.total_hours,
                    'docket_id': e.docket_id,
                }
                for e in entries
            ], key=lambda row: row['date'])

            invoices = contractor.invoices.order_by(WorkerInvoice.week_start.desc()).limit(5).all()
            recent_invoices = []
            for inv in invoices:
                iso_year, iso_week, _ = inv.week_start.isocalendar()
                recent_invoices.append({
                    'id': inv.id,
                    'week_label': f"W{iso_week}/{iso_year}",
                    'week_start': inv.week_start.isoformat(),
                    'total_hours': float(inv.total_hours or 0),
                    'hourly_rate': rate,
                    'total_amount': float(inv.total_amount or 0),
                    'status': inv.status,
                    'submitted_at': inv.submitted_at.date().isoformat() if inv.submitted_at else None,
                    'paid_at': inv.paid_at.date().isoformat() if inv.paid_at else None,
                })

            iso_year, iso_week, _ = monday.isocalendar()
            return {
                'kpis': {
                    'this_week_hours': {
                        'day_labour': day_labour_total,
                        'tonnage': tonnage_total,
                        'combined': combined,
                    },
                    'estimated_pay': round(combined * rate, 2),
                    'hourly_rate': rate,
                    'dockets_counted': len({e.docket_id for e in entries}),
                    'sites_worked': len(sites),
                },
                'charts': {
                    'hours_by_day': hours_by_day,
                    'sites_summary': list(sites.values()),
                    'weekly_trend': weekly_trend,
                },
                'tables': {
                    'week_breakdown': week_breakdown,
                    'recent_invoices': recent_invoices,
                },
                'week_info': {
                    'week': get_week_string(monday),
                    'week_number': iso_week,
                    'year': iso_year,
                    'start_date': monday.isoformat(),
                    'end_date': sunday.isoformat(),
                },
            }
        except Exception as e:
            logging.error(f"Error fetching worker dashboard data: {e}", exc_info=True)
            raise ServiceError("Failed to fetch worker dashboard data", 500)
