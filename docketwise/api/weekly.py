from flask import Blueprint, request, jsonify
from docketwise.services.weekly_service import WeeklyService, EXPORT_HEADERS
from docketwise.services.service_error import ServiceError
from docketwise.utils.export_utils import EXPORT_FORMATS, export_response
from docketwise.utils.validation import QueryParamError, parse_int
from docketwise.utils.week_utils import resolve_week, get_week_string
import logging
from flask_security import auth_required, roles_accepted, current_user

weekly_bp = Blueprint('weekly', __name__)


def _load_weekly_data():
    week_start, _ = resolve_week(request.args.get('week'), request.args.get('weekStart'))
    return WeeklyService.get_weekly_data(
        current_user,
        week_start,
        builder_id=parse_int(request.args, 'builder_id'),
        location_id=parse_int(request.args, 'location_id'),
        q=request.args.get('q'),
    ), week_start


@weekly_bp.route('/weekly', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def get_weekly():
    try:
        data, _ = _load_weekly_data()
        return jsonify(data), 200
    except (ValueError, QueryParamError) as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_weekly: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@weekly_bp.route('/weekly/export', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def export_weekly():
    try:
        export_format = (request.args.get('format') or 'csv').lower()
        if export_format not in EXPORT_FORMATS:
            return jsonify({'error': 'Invalid format. Use csv or xlsx'}), 400
        data, week_start = _load_weekly_data()
        comments, rows = WeeklyService.export_rows(data)
        return export_response(EXPORT_HEADERS, rows, f"weekly-timesheet-{get_week_string(week_start)}",
                               export_format, comments=comments, sheet_name='Weekly Timesheet')
    except (ValueError, QueryParamError) as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in export_weekly: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
