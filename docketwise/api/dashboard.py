from flask import Blueprint, request, jsonify
from docketwise.services.dashboard_service import DashboardService
from docketwise.services.service_error import ServiceError
from docketwise.utils.validation import QueryParamError, parse_int, parse_date
import logging
from flask_security import auth_required, roles_accepted, current_user

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/admin', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def admin_dashboard():
    try:
        data = DashboardService.get_admin_dashboard(
            start_date=parse_date(request.args, 'start_date'),
            end_date=parse_date(request.args, 'end_date'),
        )
        return jsonify(data), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in admin_dashboard: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@dashboard_bp.route('/supervisor', methods=['GET'])
@auth_required()
@roles_accepted('supervisor', 'admin')
def supervisor_dashboard():
    try:
        data = DashboardService.get_supervisor_dashboard(
            current_user,
            date_range=request.args.get('date_range') or 'month',
            builder_id=parse_int(request.args, 'builder_id'),
            location_id=parse_int(request.args, 'location_id'),
        )
        return jsonify(data), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in supervisor_dashboard: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@dashboard_bp.route('/supervisor/dockets', methods=['GET'])
@auth_required()
@roles_accepted('supervisor', 'admin')
def supervisor_dockets():
    try:
        dockets = DashboardService.get_supervisor_dockets(
            current_user,
            date_range=request.args.get('range') or 'today',
            builder_id=parse_int(request.args, 'builder_id'),
            location_id=parse_int(request.args, 'location_id'),
        )
        return jsonify(dockets), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in supervisor_dockets: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@dashboard_bp.route('/supervisor/site-operations', methods=['GET'])
@auth_required()
@roles_accepted('supervisor', 'admin')
def site_operations():
    try:
        data = DashboardService.get_site_operations(
            current_user,
            builder_id=parse_int(request.args, 'builder_id'),
            location_id=parse_int(request.args, 'location_id'),
        )
        return jsonify(data), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in site_operations: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@dashboard_bp.route('/worker', methods=['GET'])
@auth_required()
@roles_accepted('worker')
def worker_dashboard():
    try:
        return jsonify(DashboardService.get_worker_dashboard(current_user, request.args.get('week'))), 200
    except ValueError as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in worker_dashboard: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
