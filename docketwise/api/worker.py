from flask import Blueprint, request, jsonify
from docketwise.services.worker_service import WorkerService
from docketwise.services.service_error import ServiceError
from docketwise.utils.validation import QueryParamError, parse_pagination, paginated
import logging
from flask_security import auth_required, roles_accepted, current_user

worker_bp = Blueprint('worker', __name__)


@worker_bp.route('/me/weeks', methods=['GET'])
@auth_required()
@roles_accepted('worker')
def list_my_weeks():
    try:
        page, limit = parse_pagination(request.args, default_limit=12, max_limit=50)
        weeks, total = WorkerService.get_weeks(current_user, page=page, limit=limit)
        return jsonify(paginated(weeks, total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_my_weeks: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@worker_bp.route('/me/weeks/<week>', methods=['GET'])
@auth_required()
@roles_accepted('worker')
def get_my_week(week):
    try:
        return jsonify(WorkerService.get_week_details(current_user, week)), 200
    except ValueError as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_my_week: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
