from flask import Blueprint, request, jsonify
from docketwise.models.worker_invoice import INVOICE_STATUSES
from docketwise.services.history_service import HistoryService, DOCKET_EXPORT_HEADERS, PAYMENT_EXPORT_HEADERS
from docketwise.services.service_error import ServiceError
from docketwise.utils.export_utils import export_response
from docketwise.utils.timezone_utils import local_today
from docketwise.utils.validation import QueryParamError, parse_int, parse_date
import logging
from flask_security import auth_required, roles_accepted

history_bp = Blueprint('history', __name__)

MAX_HISTORY_LIMIT = 500


def _limit_offset(args):
    try:
        limit = int(args.get('limit', 50))
        offset = int(args.get('offset', 0))
    except (TypeError, ValueError):
        raise QueryParamError('Invalid pagination parameters: limit and offset must be integers')
    return max(1, min(limit, MAX_HISTORY_LIMIT)), max(0, offset)


def _docket_filters(args):
    return {
        'date_from': parse_date(args, 'date_from'),
        'date_to': parse_date(args, 'date_to'),
        'builder_id': parse_int(args, 'builder_id'),
        'location_id': parse_int(args, 'location_id'),
        'supervisor_id': parse_int(args, 'supervisor_id'),
        'contractor_id': parse_int(args, 'contractor_id'),
        'q': args.get('q'),
    }


def _payment_filters(args):
    status = (args.get('status') or '').upper() or None
    if status and status not in INVOICE_STATUSES:
        raise QueryParamError('Invalid status')
    return {
        'date_from': parse_date(args, 'date_from'),
        'date_to': parse_date(args, 'date_to'),
        'contractor_id': parse_int(args, 'contractor_id'),
        'status': status,
        'q': args.get('q'),
    }


@history_bp.route('/history/dockets', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def dockets_history():
    try:
        limit, offset = _limit_offset(request.args)
        return jsonify(HistoryService.get_dockets_history(
            limit=limit, offset=offset, **_docket_filters(request.args))), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in dockets_history: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@history_bp.route('/history/payments', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def payments_history():
    try:
        limit, offset = _limit_offset(request.args)
        return jsonify(HistoryService.get_payments_history(
            limit=limit, offset=offset, **_payment_filters(request.args))), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in payments_history: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@history_bp.route('/history/dockets/export', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def export_dockets_history():
    try:
        rows = HistoryService.export_dockets_rows(**_docket_filters(request.args))
        return export_response(DOCKET_EXPORT_HEADERS, rows, f"dockets-history-{local_today().isoformat()}")
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except Exception as e:
        logging.error(f"Unhandled error in export_dockets_history: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@history_bp.route('/history/payments/export', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def export_payments_history():
    try:
        rows = HistoryService.export_payments_rows(**_payment_filters(request.args))
        return export_response(PAYMENT_EXPORT_HEADERS, rows, f"payments-history-{local_today().isoformat()}")
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except Exception as e:
        logging.error(f"Unhandled error in export_payments_history: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
