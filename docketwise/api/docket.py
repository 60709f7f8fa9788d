from flask import Blueprint, request, jsonify
from marshmallow import ValidationError
from docketwise.services.docket_service import DocketService, SORT_FIELDS
from docketwise.services.service_error import ServiceError
from docketwise.schemas.docket_schema import DocketSchema, DocketInputSchema, UPDATE_FIELDS
from docketwise.utils.validation import QueryParamError, parse_pagination, parse_int, parse_date, parse_sort, paginated
import logging
from flask_security import auth_required, roles_accepted, current_user

docket_bp = Blueprint('docket', __name__)
schema = DocketSchema()
schema_many = DocketSchema(many=True)


@docket_bp.route('/dockets', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def list_dockets():
    try:
        page, limit = parse_pagination(request.args, default_limit=10)
        sort_by, sort_order = parse_sort(request.args, list(SORT_FIELDS), 'date')
        dockets, total = DocketService.list_dockets(
            current_user,
            page=page,
            limit=limit,
            builder_id=parse_int(request.args, 'builder_id'),
            location_id=parse_int(request.args, 'location_id'),
            supervisor_id=parse_int(request.args, 'supervisor_id'),
            start_date=parse_date(request.args, 'start_date'),
            end_date=parse_date(request.args, 'end_date'),
            search=request.args.get('search'),
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return jsonify(paginated(schema_many.dump(dockets), total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_dockets: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@docket_bp.route('/dockets/<int:docket_id>', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def get_docket(docket_id):
    try:
        return jsonify(schema.dump(DocketService.get_docket(current_user, docket_id))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_docket: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@docket_bp.route('/dockets', methods=['POST'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def create_docket():
    try:
        data = DocketInputSchema().load(request.get_json() or {})
        docket = DocketService.create_docket(current_user, data)
        return jsonify(schema.dump(docket)), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in create_docket: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@docket_bp.route('/dockets/<int:docket_id>', methods=['PUT', 'PATCH'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def update_docket(docket_id):
    try:
        data = DocketInputSchema().load(request.get_json() or {}, partial=UPDATE_FIELDS)
        docket = DocketService.update_docket(current_user, docket_id, data)
        return jsonify(schema.dump(docket)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_docket: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@docket_bp.route('/dockets/<int:docket_id>', methods=['DELETE'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def delete_docket(docket_id):
    try:
        DocketService.delete_docket(current_user, docket_id)
        return jsonify({'message': 'Docket deleted successfully'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in delete_docket: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
