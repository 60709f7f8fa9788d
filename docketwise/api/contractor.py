from flask import Blueprint, request, jsonify
from marshmallow import ValidationError
from docketwise.models.contractor import CONTRACTOR_POSITIONS
from docketwise.services.contractor_service import ContractorService, SORT_FIELDS
from docketwise.services.service_error import ServiceError
from docketwise.schemas.contractor_schema import ContractorSchema, ContractorInputSchema
from docketwise.schemas.user_schema import LinkUserSchema
from docketwise.utils.permissions import permission_required
from docketwise.utils.validation import QueryParamError, parse_pagination, parse_bool, parse_sort, paginated
import logging
from flask_security import auth_required, roles_accepted, current_user

contractor_bp = Blueprint('contractor', __name__)
schema = ContractorSchema()
schema_many = ContractorSchema(many=True)


@contractor_bp.route('/admin/contractors', methods=['GET'])
@auth_required()
@permission_required('contractors.view')
def list_contractors():
    try:
        page, limit = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, list(SORT_FIELDS), 'created_at')
        contractors, total = ContractorService.list_contractors(
            search=request.args.get('search'),
            position=request.args.get('position'),
            active=parse_bool(request.args, 'active'),
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return jsonify(paginated(schema_many.dump(contractors), total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_contractors: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/admin/contractors/<int:contractor_id>', methods=['GET'])
@auth_required()
@permission_required('contractors.view')
def get_contractor(contractor_id):
    try:
        contractor = ContractorService.get_contractor(contractor_id)
        result = schema.dump(contractor)
        # bank details are for admins only
        if current_user.has_role('admin'):
            result.update(ContractorService.get_bank_info(contractor))
        return jsonify(result), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_contractor: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/admin/contractors', methods=['POST'])
@auth_required()
@permission_required('contractors.create')
def create_contractor():
    try:
        data = ContractorInputSchema().load(request.get_json() or {})
        contractor = ContractorService.create_contractor(data)
        return jsonify(schema.dump(contractor)), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in create_contractor: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/admin/contractors/<int:contractor_id>', methods=['PUT', 'PATCH'])
@auth_required()
@permission_required('contractors.edit')
def update_contractor(contractor_id):
    try:
        payload = request.get_json() or {}
        data = ContractorInputSchema().load(payload, partial=True)
        if 'active' not in payload:
            data.pop('active', None)
        contractor = ContractorService.update_contractor(contractor_id, data)
        return jsonify(schema.dump(contractor)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_contractor: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/admin/contractors/<int:contractor_id>', methods=['DELETE'])
@auth_required()
@permission_required('contractors.delete')
def delete_contractor(contractor_id):
    try:
        ContractorService.delete_contractor(contractor_id)
        return jsonify({'message': 'Contractor deleted successfully'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in delete_contractor: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/admin/contractors/<int:contractor_id>/link-user', methods=['POST'])
@auth_required()
@permission_required('contractors.edit')
def link_user(contractor_id):
    try:
        data = LinkUserSchema().load(request.get_json() or {})
        contractor = ContractorService.link_user(contractor_id, data['user_id'])
        return jsonify(schema.dump(contractor)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in link_user: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/contractors', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def lookup_contractors():
    try:
        contractors = ContractorService.get_active_for_lookup()
        return jsonify([
            {'id': c.id, 'nickname': c.nickname, 'full_name': c.full_name, 'email': c.email}
            for c in contractors
        ]), 200
    except Exception as e:
        logging.error(f"Unhandled error in lookup_contractors: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@contractor_bp.route('/contractors/positions', methods=['GET'])
@auth_required()
def list_positions():
    return jsonify(CONTRACTOR_POSITIONS), 200
