from flask import Blueprint, request, jsonify
from marshmallow import ValidationError
from docketwise.services.builder_service import BuilderService
from docketwise.services.service_error import ServiceError
from docketwise.schemas.builder_schema import (
    BuilderSchema, BuilderLocationSchema, BuilderInputSchema, BuilderLocationInputSchema,
)
from docketwise.utils.permissions import permission_required
from docketwise.utils.validation import QueryParamError, parse_pagination, parse_sort, paginated
import logging
from flask_security import auth_required, roles_accepted

builder_bp = Blueprint('builder', __name__)
schema = BuilderSchema()
schema_list = BuilderSchema(many=True, exclude=('locations',))
location_schema = BuilderLocationSchema()
location_schema_many = BuilderLocationSchema(many=True)

BUILDER_SORT_FIELDS = ['name', 'company_code', 'created_at', 'updated_at']


@builder_bp.route('/admin/builders', methods=['GET'])
@auth_required()
@permission_required('builders.view')
def list_builders():
    try:
        page, limit = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, BUILDER_SORT_FIELDS, 'created_at')
        rows, total = BuilderService.list_builders(
            search=request.args.get('search'), page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
        items = []
        for builder, location_count in rows:
            item = schema_list.dump([builder])[0]
            item['location_count'] = location_count
            items.append(item)
        return jsonify(paginated(items, total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_builders: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>', methods=['GET'])
@auth_required()
@permission_required('builders.view')
def get_builder(builder_id):
    try:
        return jsonify(schema.dump(BuilderService.get_builder(builder_id))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_builder: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders', methods=['POST'])
@auth_required()
@permission_required('builders.create')
def create_builder():
    try:
        data = BuilderInputSchema().load(request.get_json() or {})
        builder = BuilderService.create_builder(data)
        return jsonify(schema.dump(builder)), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in create_builder: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>', methods=['PUT', 'PATCH'])
@auth_required()
@permission_required('builders.edit')
def update_builder(builder_id):
    try:
        data = BuilderInputSchema().load(request.get_json() or {}, partial=True)
        builder = BuilderService.update_builder(builder_id, data)
        return jsonify(schema.dump(builder)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_builder: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>', methods=['DELETE'])
@auth_required()
@permission_required('builders.delete')
def delete_builder(builder_id):
    try:
        BuilderService.delete_builder(builder_id)
        return jsonify({'message': 'Builder deleted successfully'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in delete_builder: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>/locations', methods=['GET'])
@auth_required()
@permission_required('builders.view')
def list_locations(builder_id):
    try:
        page, limit = parse_pagination(request.args)
        locations, total = BuilderService.list_locations(
            builder_id, search=request.args.get('search'), page=page, limit=limit)
        return jsonify(paginated(location_schema_many.dump(locations), total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_locations: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>/locations', methods=['POST'])
@auth_required()
@permission_required('builders.edit')
def create_location(builder_id):
    try:
        data = BuilderLocationInputSchema().load(request.get_json() or {})
        location = BuilderService.create_location(builder_id, data)
        return jsonify(location_schema.dump(location)), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in create_location: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>/locations/<int:location_id>', methods=['PUT', 'PATCH'])
@auth_required()
@permission_required('builders.edit')
def update_location(builder_id, location_id):
    try:
        data = BuilderLocationInputSchema().load(request.get_json() or {}, partial=True)
        location = BuilderService.update_location(builder_id, location_id, data)
        return jsonify(location_schema.dump(location)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_location: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/admin/builders/<int:builder_id>/locations/<int:location_id>', methods=['DELETE'])
@auth_required()
@permission_required('builders.edit')
def delete_location(builder_id, location_id):
    try:
        BuilderService.delete_location(builder_id, location_id)
        return jsonify({'message': 'Location deleted successfully'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in delete_location: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/builders', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def lookup_builders():
    try:
        builders = BuilderService.get_all_for_lookup()
        return jsonify([{'id': b.id, 'name': b.name, 'company_code': b.company_code} for b in builders]), 200
    except Exception as e:
        logging.error(f"Unhandled error in lookup_builders: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@builder_bp.route('/locations', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'supervisor')
def lookup_locations():
    try:
        locations = BuilderService.get_all_locations_for_lookup()
        return jsonify([
            {
                'id': loc.id,
                'label': loc.label,
                'builder_id': loc.builder_id,
                'builder_name': loc.builder.name,
                'builder_code': loc.builder.company_code,
            }
            for loc in locations
        ]), 200
    except Exception as e:
        logging.error(f"Unhandled error in lookup_locations: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
