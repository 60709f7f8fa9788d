from flask import Blueprint, request, jsonify
from marshmallow import ValidationError
from docketwise.services.admin_service import AdminService
from docketwise.services.service_error import ServiceError
from docketwise.schemas.user_schema import UserSchema, UpdateRoleSchema
from docketwise.utils.validation import QueryParamError, parse_pagination, parse_bool, parse_sort, paginated
import logging
from flask_security import auth_required, roles_accepted, current_user

admin_bp = Blueprint('admin', __name__)
schema = UserSchema()
schema_many = UserSchema(many=True)

USER_SORT_FIELDS = ['created_at', 'updated_at', 'name', 'email']


@admin_bp.route('/users', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def list_users():
    try:
        page, limit = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, USER_SORT_FIELDS, 'created_at')
        users, total = AdminService.get_users(
            page=page,
            limit=limit,
            role=request.args.get('role'),
            search=request.args.get('search'),
            email_verified=parse_bool(request.args, 'email_verified'),
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return jsonify(paginated(schema_many.dump(users), total, page, limit)), 200
    except QueryParamError as qe:
        return jsonify({'error': str(qe)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_users: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@admin_bp.route('/users/<int:user_id>', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def get_user(user_id):
    try:
        return jsonify(schema.dump(AdminService.get_user_by_id(user_id))), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_user: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@admin_bp.route('/users/<int:user_id>/role', methods=['PATCH'])
@auth_required()
@roles_accepted('admin')
def update_user_role(user_id):
    try:
        data = UpdateRoleSchema().load(request.get_json() or {})
        user = AdminService.update_user_role(current_user.id, user_id, data['role'])
        return jsonify(schema.dump(user)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_user_role: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@auth_required()
@roles_accepted('admin')
def delete_user(user_id):
    try:
        AdminService.delete_user(current_user.id, user_id)
        return jsonify({'message': 'User deleted successfully'}), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in delete_user: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@admin_bp.route('/stats', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def get_stats():
    try:
        return jsonify(AdminService.get_dashboard_stats()), 200
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in get_stats: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
