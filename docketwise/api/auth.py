from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError
from docketwise.extensions import limiter
from docketwise.services.auth_service import AuthService, REGISTRATION_SUCCESS, PASSWORD_CHANGED
from docketwise.services.service_error import ServiceError
from docketwise.schemas.user_schema import (
    UserSchema, RegisterSchema, LoginSchema, EmailOnlySchema, ChangePasswordSchema, ResetPasswordSchema, TokenSchema,
)
from docketwise.utils.permissions import get_role_permissions
import logging
from flask_security import auth_required, current_user

auth_bp = Blueprint('auth', __name__)
schema = UserSchema()


def auth_rate_limit():
    return current_app.config.get('AUTH_RATE_LIMIT', '10 per minute')


@auth_bp.route('/register', methods=['POST'])
@limiter.limit(auth_rate_limit)
def register():
    try:
        data = RegisterSchema().load(request.get_json() or {})
        user = AuthService.register(data['email'], data['password'], data.get('name'))
        return jsonify({'message': REGISTRATION_SUCCESS, 'user': schema.dump(user)}), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in register: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(auth_rate_limit)
def login():
    try:
        data = LoginSchema().load(request.get_json() or {})
        user, token = AuthService.authenticate(data['email'], data['password'])
        return jsonify({'message': 'Signed in successfully', 'token': token, 'user': schema.dump(user)}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in login: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/logout', methods=['POST'])
@auth_required()
def logout():
    try:
        AuthService.logout()
        return jsonify({'message': 'Signed out successfully'}), 200
    except Exception as e:
        logging.error(f"Unhandled error in logout: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/me', methods=['GET'])
@auth_required()
def get_me():
    try:
        result = schema.dump(current_user)
        result['permissions'] = get_role_permissions(current_user.role)
        return jsonify(result), 200
    except Exception as e:
        logging.error(f"Unhandled error in get_me: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/change-password', methods=['POST'])
@auth_required()
def change_password():
    try:
        data = ChangePasswordSchema().load(request.get_json() or {})
        AuthService.change_password(current_user, data['current_password'], data['new_password'])
        return jsonify({'message': PASSWORD_CHANGED}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in change_password: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/forgot-password', methods=['POST'])
@limiter.limit(auth_rate_limit)
def forgot_password():
    try:
        data = EmailOnlySchema().load(request.get_json() or {})
        return jsonify({'message': AuthService.forgot_password(data['email'])}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in forgot_password: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    try:
        data = ResetPasswordSchema().load(request.get_json() or {})
        return jsonify({'message': AuthService.reset_password(data['token'], data['password'])}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in reset_password: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/verify-email', methods=['POST'])
def verify_email():
    try:
        data = TokenSchema().load(request.get_json() or {})
        return jsonify({'message': AuthService.verify_email(data['token'])}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in verify_email: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@auth_bp.route('/resend-verification', methods=['POST'])
@limiter.limit(auth_rate_limit)
def resend_verification():
    try:
        data = EmailOnlySchema().load(request.get_json() or {})
        return jsonify({'message': AuthService.resend_verification(data['email'])}), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in resend_verification: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
