from functools import wraps

from flask import jsonify
from flask_security import current_user

ROLE_PERMISSIONS = {
    'ADMIN': [
        'builders.view',
        'builders.create',
        'builders.edit',
        'builders.delete',
        'contractors.view',
        'contractors.create',
        'contractors.edit',
        'contractors.delete',
        'admin.access',
        'users.manage',
    ],
    'SUPERVISOR': [
        'builders.view',
        'contractors.view',
    ],
    'WORKER': [],
}


def get_role_permissions(role):
    return list(ROLE_PERMISSIONS.get((role or '').upper(), []))


def has_permission(role, permission):
    return permission in ROLE_PERMISSIONS.get((role or '').upper(), [])


def has_any_permission(role, permissions):
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role, permissions):
    return all(has_permission(role, p) for p in permissions)


def permission_required(permission):
    """Reject the request with 403 unless the current user's role grants ``permission``.

    Stack under ``auth_required()`` so anonymous requests get 401 first.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not has_permission(getattr(current_user, 'role', None), permission):
                return jsonify({'error': 'Insufficient permissions'}), 403
            return f(*args, **kwargs)
        return wrapper
    return decorator
