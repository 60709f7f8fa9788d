import logging
from datetime import datetime, timedelta
from sqlalchemy import or_
from docketwise.extensions import db
from docketwise.models.role import Role, ADMIN, SUPERVISOR, WORKER
from docketwise.models.user import User
from docketwise.services.service_error import ServiceError, NotFoundError, ConflictError

USER_NOT_FOUND = "User not found"
CANNOT_CHANGE_OWN_ROLE = "Cannot change your own admin role"
CANNOT_DELETE_SELF = "Cannot delete your own account"

SORT_FIELDS = {
    'created_at': User.created_at,
    'updated_at': User.updated_at,
    'name': User.name,
    'email': User.email,
}


class AdminService:
    @staticmethod
    def get_users(page=1, limit=20, role=None, search=None, email_verified=None,
                  sort_by='created_at', sort_order='desc'):
        try:
            query = User.query
            if role:
                query = query.filter(User.roles.any(Role.name == role.lower()))
            if search:
                term = f"%{search.strip()}%"
                query = query.filter(or_(User.name.ilike(term), User.email.ilike(term)))
            if email_verified is True:
                query = query.filter(User.email_verified.isnot(None))
            elif email_verified is False:
                query = query.filter(User.email_verified.is_(None))
            total = query.count()
            column = SORT_FIELDS.get(sort_by, User.created_at)
            query = query.order_by(column.asc() if sort_order == 'asc' else column.desc())
            return query.offset((page - 1) * limit).limit(limit).all(), total
        except Exception as e:
            logging.error(f"Error fetching users: {e}", exc_info=True)
            raise ServiceError("Could not fetch users. Please try again later.", 500)

    @staticmethod
    def get_user_by_id(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    @staticmethod
    def update_user_role(admin_id, user_id, role):
        """Replace the user's single role. ``role`` is ADMIN, SUPERVISOR or WORKER."""
        if admin_id == user_id:
            raise ServiceError(CANNOT_CHANGE_OWN_ROLE)
        user = AdminService.get_user_by_id(user_id)
        new_role = Role.query.filter_by(name=role.lower()).first()
        if not new_role:
            raise ServiceError("Invalid role specified")
        try:
            user.roles = [new_role]
            db.session.commit()
            logging.info(f"User {user.email} role changed to {role} by admin {admin_id}")
            return user
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating user role: {e}", exc_info=True)
            raise ServiceError("Could not update user role. Please try again later.", 500)

    @staticmethod
    def delete_user(admin_id, user_id):
        if admin_id == user_id:
            raise ServiceError(CANNOT_DELETE_SELF)
        user = AdminService.get_user_by_id(user_id)
        if user.dockets.first() is not None:
            raise ConflictError("Cannot delete a user who supervises dockets")
        try:
            if user.contractor:
                user.contractor.user_id = None
            db.session.delete(user)
            db.session.commit()
            logging.info(f"User {user_id} deleted by admin {admin_id}")
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting user: {e}", exc_info=True)
            raise ServiceError("Could not delete user. Please try again later.", 500)

    @staticmethod
    def get_dashboard_stats():
        try:
            def role_count(name):
                return User.query.filter(User.roles.any(Role.name == name)).count()

            return {
                'total_users': User.query.count(),
                'admin_count': role_count(ADMIN),
                'supervisor_count': role_count(SUPERVISOR),
                'worker_count': role_count(WORKER),
                'recent_signups': User.query.filter(User.created_at >= datetime.utcnow() - timedelta(days=7)).count(),
                'pending_verifications': User.query.filter(User.email_verified.is_(None)).count(),
            }
        except Exception as e:
            logging.error(f"Error fetching user stats: {e}", exc_info=True)
            raise ServiceError("Could not fetch user statistics. Please try again later.", 500)
