import logging
import uuid
from datetime import datetime
from flask_security.utils import hash_password

from docketwise.extensions import db
from docketwise.models.role import Role, ADMIN, SUPERVISOR, WORKER
from docketwise.models.user import User

ROLE_DESCRIPTIONS = {
    ADMIN: 'System Administrator',
    SUPERVISOR: 'Site Supervisor',
    WORKER: 'Worker',
}


# Helper: get or create
def get_or_create(model, defaults=None, **kwargs):
    instance = model.query.filter_by(**kwargs).first()
    if instance:
        return instance, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    instance = model(**params)
    db.session.add(instance)
    return instance, True


def seed_roles():
    """Create the three application roles. Returns how many were new."""
    created = 0
    for name, description in ROLE_DESCRIPTIONS.items():
        _, was_created = get_or_create(Role, name=name, defaults={'description': description})
        created += int(was_created)
    db.session.commit()
    logging.info(f"Seeded roles, {created} created")
    return created


def create_admin(email, password, name=None):
    """Create (or promote) an admin account with a verified email."""
    seed_roles()
    admin_role = Role.query.filter_by(name=ADMIN).first()
    email = email.strip().lower()
    user, was_created = get_or_create(User, email=email, defaults={
        'password': hash_password(password),
        'active': True,
        'fs_uniquifier': str(uuid.uuid4()),
        'name': name,
        'email_verified': datetime.utcnow(),
    })
    if not was_created:
        user.password = hash_password(password)
        if user.email_verified is None:
            user.email_verified = datetime.utcnow()
    user.roles = [admin_role]
    db.session.commit()
    logging.info(f"Admin account ready: {email}")
    return user
