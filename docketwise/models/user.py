from datetime import datetime
from docketwise.extensions import db
from flask_security import UserMixin
from .role import roles_users, ALL_ROLES


class User(db.Model, UserMixin):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    active = db.Column(db.Boolean(), default=True)
    fs_uniquifier = db.Column(db.String(64), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=True)
    email_verified = db.Column(db.DateTime(), nullable=True)
    roles = db.relationship('Role', secondary=roles_users, backref=db.backref('users', lazy='dynamic'))
    # Flask-Security-Too trackable fields
    last_login_at = db.Column(db.DateTime())
    current_login_at = db.Column(db.DateTime())
    last_login_ip = db.Column(db.String(100))
    current_login_ip = db.Column(db.String(100))
    login_count = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    contractor = db.relationship('Contractor', back_populates='user', uselist=False)

    @property
    def role_name(self):
        """Single role held by the user ('admin', 'supervisor' or 'worker')."""
        for name in ALL_ROLES:
            if self.has_role(name):
                return name
        return None

    @property
    def role(self):
        name = self.role_name
        return name.upper() if name else None

    @property
    def display_name(self):
        return self.name or self.email

    def __repr__(self):
        return f'<User {self.email}>'
