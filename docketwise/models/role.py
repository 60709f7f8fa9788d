from docketwise.extensions import db
from flask_security import RoleMixin

ADMIN = 'admin'
SUPERVISOR = 'supervisor'
WORKER = 'worker'
ALL_ROLES = (ADMIN, SUPERVISOR, WORKER)

roles_users = db.Table(
    'roles_users',
    db.Column('user_id', db.Integer(), db.ForeignKey('user.id', ondelete='CASCADE')),
    db.Column('role_id', db.Integer(), db.ForeignKey('role.id', ondelete='CASCADE')),
)


class Role(db.Model, RoleMixin):
    __tablename__ = 'role'
    id = db.Column(db.Integer(), primary_key=True)
    name = db.Column(db.String(80), unique=True, nullable=False)
    description = db.Column(db.String(255))

    def __repr__(self):
        return f'<Role {self.name}>'
