from datetime import datetime
from docketwise.extensions import db
from sqlalchemy import true

CONTRACTOR_POSITIONS = [
    'Steel Fixer',
    'Welder',
    'Crane Operator',
    'Supervisor',
    'Labourer',
    'Rigger',
    'Concrete Worker',
    'Carpenter',
    'Electrician',
    'Plumber',
    'Other',
]

BANK_FIELDS = ('bank_name', 'bsb', 'account_no')


class Contractor(db.Model):
    __tablename__ = 'contractor'
    id = db.Column(db.Integer, primary_key=True)
    nickname = db.Column(db.String(50), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=True)
    full_name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    position = db.Column(db.String(100), nullable=True)
    experience = db.Column(db.String(500), nullable=True)
    hourly_rate = db.Column(db.Numeric(precision=10, scale=2), nullable=False, default=0)
    abn = db.Column(db.String(20), nullable=True)
    # Bank details are stored as Fernet tokens, hence the wider columns
    bank_name = db.Column(db.String(512), nullable=True)
    bsb = db.Column(db.String(512), nullable=True)
    account_no = db.Column(db.String(512), nullable=True)
    home_address = db.Column(db.String(500), nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False, server_default=true())
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship('User', back_populates='contractor')
    entries = db.relationship('DocketEntry', back_populates='contractor', lazy='dynamic')
    invoices = db.relationship('WorkerInvoice', back_populates='contractor', lazy='dynamic',
                               cascade='all, delete-orphan')

    @classmethod
    def query_active(cls):
        """Query active contractors only"""
        return cls.query.filter_by(active=True)

    @property
    def display_name(self):
        if self.full_name:
            return self.full_name
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.nickname

    def __repr__(self):
        return f'<Contractor {self.nickname}>'
