from datetime import datetime
from docketwise.extensions import db


class Builder(db.Model):
    __tablename__ = 'builder'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    company_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    abn = db.Column(db.String(20), nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    supervisor_rate = db.Column(db.Numeric(precision=10, scale=2), nullable=True)
    tie_hand_rate = db.Column(db.Numeric(precision=10, scale=2), nullable=True)
    tonnage_rate = db.Column(db.Numeric(precision=10, scale=2), nullable=True)
    contact_person = db.Column(db.String(255), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    locations = db.relationship(
        'BuilderLocation', back_populates='builder', lazy=True,
        cascade='all, delete-orphan', order_by='BuilderLocation.label'
    )
    dockets = db.relationship('Docket', back_populates='builder', lazy='dynamic')

    def __repr__(self):
        return f'<Builder {self.company_code}>'


class BuilderLocation(db.Model):
    __tablename__ = 'builder_location'
    __table_args__ = (
        db.UniqueConstraint('builder_id', 'label', name='uq_builder_location_label'),
    )
    id = db.Column(db.Integer, primary_key=True)
    builder_id = db.Column(db.Integer, db.ForeignKey('builder.id', ondelete='CASCADE'), nullable=False, index=True)
    label = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    builder = db.relationship('Builder', back_populates='locations')
    dockets = db.relationship('Docket', back_populates='location', lazy='dynamic')

    def __repr__(self):
        return f'<BuilderLocation {self.label}>'
