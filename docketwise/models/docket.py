from datetime import datetime
from docketwise.extensions import db

MEDIA_TYPES = ('PHOTO', 'VIDEO', 'DOCUMENT')


class Docket(db.Model):
    __tablename__ = 'docket'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    builder_id = db.Column(db.Integer, db.ForeignKey('builder.id', ondelete='CASCADE'), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey('builder_location.id', ondelete='CASCADE'), nullable=False, index=True)
    supervisor_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    schedule_no = db.Column(db.String(100), nullable=True)
    description = db.Column(db.String(1000), nullable=True)
    site_manager_name = db.Column(db.String(255), nullable=True)
    site_manager_signature_url = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    builder = db.relationship('Builder', back_populates='dockets')
    location = db.relationship('BuilderLocation', back_populates='dockets')
    supervisor = db.relationship('User', backref=db.backref('dockets', lazy='dynamic'))
    entries = db.relationship('DocketEntry', back_populates='docket', lazy=True, cascade='all, delete-orphan')
    media = db.relationship('DocketMedia', back_populates='docket', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Docket {self.id} {self.date}>'


class DocketEntry(db.Model):
    __tablename__ = 'docket_entry'
    id = db.Column(db.Integer, primary_key=True)
    docket_id = db.Column(db.Integer, db.ForeignKey('docket.id', ondelete='CASCADE'), nullable=False, index=True)
    contractor_id = db.Column(db.Integer, db.ForeignKey('contractor.id'), nullable=False, index=True)
    tonnage_hours = db.Column(db.Numeric(precision=4, scale=1), nullable=False, default=0)
    day_labour_hours = db.Column(db.Numeric(precision=4, scale=1), nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    docket = db.relationship('Docket', back_populates='entries')
    contractor = db.relationship('Contractor', back_populates='entries')

    @property
    def total_hours(self):
        return float(self.tonnage_hours or 0) + float(self.day_labour_hours or 0)


class DocketMedia(db.Model):
    __tablename__ = 'docket_media'
    id = db.Column(db.Integer, primary_key=True)
    docket_id = db.Column(db.Integer, db.ForeignKey('docket.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default='PHOTO')
    url = db.Column(db.String(1024), nullable=False)
    caption = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    docket = db.relationship('Docket', back_populates='media')
