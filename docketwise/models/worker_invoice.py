from datetime import datetime
from docketwise.extensions import db

DRAFT = 'DRAFT'
SUBMITTED = 'SUBMITTED'
PAID = 'PAID'
INVOICE_STATUSES = (DRAFT, SUBMITTED, PAID)


class WorkerInvoice(db.Model):
    __tablename__ = 'worker_invoice'
    __table_args__ = (
        db.UniqueConstraint('contractor_id', 'week_start', name='uq_worker_invoice_contractor_week'),
    )
    id = db.Column(db.Integer, primary_key=True)
    contractor_id = db.Column(db.Integer, db.ForeignKey('contractor.id', ondelete='CASCADE'), nullable=False, index=True)
    week_start = db.Column(db.Date, nullable=False, index=True)
    week_end = db.Column(db.Date, nullable=False)
    total_hours = db.Column(db.Numeric(precision=8, scale=2), nullable=False, default=0)
    hourly_rate = db.Column(db.Numeric(precision=10, scale=2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(precision=12, scale=2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=DRAFT, index=True)
    submitted_at = db.Column(db.DateTime, nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)
    pdf_url = db.Column(db.String(512), nullable=True)
    audit_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    contractor = db.relationship('Contractor', back_populates='invoices')

    def append_audit_note(self, author, note, timestamp=None):
        stamp = (timestamp or datetime.utcnow()).isoformat()
        line = f"[{stamp}] {author}: {note}"
        self.audit_notes = f"{self.audit_notes}\n{line}" if self.audit_notes else line

    def __repr__(self):
        return f'<WorkerInvoice contractor={self.contractor_id} week={self.week_start} status={self.status}>'
