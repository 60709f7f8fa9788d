from marshmallow import Schema, fields, validate, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from docketwise.models.worker_invoice import WorkerInvoice, INVOICE_STATUSES
from docketwise.utils.week_utils import get_week_label


class WorkerInvoiceSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = WorkerInvoice
        include_fk = True

    id = auto_field(dump_only=True)
    contractor_id = auto_field(dump_only=True)
    week_start = auto_field(dump_only=True)
    week_end = auto_field(dump_only=True)
    week_label = fields.Method('get_week_label', dump_only=True)
    total_hours = fields.Float()
    hourly_rate = fields.Float()
    total_amount = fields.Float()
    status = auto_field()
    submitted_at = auto_field(dump_only=True)
    paid_at = auto_field(dump_only=True)
    pdf_url = auto_field(dump_only=True)
    audit_notes = auto_field(dump_only=True)
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
    contractor_nickname = fields.Function(lambda obj: obj.contractor.nickname if obj.contractor else None)
    contractor_full_name = fields.Function(lambda obj: obj.contractor.full_name if obj.contractor else None)

    def get_week_label(self, obj):
        return get_week_label(obj.week_start, obj.week_end)


class CreateInvoiceSchema(Schema):
    week_start = fields.Date(required=True, error_messages={'invalid': 'Invalid week start date'})


class UpdateInvoiceSchema(Schema):
    total_hours = fields.Decimal(places=2, as_string=False, validate=validate.Range(min=0))
    hourly_rate = fields.Decimal(places=2, as_string=False, validate=validate.Range(min=0))
    total_amount = fields.Decimal(places=2, as_string=False, validate=validate.Range(min=0))
    audit_note = fields.String(required=True, validate=validate.Length(min=1, max=1000,
                               error="Audit note is required"))

    @pre_load
    def strip_note(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('audit_note'), str):
            data = dict(data, audit_note=data['audit_note'].strip())
        return data


class UpdateInvoiceStatusSchema(Schema):
    status = fields.String(required=True, validate=validate.OneOf(INVOICE_STATUSES))
    audit_note = fields.String(allow_none=True, validate=validate.Length(max=1000))
