from marshmallow import Schema, fields, validate, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from docketwise.models.contractor import Contractor
from docketwise.schemas.builder_schema import _blank_to_none


class ContractorSchema(SQLAlchemyAutoSchema):
    """Contractor output. Bank fields are never part of this schema."""

    class Meta:
        model = Contractor
        include_fk = True
        exclude = ('bank_name', 'bsb', 'account_no')

    id = auto_field(dump_only=True)
    nickname = auto_field()
    first_name = auto_field()
    last_name = auto_field()
    full_name = auto_field()
    email = auto_field()
    phone = auto_field()
    position = auto_field()
    experience = auto_field()
    hourly_rate = fields.Float()
    abn = auto_field()
    home_address = auto_field()
    active = auto_field()
    user_id = auto_field(dump_only=True)
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)


class ContractorInputSchema(Schema):
    nickname = fields.String(required=True, validate=validate.Length(min=1, max=50, error="Nickname is required"))
    first_name = fields.String(allow_none=True, validate=validate.Length(max=50, error="First name too long"))
    last_name = fields.String(allow_none=True, validate=validate.Length(max=50, error="Last name too long"))
    full_name = fields.String(allow_none=True, validate=validate.Length(max=100, error="Full name too long"))
    email = fields.Email(allow_none=True, error_messages={'invalid': 'Invalid email'})
    phone = fields.String(allow_none=True, validate=validate.Length(max=30, error="Phone number too long"))
    position = fields.String(allow_none=True, validate=validate.Length(max=100, error="Position too long"))
    experience = fields.String(allow_none=True, validate=validate.Length(max=500, error="Experience too long"))
    hourly_rate = fields.Decimal(required=True, places=2, as_string=False,
                                 validate=validate.Range(min=0, error="Hourly rate must be positive"))
    abn = fields.String(allow_none=True, validate=validate.Length(max=20, error="ABN too long"))
    bank_name = fields.String(allow_none=True, validate=validate.Length(max=100, error="Bank name too long"))
    bsb = fields.String(allow_none=True, validate=validate.Length(max=10, error="BSB too long"))
    account_no = fields.String(allow_none=True, validate=validate.Length(max=32, error="Account number too long"))
    home_address = fields.String(allow_none=True, validate=validate.Length(max=500, error="Address too long"))
    active = fields.Boolean(load_default=True)

    @pre_load
    def clean_strings(self, data, **kwargs):
        return _blank_to_none(data)
