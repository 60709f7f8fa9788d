from marshmallow import Schema, fields, validate, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from docketwise.models.builder import Builder, BuilderLocation

COMPANY_CODE_REGEX = r'^[A-Za-z0-9_-]+$'
MAX_RATE = 9999999.99

_rate = dict(
    places=2, allow_none=True, as_string=False,
    validate=validate.Range(min=0, max=MAX_RATE, min_inclusive=False,
                            error="Rate must be positive and at most 9999999.99"),
)


def _blank_to_none(data):
    """Strip strings and turn empty ones into None."""
    if not isinstance(data, dict):
        return data
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    return cleaned


class BuilderLocationSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = BuilderLocation
        include_fk = True

    id = auto_field(dump_only=True)
    builder_id = auto_field(dump_only=True)
    label = auto_field()
    address = auto_field()
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)


class BuilderSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Builder

    id = auto_field(dump_only=True)
    name = auto_field()
    company_code = auto_field()
    abn = auto_field()
    phone = auto_field()
    address = auto_field()
    website = auto_field()
    supervisor_rate = fields.Float(allow_none=True)
    tie_hand_rate = fields.Float(allow_none=True)
    tonnage_rate = fields.Float(allow_none=True)
    contact_person = auto_field()
    contact_email = auto_field()
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
    locations = fields.Nested(BuilderLocationSchema, many=True, dump_only=True)


class BuilderInputSchema(Schema):
    """Validates builder create/update payloads."""

    name = fields.String(required=True, validate=validate.Length(min=1, max=255,
                         error="Builder name must be between 1 and 255 characters"))
    company_code = fields.String(required=True, validate=[
        validate.Length(min=1, max=50, error="Company code must be between 1 and 50 characters"),
        validate.Regexp(COMPANY_CODE_REGEX,
                        error="Company code can only contain letters, numbers, hyphens and underscores"),
    ])
    abn = fields.String(allow_none=True, validate=validate.Length(max=20))
    phone = fields.String(allow_none=True, validate=validate.Length(max=30))
    address = fields.String(allow_none=True, validate=validate.Length(max=500))
    website = fields.Url(allow_none=True, validate=validate.Length(max=255))
    supervisor_rate = fields.Decimal(**_rate)
    tie_hand_rate = fields.Decimal(**_rate)
    tonnage_rate = fields.Decimal(**_rate)
    contact_person = fields.String(allow_none=True, validate=validate.Length(max=255))
    contact_email = fields.Email(allow_none=True)

    @pre_load
    def clean_strings(self, data, **kwargs):
        return _blank_to_none(data)


class BuilderLocationInputSchema(Schema):
    label = fields.String(required=True, validate=validate.Length(min=1, max=255,
                          error="Location label must be between 1 and 255 characters"))
    address = fields.String(allow_none=True, validate=validate.Length(max=500))

    @pre_load
    def clean_strings(self, data, **kwargs):
        return _blank_to_none(data)
