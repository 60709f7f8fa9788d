from marshmallow import Schema, fields, validate, validates, validates_schema, pre_load, ValidationError
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from docketwise.models.docket import Docket, DocketEntry, DocketMedia, MEDIA_TYPES
from docketwise.schemas.builder_schema import _blank_to_none
from docketwise.utils.timezone_utils import local_today

MIN_HOURS = 0
MAX_HOURS = 24
HOUR_INCREMENT = 0.5


def _validate_half_hours(value):
    if value is None:
        return
    if float(value) % HOUR_INCREMENT != 0:
        raise ValidationError(f"Hours must be in {HOUR_INCREMENT} increments")


class DocketEntryInputSchema(Schema):
    contractor_id = fields.Integer(required=True, error_messages={'required': 'Contractor is required'})
    tonnage_hours = fields.Float(load_default=0, validate=[
        validate.Range(min=MIN_HOURS, max=MAX_HOURS, error="Tonnage hours must be between 0 and 24"),
        _validate_half_hours,
    ])
    day_labour_hours = fields.Float(load_default=0, validate=[
        validate.Range(min=MIN_HOURS, max=MAX_HOURS, error="Day labour hours must be between 0 and 24"),
        _validate_half_hours,
    ])

    @validates_schema
    def validate_some_hours(self, data, **kwargs):
        if not (data.get('tonnage_hours', 0) > 0 or data.get('day_labour_hours', 0) > 0):
            raise ValidationError("At least one type of hours must be greater than 0", 'tonnage_hours')


class DocketMediaInputSchema(Schema):
    type = fields.String(load_default='PHOTO', validate=validate.OneOf(MEDIA_TYPES))
    url = fields.Url(required=True, error_messages={'invalid': 'Invalid media URL'})
    caption = fields.String(allow_none=True, validate=validate.Length(max=500,
                            error="Caption must be less than 500 characters"))

    @pre_load
    def clean_strings(self, data, **kwargs):
        return _blank_to_none(data)


class DocketInputSchema(Schema):
    """
    Create payload.

    Updates load with ``partial=UPDATE_FIELDS`` so only top-level fields may be omitted;
    any entry or media item that is sent must still be complete.
    """

    date = fields.Date(required=True)
    builder_id = fields.Integer(required=True, error_messages={'required': 'Builder is required'})
    location_id = fields.Integer(required=True, error_messages={'required': 'Location is required'})
    schedule_no = fields.String(allow_none=True, validate=validate.Length(max=100,
                                error="Schedule number must be less than 100 characters"))
    description = fields.String(allow_none=True, validate=validate.Length(max=1000,
                                error="Description must be less than 1000 characters"))
    site_manager_name = fields.String(allow_none=True, validate=validate.Length(max=255,
                                      error="Site manager name must be less than 255 characters"))
    site_manager_signature_url = fields.String(allow_none=True, validate=validate.Length(max=1024))
    entries = fields.List(fields.Nested(DocketEntryInputSchema), required=True,
                          validate=validate.Length(min=1, error="At least one entry is required"))
    media = fields.List(fields.Nested(DocketMediaInputSchema), load_default=list)

    @pre_load
    def clean_strings(self, data, **kwargs):
        return _blank_to_none(data)

    @validates('date')
    def validate_date(self, value, **kwargs):
        if value > local_today():
            raise ValidationError("Date cannot be in the future")


UPDATE_FIELDS = tuple(DocketInputSchema._declared_fields)


class DocketEntrySchema(SQLAlchemyAutoSchema):
    class Meta:
        model = DocketEntry
        include_fk = True

    id = auto_field(dump_only=True)
    contractor_id = auto_field()
    tonnage_hours = fields.Float()
    day_labour_hours = fields.Float()
    total_hours = fields.Float(dump_only=True)
    contractor = fields.Method('get_contractor', dump_only=True)

    def get_contractor(self, obj):
        c = obj.contractor
        if not c:
            return None
        return {
            'id': c.id,
            'nickname': c.nickname,
            'full_name': c.full_name,
            'hourly_rate': float(c.hourly_rate or 0),
        }


class DocketMediaSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = DocketMedia

    id = auto_field(dump_only=True)
    type = auto_field()
    url = auto_field()
    caption = auto_field()
    created_at = auto_field(dump_only=True)


class DocketSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Docket
        include_fk = True

    id = auto_field(dump_only=True)
    date = auto_field()
    builder_id = auto_field()
    location_id = auto_field()
    supervisor_id = auto_field(dump_only=True)
    schedule_no = auto_field()
    description = auto_field()
    site_manager_name = auto_field()
    site_manager_signature_url = auto_field()
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
    reference = fields.Method('get_reference', dump_only=True)
    builder = fields.Method('get_builder', dump_only=True)
    location = fields.Method('get_location', dump_only=True)
    supervisor = fields.Method('get_supervisor', dump_only=True)
    entries = fields.Nested(DocketEntrySchema, many=True, dump_only=True)
    media = fields.Nested(DocketMediaSchema, many=True, dump_only=True)
    totals = fields.Method('get_totals', dump_only=True)

    def get_reference(self, obj):
        from docketwise.services.docket_service import DocketService
        return DocketService.generate_docket_reference(obj)

    def get_builder(self, obj):
        b = obj.builder
        return {'id': b.id, 'name': b.name, 'company_code': b.company_code} if b else None

    def get_location(self, obj):
        loc = obj.location
        return {'id': loc.id, 'label': loc.label, 'address': loc.address} if loc else None

    def get_supervisor(self, obj):
        s = obj.supervisor
        return {'id': s.id, 'name': s.name, 'email': s.email} if s else None

    def get_totals(self, obj):
        from docketwise.services.docket_service import DocketService
        return DocketService.calculate_docket_totals(obj.entries)
