from marshmallow import Schema, fields, validate, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from docketwise.models.user import User
from docketwise.utils.validation import MIN_PASSWORD_LENGTH


class UserSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = User
        exclude = ('password', 'fs_uniquifier', 'last_login_ip', 'current_login_ip')

    id = auto_field(dump_only=True)
    email = auto_field()
    name = auto_field()
    active = auto_field()
    email_verified = auto_field(dump_only=True)
    role = fields.String(dump_only=True)
    created_at = auto_field(dump_only=True)
    updated_at = auto_field(dump_only=True)
    contractor_id = fields.Function(lambda obj: obj.contractor.id if obj.contractor else None)


def _normalise_email(data):
    if isinstance(data, dict) and isinstance(data.get('email'), str):
        data = dict(data, email=data['email'].strip().lower())
    return data


class RegisterSchema(Schema):
    email = fields.Email(required=True, error_messages={'invalid': 'Invalid email address'})
    password = fields.String(required=True, load_only=True, validate=validate.Length(
        min=MIN_PASSWORD_LENGTH, error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))
    name = fields.String(allow_none=True, validate=validate.Length(max=255))

    @pre_load
    def normalise(self, data, **kwargs):
        return _normalise_email(data)


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalise(self, data, **kwargs):
        return _normalise_email(data)


class UpdateRoleSchema(Schema):
    role = fields.String(required=True, validate=validate.OneOf(['ADMIN', 'SUPERVISOR', 'WORKER']))

    @pre_load
    def upper_role(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('role'), str):
            data = dict(data, role=data['role'].strip().upper())
        return data


class EmailOnlySchema(Schema):
    email = fields.Email(required=True, error_messages={'invalid': 'Invalid email address'})

    @pre_load
    def normalise(self, data, **kwargs):
        return _normalise_email(data)


class ChangePasswordSchema(Schema):
    current_password = fields.String(required=True, load_only=True,
                                     validate=validate.Length(min=1, error="Current password is required"))
    new_password = fields.String(required=True, load_only=True, validate=validate.Length(
        min=MIN_PASSWORD_LENGTH, error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1, error="Token is required"))
    password = fields.String(required=True, load_only=True, validate=validate.Length(
        min=MIN_PASSWORD_LENGTH, error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))


class TokenSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1, error="Token is required"))


class LinkUserSchema(Schema):
    user_id = fields.Integer(required=True)
