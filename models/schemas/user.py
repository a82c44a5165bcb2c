import re

from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate, validates

from models.role import Role

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
OTP_PATTERN = re.compile(r"^[0-9]+$")


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def check_password_strength(value):
    """Password policy: 8+ chars with upper, lower, digit and special character."""
    errors = []
    if len(value) < 8:
        errors.append("Password must be at least 8 characters long.")
    if not re.search(r"[A-Z]", value):
        errors.append("Password must have at least one uppercase character.")
    if not re.search(r"[a-z]", value):
        errors.append("Password must have at least one lowercase character.")
    if not re.search(r"[0-9]", value):
        errors.append("Password must have at least one numeric character.")
    if not re.search(r"[^A-Za-z0-9]", value):
        errors.append("Password must have at least one special character.")
    if errors:
        raise ValidationError(errors)


class EmailSchema(Schema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class RegisterSchema(EmailSchema):
    class Meta:
        # Public registration ignores extras such as a requested role
        unknown = EXCLUDE

    first_name = fields.String(
        required=True,
        validate=[
            validate.Length(min=1, max=14),
            validate.Regexp(NAME_PATTERN, error="First name must not contain special characters."),
        ],
    )
    last_name = fields.String(
        required=True,
        validate=[
            validate.Length(min=1, max=22),
            validate.Regexp(NAME_PATTERN, error="Last name must not contain special characters."),
        ],
    )
    password = fields.String(required=True, load_only=True)
    confirm_password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        check_password_strength(value)


class LoginSchema(EmailSchema):
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class VerifyOtpSchema(EmailSchema):
    otp = fields.String(
        required=True,
        validate=[
            validate.Length(min=4, max=10),
            validate.Regexp(OTP_PATTERN, error="OTP must be numeric."),
        ],
    )


class ResetPasswordSchema(VerifyOtpSchema):
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        check_password_strength(value)


class UserOutSchema(Schema):
    """Every user-facing read goes through this schema; secrets have no field here."""
    id = fields.String(allow_none=False)
    email = fields.String(allow_none=False)
    first_name = fields.String(allow_none=True)
    last_name = fields.String(allow_none=True)
    role = fields.Enum(Role)
    is_verified = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
