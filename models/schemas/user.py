from marshmallow import EXCLUDE, Schema, fields, validate

PASSWORD_MIN_LENGTH = 6

_password_length = validate.Length(
    min=PASSWORD_MIN_LENGTH,
    error=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long",
)
_not_blank = validate.Length(min=1)


class _RequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class SigninSchema(_RequestSchema):
    email = fields.String(
        required=True,
        validate=_not_blank,
        error_messages={"required": "Email and password are required"},
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=_not_blank,
        error_messages={"required": "Email and password are required"},
    )


class SignupSchema(SigninSchema):
    email = fields.Email(
        required=True,
        error_messages={"required": "Email and password are required", "invalid": "Not a valid email address"},
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=_password_length,
        error_messages={"required": "Email and password are required"},
    )


class ForgotPasswordSchema(_RequestSchema):
    email = fields.String(
        required=True,
        validate=_not_blank,
        error_messages={"required": "Email is required"},
    )


class ResetPasswordSchema(_RequestSchema):
    token = fields.String(
        required=True,
        validate=_not_blank,
        error_messages={"required": "Token and new password are required"},
    )
    new_password = fields.String(
        data_key="newPassword",
        required=True,
        load_only=True,
        validate=_password_length,
        error_messages={"required": "Token and new password are required"},
    )


class ChangePasswordSchema(_RequestSchema):
    current_password = fields.String(
        data_key="currentPassword",
        required=True,
        load_only=True,
        validate=_not_blank,
        error_messages={"required": "Current password and new password are required"},
    )
    new_password = fields.String(
        data_key="newPassword",
        required=True,
        load_only=True,
        validate=_password_length,
        error_messages={"required": "Current password and new password are required"},
    )


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    is_verified = fields.Boolean()
