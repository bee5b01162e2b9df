#cityscope/api/auth/schemas.py
from marshmallow import fields, validate

from cityscope.core.schemas import RequestSchema


class RegisterSchema(RequestSchema):
    """회원가입 요청의 유효성을 검사하는 스키마"""
    # 비밀번호는 공백도 그대로 보존합니다.
    trim_exclude = ('password',)

    username = fields.Str(
        required=True,
        validate=[
            validate.Length(min=3, max=30, error="Username must be between 3 and 30 characters"),
            validate.Regexp(r'^[A-Za-z0-9_]+$', error="Username can only contain letters, numbers, and underscores"),
        ],
        error_messages={"required": "Username is required"},
    )
    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Please provide a valid email"},
    )
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=6, error="Password must be at least 6 characters"),
        error_messages={"required": "Password is required"},
    )
    display_name = fields.Str(
        data_key="displayName",
        validate=validate.Length(max=50, error="Display name cannot exceed 50 characters"),
    )


class LoginSchema(RequestSchema):
    """로그인 요청의 유효성을 검사하는 스키마"""
    trim_exclude = ('password',)

    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Please provide a valid email"},
    )
    password = fields.Str(required=True, load_only=True, error_messages={"required": "Password is required"})
