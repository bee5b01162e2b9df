# cityscope/api/users/schemas.py
from marshmallow import Schema, fields, validate

from cityscope.core.schemas import RequestSchema


class UserSummarySchema(Schema):
    """
    GET /api/users/search
    검색 결과 목록에 사용하는 최소한의 공개 정보.
    """
    id = fields.Str(attribute="user_id", dump_only=True)
    username = fields.Str()
    display_name = fields.Str(data_key="displayName", allow_none=True)
    profile_image_url = fields.Str(data_key="profileImageUrl", allow_none=True)
    bio = fields.Str()


class UserPublicResponseSchema(Schema):
    """
    GET /api/users/{username}
    다른 사용자의 프로필 정보를 응답할 때 사용하는 스키마.
    민감한 정보(email, password_hash)는 제외하고 공개 가능한 정보만 포함합니다.
    """
    id = fields.Str(attribute="user_id", dump_only=True)
    username = fields.Str()
    display_name = fields.Str(data_key="displayName", allow_none=True)
    bio = fields.Str()
    location = fields.Str()
    profile_image_url = fields.Str(data_key="profileImageUrl", allow_none=True)
    post_count = fields.Int(data_key="postCount")
    created_at = fields.DateTime(data_key="createdAt")


class UserPrivateResponseSchema(UserPublicResponseSchema):
    """본인에게만 반환되는 정보(email 포함). 로그인/회원가입/내 정보 조회 응답에 사용합니다."""
    email = fields.Email()
    updated_at = fields.DateTime(data_key="updatedAt")


class ProfileUpdateSchema(RequestSchema):
    """
    PUT /api/users/profile
    전달된 필드만 변경합니다. 빈 문자열은 값을 비우는 것으로 처리합니다.
    """
    bio = fields.Str(validate=validate.Length(max=150, error="Bio cannot exceed 150 characters"))
    location = fields.Str(validate=validate.Length(max=100, error="Location cannot exceed 100 characters"))
