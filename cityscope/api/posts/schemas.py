# cityscope/api/posts/schemas.py
from marshmallow import Schema, fields, validate

from cityscope.core.schemas import RequestSchema
from cityscope.models.post import PostType

POST_TEXT_MAX_LENGTH = 280
LOCATION_TEXT_MAX_LENGTH = 100


class PostCreateSchema(RequestSchema):
    """
    POST /api/posts
    JSON 또는 multipart/form-data 본문의 텍스트 필드를 검증합니다.
    이미지 파일은 라우트에서 별도로 검증합니다.
    """
    text_content = fields.Str(
        required=True,
        data_key="textContent",
        validate=[
            validate.Length(min=1, error="Post content is required"),
            validate.Length(max=POST_TEXT_MAX_LENGTH, error=f"Post content cannot exceed {POST_TEXT_MAX_LENGTH} characters"),
        ],
        error_messages={"required": "Post content is required"},
    )
    post_type = fields.Str(
        required=True,
        data_key="postType",
        validate=validate.OneOf(
            [post_type.value for post_type in PostType],
            error="Post type must be one of: recommend, help, update, event",
        ),
        error_messages={"required": "Post type is required"},
    )
    location_text = fields.Str(
        data_key="locationText",
        load_default="",
        validate=validate.Length(max=LOCATION_TEXT_MAX_LENGTH, error="Location cannot exceed 100 characters"),
    )


class AuthorSchema(Schema):
    """게시글/댓글 응답에 포함되는 작성자 정보"""
    id = fields.Str(attribute="user_id")
    username = fields.Str()
    display_name = fields.Str(data_key="displayName", allow_none=True)
    profile_image_url = fields.Str(data_key="profileImageUrl", allow_none=True)


class PostResponseSchema(Schema):
    """
    게시글 응답 형식.
    liked_by/disliked_by 원본 배열 대신 개수와 조회자 기준 플래그(isLiked/isDisliked)만 노출합니다.
    """
    id = fields.Str(attribute="post_id", dump_only=True)
    author = fields.Nested(AuthorSchema, allow_none=True)
    text_content = fields.Str(data_key="textContent")
    post_type = fields.Str(data_key="postType")
    image_url = fields.Str(data_key="imageUrl")
    image_id = fields.Str(data_key="imageId")
    location_text = fields.Str(data_key="locationText")
    like_count = fields.Int(data_key="likeCount")
    dislike_count = fields.Int(data_key="dislikeCount")
    reply_count = fields.Int(data_key="replyCount")
    is_liked = fields.Bool(data_key="isLiked")
    is_disliked = fields.Bool(data_key="isDisliked")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ReactionResultSchema(Schema):
    """POST /api/posts/{post_id}/like, /dislike 응답"""
    like_count = fields.Int(data_key="likeCount")
    dislike_count = fields.Int(data_key="dislikeCount")
    is_liked = fields.Bool(data_key="isLiked")
    is_disliked = fields.Bool(data_key="isDisliked")
