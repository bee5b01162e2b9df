# cityscope/api/replies/schemas.py
from marshmallow import Schema, fields, validate

from cityscope.api.posts.schemas import AuthorSchema, POST_TEXT_MAX_LENGTH
from cityscope.core.schemas import RequestSchema


class ReplyCreateSchema(RequestSchema):
    """
    POST /api/posts/{post_id}/replies
    댓글 생성 요청 본문의 유효성을 검사합니다.
    """
    text_content = fields.Str(
        required=True,
        data_key="textContent",
        validate=[
            validate.Length(min=1, error="Reply content is required"),
            validate.Length(max=POST_TEXT_MAX_LENGTH, error=f"Reply content cannot exceed {POST_TEXT_MAX_LENGTH} characters"),
        ],
        error_messages={"required": "Reply content is required"},
    )


class ReplyResponseSchema(Schema):
    id = fields.Str(attribute="reply_id", dump_only=True)
    post_id = fields.Str(data_key="postId")
    author = fields.Nested(AuthorSchema, allow_none=True)
    text_content = fields.Str(data_key="textContent")
    like_count = fields.Int(data_key="likeCount")
    is_liked = fields.Bool(data_key="isLiked")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ReplyLikeResultSchema(Schema):
    like_count = fields.Int(data_key="likeCount")
    is_liked = fields.Bool(data_key="isLiked")
