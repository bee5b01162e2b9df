# cityscope/api/replies/routes.py
import logging
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from cityscope.api.replies.schemas import ReplyCreateSchema, ReplyResponseSchema, ReplyLikeResultSchema
from cityscope.core.exceptions import NotFoundError
from cityscope.core.pagination import PaginationSchema, page_request_from_args
from cityscope.core.responses import success_response, error_response, validation_error_response
from cityscope.core.security import optional_viewer_id

# 댓글은 게시글의 하위 리소스이므로 /api/posts 접두사 아래에 등록됩니다.
replies_bp = Blueprint('replies_bp', __name__)


@replies_bp.route('/<string:post_id>/replies', methods=['POST'])
@jwt_required()
def create_reply(post_id: str):
    """특정 게시글에 새로운 댓글을 작성합니다."""
    reply_service = current_app.services['replies']
    user_id = get_jwt_identity()
    try:
        data = ReplyCreateSchema().load(request.get_json(silent=True) or {})
        new_reply = reply_service.create_reply(post_id, user_id, data['text_content'])
        return success_response(ReplyResponseSchema().dump(new_reply), 201, "Reply created successfully")
    except ValidationError as err:
        return validation_error_response(err)
    except NotFoundError as e:
        return error_response(e.error_code, e.message, 404)
    except Exception as e:
        logging.error(f"댓글 작성 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return error_response("REPLY_CREATION_FAILED", "Server error creating reply", 500)


@replies_bp.route('/<string:post_id>/replies', methods=['GET'])
def get_replies(post_id: str):
    """특정 게시글의 댓글 목록을 작성 순서대로 조회합니다."""
    reply_service = current_app.services['replies']
    viewer_id = optional_viewer_id()
    page_request = page_request_from_args(request.args)
    try:
        replies, pagination = reply_service.get_replies_for_post(post_id, viewer_id, page_request)
        return success_response({
            "replies": ReplyResponseSchema(many=True).dump(replies),
            "pagination": PaginationSchema().dump(pagination),
        })
    except Exception as e:
        logging.error(f"댓글 목록 조회 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return error_response("REPLIES_FETCH_FAILED", "Server error fetching replies", 500)


@replies_bp.route('/<string:post_id>/replies/<string:reply_id>/like', methods=['POST'])
@jwt_required()
def like_reply(post_id: str, reply_id: str):
    reply_service = current_app.services['replies']
    user_id = get_jwt_identity()
    try:
        result = reply_service.toggle_reply_like(post_id, reply_id, user_id)
        message = "Reply liked" if result['is_liked'] else "Reply unliked"
        return success_response(ReplyLikeResultSchema().dump(result), message=message)
    except NotFoundError as e:
        return error_response(e.error_code, e.message, 404)
    except Exception as e:
        logging.error(f"댓글 좋아요 처리 중 오류 발생 (reply_id: {reply_id}): {e}", exc_info=True)
        return error_response("REPLY_LIKE_FAILED", "Server error updating reply like", 500)
