# cityscope/api/posts/routes.py
import logging
from typing import Optional
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from cityscope.api.posts.schemas import PostCreateSchema, PostResponseSchema, ReactionResultSchema
from cityscope.core.exceptions import NotFoundError, UploadError
from cityscope.core.pagination import PaginationSchema, page_request_from_args
from cityscope.core.responses import success_response, error_response, validation_error_response
from cityscope.core.security import optional_viewer_id
from cityscope.models.post import Reaction, ReactionState
from cityscope.services.storage_service import ImageUpload

posts_bp = Blueprint('posts_bp', __name__)

# (요청한 반응, 전이 결과) -> 응답 메시지
REACTION_MESSAGES = {
    (Reaction.LIKE, ReactionState.LIKED): "Post liked",
    (Reaction.LIKE, ReactionState.NEUTRAL): "Post unliked",
    (Reaction.DISLIKE, ReactionState.DISLIKED): "Post disliked",
    (Reaction.DISLIKE, ReactionState.NEUTRAL): "Post undisliked",
}


def _request_payload() -> dict:
    """multipart/form-data 와 JSON 본문을 모두 지원합니다."""
    if request.mimetype == 'multipart/form-data' or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def _read_image_upload() -> Optional[ImageUpload]:
    """
    multipart 'image' 필드를 읽어 검증합니다.
    - MIME 타입은 image/ 로 시작해야 합니다.
    - 크기는 MAX_IMAGE_SIZE 이하여야 합니다.
    """
    file = request.files.get('image')
    if file is None or not file.filename:
        return None

    content_type = file.mimetype or ''
    if not content_type.startswith('image/'):
        raise ValidationError({'image': ['Only image files are allowed']})

    data = file.read()
    max_size = current_app.config['MAX_IMAGE_SIZE']
    if len(data) > max_size:
        raise ValidationError({'image': [f'File too large. Maximum size is {max_size // (1024 * 1024)}MB.']})
    if not data:
        raise ValidationError({'image': ['Image file is empty']})

    return ImageUpload(data=data, filename=file.filename, content_type=content_type)


def _load_post_payload():
    """본문 필드와 이미지를 함께 검증하고, 모든 필드 오류를 하나의 ValidationError로 모읍니다."""
    errors = {}
    data, image = None, None
    try:
        data = PostCreateSchema().load(_request_payload())
    except ValidationError as err:
        errors.update(err.normalized_messages())
    try:
        image = _read_image_upload()
    except ValidationError as err:
        errors.update(err.normalized_messages())
    if errors:
        raise ValidationError(errors)
    return data, image


@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """
    새로운 게시글을 생성합니다.
    - 모든 검증이 끝난 뒤에만 이미지 업로드와 저장이 수행됩니다.
    - 성공 시 생성된 게시글 정보를 201 Created 상태 코드와 함께 반환합니다.
    """
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data, image = _load_post_payload()
        new_post = post_service.create_post(user_id, data, image)
        return success_response(PostResponseSchema().dump(new_post), 201, "Post created successfully")
    except ValidationError as err:
        return validation_error_response(err)
    except UploadError as e:
        return error_response(e.error_code, e.message, e.status_code)
    except HTTPException:
        # 본문 크기 초과(413) 등은 전역 핸들러가 공통 형식으로 응답합니다.
        raise
    except Exception as e:
        logging.error(f"게시글 생성 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return error_response("POST_CREATION_FAILED", "Server error creating post", 500)


@posts_bp.route('', methods=['GET'])
def get_posts():
    """게시글 피드를 최신순으로 페이지네이션하여 조회합니다. postType, location 필터를 지원합니다."""
    post_service = current_app.services['posts']
    viewer_id = optional_viewer_id() # 로그인 시 좋아요 여부 확인, 비로그인 또는 만료 토큰이면 None
    page_request = page_request_from_args(request.args)
    post_type = request.args.get('postType') or None
    location = request.args.get('location') or None
    try:
        posts, pagination = post_service.get_posts(viewer_id, page_request, post_type=post_type, location=location)
        return success_response({
            "posts": PostResponseSchema(many=True).dump(posts),
            "pagination": PaginationSchema().dump(pagination),
        })
    except Exception as e:
        logging.error(f"게시글 목록 조회 중 오류 발생: {e}", exc_info=True)
        return error_response("POSTS_FETCH_FAILED", "Server error fetching posts", 500)


@posts_bp.route('/<string:post_id>', methods=['GET'])
def get_post(post_id: str):
    post_service = current_app.services['posts']
    viewer_id = optional_viewer_id()
    try:
        post = post_service.get_post_by_id(post_id, viewer_id)
        return success_response(PostResponseSchema().dump(post))
    except NotFoundError as e:
        return error_response(e.error_code, e.message, 404)
    except Exception as e:
        logging.error(f"게시글 조회 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return error_response("POST_FETCH_FAILED", "Server error fetching post", 500)


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def like_post(post_id: str):
    """게시글 좋아요를 토글합니다. 싫어요 상태였다면 좋아요로 전환됩니다."""
    return _toggle_reaction(post_id, Reaction.LIKE)


@posts_bp.route('/<string:post_id>/dislike', methods=['POST'])
@jwt_required()
def dislike_post(post_id: str):
    """게시글 싫어요를 토글합니다. 좋아요 상태였다면 싫어요로 전환됩니다."""
    return _toggle_reaction(post_id, Reaction.DISLIKE)


def _toggle_reaction(post_id: str, reaction: Reaction):
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        result = post_service.toggle_reaction(post_id, user_id, reaction)
        message = REACTION_MESSAGES[(reaction, result['state'])]
        return success_response(ReactionResultSchema().dump(result), message=message)
    except NotFoundError as e:
        return error_response(e.error_code, e.message, 404)
    except Exception as e:
        logging.error(f"게시글 반응 처리 중 오류 발생 (post_id: {post_id}, reaction: {reaction.value}): {e}", exc_info=True)
        return error_response("REACTION_FAILED", "Server error updating reaction", 500)
