# cityscope/api/users/routes.py
import logging
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from cityscope.api.posts.schemas import PostResponseSchema
from cityscope.api.users.schemas import (
    UserPublicResponseSchema, UserPrivateResponseSchema, UserSummarySchema, ProfileUpdateSchema
)
from cityscope.core.exceptions import NotFoundError
from cityscope.core.pagination import PaginationSchema, page_request_from_args
from cityscope.core.responses import success_response, error_response, validation_error_response
from cityscope.core.security import optional_viewer_id

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/search', methods=['GET'])
def search_users():
    """사용자명에 검색어가 포함된 활성 사용자를 최대 USER_SEARCH_LIMIT명 반환합니다."""
    user_service = current_app.services['users']
    query_text = (request.args.get('q') or '').strip()
    if len(query_text) < 2:
        return error_response("INVALID_QUERY", "Search query must be at least 2 characters", 400)

    try:
        users = user_service.search_users(query_text, current_app.config.get('USER_SEARCH_LIMIT', 10))
        return success_response(UserSummarySchema(many=True).dump(users))
    except Exception as e:
        logging.error(f"사용자 검색 중 오류 발생 (q: {query_text}): {e}", exc_info=True)
        return error_response("USER_SEARCH_FAILED", "Server error searching users", 500)


@users_bp.route('/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    user_service = current_app.services['users']
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        changes = ProfileUpdateSchema().load(request.get_json(silent=True) or {})
        updated_user = user_service.update_profile(user_id, changes)
        updated_user['post_count'] = post_service.count_posts_by_author(user_id)
        return success_response(UserPrivateResponseSchema().dump(updated_user), message="Profile updated successfully")
    except ValidationError as err:
        return validation_error_response(err)
    except NotFoundError as e:
        return error_response(e.error_code, e.message, 404)
    except Exception as e:
        logging.error(f"프로필 수정 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return error_response("PROFILE_UPDATE_FAILED", "Server error updating profile", 500)


@users_bp.route('/<string:username>', methods=['GET'])
def get_user_profile(username: str):
    """특정 사용자의 공개 프로필 정보(게시글 수 포함)를 조회합니다."""
    user_service = current_app.services['users']
    post_service = current_app.services['posts']
    try:
        user = user_service.get_user_by_username(username)
        if not user:
            return error_response("USER_NOT_FOUND", "User not found", 404)

        user['post_count'] = post_service.count_posts_by_author(user['user_id'])
        return success_response(UserPublicResponseSchema().dump(user))
    except Exception as e:
        logging.error(f"사용자 프로필 조회 중 오류 발생 (username: {username}): {e}", exc_info=True)
        return error_response("PROFILE_FETCH_FAILED", "Server error fetching profile", 500)


@users_bp.route('/<string:username>/posts', methods=['GET'])
def get_user_posts(username: str):
    """특정 사용자가 작성한 활성 게시글을 최신순으로 페이지네이션하여 반환합니다."""
    user_service = current_app.services['users']
    post_service = current_app.services['posts']
    viewer_id = optional_viewer_id()
    try:
        user = user_service.get_user_by_username(username)
        if not user:
            return error_response("USER_NOT_FOUND", "User not found", 404)

        page_request = page_request_from_args(request.args)
        posts, pagination = post_service.get_posts_by_author(user['user_id'], viewer_id, page_request)
        return success_response({
            "posts": PostResponseSchema(many=True).dump(posts),
            "pagination": PaginationSchema().dump(pagination),
        })
    except Exception as e:
        logging.error(f"사용자 게시글 조회 중 오류 발생 (username: {username}): {e}", exc_info=True)
        return error_response("USER_POSTS_FETCH_FAILED", "Server error fetching user posts", 500)
