# cityscope/api/auth/routes.py
import logging
from flask import Blueprint, request, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt, get_current_user
from marshmallow import ValidationError

from cityscope.api.auth.schemas import RegisterSchema, LoginSchema
from cityscope.api.users.schemas import UserPrivateResponseSchema
from cityscope.core.exceptions import AuthenticationError, ConflictError
from cityscope.core.responses import success_response, error_response, validation_error_response

auth_bp = Blueprint('auth_bp', __name__)


def _token_response(user: dict, status: int, message: str):
    """토큰과 본인용 사용자 정보를 함께 반환합니다."""
    access_token = create_access_token(identity=user['user_id'])
    user['post_count'] = current_app.services['posts'].count_posts_by_author(user['user_id'])
    return success_response({
        "token": access_token,
        "user": UserPrivateResponseSchema().dump(user),
    }, status, message)


# --- 회원가입 엔드포인트 ---
@auth_bp.route('/register', methods=['POST'])
def register():
    auth_service = current_app.services['auth']
    try:
        data = RegisterSchema().load(request.get_json(silent=True) or {})
        new_user = auth_service.register_user(data)
        return _token_response(new_user, 201, "User registered successfully")
    except ValidationError as err:
        return validation_error_response(err)
    except ConflictError as e:
        return error_response(e.error_code, e.message, 409)
    except Exception as e:
        logging.error(f"회원가입 처리 중 오류 발생: {e}", exc_info=True)
        return error_response("REGISTRATION_FAILED", "Server error during registration", 500)


# --- 로그인 엔드포인트 ---
@auth_bp.route('/login', methods=['POST'])
def login():
    auth_service = current_app.services['auth']
    try:
        data = LoginSchema().load(request.get_json(silent=True) or {})
        user = auth_service.authenticate(data['email'], data['password'])
        return _token_response(user, 200, "Login successful")
    except ValidationError as err:
        return validation_error_response(err)
    except AuthenticationError as e:
        return error_response(e.error_code, e.message, 401)
    except Exception as e:
        logging.error(f"로그인 처리 중 오류 발생: {e}", exc_info=True)
        return error_response("LOGIN_FAILED", "Server error during login", 500)


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    """현재 토큰의 사용자 정보를 반환합니다. 사용자 조회는 JWT user_lookup 콜백이 수행합니다."""
    user = dict(get_current_user())
    try:
        user['post_count'] = current_app.services['posts'].count_posts_by_author(user['user_id'])
        return success_response(UserPrivateResponseSchema().dump(user))
    except Exception as e:
        logging.error(f"내 정보 조회 중 오류 발생 (user_id: {user['user_id']}): {e}", exc_info=True)
        return error_response("PROFILE_FETCH_FAILED", "Server error fetching current user", 500)


# --- 로그아웃 엔드포인트 ---
@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """로그아웃. 현재 Access 토큰을 무효화 목록에 추가합니다."""
    auth_service = current_app.services['auth']
    try:
        auth_service.logout_user(get_jwt())
        return success_response(None, message="Logged out successfully")
    except Exception as e:
        logging.error(f"로그아웃 처리 중 오류 발생: {e}", exc_info=True)
        return error_response("LOGOUT_FAILED", "Server error during logout", 500)
