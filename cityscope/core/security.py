# cityscope/core/security.py
"""
인증 관련 공용 로직.
- 비밀번호 해시/검증 (werkzeug.security)
- flask-jwt-extended JWTManager 초기화 및 콜백 등록

코어 로직은 토큰을 직접 다루지 않고 `authenticate(token) -> user_id | 401` 형태로만 사용합니다.
모든 인증 실패(토큰 누락/형식 오류/만료/폐기/사용자 없음)는 동일한 401 응답 형식으로 통일합니다.
단, 공개 조회 API는 optional_viewer_id()로 사용할 수 없는 토큰을 익명 요청으로 취급합니다.
"""
import logging
import jwt
from typing import Optional
from flask import Flask, current_app
from flask_jwt_extended import JWTManager, verify_jwt_in_request, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from werkzeug.security import generate_password_hash, check_password_hash

from cityscope.core.responses import error_response


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def _unauthorized(message: str):
    return error_response("UNAUTHORIZED", message, 401)


def init_jwt(app: Flask) -> JWTManager:
    """JWTManager를 생성하고 에러/조회 콜백을 등록합니다."""
    if not app.config.get('JWT_SECRET_KEY'):
        raise ValueError("JWT_SECRET_KEY 설정이 .env 또는 설정 파일에 필요합니다.")

    jwt_manager = JWTManager(app)

    @jwt_manager.unauthorized_loader
    def missing_token_callback(reason):
        return _unauthorized("Not authorized - no token provided")

    @jwt_manager.invalid_token_loader
    def invalid_token_callback(reason):
        logging.warning(f"유효하지 않은 토큰으로 요청: {reason}")
        return _unauthorized("Not authorized - invalid token")

    @jwt_manager.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return _unauthorized("Not authorized - token has expired")

    @jwt_manager.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return _unauthorized("Not authorized - token has been revoked")

    @jwt_manager.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload) -> bool:
        return current_app.services['auth'].is_token_revoked(jwt_payload)

    @jwt_manager.user_lookup_loader
    def load_current_user(jwt_header, jwt_data):
        # 탈퇴/비활성 사용자의 토큰은 None을 반환하여 401로 처리됩니다.
        return current_app.services['users'].get_active_user(jwt_data['sub'])

    @jwt_manager.user_lookup_error_loader
    def user_lookup_error_callback(jwt_header, jwt_data):
        return _unauthorized("Not authorized - user not found or deactivated")

    return jwt_manager


def optional_viewer_id() -> Optional[str]:
    """
    공개 조회 API에서 현재 사용자 ID를 관대하게 확인합니다.
    토큰이 없거나 만료/폐기/위조되었거나 사용자가 비활성이면 익명(None)으로 처리합니다.
    """
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, jwt.PyJWTError) as e:
        logging.debug(f"공개 조회에서 사용할 수 없는 토큰을 무시합니다: {e}")
        return None
    return get_jwt_identity()
