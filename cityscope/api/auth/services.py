# cityscope/api/auth/services.py
import uuid
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Dict, Any
from firebase_admin import firestore

from cityscope.core.exceptions import AuthenticationError, ConflictError
from cityscope.core.security import hash_password, verify_password
from cityscope.models.user import User
from cityscope.utils.datetime_utils import DateTimeUtils

# /api/users/<username> 과 충돌하는 고정 경로 이름은 사용자명으로 쓸 수 없습니다.
RESERVED_USERNAMES = frozenset({'search', 'profile'})


class AuthService:
    """회원가입, 로그인, 토큰 무효화(로그아웃)를 담당하는 서비스 클래스."""
    def __init__(self, db=None, user_service=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.revoked_tokens_ref = self.db.collection('revoked_tokens')
        self.user_service = user_service

    def register_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        새 사용자를 생성합니다.
        - 사용자명은 대소문자를 구분하지 않고 고유해야 합니다.
        - 이메일은 소문자로 정규화하여 저장하며 고유해야 합니다.

        :param data: RegisterSchema로 검증된 데이터
        :return: 저장된 사용자 데이터
        :raises ConflictError: 사용자명 또는 이메일이 이미 사용 중인 경우
        """
        username = data['username']
        username_lower = username.lower()
        email = data['email'].lower()

        if username_lower in RESERVED_USERNAMES or \
                self.user_service.get_user_by_username(username, include_inactive=True):
            raise ConflictError("Username is already taken", "USERNAME_TAKEN")
        if self.user_service.get_user_by_email(email):
            raise ConflictError("Email is already registered", "EMAIL_TAKEN")

        now = DateTimeUtils.now()
        new_user = User(
            user_id=str(uuid.uuid4()),
            username=username,
            username_lower=username_lower,
            email=email,
            password_hash=hash_password(data['password']),
            display_name=data.get('display_name') or username,
            created_at=now,
            updated_at=now,
        )
        # Firestore 호환 변환 후 저장
        user_data = DateTimeUtils.for_firestore(asdict(new_user))
        self.users_ref.document(new_user.user_id).set(user_data)
        logging.info(f"신규 사용자 가입 완료 (user_id: {new_user.user_id})")
        return user_data

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        이메일/비밀번호로 사용자를 인증합니다.
        :raises AuthenticationError: 자격 증명이 틀렸거나 비활성화된 계정인 경우
        """
        user = self.user_service.get_user_by_email(email)
        if not user or not verify_password(user.get('password_hash'), password):
            raise AuthenticationError("Invalid credentials", "INVALID_CREDENTIALS")
        if not user.get('is_active', False):
            raise AuthenticationError("Account is deactivated", "ACCOUNT_DEACTIVATED")
        return user

    # --- Blocklist 관련 로직 ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """전달받은 토큰의 jti를 만료 시간과 함께 Firestore에 저장합니다."""
        token_data = {
            'revoked_at': DateTimeUtils.now(),
            'expires_at': expires
        }
        try:
            self.revoked_tokens_ref.document(jti).set(DateTimeUtils.for_firestore(token_data))
        except Exception as e:
            logging.error(f"Blocklist 토큰 추가 실패 (jti: {jti}): {e}", exc_info=True)
            raise

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """jti를 이용해 해당 토큰이 무효화 목록에 있는지 확인합니다."""
        jti = jwt_payload.get('jti')
        if not jti:
            return False
        return self.revoked_tokens_ref.document(jti).get().exists

    def logout_user(self, jwt_payload: dict):
        """현재 요청에 사용된 Access 토큰을 Blocklist에 추가합니다."""
        jti = jwt_payload['jti']
        self.add_token_to_blocklist(jti, DateTimeUtils.from_unix_timestamp(jwt_payload['exp']))
        logging.info(f"사용자 로그아웃 처리 완료. JTI: {jti[:8]}...")
