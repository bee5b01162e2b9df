# cityscope/api/users/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Iterable
from firebase_admin import firestore
from google.api_core.exceptions import NotFound as FirestoreNotFound
from google.cloud.firestore_v1.base_query import FieldFilter

from cityscope.core.exceptions import NotFoundError
from cityscope.models.post import Author
from cityscope.utils.datetime_utils import DateTimeUtils


class UserService:
    """
    사용자 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 게시글/댓글 조회 시 작성자 정보를 조회 시점에 결합(populate)하는 기능을 제공합니다.
    - 다른 서비스와의 결합도를 낮추기 위해 DB 컬렉션을 직접 참조합니다.
    """
    def __init__(self, db=None):
        """
        :param db: Firestore 클라이언트. 생략하면 기본 firebase_admin 앱의 클라이언트를 사용합니다.
        """
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        사용자 ID로 Firestore에서 사용자 문서를 찾아 딕셔너리로 반환합니다.
        :param user_id: 조회할 사용자의 고유 ID
        :return: 사용자 데이터 딕셔너리 또는 None
        """
        if not user_id:
            return None
        try:
            doc = self.users_ref.document(user_id).get()
            if doc.exists:
                return DateTimeUtils.from_firestore(doc.to_dict())
            return None
        except Exception as e:
            logging.error(f"ID로 사용자 조회 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

    def get_active_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """활성 상태인 사용자만 반환합니다. JWT 사용자 조회 콜백에서 사용됩니다."""
        user = self.get_user_by_id(user_id)
        if user and user.get('is_active', False):
            return user
        return None

    def get_user_by_username(self, username: str, include_inactive: bool = False) -> Optional[Dict[str, Any]]:
        """사용자명(대소문자 무시)으로 사용자를 조회합니다. 기본적으로 활성 사용자만 대상입니다."""
        if not username:
            return None
        query = self.users_ref.where(filter=FieldFilter('username_lower', '==', username.strip().lower()))
        if not include_inactive:
            query = query.where(filter=FieldFilter('is_active', '==', True))
        user_doc = next(iter(query.limit(1).stream()), None)
        return DateTimeUtils.from_firestore(user_doc.to_dict()) if user_doc else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """이메일로 사용자를 조회합니다. 이메일은 소문자로 저장되어 있습니다."""
        if not email:
            return None
        query = self.users_ref.where(filter=FieldFilter('email', '==', email.strip().lower())).limit(1)
        user_doc = next(iter(query.stream()), None)
        return DateTimeUtils.from_firestore(user_doc.to_dict()) if user_doc else None

    def get_authors(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        여러 사용자 ID에 대한 작성자 요약 정보를 한 번에 조회합니다.
        :return: {user_id: author 딕셔너리}. 존재하지 않는 사용자는 포함되지 않습니다.
        """
        unique_ids = list(dict.fromkeys(user_id for user_id in user_ids if user_id))
        if not unique_ids:
            return {}

        refs = [self.users_ref.document(user_id) for user_id in unique_ids]
        authors = {}
        for snapshot in self.db.get_all(refs):
            if snapshot.exists:
                authors[snapshot.id] = asdict(Author.from_user(snapshot.to_dict()))
        return authors

    def search_users(self, query_text: str, limit: int = 10) -> List[Dict[str, Any]]:
        """
        사용자명에 검색어가 포함된(대소문자 무시) 활성 사용자를 사용자명 순으로 최대 limit명 반환합니다.
        Firestore는 부분 문자열 검색을 지원하지 않으므로 정렬된 후보를 스트리밍하며 필터링합니다.
        """
        needle = query_text.strip().lower()
        query = self.users_ref.where(filter=FieldFilter('is_active', '==', True)).order_by('username_lower')

        results = []
        for doc in query.stream():
            user_data = doc.to_dict()
            if needle in user_data.get('username_lower', ''):
                results.append(DateTimeUtils.from_firestore(user_data))
                if len(results) >= limit:
                    break
        return results

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        사용자 프로필(bio, location)을 부분 업데이트합니다. 전달되지 않은 필드는 변경하지 않습니다.
        :param changes: 검증을 통과한 변경 필드 딕셔너리
        :return: 업데이트된 사용자 데이터
        """
        user_ref = self.users_ref.document(user_id)
        update_data = {key: changes[key] for key in ('bio', 'location') if key in changes}
        update_data['updated_at'] = DateTimeUtils.now()
        try:
            user_ref.update(update_data)
        except FirestoreNotFound:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        except Exception as e:
            logging.error(f"프로필 업데이트 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

        logging.info(f"프로필 업데이트 완료 (user_id: {user_id}, fields: {sorted(update_data)})")
        return DateTimeUtils.from_firestore(user_ref.get().to_dict())
