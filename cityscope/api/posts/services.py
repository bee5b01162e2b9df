# cityscope/api/posts/services.py
import uuid
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Tuple
from firebase_admin import firestore
from google.api_core.exceptions import NotFound as FirestoreNotFound
from google.cloud.firestore_v1.base_query import FieldFilter

from cityscope.core.exceptions import NotFoundError, UploadError
from cityscope.core.pagination import PageRequest, Pagination, paginate_query, count_query
from cityscope.models.post import Post, Reaction, ReactionState, next_reaction_state
from cityscope.services.storage_service import ImageUpload
from cityscope.utils.datetime_utils import DateTimeUtils


class PostService:
    """
    게시글 생성, 조회, 좋아요/싫어요 토글 등 게시글 관련 비즈니스 로직을 처리하는 서비스 클래스.
    """
    def __init__(self, db=None, user_service=None, storage_service=None):
        """
        :param db: Firestore 클라이언트
        :param user_service: 작성자 정보 결합에 사용하는 UserService
        :param storage_service: 게시글 이미지 업로드에 사용하는 StorageService
        """
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.user_service = user_service
        self.storage_service = storage_service

    def create_post(self, author_id: str, post_data: Dict[str, Any], image: Optional[ImageUpload] = None) -> Dict[str, Any]:
        """
        새 게시글을 생성합니다. 입력값 검증은 호출 전에 완료되어 있어야 합니다.

        1. 이미지가 있으면 먼저 스토리지에 업로드합니다. (실패 시 UploadError, 게시글은 저장되지 않음)
        2. 게시글 문서를 저장합니다. 저장 실패 시 업로드된 이미지를 삭제한 뒤 오류를 전파합니다.

        :param post_data: PostCreateSchema로 검증된 데이터 (text_content, post_type, location_text)
        :param image: 업로드할 이미지 (선택)
        :return: 작성자 정보와 조회자 플래그가 포함된 게시글 딕셔너리
        """
        image_url, image_id = "", ""
        if image is not None:
            if self.storage_service is None:
                raise UploadError("Image storage is not configured")
            image_url, image_id = self.storage_service.upload_image(author_id, image)

        now = DateTimeUtils.now()
        new_post = Post(
            post_id=str(uuid.uuid4()),
            author_id=author_id,
            text_content=post_data['text_content'],
            post_type=post_data['post_type'],
            image_url=image_url,
            image_id=image_id,
            location_text=post_data.get('location_text', ''),
            created_at=now,
            updated_at=now,
        )
        post_dict = DateTimeUtils.for_firestore(asdict(new_post))

        try:
            self.posts_ref.document(new_post.post_id).set(post_dict)
        except Exception as e:
            logging.error(f"게시글 저장 실패 (author_id: {author_id}): {e}", exc_info=True)
            if image_id:
                self.storage_service.delete_image(image_id)
            raise

        logging.info(f"새 게시글 생성 완료 (post_id: {new_post.post_id}, author_id: {author_id})")
        return self._with_viewer_context([DateTimeUtils.from_firestore(post_dict)], author_id)[0]

    def get_posts(self, viewer_id: Optional[str], page_request: PageRequest,
                  post_type: Optional[str] = None, location: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Pagination]:
        """
        활성 게시글 피드를 최신순으로 페이지네이션하여 조회합니다.

        :param post_type: 게시글 분류 일치 필터
        :param location: location_text 부분 문자열 필터 (대소문자 무시)
        """
        query = self._active_posts_query()
        if post_type:
            query = query.where(filter=FieldFilter('post_type', '==', post_type))

        predicate = None
        needle = (location or '').strip().lower()
        if needle:
            predicate = lambda post: needle in (post.get('location_text') or '').lower()

        posts, pagination = paginate_query(query, page_request, predicate=predicate)
        return self._with_viewer_context(posts, viewer_id), pagination

    def get_posts_by_author(self, author_id: str, viewer_id: Optional[str],
                            page_request: PageRequest) -> Tuple[List[Dict[str, Any]], Pagination]:
        """특정 사용자가 작성한 활성 게시글을 최신순으로 조회합니다."""
        query = self._active_posts_query().where(filter=FieldFilter('author_id', '==', author_id))
        posts, pagination = paginate_query(query, page_request)
        return self._with_viewer_context(posts, viewer_id), pagination

    def get_post_by_id(self, post_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        ID로 특정 활성 게시글을 조회합니다.
        :raises NotFoundError: 게시글이 없거나 비활성 상태인 경우
        """
        post_data = self._get_active_post(post_id)
        return self._with_viewer_context([post_data], viewer_id)[0]

    def count_posts_by_author(self, author_id: str) -> int:
        """사용자가 작성한 활성 게시글 수. 프로필 응답의 postCount에 사용됩니다."""
        try:
            query = self._active_posts_query().where(filter=FieldFilter('author_id', '==', author_id))
            return count_query(query)
        except Exception as e:
            logging.error(f"게시글 수 집계 실패 (author_id: {author_id}): {e}", exc_info=True)
            raise

    def toggle_reaction(self, post_id: str, user_id: str, reaction: Reaction) -> Dict[str, Any]:
        """
        게시글에 대한 좋아요/싫어요를 토글합니다.

        다음 상태는 next_reaction_state로 계산하고, 쓰기는 한 번의 문서 update로 수행합니다.
        반대편 집합에서는 항상 ArrayRemove로 제거하므로 동시에 중복 요청이 들어와도
        liked_by 와 disliked_by 에 같은 사용자가 동시에 존재할 수 없습니다.

        :return: 갱신 후 다시 읽은 like_count, dislike_count, is_liked, is_disliked 와 전이 결과(state)
        :raises NotFoundError: 게시글이 없거나 비활성 상태인 경우
        """
        post = Post.from_dict(self._get_active_post(post_id))
        current_state = post.reaction_state(user_id)
        next_state = next_reaction_state(current_state, reaction)

        post_ref = self.posts_ref.document(post_id)
        try:
            post_ref.update(self._reaction_update(user_id, next_state))
        except FirestoreNotFound:
            raise NotFoundError("Post not found", "POST_NOT_FOUND")

        updated = Post.from_dict(post_ref.get().to_dict())
        logging.info(f"게시글 반응 변경 (post_id: {post_id}, user_id: {user_id}, "
                     f"{current_state.value} -> {next_state.value})")
        return {
            "like_count": updated.like_count,
            "dislike_count": updated.dislike_count,
            "is_liked": user_id in updated.liked_by,
            "is_disliked": user_id in updated.disliked_by,
            "state": next_state,
        }

    def deactivate_post(self, post_id: str) -> None:
        """
        게시글을 비활성화(소프트 삭제)합니다. 문서는 보존되며 모든 공개 조회에서 제외됩니다.
        :raises NotFoundError: 게시글 문서가 없는 경우
        """
        try:
            self.posts_ref.document(post_id).update({
                'is_active': False,
                'updated_at': DateTimeUtils.now(),
            })
        except FirestoreNotFound:
            raise NotFoundError("Post not found", "POST_NOT_FOUND")
        logging.info(f"게시글 비활성화 완료 (post_id: {post_id})")

    # ====================================================================
    # 내부 헬퍼
    # ====================================================================

    def _active_posts_query(self):
        return self.posts_ref.where(filter=FieldFilter('is_active', '==', True))

    def _get_active_post(self, post_id: str) -> Dict[str, Any]:
        if not post_id:
            raise NotFoundError("Post not found", "POST_NOT_FOUND")
        doc = self.posts_ref.document(post_id).get()
        if not doc.exists:
            raise NotFoundError("Post not found", "POST_NOT_FOUND")
        post_data = doc.to_dict()
        if not post_data.get('is_active', False):
            raise NotFoundError("Post not found", "POST_NOT_FOUND")
        return DateTimeUtils.from_firestore(post_data)

    @staticmethod
    def _reaction_update(user_id: str, next_state: ReactionState) -> Dict[str, Any]:
        """목표 상태에 맞는 원자적 배열 변환(update 인자)을 만듭니다."""
        user = [user_id]
        if next_state is ReactionState.LIKED:
            changes = {'disliked_by': firestore.ArrayRemove(user), 'liked_by': firestore.ArrayUnion(user)}
        elif next_state is ReactionState.DISLIKED:
            changes = {'liked_by': firestore.ArrayRemove(user), 'disliked_by': firestore.ArrayUnion(user)}
        else:
            changes = {'liked_by': firestore.ArrayRemove(user), 'disliked_by': firestore.ArrayRemove(user)}
        changes['updated_at'] = DateTimeUtils.now()
        return changes

    def _with_viewer_context(self, posts: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        """
        게시글 목록에 작성자 정보, 반응 수, 조회자 기준 isLiked/isDisliked 플래그를 결합합니다.
        작성자 정보는 한 번의 일괄 조회(get_all)로 가져옵니다.
        """
        authors = self.user_service.get_authors(post.get('author_id') for post in posts) if self.user_service else {}
        for post_data in posts:
            liked_by = post_data.get('liked_by') or []
            disliked_by = post_data.get('disliked_by') or []
            post_data['author'] = authors.get(post_data.get('author_id'))
            post_data['like_count'] = len(liked_by)
            post_data['dislike_count'] = len(disliked_by)
            post_data['is_liked'] = bool(viewer_id) and viewer_id in liked_by
            post_data['is_disliked'] = bool(viewer_id) and viewer_id in disliked_by
        return posts
