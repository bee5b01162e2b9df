# cityscope/api/replies/services.py
import uuid
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Tuple
from firebase_admin import firestore
from google.api_core.exceptions import NotFound as FirestoreNotFound
from google.cloud.firestore_v1.base_query import FieldFilter

from cityscope.core.exceptions import NotFoundError
from cityscope.core.pagination import PageRequest, Pagination, paginate_query, count_query
from cityscope.models.reply import Reply
from cityscope.utils.datetime_utils import DateTimeUtils


class ReplyService:
    """
    댓글 생성, 조회, 좋아요 토글을 처리하는 서비스 클래스.
    게시글의 reply_count 는 댓글 생성과 같은 WriteBatch 로 함께 증가시켜 항상 활성 댓글 수와 일치합니다.
    """
    def __init__(self, db=None, user_service=None):
        self.db = db or firestore.client()
        self.replies_ref = self.db.collection('replies')
        self.posts_ref = self.db.collection('posts')
        self.user_service = user_service

    def create_reply(self, post_id: str, author_id: str, text_content: str) -> Dict[str, Any]:
        """
        댓글을 생성하고 게시글의 reply_count 를 1 증가시킵니다.
        두 쓰기는 하나의 WriteBatch 로 커밋되므로 모두 반영되거나 모두 반영되지 않습니다.

        :raises NotFoundError: 게시글이 없거나 비활성 상태인 경우
        """
        post_ref = self.posts_ref.document(post_id)
        post_snapshot = post_ref.get()
        if not post_snapshot.exists or not post_snapshot.to_dict().get('is_active', False):
            raise NotFoundError("Post not found", "POST_NOT_FOUND")

        now = DateTimeUtils.now()
        new_reply = Reply(
            reply_id=str(uuid.uuid4()),
            post_id=post_id,
            author_id=author_id,
            text_content=text_content,
            created_at=now,
            updated_at=now,
        )
        reply_dict = DateTimeUtils.for_firestore(asdict(new_reply))

        batch = self.db.batch()
        batch.set(self.replies_ref.document(new_reply.reply_id), reply_dict)
        batch.update(post_ref, {
            'reply_count': firestore.Increment(1),
            'updated_at': now,
        })
        try:
            batch.commit()
        except FirestoreNotFound:
            # 검사 이후 게시글 문서가 사라진 경우. 배치 전체가 취소됩니다.
            raise NotFoundError("Post not found", "POST_NOT_FOUND")
        except Exception as e:
            logging.error(f"댓글 저장 실패, 댓글과 reply_count 모두 반영되지 않음 (post_id: {post_id}): {e}", exc_info=True)
            raise

        logging.info(f"새 댓글 생성 완료 (reply_id: {new_reply.reply_id}, post_id: {post_id})")
        return self._with_viewer_context([DateTimeUtils.from_firestore(reply_dict)], author_id)[0]

    def get_replies_for_post(self, post_id: str, viewer_id: Optional[str],
                             page_request: PageRequest) -> Tuple[List[Dict[str, Any]], Pagination]:
        """특정 게시글의 활성 댓글을 오래된 순으로 페이지네이션하여 조회합니다."""
        query = (self.replies_ref
                 .where(filter=FieldFilter('post_id', '==', post_id))
                 .where(filter=FieldFilter('is_active', '==', True)))
        replies, pagination = paginate_query(query, page_request, direction=firestore.Query.ASCENDING)
        return self._with_viewer_context(replies, viewer_id), pagination

    def toggle_reply_like(self, post_id: str, reply_id: str, user_id: str) -> Dict[str, Any]:
        """
        댓글 좋아요를 토글합니다.
        :raises NotFoundError: 댓글이 없거나 비활성이거나 다른 게시글의 댓글인 경우
        """
        reply_ref = self.replies_ref.document(reply_id)
        snapshot = reply_ref.get()
        reply_data = snapshot.to_dict() if snapshot.exists else None
        if not reply_data or not reply_data.get('is_active', False) or reply_data.get('post_id') != post_id:
            raise NotFoundError("Reply not found", "REPLY_NOT_FOUND")

        already_liked = user_id in (reply_data.get('liked_by') or [])
        transform = firestore.ArrayRemove([user_id]) if already_liked else firestore.ArrayUnion([user_id])
        reply_ref.update({'liked_by': transform, 'updated_at': DateTimeUtils.now()})

        updated = Reply.from_dict(reply_ref.get().to_dict())
        return {
            "like_count": updated.like_count,
            "is_liked": user_id in updated.liked_by,
        }

    def count_active_replies(self, post_id: str) -> int:
        query = (self.replies_ref
                 .where(filter=FieldFilter('post_id', '==', post_id))
                 .where(filter=FieldFilter('is_active', '==', True)))
        return count_query(query)

    def _with_viewer_context(self, replies: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        authors = self.user_service.get_authors(reply.get('author_id') for reply in replies) if self.user_service else {}
        for reply_data in replies:
            liked_by = reply_data.get('liked_by') or []
            reply_data['author'] = authors.get(reply_data.get('author_id'))
            reply_data['like_count'] = len(liked_by)
            reply_data['is_liked'] = bool(viewer_id) and viewer_id in liked_by
        return replies
