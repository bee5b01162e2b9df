# cityscope/models/post.py
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from cityscope.utils.datetime_utils import DateTimeUtils


class PostType(Enum):
    """게시글 분류"""
    RECOMMEND = "recommend"
    HELP = "help"
    UPDATE = "update"
    EVENT = "event"


class Reaction(Enum):
    """사용자가 게시글에 취할 수 있는 반응 액션"""
    LIKE = "like"
    DISLIKE = "dislike"


class ReactionState(Enum):
    """(게시글, 사용자) 쌍의 반응 상태. 항상 셋 중 정확히 하나만 성립합니다."""
    NEUTRAL = "neutral"
    LIKED = "liked"
    DISLIKED = "disliked"


_ACTIVE_STATE = {
    Reaction.LIKE: ReactionState.LIKED,
    Reaction.DISLIKE: ReactionState.DISLIKED,
}


def next_reaction_state(current: ReactionState, reaction: Reaction) -> ReactionState:
    """
    좋아요/싫어요 토글 상태 전이.

    like:    NEUTRAL -> LIKED, LIKED -> NEUTRAL, DISLIKED -> LIKED
    dislike: NEUTRAL -> DISLIKED, DISLIKED -> NEUTRAL, LIKED -> DISLIKED
    """
    target = _ACTIVE_STATE[reaction]
    return ReactionState.NEUTRAL if current is target else target


@dataclass
class Author:
    """조회 시점에 users 문서로부터 만들어지는 작성자 요약 정보. Post 문서에는 저장되지 않습니다."""
    user_id: str
    username: str
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    @classmethod
    def from_user(cls, user_data: Dict[str, Any]) -> "Author":
        return cls(
            user_id=user_data["user_id"],
            username=user_data.get("username"),
            display_name=user_data.get("display_name") or user_data.get("username"),
            profile_image_url=user_data.get("profile_image_url") or None,
        )


@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    - liked_by / disliked_by 는 서로소(disjoint) 집합이어야 합니다.
    - reply_count 는 활성 댓글 수와 항상 일치하며, 댓글 생성 시 증분 방식으로 유지됩니다.
    """
    post_id: str
    author_id: str
    text_content: str
    post_type: str
    image_url: str = ""
    image_id: str = ""
    location_text: str = ""
    liked_by: List[str] = field(default_factory=list)
    disliked_by: List[str] = field(default_factory=list)
    reply_count: int = 0
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: DateTimeUtils.now())
    updated_at: datetime = field(default_factory=lambda: DateTimeUtils.now())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def reaction_state(self, user_id: str) -> ReactionState:
        if user_id in self.liked_by:
            return ReactionState.LIKED
        if user_id in self.disliked_by:
            return ReactionState.DISLIKED
        return ReactionState.NEUTRAL

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    @property
    def dislike_count(self) -> int:
        return len(self.disliked_by)
