# cityscope/models/reply.py
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import List, Dict, Any

from cityscope.utils.datetime_utils import DateTimeUtils


@dataclass
class Reply:
    """
    Firestore 'replies' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    reply_id: str
    post_id: str
    author_id: str
    text_content: str
    liked_by: List[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: DateTimeUtils.now())
    updated_at: datetime = field(default_factory=lambda: DateTimeUtils.now())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @property
    def like_count(self) -> int:
        return len(self.liked_by)
