# cityscope/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from cityscope.utils.datetime_utils import DateTimeUtils


@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    password_hash 는 어떤 응답에도 포함되지 않습니다.
    """
    user_id: str
    username: str
    username_lower: str # 대소문자 구분 없는 고유성 검사/조회용
    email: str
    password_hash: str
    display_name: Optional[str] = None
    bio: str = ""
    location: str = ""
    profile_image_url: str = ""
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: DateTimeUtils.now())
    updated_at: datetime = field(default_factory=lambda: DateTimeUtils.now())
