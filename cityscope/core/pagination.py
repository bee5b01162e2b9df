# cityscope/core/pagination.py
"""
오프셋 기반 페이지네이션.

- page는 1부터 시작, offset = (page - 1) * limit
- 결과는 필터링/정렬된 전체 집합의 [offset, offset + limit) 구간
- 범위를 벗어난 page는 에러가 아니라 빈 목록 + 올바른 메타데이터를 반환
- limit < 1 은 1로, MAX_PAGE_SIZE 초과는 MAX_PAGE_SIZE로 보정(clamp), page < 1 은 1로 보정
"""
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from firebase_admin import firestore
from flask import current_app
from marshmallow import Schema, fields

from cityscope.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_args(cls, args, default_limit: int = 10, max_limit: int = 50) -> "PageRequest":
        """
        요청 쿼리 스트링(werkzeug MultiDict)에서 page/limit을 읽어옵니다.
        정수가 아닌 값은 기본값으로 대체됩니다.
        """
        page = args.get('page', 1, type=int)
        limit = args.get('limit', default_limit, type=int)
        page = max(page, 1)
        limit = min(max(limit, 1), max_limit)
        return cls(page=page, limit=limit)


@dataclass(frozen=True)
class Pagination:
    current_page: int
    limit: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.limit) if self.total_items else 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1


class PaginationSchema(Schema):
    """목록 응답의 'pagination' 메타데이터 형식."""
    current_page = fields.Int(data_key="currentPage")
    limit = fields.Int()
    total_pages = fields.Int(data_key="totalPages")
    total_items = fields.Int(data_key="totalItems")
    has_next_page = fields.Bool(data_key="hasNextPage")
    has_prev_page = fields.Bool(data_key="hasPrevPage")


def count_query(query) -> int:
    """
    Firestore count() 집계로 문서 수를 구합니다.
    모든 문서를 가져오지 않고 숫자만 집계하므로 비용과 시간을 절약합니다.
    """
    count_result = query.count().get()
    return count_result[0][0].value


def paginate_query(
    query,
    page_request: PageRequest,
    order_by: str = "created_at",
    direction: str = firestore.Query.DESCENDING,
    predicate: Optional[Callable[[Dict[str, Any]], bool]] = None,
) -> Tuple[List[Dict[str, Any]], Pagination]:
    """
    필터가 적용된 쿼리를 정렬하고 요청된 페이지 구간을 잘라 반환합니다.

    :param predicate: Firestore가 직접 평가할 수 없는 조건(예: 부분 문자열 검색).
                      지정되면 정렬된 후보 전체를 스트리밍하여 메모리에서 필터링한 뒤 구간을 자릅니다.
    :return: (문서 딕셔너리 목록, Pagination)
    """
    ordered = query.order_by(order_by, direction=direction)

    if predicate is None:
        total = count_query(query)
        if page_request.offset >= total:
            items = []
        else:
            docs = ordered.offset(page_request.offset).limit(page_request.limit).stream()
            items = [doc.to_dict() for doc in docs]
    else:
        matches = [data for data in (doc.to_dict() for doc in ordered.stream()) if predicate(data)]
        total = len(matches)
        items = matches[page_request.offset:page_request.offset + page_request.limit]

    items = [DateTimeUtils.from_firestore(item) for item in items]
    return items, Pagination(current_page=page_request.page, limit=page_request.limit, total_items=total)


def page_request_from_args(args) -> PageRequest:
    """현재 앱 설정(DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)을 적용하여 PageRequest를 만듭니다."""
    return PageRequest.from_args(
        args,
        default_limit=current_app.config.get('DEFAULT_PAGE_SIZE', 10),
        max_limit=current_app.config.get('MAX_PAGE_SIZE', 50),
    )
