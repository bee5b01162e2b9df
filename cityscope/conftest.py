# cityscope/conftest.py
"""
테스트 공용 픽스처.

- FakeFirestore: 컬렉션/문서/쿼리(where, order_by, offset, limit, count)/get_all/WriteBatch 와
  google-cloud-firestore 의 ArrayUnion, ArrayRemove, Increment 변환을 메모리에서 흉내내는 테스트 더블
- FakeBucket: Firebase Storage 버킷 테스트 더블
- ticking_clock: DateTimeUtils.now() 가 호출될 때마다 1초씩 증가하는 시계 (정렬 검증용)
"""
import copy
import itertools
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.transforms import ArrayRemove, ArrayUnion, Increment

from cityscope import create_app
from cityscope.services.storage_service import StorageService
from cityscope.utils.datetime_utils import DateTimeUtils


# =====================================================================================
# Firestore 테스트 더블
# =====================================================================================

def _apply_changes(current, changes):
    updated = copy.deepcopy(current)
    for key, value in changes.items():
        if isinstance(value, Increment):
            updated[key] = updated.get(key, 0) + value.value
        elif isinstance(value, ArrayUnion):
            items = list(updated.get(key) or [])
            items.extend(v for v in value.values if v not in items)
            updated[key] = items
        elif isinstance(value, ArrayRemove):
            updated[key] = [v for v in (updated.get(key) or []) if v not in value.values]
        else:
            updated[key] = copy.deepcopy(value)
    return updated


_OPERATORS = {
    '==': lambda field, value: field == value,
    '!=': lambda field, value: field != value,
    '<': lambda field, value: field < value,
    '<=': lambda field, value: field <= value,
    '>': lambda field, value: field > value,
    '>=': lambda field, value: field >= value,
    'in': lambda field, value: field in value,
    'array_contains': lambda field, value: value in (field or []),
}


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)

    def get(self, field_path):
        return self._data.get(field_path)


class FakeDocumentReference:
    def __init__(self, db, collection_name, doc_id):
        if not doc_id:
            raise ValueError("A document must have an even number of path elements")
        self._db = db
        self.collection_name = collection_name
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.collections[self.collection_name]

    def get(self):
        return FakeDocumentSnapshot(self, self._docs.get(self.id))

    def set(self, data):
        self._docs[self.id] = _apply_changes({}, data)

    def update(self, changes):
        if self.id not in self._docs:
            raise NotFound(f"No document to update: {self.collection_name}/{self.id}")
        self._docs[self.id] = _apply_changes(self._docs[self.id], changes)

    def delete(self):
        self._docs.pop(self.id, None)


class FakeAggregationResult:
    def __init__(self, value):
        self.alias = "field_1"
        self.value = value


class FakeAggregationQuery:
    def __init__(self, query):
        self._query = query

    def get(self):
        return [[FakeAggregationResult(len(self._query.get()))]]


class FakeQuery:
    def __init__(self, db, collection_name, filters=(), orders=(), offset=0, limit=None):
        self._db = db
        self._collection_name = collection_name
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._offset = offset
        self._limit = limit

    def _copy(self, **overrides):
        params = dict(filters=self._filters, orders=self._orders, offset=self._offset, limit=self._limit)
        params.update(overrides)
        return FakeQuery(self._db, self._collection_name, **params)

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction="ASCENDING"):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def offset(self, num_to_skip):
        return self._copy(offset=num_to_skip)

    def limit(self, count):
        return self._copy(limit=count)

    def count(self):
        return FakeAggregationQuery(self)

    def _matches(self, data):
        for field_path, op_string, value in self._filters:
            if field_path not in data or not _OPERATORS[op_string](data[field_path], value):
                return False
        return True

    def stream(self):
        docs = self._db.collections[self._collection_name]
        matched = sorted(
            ((doc_id, data) for doc_id, data in docs.items() if self._matches(data)),
            key=lambda item: item[0],
        )
        for field_path, direction in reversed(self._orders):
            matched = [item for item in matched if field_path in item[1]]
            matched.sort(key=lambda item: item[1][field_path], reverse=(direction == "DESCENDING"))

        matched = matched[self._offset:]
        if self._limit is not None:
            matched = matched[:self._limit]

        for doc_id, data in matched:
            yield FakeDocumentSnapshot(FakeDocumentReference(self._db, self._collection_name, doc_id), data)

    def get(self):
        return list(self.stream())


class FakeCollectionReference(FakeQuery):
    def __init__(self, db, collection_name):
        super().__init__(db, collection_name)
        self.id = collection_name

    def document(self, document_id=None):
        return FakeDocumentReference(self._db, self._collection_name, document_id or uuid.uuid4().hex)


class FakeWriteBatch:
    """모든 쓰기를 검증한 뒤 한 번에 반영합니다. 하나라도 실패하면 아무것도 반영되지 않습니다."""
    def __init__(self, db):
        self._db = db
        self._writes = []

    def set(self, reference, document_data):
        self._writes.append(('set', reference, document_data))

    def update(self, reference, field_updates):
        self._writes.append(('update', reference, field_updates))

    def commit(self):
        staged = {name: dict(docs) for name, docs in self._db.collections.items()}
        for operation, reference, data in self._writes:
            docs = staged.setdefault(reference.collection_name, {})
            if operation == 'set':
                docs[reference.id] = _apply_changes({}, data)
            else:
                if reference.id not in docs:
                    raise NotFound(f"No document to update: {reference.collection_name}/{reference.id}")
                docs[reference.id] = _apply_changes(docs[reference.id], data)
        self._db.collections = defaultdict(dict, staged)
        self._writes = []


class FakeFirestore:
    def __init__(self):
        self.collections = defaultdict(dict)

    def collection(self, name):
        return FakeCollectionReference(self, name)

    def batch(self):
        return FakeWriteBatch(self)

    def get_all(self, references):
        for reference in references:
            yield reference.get()

    def documents(self, name):
        """테스트 검증용: 컬렉션의 원본 문서 딕셔너리"""
        return self.collections[name]


# =====================================================================================
# Storage 테스트 더블
# =====================================================================================

class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("storage unavailable")
        self.bucket.files[self.name] = (data, content_type)

    def make_public(self):
        self.bucket.public.add(self.name)

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def exists(self):
        return self.name in self.bucket.files

    def delete(self):
        del self.bucket.files[self.name]
        self.bucket.public.discard(self.name)


class FakeBucket:
    def __init__(self, name="cityscope-test.appspot.com"):
        self.name = name
        self.files = {}
        self.public = set()
        self.fail_uploads = False

    def blob(self, blob_name):
        return FakeBlob(self, blob_name)


# =====================================================================================
# 픽스처
# =====================================================================================

@pytest.fixture(autouse=True)
def ticking_clock(monkeypatch):
    """DateTimeUtils.now() 호출마다 1초씩 증가하는 UTC 시각을 반환합니다."""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = (start + timedelta(seconds=i) for i in itertools.count())
    monkeypatch.setattr(DateTimeUtils, 'now', staticmethod(lambda: next(ticks)))
    return start


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def app(db, bucket):
    return create_app(
        'testing',
        firestore_client=db,
        storage_service=StorageService(bucket=bucket, upload_folder='test/posts'),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """AuthService 를 통해 사용자를 생성합니다."""
    def _make_user(username='alice', email=None, password='secret123', **extra):
        data = {'username': username, 'email': email or f"{username}@example.com", 'password': password}
        data.update(extra)
        return app.services['auth'].register_user(data)
    return _make_user


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        with app.app_context():
            token = create_access_token(identity=user['user_id'])
        return {'Authorization': f"Bearer {token}"}
    return _auth_headers
