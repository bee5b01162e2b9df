# cityscope/api/posts/test_post_service.py
import pytest

from cityscope.api.posts.services import PostService
from cityscope.core.exceptions import NotFoundError, UploadError
from cityscope.core.pagination import PageRequest
from cityscope.models.post import Reaction, ReactionState
from cityscope.services.storage_service import ImageUpload


@pytest.fixture
def post_service(app):
    return app.services['posts']


@pytest.fixture
def author(make_user):
    return make_user('alice')


def _create(post_service, author_id, text="Great coffee shop on 5th", post_type="recommend", **extra):
    data = {'text_content': text, 'post_type': post_type, 'location_text': extra.pop('location_text', '')}
    return post_service.create_post(author_id, data, **extra)


def _assert_disjoint(db, post_id):
    doc = db.documents('posts')[post_id]
    assert not set(doc['liked_by']) & set(doc['disliked_by'])


# --- 생성 ---

def test_create_post_defaults(post_service, author, db):
    post = _create(post_service, author['user_id'])

    stored = db.documents('posts')[post['post_id']]
    assert stored['liked_by'] == []
    assert stored['disliked_by'] == []
    assert stored['reply_count'] == 0
    assert stored['is_active'] is True
    assert stored['image_url'] == "" and stored['image_id'] == ""
    assert stored['created_at'] == stored['updated_at']

    assert post['author']['username'] == 'alice'
    assert post['like_count'] == 0
    assert post['is_liked'] is False and post['is_disliked'] is False


def test_create_post_with_image(post_service, author, bucket, db):
    image = ImageUpload(data=b"jpeg-bytes", filename="street.jpg", content_type="image/jpeg")
    post = _create(post_service, author['user_id'], image=image)

    stored = db.documents('posts')[post['post_id']]
    assert stored['image_id'] in bucket.files
    assert stored['image_url'].endswith(stored['image_id'])


def test_create_post_upload_failure_writes_nothing(post_service, author, bucket, db):
    bucket.fail_uploads = True
    image = ImageUpload(data=b"jpeg-bytes", filename="street.jpg", content_type="image/jpeg")

    with pytest.raises(UploadError):
        _create(post_service, author['user_id'], image=image)
    assert db.documents('posts') == {}


def test_create_post_write_failure_removes_uploaded_image(post_service, author, bucket, monkeypatch):
    class _FailingDocument:
        def set(self, data):
            raise RuntimeError("write failed")

    class _FailingCollection:
        def document(self, document_id=None):
            return _FailingDocument()

    monkeypatch.setattr(post_service, 'posts_ref', _FailingCollection())
    image = ImageUpload(data=b"jpeg-bytes", filename="street.jpg", content_type="image/jpeg")

    with pytest.raises(RuntimeError):
        _create(post_service, author['user_id'], image=image)
    assert bucket.files == {}


def test_create_post_with_image_but_no_storage(db, author, app):
    service = PostService(db=db, user_service=app.services['users'], storage_service=None)
    image = ImageUpload(data=b"jpeg-bytes", filename="street.jpg", content_type="image/jpeg")
    with pytest.raises(UploadError):
        _create(service, author['user_id'], image=image)


# --- 좋아요 / 싫어요 ---

def test_toggle_reaction_sequence_keeps_sets_disjoint(post_service, author, make_user, db):
    post_id = _create(post_service, author['user_id'])['post_id']
    voter = make_user('bob')['user_id']

    sequence = [Reaction.LIKE, Reaction.DISLIKE, Reaction.DISLIKE, Reaction.LIKE, Reaction.LIKE,
                Reaction.DISLIKE, Reaction.LIKE]
    for reaction in sequence:
        _assert_disjoint(db, post_id)
        post_service.toggle_reaction(post_id, voter, reaction)
        _assert_disjoint(db, post_id)


def test_like_twice_returns_to_neutral(post_service, author, db):
    post_id = _create(post_service, author['user_id'])['post_id']

    first = post_service.toggle_reaction(post_id, 'u1', Reaction.LIKE)
    second = post_service.toggle_reaction(post_id, 'u1', Reaction.LIKE)

    assert first['state'] is ReactionState.LIKED and first['like_count'] == 1
    assert second['state'] is ReactionState.NEUTRAL
    assert (second['like_count'], second['dislike_count']) == (0, 0)
    assert db.documents('posts')[post_id]['liked_by'] == []


def test_like_then_dislike_moves_user(post_service, author):
    post_id = _create(post_service, author['user_id'])['post_id']

    liked = post_service.toggle_reaction(post_id, 'u1', Reaction.LIKE)
    disliked = post_service.toggle_reaction(post_id, 'u1', Reaction.DISLIKE)

    assert (liked['like_count'], liked['dislike_count'], liked['is_liked']) == (1, 0, True)
    assert disliked == {
        'like_count': 0,
        'dislike_count': 1,
        'is_liked': False,
        'is_disliked': True,
        'state': ReactionState.DISLIKED,
    }


def test_reaction_counts_include_other_users(post_service, author):
    post_id = _create(post_service, author['user_id'])['post_id']
    post_service.toggle_reaction(post_id, 'u1', Reaction.LIKE)
    post_service.toggle_reaction(post_id, 'u2', Reaction.LIKE)
    result = post_service.toggle_reaction(post_id, 'u3', Reaction.DISLIKE)

    assert (result['like_count'], result['dislike_count']) == (2, 1)
    assert result['is_liked'] is False and result['is_disliked'] is True


def test_self_reaction_is_allowed(post_service, author):
    post_id = _create(post_service, author['user_id'])['post_id']
    result = post_service.toggle_reaction(post_id, author['user_id'], Reaction.LIKE)
    assert result['is_liked'] is True


def test_reaction_update_always_clears_opposite_set(post_service, author, db):
    """오래된 상태를 읽고 계산한 요청이라도 반대편 집합에서 제거되어 서로소가 유지됩니다."""
    post_id = _create(post_service, author['user_id'])['post_id']
    post_ref = post_service.posts_ref.document(post_id)
    post_ref.update({'disliked_by': ['u1']})

    # u1 이 중립이라고 읽은 두 요청이 동시에 like 를 보낸 경우
    post_ref.update(PostService._reaction_update('u1', ReactionState.LIKED))
    post_ref.update(PostService._reaction_update('u1', ReactionState.LIKED))

    stored = db.documents('posts')[post_id]
    assert stored['liked_by'] == ['u1']
    assert stored['disliked_by'] == []


def test_reaction_bumps_updated_at(post_service, author, db):
    post_id = _create(post_service, author['user_id'])['post_id']
    before = db.documents('posts')[post_id]['updated_at']
    post_service.toggle_reaction(post_id, 'u1', Reaction.DISLIKE)
    assert db.documents('posts')[post_id]['updated_at'] > before


def test_toggle_reaction_on_missing_or_inactive_post(post_service, author):
    with pytest.raises(NotFoundError):
        post_service.toggle_reaction('missing', 'u1', Reaction.LIKE)

    post_id = _create(post_service, author['user_id'])['post_id']
    post_service.deactivate_post(post_id)
    with pytest.raises(NotFoundError):
        post_service.toggle_reaction(post_id, 'u1', Reaction.LIKE)


# --- 조회 ---

def test_feed_is_newest_first(post_service, author):
    ids = [_create(post_service, author['user_id'], text=f"post {i}")['post_id'] for i in range(3)]

    posts, pagination = post_service.get_posts(None, PageRequest(page=1, limit=10))

    assert [post['post_id'] for post in posts] == list(reversed(ids))
    assert pagination.total_items == 3


def test_feed_pagination_15_items(post_service, author):
    for i in range(15):
        _create(post_service, author['user_id'], text=f"post {i}")

    first, first_meta = post_service.get_posts(None, PageRequest(page=1, limit=10))
    second, second_meta = post_service.get_posts(None, PageRequest(page=2, limit=10))

    assert len(first) == 10 and len(second) == 5
    assert not {p['post_id'] for p in first} & {p['post_id'] for p in second}
    assert first_meta.has_next_page is True
    assert second_meta.has_next_page is False
    assert second_meta.total_pages == 2


def test_feed_filters(post_service, author):
    _create(post_service, author['user_id'], text="coffee", post_type="recommend", location_text="5th Avenue")
    _create(post_service, author['user_id'], text="lost dog", post_type="help", location_text="Central Park")
    _create(post_service, author['user_id'], text="fair", post_type="event", location_text="5TH avenue plaza")

    by_type, _ = post_service.get_posts(None, PageRequest(), post_type="help")
    by_location, meta = post_service.get_posts(None, PageRequest(), location="  5th ave ")
    combined, _ = post_service.get_posts(None, PageRequest(), post_type="event", location="avenue")

    assert [p['text_content'] for p in by_type] == ["lost dog"]
    assert [p['text_content'] for p in by_location] == ["fair", "coffee"]
    assert meta.total_items == 2
    assert [p['text_content'] for p in combined] == ["fair"]


def test_inactive_posts_are_excluded_everywhere(post_service, author):
    kept = _create(post_service, author['user_id'], text="kept")['post_id']
    hidden = _create(post_service, author['user_id'], text="hidden")['post_id']
    post_service.deactivate_post(hidden)

    feed, meta = post_service.get_posts(None, PageRequest())
    by_author, _ = post_service.get_posts_by_author(author['user_id'], None, PageRequest())

    assert [p['post_id'] for p in feed] == [kept]
    assert meta.total_items == 1
    assert [p['post_id'] for p in by_author] == [kept]
    assert post_service.count_posts_by_author(author['user_id']) == 1
    with pytest.raises(NotFoundError):
        post_service.get_post_by_id(hidden)


def test_deactivate_missing_post(post_service):
    with pytest.raises(NotFoundError):
        post_service.deactivate_post('missing')


def test_viewer_flags(post_service, author):
    post_id = _create(post_service, author['user_id'])['post_id']
    post_service.toggle_reaction(post_id, 'viewer', Reaction.DISLIKE)

    as_viewer = post_service.get_post_by_id(post_id, 'viewer')
    anonymous = post_service.get_post_by_id(post_id)

    assert (as_viewer['is_liked'], as_viewer['is_disliked']) == (False, True)
    assert (anonymous['is_liked'], anonymous['is_disliked']) == (False, False)


def test_author_is_none_when_user_document_missing(post_service, db):
    post = _create(post_service, 'ghost-user')
    assert post['author'] is None
    assert post_service.get_post_by_id(post['post_id'])['author'] is None
