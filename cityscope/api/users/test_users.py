# cityscope/api/users/test_users.py
import pytest


@pytest.fixture
def alice(make_user):
    return make_user('Alice_Wonder', display_name='Alice W.')


def _post(app, user, text="hello", post_type="update"):
    return app.services['posts'].create_post(user['user_id'], {'text_content': text, 'post_type': post_type})


# --- GET /api/users/<username> ---

def test_get_profile_is_case_insensitive_with_post_count(client, app, alice):
    _post(app, alice)
    hidden = _post(app, alice)
    _post(app, alice)
    app.services['posts'].deactivate_post(hidden['post_id'])

    response = client.get('/api/users/alice_wonder')

    assert response.status_code == 200
    profile = response.get_json()['data']
    assert profile['username'] == 'Alice_Wonder'
    assert profile['displayName'] == 'Alice W.'
    assert profile['postCount'] == 2
    assert 'email' not in profile
    assert 'passwordHash' not in profile and 'password_hash' not in profile


def test_get_profile_missing_or_inactive_user(client, app, alice):
    assert client.get('/api/users/nobody').status_code == 404

    app.services['users'].users_ref.document(alice['user_id']).update({'is_active': False})
    response = client.get('/api/users/Alice_Wonder')
    assert response.status_code == 404
    assert response.get_json()['error_code'] == 'USER_NOT_FOUND'


# --- GET /api/users/<username>/posts ---

def test_user_posts_newest_first_with_pagination(client, app, alice, make_user):
    other = make_user('bob')
    for i in range(3):
        _post(app, alice, text=f"alice {i}")
    _post(app, other, text="bob's post")

    data = client.get('/api/users/Alice_Wonder/posts?limit=2').get_json()['data']

    assert [p['textContent'] for p in data['posts']] == ["alice 2", "alice 1"]
    assert data['pagination']['totalItems'] == 3
    assert data['pagination']['hasNextPage'] is True


def test_user_posts_for_unknown_user(client):
    assert client.get('/api/users/ghost/posts').status_code == 404


# --- GET /api/users/search ---

def test_search_users(client, make_user):
    for name in ['coffee_lover', 'CoffeeShop', 'tea_time', 'decaf_coffee']:
        make_user(name)

    response = client.get('/api/users/search?q=COFFEE')

    assert response.status_code == 200
    results = response.get_json()['data']
    assert [user['username'] for user in results] == ['coffee_lover', 'CoffeeShop', 'decaf_coffee']
    assert set(results[0]) == {'id', 'username', 'displayName', 'profileImageUrl', 'bio'}


def test_search_users_limit_and_inactive(client, app, make_user):
    users = [make_user(f"runner_{i:02d}") for i in range(12)]
    app.services['users'].users_ref.document(users[0]['user_id']).update({'is_active': False})

    results = client.get('/api/users/search?q=runner').get_json()['data']

    assert len(results) == 10
    assert results[0]['username'] == 'runner_01'


@pytest.mark.parametrize("query", ['', 'a', '  b  '])
def test_search_users_requires_two_characters(client, query):
    response = client.get('/api/users/search', query_string={'q': query})
    assert response.status_code == 400
    assert response.get_json()['success'] is False


# --- PUT /api/users/profile ---

def test_update_profile_partial(client, alice, auth_headers, db):
    headers = auth_headers(alice)

    first = client.put('/api/users/profile', json={'bio': '  Coffee nerd  '}, headers=headers)
    second = client.put('/api/users/profile', json={'location': 'Brooklyn'}, headers=headers)

    assert first.status_code == 200
    assert first.get_json()['message'] == "Profile updated successfully"
    profile = second.get_json()['data']
    assert profile['bio'] == 'Coffee nerd'
    assert profile['location'] == 'Brooklyn'
    assert profile['email'] == 'alice_wonder@example.com'
    assert 'passwordHash' not in profile and 'password_hash' not in profile

    stored = db.documents('users')[alice['user_id']]
    assert stored['updated_at'] > stored['created_at']


def test_update_profile_validation(client, alice, auth_headers, db):
    response = client.put('/api/users/profile', json={'bio': 'b' * 151, 'location': 'l' * 101},
                          headers=auth_headers(alice))

    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'bio', 'location'}
    assert db.documents('users')[alice['user_id']]['bio'] == ''


def test_update_profile_requires_auth(client):
    assert client.put('/api/users/profile', json={'bio': 'x'}).status_code == 401


# --- 서비스 ---

def test_get_authors_skips_missing_users(app, alice):
    authors = app.services['users'].get_authors([alice['user_id'], 'ghost', alice['user_id'], None])

    assert list(authors) == [alice['user_id']]
    assert authors[alice['user_id']] == {
        'user_id': alice['user_id'],
        'username': 'Alice_Wonder',
        'display_name': 'Alice W.',
        'profile_image_url': None,
    }


def test_get_user_by_id_with_empty_id(app):
    assert app.services['users'].get_user_by_id('') is None
    assert app.services['users'].get_active_user(None) is None
