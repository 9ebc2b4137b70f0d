from app import STATE_KEY


def create(client, title='Hello World', body='This is a valid body.'):
    return client.post('/posts', data={'title': title, 'body': body})


def test_index_renders_create_form(client):
    response = client.get('/')
    assert response.status_code == 200
    assert b'No posts yet.' in response.data
    assert b'action="/posts"' in response.data


def test_create_redirects_and_flashes(client, store):
    response = create(client)
    assert response.status_code == 302
    assert store.count() == 1

    page = client.get('/')
    assert b'Post created successfully!' in page.data
    assert b'Hello World' in page.data

    # status message is one-shot
    assert b'Post created successfully!' not in client.get('/').data


def test_create_invalid_rerenders_with_errors(client, store):
    response = create(client, title='Hi', body='short')
    assert response.status_code == 422
    assert b'The title must be at least 3 characters.' in response.data
    assert b'The body must be at least 10 characters.' in response.data
    assert b'value="Hi"' in response.data
    assert store.count() == 0


def test_edit_update_cycle(client, store):
    post = store.insert('Original', 'Original body text.')

    response = client.post(f'/posts/{post.id}/edit')
    assert response.status_code == 302
    with client.session_transaction() as session:
        assert session[STATE_KEY]['mode'] == 'editing'
        assert session[STATE_KEY]['active_post_id'] == post.id

    page = client.get('/')
    assert b'action="/posts/update"' in page.data
    assert b'value="Original"' in page.data

    response = client.post('/posts/update', data={'title': 'Renamed', 'body': 'Renamed body text.'})
    assert response.status_code == 302
    assert store.find_by_id(post.id).title == 'Renamed'
    with client.session_transaction() as session:
        assert session[STATE_KEY]['mode'] == 'creating'
    assert b'Post updated successfully!' in client.get('/').data


def test_cancel_edit(client, store):
    post = store.insert('Original', 'Original body text.')
    client.post(f'/posts/{post.id}/edit')
    response = client.post('/posts/cancel')
    assert response.status_code == 302
    with client.session_transaction() as session:
        assert session[STATE_KEY]['mode'] == 'creating'
        assert 'draft_title' not in session[STATE_KEY]


def test_cancel_without_edit_is_rejected(client):
    response = client.post('/posts/cancel', follow_redirects=True)
    assert response.status_code == 200
    assert b'There is no edit to cancel.' in response.data


def test_edit_missing_post_is_404(client):
    response = client.post('/posts/999/edit')
    assert response.status_code == 404
    assert b'That post does not exist.' in response.data


def test_delete_post(client, store):
    post = store.insert('Doomed', 'This post will be removed.')
    response = client.post(f'/posts/{post.id}/delete', follow_redirects=True)
    assert b'Post deleted successfully!' in response.data
    assert store.count() == 0

    response = client.post(f'/posts/{post.id}/delete', follow_redirects=True)
    assert b'Post not found.' in response.data


def test_update_after_post_deleted_elsewhere(client, store):
    post = store.insert('Original', 'Original body text.')
    client.post(f'/posts/{post.id}/edit')
    store.delete(post.id)

    response = client.post(
        '/posts/update',
        data={'title': 'Renamed', 'body': 'Renamed body text.'},
        follow_redirects=True,
    )
    assert b'Post not found.' in response.data
    assert b'action="/posts"' in response.data
    assert store.count() == 0


def test_unknown_route_renders_404(client):
    response = client.get('/nope')
    assert response.status_code == 404


def test_init_db_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['init-db'])
    assert 'Initialized the database.' in result.output


def session_cookie_sizes(response):
    return [len(header) for header in response.headers.getlist('Set-Cookie')]


def test_editing_long_post_keeps_session_cookie_small(client, store):
    body = 'lorem ipsum ' * 600
    post = store.insert('Long post', body.strip())

    response = client.post(f'/posts/{post.id}/edit')
    assert response.status_code == 302
    assert all(size <= 4093 for size in session_cookie_sizes(response))

    page = client.get('/')
    assert b'action="/posts/update"' in page.data
    assert body.strip().encode() in page.data


def test_long_invalid_update_keeps_drafts_in_response(client, store):
    post = store.insert('Original', 'Original body text.')
    client.post(f'/posts/{post.id}/edit')
    body = 'b' * 6000

    response = client.post('/posts/update', data={'title': 'x', 'body': body})
    assert response.status_code == 422
    assert body.encode() in response.data
    assert b'value="x"' in response.data
    assert all(size <= 4093 for size in session_cookie_sizes(response))
    assert store.find_by_id(post.id).title == 'Original'


def test_stale_edit_falls_back_to_create_form(client, store):
    post = store.insert('Original', 'Original body text.')
    client.post(f'/posts/{post.id}/edit')
    store.delete(post.id)

    page = client.get('/')
    assert page.status_code == 200
    assert b'Post not found.' in page.data
    assert b'action="/posts"' in page.data
    with client.session_transaction() as session:
        assert session[STATE_KEY]['mode'] == 'creating'
