"""End-to-end tests through the HTTP API."""

import pytest

PDF_BYTES = b"%PDF-1.4\n" + b"0" * 1024

MB = 1024 * 1024


def file_ids(response):
    return [f['id'] for f in response.json()['data']]


# ---------------------------------------------------------------------------
# Health, errors
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.json()['ok'] is True
    assert 'time' in response.json()


def test_unknown_route_has_error_body(client):
    response = client.get('/api/nope')

    assert response.status_code == 404
    assert response.json()['error']


def test_non_integer_file_id_is_validation_error(client):
    response = client.get('/api/files/abc/download')

    assert response.status_code == 400
    assert 'file_id' in response.json()['error']


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------

def test_register_and_login(client):
    response = client.post(
        '/api/register',
        json={'username': 'alice', 'email': 'alice@example.com', 'password': 'password123'},
    )
    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['data']['email'] == 'alice@example.com'
    assert 'password' not in str(body['data'])

    response = client.post('/api/login', json={'email': 'alice@example.com', 'password': 'password123'})
    assert response.status_code == 200
    token = response.json()['data']
    assert token['token_type'] == 'bearer'
    assert token['access_token']
    assert token['user']['username'] == 'alice'


def test_register_duplicate_email(client, make_user):
    make_user('alice')

    response = client.post(
        '/api/register',
        json={'username': 'other', 'email': 'alice@example.com', 'password': 'password123'},
    )

    assert response.status_code == 409
    assert response.json() == {'success': False, 'error': 'Email already registered'}


@pytest.mark.parametrize('payload', [
    {'username': 'a', 'email': 'a@example.com', 'password': 'short'},
    {'email': 'a@example.com', 'password': 'password123'},
    {'username': 'a', 'email': 'not-an-email', 'password': 'password123'},
])
def test_register_rejects_bad_input(client, payload):
    response = client.post('/api/register', json=payload)

    assert response.status_code == 400
    assert response.json()['error']


def test_login_with_wrong_password(client, make_user):
    make_user('alice')

    response = client.post('/api/login', json={'email': 'alice@example.com', 'password': 'nope-nope'})

    assert response.status_code == 401
    assert response.json()['error'] == 'Invalid email or password'


def test_me_requires_token(client, make_user):
    user_id, headers = make_user('alice')

    assert client.get('/api/me').status_code == 401
    assert client.get('/api/me', headers={'Authorization': 'Bearer junk'}).status_code == 401

    response = client.get('/api/me', headers=headers)
    assert response.status_code == 200
    assert response.json()['data']['id'] == user_id


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

def test_upload_requires_token(client, upload, upload_dir):
    response = upload(headers={})

    assert response.status_code == 401
    assert list(upload_dir.iterdir()) == []


def test_public_upload_listed_publicly(client, make_user, upload):
    _, headers = make_user('alice')

    response = upload(headers)

    assert response.status_code == 201
    data = response.json()['data']
    assert data['visibility'] == 'public'
    assert data['share_link'] is None
    assert data['original_name'] == 'doc.pdf'
    assert data['size'] == len(PDF_BYTES)
    assert data['path'].startswith('/uploads/')
    assert file_ids(client.get('/api/public-files')) == [data['id']]


def test_private_upload_hidden_from_public_listing(client, make_user, upload):
    _, headers = make_user('alice')

    data = upload(headers, privacy='private').json()['data']

    assert data['visibility'] == 'private'
    assert data['share_link'].startswith('/api/files/share/')
    assert data['share_link'].endswith('/download')
    assert client.get('/api/public-files').json()['data'] == []
    mine = client.get('/api/my-files', headers=headers).json()['data']
    assert [f['share_link'] for f in mine] == [data['share_link']]


def test_my_files_only_lists_own_files_newest_first(client, make_user, upload):
    _, alice = make_user('alice')
    _, bob = make_user('bob')
    first = upload(alice, name='one.pdf').json()['data']['id']
    second = upload(alice, name='two.pdf', privacy='private').json()['data']['id']
    upload(bob, name='bobs.pdf')

    assert file_ids(client.get('/api/my-files', headers=alice)) == [second, first]
    assert client.get('/api/my-files').status_code == 401


def test_disallowed_type_rejected(client, make_user, upload, upload_dir):
    _, headers = make_user('alice')

    response = upload(headers, name='notes.txt', content=b'hello', content_type='text/plain')

    assert response.status_code == 415
    assert 'Unsupported file type' in response.json()['error']
    assert client.get('/api/my-files', headers=headers).json()['data'] == []
    assert list(upload_dir.iterdir()) == []


def test_oversized_upload_rejected(client, make_user, upload, upload_dir):
    _, headers = make_user('alice')

    response = upload(headers, name='big.pdf', content=b'0' * (25 * MB))

    assert response.status_code == 400
    assert response.json()['error'] == 'File too large. Max 20MB.'
    assert client.get('/api/my-files', headers=headers).json()['data'] == []
    assert list(upload_dir.iterdir()) == []


def test_upload_without_file_part(client, make_user):
    _, headers = make_user('alice')

    response = client.post('/api/upload', headers=headers, data={'privacy': 'public'})

    assert response.status_code == 400
    assert response.json()['error'] == 'No file uploaded'


def test_upload_with_two_files(client, make_user, upload_dir):
    _, headers = make_user('alice')

    response = client.post(
        '/api/upload',
        headers=headers,
        files=[
            ('file', ('a.pdf', PDF_BYTES, 'application/pdf')),
            ('file', ('b.pdf', PDF_BYTES, 'application/pdf')),
        ],
    )

    assert response.status_code == 400
    assert list(upload_dir.iterdir()) == []


def test_same_name_uploads_do_not_collide(client, make_user, upload, upload_dir):
    _, headers = make_user('alice')

    upload(headers, content=b'%PDF first')
    upload(headers, content=b'%PDF second')

    stored = sorted(p.read_bytes() for p in upload_dir.iterdir())
    assert stored == [b'%PDF first', b'%PDF second']


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

def test_public_download_without_token(client, make_user, upload):
    _, headers = make_user('alice')
    file_id = upload(headers).json()['data']['id']

    response = client.get(f'/api/files/{file_id}/download')

    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers['content-type'] == 'application/pdf'
    assert response.headers['x-content-type-options'] == 'nosniff'
    assert response.headers['content-disposition'] == 'attachment; filename="doc.pdf"'


def test_private_file_scenario(client, make_user, upload):
    """Private upload: share link works anonymously, id route does not."""
    _, alice = make_user('alice')
    content = b'%PDF' + b'1' * (2 * MB)

    data = upload(alice, content=content, privacy='private').json()['data']

    shared = client.get(data['share_link'])
    assert shared.status_code == 200
    assert shared.content == content

    assert client.get(f"/api/files/{data['id']}/download").status_code == 403


def test_private_download_by_id(client, make_user, upload):
    _, alice = make_user('alice')
    _, bob = make_user('bob')
    file_id = upload(alice, privacy='private').json()['data']['id']

    assert client.get(f'/api/files/{file_id}/download', headers=bob).status_code == 403
    invalid = client.get(f'/api/files/{file_id}/download', headers={'Authorization': 'Bearer junk'})
    assert invalid.status_code == 403
    assert invalid.json()['error'] == 'Forbidden (invalid token)'

    response = client.get(f'/api/files/{file_id}/download', headers=alice)
    assert response.status_code == 200
    assert response.content == PDF_BYTES


def test_unknown_downloads_are_404(client):
    assert client.get('/api/files/999/download').status_code == 404
    response = client.get('/api/files/share/does-not-exist/download')
    assert response.status_code == 404
    assert response.json()['error'] == 'Invalid link'


def test_download_with_missing_content_is_410(client, make_user, upload, upload_dir):
    _, headers = make_user('alice')
    file_id = upload(headers).json()['data']['id']
    for path in upload_dir.iterdir():
        path.unlink()

    response = client.get(f'/api/files/{file_id}/download')

    assert response.status_code == 410
    assert response.json()['error'] == 'File missing from server'


def test_static_uploads_served_without_listing(client, make_user, upload):
    _, headers = make_user('alice')
    path = upload(headers).json()['data']['path']

    assert client.get(path).content == PDF_BYTES
    assert client.get('/uploads/').status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_non_owner_delete_scenario(client, make_user, upload, upload_dir):
    """User B cannot delete user A's file."""
    _, alice = make_user('alice')
    _, bob = make_user('bob')
    file_id = upload(alice).json()['data']['id']

    response = client.delete(f'/api/files/{file_id}', headers=bob)

    assert response.status_code == 403
    assert file_ids(client.get('/api/my-files', headers=alice)) == [file_id]
    assert len(list(upload_dir.iterdir())) == 1


def test_owner_delete(client, make_user, upload, upload_dir):
    _, alice = make_user('alice')
    file_id = upload(alice, privacy='private').json()['data']['id']

    response = client.delete(f'/api/files/{file_id}', headers=alice)

    assert response.status_code == 200
    assert response.json()['message'] == 'Deleted'
    assert list(upload_dir.iterdir()) == []
    assert client.get('/api/my-files', headers=alice).json()['data'] == []
    assert client.get(f'/api/files/{file_id}/download', headers=alice).status_code == 404


def test_delete_requires_token(client, make_user, upload):
    _, alice = make_user('alice')
    file_id = upload(alice).json()['data']['id']

    response = client.delete(f'/api/files/{file_id}')

    assert response.status_code == 401
    assert response.headers['www-authenticate'] == 'Bearer'


def test_delete_unknown_file(client, make_user):
    _, alice = make_user('alice')

    assert client.delete('/api/files/12345', headers=alice).status_code == 404


def test_upload_with_very_long_name(client, make_user, upload, upload_dir):
    _, headers = make_user('alice')
    name = 'a' * 240 + '.pdf'

    response = upload(headers, name=name)

    assert response.status_code == 201
    assert response.json()['data']['original_name'] == name
    assert len(list(upload_dir.iterdir())) == 1


def test_token_for_unknown_user_is_rejected(app, client, upload, upload_dir):
    token, _ = app.state.tokens.issue(999)
    headers = {'Authorization': f'Bearer {token}'}

    response = upload(headers)

    assert response.status_code == 401
    assert response.json()['error'] == 'Unknown user'
    assert list(upload_dir.iterdir()) == []
    assert client.get('/api/my-files', headers=headers).status_code == 401
