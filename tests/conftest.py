"""Shared fixtures: an isolated app per test (temp SQLite file + temp upload dir)."""

import pytest
from fastapi.testclient import TestClient

from secure_files.core.config import Settings
from secure_files.main import create_app

PDF_BYTES = b"%PDF-1.4\n" + b"0" * 1024


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at throwaway storage.

    Returns:
        Settings with a 20MB upload limit and PDF/MP4 allow-list.
    """
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        UPLOAD_DIR=str(tmp_path / 'uploads'),
        SECRET_KEY='test-secret',
        ACCESS_TOKEN_EXPIRE_MINUTES=30,
        MAX_FILE_SIZE_MB=20,
        ALLOWED_MIME=['application/pdf', 'video/mp4'],
        LOG_LEVEL='DEBUG',
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client with the lifespan (table creation) already run."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def upload_dir(settings):
    return settings.upload_root


@pytest.fixture
def make_user(client):
    """Register and log in a user through the API.

    Returns:
        Callable returning (user_id, auth_headers).
    """

    def _make_user(name: str = 'alice', password: str = 'correct-horse'):
        email = f'{name}@example.com'
        response = client.post(
            '/api/register',
            json={'username': name, 'email': email, 'password': password},
        )
        assert response.status_code == 201, response.text
        user_id = response.json()['data']['id']

        response = client.post('/api/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.text
        token = response.json()['data']['access_token']
        return user_id, {'Authorization': f'Bearer {token}'}

    return _make_user


@pytest.fixture
def upload(client):
    """Upload a file through the API and return the response."""

    def _upload(headers, name='doc.pdf', content=PDF_BYTES,
                content_type='application/pdf', privacy=None):
        params = {'privacy': privacy} if privacy else None
        return client.post(
            '/api/upload',
            params=params,
            files={'file': (name, content, content_type)},
            headers=headers,
        )

    return _upload
