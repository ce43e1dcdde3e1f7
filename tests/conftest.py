"""
Pytest configuration and fixtures for testing the CommonGood API.
"""

import os
import sys
import pytest
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ['JWT_SECRET_KEY'] = 'test-secret-key-for-testing'

from commongood import create_app, db
from commongood.models.user import User
from commongood.models.listing import Listing
from commongood.services import geolocation, storage

fake = Faker()

# Smallest byte strings the upload validation accepts as real images
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32
JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 32


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for each test function."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create a fresh database session for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        geolocation.reset_circuit()
        yield db.session
        db.session.rollback()


def _create_user(password='testpassword123', **overrides):
    """Helper to create a user with sensible defaults."""
    data = {
        'name': fake.name()[:50],
        'email': fake.unique.email(),
        'bio': fake.sentence(),
        'location': fake.city(),
    }
    data.update(overrides)
    user = User(**data)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'password': password,
    }


def _create_listing(user_id, **overrides):
    """Helper to create a listing with sensible defaults."""
    data = {
        'user_id': user_id,
        'listing_type': 'OfferSkill',
        'title': fake.sentence(nb_words=4)[:100],
        'description': fake.paragraph(),
        'category': 'Gardening',
        'tags': ['plants', 'outdoor'],
        'photos': [],
        'status': 'active',
        'location': 'Portland',
    }
    data.update(overrides)
    listing = Listing(**data)
    db.session.add(listing)
    db.session.commit()
    return listing.id


def _get_token(client, email, password):
    """Login and return JWT token."""
    resp = client.post('/api/v1/auth/login', json={
        'email': email,
        'password': password,
    })
    data = resp.get_json()
    if not data or not data.get('token'):
        raise RuntimeError(
            f"Login failed: status={resp.status_code}, body={resp.data[:200]}"
        )
    return data['token']


@pytest.fixture
def test_user(app, db_session):
    """Create a test user."""
    return _create_user()


@pytest.fixture
def second_user(app, db_session):
    """Create a second test user for interaction tests."""
    return _create_user(password='testpassword456')


@pytest.fixture
def third_user(app, db_session):
    """Create a user unrelated to the others."""
    return _create_user(password='testpassword789')


@pytest.fixture
def auth_headers(client, test_user):
    """Get authentication headers for test user."""
    token = _get_token(client, test_user['email'], test_user['password'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def second_auth_headers(client, second_user):
    """Get authentication headers for second user."""
    token = _get_token(client, second_user['email'], second_user['password'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def third_auth_headers(client, third_user):
    """Get authentication headers for the unrelated user."""
    token = _get_token(client, third_user['email'], third_user['password'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def test_listing(app, db_session, test_user):
    """Create an active listing owned by test_user."""
    listing_id = _create_listing(test_user['id'])
    return {
        'id': listing_id,
        'user_id': test_user['id'],
    }


@pytest.fixture
def fake_storage(monkeypatch):
    """Replace Cloudinary calls with in-memory fakes.

    Returns a dict recording uploads and deletions.
    """
    calls = {'uploads': [], 'deleted': []}

    def upload_image(file_data, folder, transformation=None):
        public_id = f'{folder}/img{len(calls["uploads"]) + 1}'
        calls['uploads'].append({'folder': folder, 'size': len(file_data), 'transformation': transformation})
        return {'url': f'https://res.cloudinary.com/test/{public_id}.png', 'public_id': public_id}, None

    def delete_images(public_ids):
        calls['deleted'].extend(public_ids)
        return True, None

    monkeypatch.setattr(storage, 'is_storage_configured', lambda: True)
    monkeypatch.setattr(storage, 'upload_image', upload_image)
    monkeypatch.setattr(storage, 'delete_images', delete_images)
    return calls
