"""
Root pytest configuration and fixtures for unit and integration tests.
"""
import os
import sys
import uuid
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Test configuration
os.environ['FLASK_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only-0123456789'
os.environ['LOCAL_USER_MODE'] = 'false'
os.environ['LOG_LEVEL'] = 'DEBUG'


@pytest.fixture(scope='function')
def app():
    """
    Fresh Flask application with its own in-memory database.

    No app context is left pushed; engine tests use ``ctx``.
    """
    from app import create_app

    test_app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })
    yield test_app


@pytest.fixture(scope='function')
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture(scope='function')
def ctx(app):
    """Application context for tests calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def db_session(ctx):
    """Database session bound to the pushed app context."""
    from models import db

    yield db.session
    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def test_user(db_session):
    """Create a user directly in the database."""
    from models import User
    from werkzeug.security import generate_password_hash

    unique_id = str(uuid.uuid4())[:8]
    user = User(
        email=f'test_{unique_id}@example.com',
        password_hash=generate_password_hash('testpassword123'),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_user(db_session):
    from models import User

    user = User(email=f'other_{uuid.uuid4().hex[:8]}@example.com', password_hash='x')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def test_project(db_session, test_user):
    """An empty project owned by ``test_user``."""
    from services.ordered_collection import project_collection

    return project_collection.append(test_user.id, name='Test Project', type='project')


def _register(client, email=None, password='Passw0rd!'):
    """Register through the API; returns (user dict, bearer headers)."""
    email = email or f'user_{uuid.uuid4().hex[:8]}@example.com'
    resp = client.post('/api/auth/register', json={'email': email, 'password': password})
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return body['user'], {'Authorization': f"Bearer {body['token']}"}


@pytest.fixture(scope='function')
def auth_headers(client):
    """Bearer headers for a freshly registered user."""
    _, headers = _register(client)
    return headers


@pytest.fixture(scope='function')
def register(client):
    """Callable registering another user: register(email=None, password=...)."""
    def _do(email=None, password='Passw0rd!'):
        return _register(client, email=email, password=password)
    return _do
