import pytest

from app import create_app
from models import db
from store import PostStore
from workflow import PostWorkflow


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return PostStore()


@pytest.fixture
def workflow(store):
    return PostWorkflow(store)
