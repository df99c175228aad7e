import pytest

from app import create_app
from config import TestConfig
from extensions import db
from init_db import DEMO_PASSWORD, seed_demo_data
from models import User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def admin(ctx):
    return User.query.filter_by(username="admin").one()


@pytest.fixture
def manager(ctx):
    return User.query.filter_by(username="manager").one()


@pytest.fixture
def delegate_user(ctx):
    return User.query.filter_by(username="abdulmalek").one()


def _login(app, username):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"username": username, "password": DEMO_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def admin_client(app):
    return _login(app, "admin")


@pytest.fixture
def manager_client(app):
    return _login(app, "manager")


@pytest.fixture
def delegate_client(app):
    return _login(app, "abdulmalek")


@pytest.fixture
def anon_client(app):
    return app.test_client()
