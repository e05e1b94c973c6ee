# tests/conftest.py
import os
import sys
from datetime import date, timedelta

import pytest
from werkzeug.security import generate_password_hash

# so that "import app" works when pytest runs from the repository root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app import create_app
from extensions import db
from models import Post, User

PASSWORD = "correct"


@pytest.fixture()
def app(tmp_path):
    # no app context is kept pushed: every request has to build its own
    # current_user and db session, like in production
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SECRET_KEY": "test-secret",
        "JWT_SECRET_KEY": "test-jwt-secret-that-is-long-enough-for-hs256",
        "SESSION_EXPIRE": "1h",
        "SESSION_COOKIE_SECURE_FLAG": False,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "SETUP_START": "2024-12-01",
        "SETUP_DAYS": 24,
        "OPEN_REGISTRATION": True,
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def users(app):
    """admin (built-in), editor (admin flag) and reader; returns {name: uid}."""
    with app.app_context():
        for name, admin in (("admin", True), ("editor", True), ("reader", False)):
            db.session.add(User(name=name, password=generate_password_hash(PASSWORD), admin=admin))
        db.session.commit()
        return {user.name: user.uid for user in User.query.all()}


@pytest.fixture()
def login(client, users):
    def _login(name, password=PASSWORD):
        return client.post("/api/login", json={"user": name, "password": password})
    return _login


@pytest.fixture()
def make_post(app):
    """Create a post ``offset`` days from today; returns its pid."""
    def _make(offset=0, content=""):
        with app.app_context():
            post = Post(date=date.today() + timedelta(days=offset), content=content)
            db.session.add(post)
            db.session.commit()
            return post.pid
    return _make
