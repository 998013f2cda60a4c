"""
Shared pytest fixtures for the Idea Swipe test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_users / make_idea: committed-row factories
    - add_like / add_comment: engagement rows with explicit timestamps
"""

import pytest

from ideaswipe import create_app
from ideaswipe.models import db as _db
from ideaswipe.models.idea import Comment, Idea, Like, User


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────

@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(nickname=None, *, is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            wallet_address=f"0x{n:040x}",
            nickname=nickname or f"user{n}",
            is_active=is_active,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_users(make_user):
    def _make(count, *, is_active=True):
        return [make_user(is_active=is_active) for _ in range(count)]

    return _make


@pytest.fixture()
def make_idea():
    def _make(owner=None, *, status="idea", likes_count=0, title="Solar-powered bike lock",
              updated_at=None):
        idea = Idea(
            user_id=owner.id if owner else None,
            title=title,
            target="Urban cyclists",
            why_description="Locks die in winter",
            status=status,
            likes_count=likes_count,
        )
        if updated_at is not None:
            idea.created_at = updated_at
            idea.updated_at = updated_at
        _db.session.add(idea)
        _db.session.commit()
        return idea

    return _make


@pytest.fixture()
def add_like():
    """Insert a Like row directly (no activity, no counter bump)."""
    def _add(idea, user, at=None):
        like = Like(idea_id=idea.id, user_id=user.id)
        if at is not None:
            like.created_at = at
        _db.session.add(like)
        _db.session.commit()
        return like

    return _add


@pytest.fixture()
def add_comment():
    """Insert a Comment row directly (no activity, no counter bump)."""
    def _add(idea, user, at=None, content="Nice"):
        comment = Comment(idea_id=idea.id, user_id=user.id, content=content)
        if at is not None:
            comment.created_at = at
        _db.session.add(comment)
        _db.session.commit()
        return comment

    return _add
