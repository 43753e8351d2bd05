from __future__ import annotations

from collections.abc import Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient

from giftexchange import create_app
from giftexchange.extensions import db
from giftexchange.models import User

ADMIN_NAME = "organizer"


@pytest.fixture
def app(tmp_path) -> Generator[Flask, None, None]:
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'santa.db'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {
                "connect_args": {"timeout": 15, "check_same_thread": False},
            },
            "WTF_CSRF_ENABLED": False,
            "SANTA_ADMIN_NAME": ADMIN_NAME,
            "SANTA_TX_BACKOFF_SECONDS": 0,
            "LOG_LEVEL": "WARNING",
        }
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture
def make_user(app: Flask):
    def _make(name: str, department: str | None = None) -> int:
        user = User(name=name, department=department, passkey_hash="unused")
        db.session.add(user)
        db.session.commit()
        return user.id

    return _make


@pytest.fixture
def admin_id(make_user) -> int:
    return make_user(ADMIN_NAME, "Organizers")

