from __future__ import annotations

import itertools
from datetime import datetime

import pytest
import requests

from campus_attendance.config import load_settings
from campus_attendance.container import build_container
from campus_attendance.core.enums import Role
from campus_attendance.database.bootstrap import apply_schema, apply_seed_sql
from campus_attendance.database.connection import Database, DBConfig
from campus_attendance.main import create_app
from campus_attendance.users.model import GoogleProfile

TESTING_SETTINGS = "campus_attendance.config.testing"


@pytest.fixture
def fixed_now() -> datetime:
    # Naive on purpose: read as server-local wall clock, so the local date is
    # 2025-03-10 whatever zone the test host runs in.
    return datetime(2025, 3, 10, 9, 30, 0)


@pytest.fixture
def database(tmp_path):
    db = Database(DBConfig(path=str(tmp_path / "attendance.db")))
    db.open()
    apply_schema(db)
    apply_seed_sql(db)
    yield db
    db.close()


@pytest.fixture
def container(database):
    c = build_container(load_settings(TESTING_SETTINGS), database=database)
    yield c
    c.close()


@pytest.fixture
def make_user(container):
    counter = itertools.count(1)

    def _make(*, name: str = "測試使用者", role: Role = Role.USER) -> int:
        n = next(counter)
        profile = GoogleProfile(external_id=f"google-sub-{n}", email=f"user{n}@example.com", name=name)
        user_id = container.users_repo.create_user(profile=profile, role=role, locale="zh-TW")
        assert user_id is not None
        return user_id

    return _make


class FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeGoogleSession:
    """Stands in for requests.Session at the token and userinfo endpoints."""

    def __init__(self):
        self.token_status = 200
        self.profile = {
            "sub": "google-sub-web",
            "email": "student@example.com",
            "name": "王小明",
            "picture": "https://example.com/a.png",
            "locale": "zh-TW",
            "email_verified": True,
        }
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append(("POST", url, data))
        return FakeResponse({"access_token": "access-token-1"}, status_code=self.token_status)

    def get(self, url, headers=None, timeout=None):
        self.calls.append(("GET", url, headers))
        return FakeResponse(self.profile)


@pytest.fixture
def google_session() -> FakeGoogleSession:
    return FakeGoogleSession()


@pytest.fixture
def app(tmp_path, monkeypatch, google_session):
    monkeypatch.setenv("APP_ENV", "testing")
    flask_app = create_app(overrides={"DATABASE_PATH": str(tmp_path / "web.db")}, http_session=google_session)
    yield flask_app
    flask_app.extensions["campus_attendance"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """Run the OAuth round trip against the fake Google session."""

    def _login():
        client.get("/login")
        with client.session_transaction() as sess:
            state = sess["oauth_state"]
        return client.get(f"/auth/google/callback?state={state}&code=auth-code")

    return _login
