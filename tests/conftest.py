import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from secretwall.app import create_app
from secretwall.config import Settings
from secretwall.infra.db import create_tables, make_engine, make_session_factory
from secretwall.infra.user_repo import UserStore

TOKEN_PATH = "/token"
USERINFO_PATH = "/oauth2/v3/userinfo"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        secret_key="test-secret-key",
        database_url=f"sqlite:///{tmp_path / 'secretwall.db'}",
        google_client_id="client-id",
        google_client_secret="client-secret",
        log_level="WARNING",
    )


@pytest.fixture()
def store(settings: Settings):
    engine = make_engine(settings.database_url)
    create_tables(engine)
    yield UserStore(make_session_factory(engine))
    engine.dispose()


def fake_google(sub: str = "google-sub-1", name: str = "Ada Lovelace", calls: list | None = None):
    """Handler for httpx.MockTransport answering the token and userinfo endpoints."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path == TOKEN_PATH:
            return httpx.Response(200, json={"access_token": "access-123", "token_type": "Bearer"})
        if request.url.path == USERINFO_PATH:
            if request.headers.get("Authorization") != "Bearer access-123":
                return httpx.Response(401, json={"error": "invalid_token"})
            return httpx.Response(200, json={"sub": sub, "name": name})
        return httpx.Response(404)

    return handler


@pytest.fixture()
def google_calls() -> list:
    return []


@pytest.fixture()
def app(settings: Settings, google_calls: list):
    app = create_app(settings, oauth_transport=httpx.MockTransport(fake_google(calls=google_calls)))
    yield app
    app.state.services.engine.dispose()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)
