"""Integration tests: Hello Server example application end to end."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from conftest import make_settings
from examples.hello_server.app import create_hello_app
from fastapi.testclient import TestClient

from custodia.logging import LoggingSettings

if TYPE_CHECKING:
    from collections.abc import Iterator

    from conftest import FrozenClock


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def client(clock: FrozenClock) -> TestClient:
    settings = make_settings(max_refresh=timedelta(hours=1))
    return TestClient(create_hello_app(settings, time_func=clock))


def _login(client: TestClient, username: str, password: str) -> str:
    response = client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200
    token: str = response.json()["token"]
    return token


@pytest.mark.integration
class TestHelloServer:
    def test_admin_reaches_hello(self, client: TestClient) -> None:
        token = _login(client, "admin", "admin")
        response = client.get("/auth/hello", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        body = response.json()
        assert body["text"] == "Hello World."
        assert body["identity"] == "admin"
        assert isinstance(body["exp"], int)

    def test_test_user_is_forbidden(self, client: TestClient) -> None:
        token = _login(client, "test", "test")
        response = client.get("/auth/hello", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_unknown_user_cannot_log_in(self, client: TestClient) -> None:
        response = client.post("/login", json={"username": "admin", "password": "test"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "JWT realm=test zone"

    def test_hello_requires_token(self, client: TestClient) -> None:
        response = client.get("/auth/hello")
        assert response.status_code == 401
        assert response.json() == {"code": 401, "message": "auth header is empty"}

    def test_refresh_token(self, client: TestClient, clock: FrozenClock) -> None:
        token = _login(client, "admin", "admin")
        clock.advance(minutes=30)
        response = client.get(
            "/auth/refresh_token", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json()["expire"] == "2024-01-01T13:30:00Z"

    def test_default_app_builds(self) -> None:
        app = create_hello_app()
        assert app.state.jwt_auth.realm == "test zone"

    def test_library_events_rendered_through_structlog(
        self, clock: FrozenClock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app = create_hello_app(
            make_settings(),
            time_func=clock,
            logging_settings=LoggingSettings(log_level="INFO", environment="production"),
        )
        client = TestClient(app)
        client.post("/login", json={"username": "admin", "password": "admin"})

        err = capsys.readouterr().err
        assert '"event": "jwt_login_succeeded"' in err
        assert '"identity": "admin"' in err
        assert '"logger": "custodia.auth"' in err
