"""Hello Server application factory.

Demonstrates the consumer pattern: the application supplies its
authenticator and authorizator, mounts the login endpoint publicly, and
puts everything under ``/auth`` behind ``JWTAuthMiddleware``.

Usage::

    from examples.hello_server.app import create_hello_app

    app = create_hello_app()

Routes:
    POST /login               {"username", "password"} -> {"token", "expire"}
    GET  /auth/hello          greeting for the authenticated identity
    GET  /auth/refresh_token  fresh token for a still-refreshable one
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI

from custodia import AuthSettings, JWTAuth, JWTAuthMiddleware
from custodia.dependencies import CurrentIdentity, JWTClaims
from custodia.logging import configure_logging

if TYPE_CHECKING:
    from starlette.requests import Request

    from custodia.logging import LoggingSettings
    from custodia.protocols import LoginCredentials, TimeFunc

# Demo accounts -- replaced by a real user store in production.
_USERS = {
    "admin": "admin",
    "test": "test",
}


def authenticate(credentials: LoginCredentials) -> tuple[str, bool]:
    """Accept the demo accounts."""
    expected = _USERS.get(credentials.username)
    return credentials.username, expected is not None and expected == credentials.password


def authorize(identity: str, request: Request) -> bool:
    """Only ``admin`` may use the protected routes."""
    return identity == "admin"


def create_hello_app(
    settings: AuthSettings | None = None,
    *,
    time_func: TimeFunc | None = None,
    logging_settings: LoggingSettings | None = None,
) -> FastAPI:
    """Create the Hello Server app.

    Args:
        settings: Auth settings. Defaults to the "test zone" realm with a
            demo HMAC secret.
        time_func: Clock override, for tests.
        logging_settings: Logging configuration. Loaded from LOG_LEVEL and
            ENVIRONMENT if omitted.
    """
    configure_logging(logging_settings)

    auth = JWTAuth(
        settings or AuthSettings(realm="test zone", secret_key="hello-server-demo-secret-key-0123456789"),
        authenticator=authenticate,
        authorizator=authorize,
        time_func=time_func,
    )

    protected = FastAPI()
    protected.add_middleware(JWTAuthMiddleware, auth=auth, excluded_prefixes=())

    @protected.get("/hello")
    def hello(identity: CurrentIdentity, claims: JWTClaims) -> dict[str, Any]:
        return {"text": "Hello World.", "identity": identity, "exp": claims.get("exp")}

    protected.add_route("/refresh_token", auth.refresh_handler, methods=["GET"])

    app = FastAPI(title="Hello Server", version="0.1.0")
    app.add_route("/login", auth.login_handler, methods=["POST"])
    app.mount("/auth", protected)
    app.state.jwt_auth = auth
    return app
