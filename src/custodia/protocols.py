"""Callback contracts supplied by the application.

Each hook is a single-method protocol; any plain function with a matching
signature satisfies it. Hooks are passed explicitly to ``JWTAuth`` at
construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from starlette.requests import Request
    from starlette.responses import Response

    from custodia.exceptions import AuthError


@dataclass(frozen=True, slots=True)
class LoginCredentials:
    """Credentials presented to the login endpoint."""

    username: str
    password: str = field(repr=False)


class Authenticator(Protocol):
    """Check credentials and return ``(canonical_identity, ok)``.

    The returned identity may differ from ``credentials.username``; it is the
    one embedded in the token.
    """

    def __call__(self, credentials: LoginCredentials) -> tuple[str, bool]: ...


class Authorizator(Protocol):
    """Decide whether an authenticated identity may access the request."""

    def __call__(self, identity: str, request: Request) -> bool: ...


class PayloadFunc(Protocol):
    """Return extra claims to embed for ``identity``."""

    def __call__(self, identity: str) -> Mapping[str, Any]: ...


class UnauthorizedResponder(Protocol):
    """Render a failure response."""

    def __call__(self, request: Request, status_code: int, message: str) -> Response: ...


class MessageFormatter(Protocol):
    """Map an auth failure to the message text sent to the client."""

    def __call__(self, error: AuthError, request: Request) -> str: ...


class TimeFunc(Protocol):
    """Return the current time as an aware datetime."""

    def __call__(self) -> datetime: ...
