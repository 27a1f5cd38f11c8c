"""Request-scoped access to the authenticated identity and claims.

Two channels carry the result of a successful authentication:

- ``request.state.jwt_claims`` / ``request.state.jwt_identity``, set by the
  state machine before the authorizator runs, for handlers that hold the
  request object.
- A ContextVar holding :class:`AuthenticatedIdentity`, set by
  ``JWTAuthMiddleware`` around the downstream call, for code deeper in the
  call stack.

Usage:
    from custodia.context import get_current_identity

    identity = get_current_identity()  # Raises if not authenticated
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from contextvars import Token

    from starlette.requests import HTTPConnection

JWT_CLAIMS_STATE_KEY = "jwt_claims"
JWT_IDENTITY_STATE_KEY = "jwt_identity"


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """Identity and claims of the current authenticated request.

    Attributes:
        identity: Value of the identity claim.
        claims: Full decoded claim mapping.
    """

    identity: str
    claims: dict[str, Any]


_identity_context: ContextVar[AuthenticatedIdentity | None] = ContextVar(
    "identity_context", default=None
)


class NoAuthContextError(RuntimeError):
    """Raised when the identity is read outside an authenticated request."""

    def __init__(self) -> None:
        super().__init__(
            "No authenticated identity available. "
            "Ensure this code is called behind JWTAuthMiddleware."
        )


def set_identity_context(authenticated: AuthenticatedIdentity) -> Token[AuthenticatedIdentity | None]:
    """Bind the authenticated identity for the current request.

    Returns:
        Token for resetting the context via :func:`clear_identity_context`.
    """
    return _identity_context.set(authenticated)


def clear_identity_context(token: Token[AuthenticatedIdentity | None]) -> None:
    """Reset the identity context. Called from the middleware finally block."""
    _identity_context.reset(token)


def get_current_identity() -> AuthenticatedIdentity:
    """Get the authenticated identity for the current request.

    Raises:
        NoAuthContextError: If called outside an authenticated request.
    """
    authenticated = _identity_context.get()
    if authenticated is None:
        raise NoAuthContextError()
    return authenticated


def get_optional_identity() -> AuthenticatedIdentity | None:
    return _identity_context.get()


def store_on_request(request: HTTPConnection, identity: str, claims: dict[str, Any]) -> None:
    setattr(request.state, JWT_CLAIMS_STATE_KEY, claims)
    setattr(request.state, JWT_IDENTITY_STATE_KEY, identity)


def extract_claims(request: HTTPConnection) -> dict[str, Any]:
    """Return the claims attached to ``request``.

    Returns an empty dict when the request was not authenticated, so
    handlers can call this unconditionally.
    """
    claims = getattr(request.state, JWT_CLAIMS_STATE_KEY, None)
    if claims is None:
        return {}
    return dict(claims)


def extract_identity(request: HTTPConnection) -> str | None:
    """Return the identity attached to ``request``, or None."""
    return getattr(request.state, JWT_IDENTITY_STATE_KEY, None)
