"""JWT authentication middleware.

Runs the ``JWTAuth`` state machine ahead of every request except excluded
paths. On success the identity and claims are available on
``request.state`` and through ``custodia.context`` for the rest of the
request; on failure the configured responder's response is returned and
the handler is never called.

Design decisions:
- Use BaseHTTPMiddleware (not pure ASGI). Overhead is negligible next to
  signature verification.
- Return the failure response directly (not raise HTTPException) because
  BaseHTTPMiddleware dispatch cannot propagate exceptions through the ASGI
  stack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from starlette.middleware.base import BaseHTTPMiddleware

from custodia.context import (
    AuthenticatedIdentity,
    clear_identity_context,
    set_identity_context,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

    from custodia.auth import JWTAuth

# Default paths excluded from JWT validation.
_DEFAULT_EXCLUDED_PREFIXES = (
    "/health",
    "/ready",
    "/docs",
    "/openapi.json",
    "/redoc",
)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Gate requests on a valid token and a positive authorization decision.

    Request flow:
    1. Check if path is excluded -> skip auth
    2. Evaluate the request with ``JWTAuth.evaluate``
    3. FAILED -> 401, FORBIDDEN -> 403, rendered by ``JWTAuth.unauthorized``
    4. AUTHORIZED -> bind identity context, call next handler
    """

    def __init__(
        self,
        app: Any,
        auth: JWTAuth,
        excluded_prefixes: tuple[str, ...] | None = None,
    ) -> None:
        """Initialize authentication middleware.

        Args:
            app: ASGI application (passed by Starlette).
            auth: Configured token lifecycle.
            excluded_prefixes: Path prefixes to skip auth on.
                Defaults to /health, /ready, /docs, /openapi.json, /redoc.
        """
        super().__init__(app)
        self._auth = auth
        self._excluded_prefixes = (
            excluded_prefixes if excluded_prefixes is not None else _DEFAULT_EXCLUDED_PREFIXES
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self._excluded_prefixes):
            return await call_next(request)

        outcome = self._auth.evaluate(request)
        if not outcome.authorized:
            assert outcome.error is not None
            return self._auth.unauthorized(request, outcome.error)

        assert outcome.identity is not None and outcome.claims is not None
        token = set_identity_context(
            AuthenticatedIdentity(identity=outcome.identity, claims=outcome.claims)
        )
        try:
            return await call_next(request)
        finally:
            clear_identity_context(token)
