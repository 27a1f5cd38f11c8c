"""FastAPI dependency functions for the authenticated identity.

Usage:
    from custodia.dependencies import CurrentIdentity, JWTClaims

    @router.get("/hello")
    def hello(identity: CurrentIdentity, claims: JWTClaims):
        ...
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from custodia.context import extract_claims
from custodia.context import get_current_identity as _get_identity_from_context


def get_current_identity() -> str:
    """FastAPI dependency that returns the authenticated identity.

    Reads from the identity ContextVar set by JWTAuthMiddleware.

    Raises:
        NoAuthContextError: If called outside an authenticated request.
    """
    return _get_identity_from_context().identity


def get_jwt_claims(request: Request) -> dict[str, Any]:
    """FastAPI dependency returning the request's claims (empty if none)."""
    return extract_claims(request)


# Type aliases for cleaner endpoint signatures
CurrentIdentity = Annotated[str, Depends(get_current_identity)]
JWTClaims = Annotated[dict[str, Any], Depends(get_jwt_claims)]
