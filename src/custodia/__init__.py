"""Custodia -- JWT issuing, verification, and refresh for Starlette/FastAPI.

Provides the token lifecycle (login, refresh, generate), an authentication
state machine run as middleware ahead of protected routes, a pluggable
authorization hook, and FastAPI dependencies for reading the authenticated
identity and claims.
"""

from custodia.auth import AuthOutcome, AuthState, JWTAuth
from custodia.claims import Claims, build_claims, read_identity, read_original_issued_at
from custodia.context import (
    AuthenticatedIdentity,
    NoAuthContextError,
    extract_claims,
    extract_identity,
    get_current_identity,
    get_optional_identity,
)
from custodia.exceptions import (
    AuthenticationError,
    AuthError,
    ConfigurationError,
    ForbiddenError,
)
from custodia.middleware.jwt_auth import JWTAuthMiddleware
from custodia.protocols import LoginCredentials
from custodia.responses import TokenResponse
from custodia.settings import AuthSettings, get_auth_settings
from custodia.signing import SigningAlgorithm

__all__ = [
    "AuthError",
    "AuthOutcome",
    "AuthSettings",
    "AuthState",
    "AuthenticatedIdentity",
    "AuthenticationError",
    "Claims",
    "ConfigurationError",
    "ForbiddenError",
    "JWTAuth",
    "JWTAuthMiddleware",
    "LoginCredentials",
    "NoAuthContextError",
    "SigningAlgorithm",
    "TokenResponse",
    "build_claims",
    "extract_claims",
    "extract_identity",
    "get_auth_settings",
    "get_current_identity",
    "get_optional_identity",
    "read_identity",
    "read_original_issued_at",
]
