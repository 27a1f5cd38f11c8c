"""Authentication error hierarchy for type-safe error handling.

Every failure the token lifecycle can produce is a subclass of
:class:`AuthError`. Each class carries a stable machine-readable
``error_code``, the HTTP ``status_code`` it maps to, and a stable
human-readable message. Configuration errors are raised once, while the
``JWTAuth`` instance is being built, and never per request.

Example:
    >>> from custodia.exceptions import TokenExpiredError
    >>> raise TokenExpiredError(context={"exp": 1700000000})
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AuthError",
    "AuthHeaderEmptyError",
    "AuthHeaderInvalidError",
    "AuthenticationError",
    "ConfigurationError",
    "FailedAuthenticationError",
    "ForbiddenError",
    "InvalidKeyFileError",
    "InvalidSigningAlgorithmError",
    "InvalidTimeoutError",
    "InvalidTokenLookupError",
    "MalformedClaimsError",
    "MissingAuthenticatorError",
    "MissingLoginValuesError",
    "MissingRealmError",
    "MissingSecretKeyError",
    "RefreshExpiredError",
    "SigningError",
    "TokenAlgorithmMismatchError",
    "TokenExpiredError",
    "TokenMalformedError",
    "TokenSignatureInvalidError",
]


class AuthError(Exception):
    """Base class for all authentication errors.

    Attributes:
        error_code: Machine-readable error code for client handling.
        status_code: HTTP status the error surfaces as.
        default_message: Stable message used when none is given.
        message: Human-readable error description.
        context: Structured debugging information (claim names, sources).

    Example:
        >>> raise AuthError("Operation failed", context={"source": "header"})
        AuthError: Operation failed (source=header)
    """

    error_code: str = "AUTH_ERROR"
    status_code: int = 401
    default_message: str = "authentication failed"

    def __init__(
        self,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize auth error with message and optional context.

        Args:
            message: Human-readable error description. Defaults to the
                class ``default_message``.
            context: Structured debugging information. Keys should be snake_case.
        """
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


# ---------------------------------------------------------------------------
# Configuration errors (fatal at startup)
# ---------------------------------------------------------------------------


class ConfigurationError(AuthError, ValueError):
    """Raised when the auth configuration is invalid.

    Maps to HTTP 500 if it ever reaches a request; in practice it is raised
    from the ``JWTAuth`` constructor and prevents the application from
    starting.
    """

    error_code: str = "CONFIGURATION_ERROR"
    status_code: int = 500
    default_message: str = "invalid authentication configuration"


class MissingRealmError(ConfigurationError):
    error_code: str = "MISSING_REALM"
    default_message: str = "realm is required"


class MissingSecretKeyError(ConfigurationError):
    error_code: str = "MISSING_SECRET_KEY"
    default_message: str = "secret key is required"


class MissingAuthenticatorError(ConfigurationError):
    error_code: str = "MISSING_AUTHENTICATOR"
    default_message: str = "authenticator is required"


class InvalidKeyFileError(ConfigurationError):
    """Raised when key material cannot be read, parsed, or does not match
    the configured algorithm family."""

    error_code: str = "INVALID_KEY_FILE"
    default_message: str = "invalid key file"


class InvalidSigningAlgorithmError(ConfigurationError):
    error_code: str = "INVALID_SIGNING_ALGORITHM"
    default_message: str = "invalid signing algorithm"


class InvalidTimeoutError(ConfigurationError):
    error_code: str = "INVALID_TIMEOUT"
    default_message: str = "timeout must be positive"


class InvalidTokenLookupError(ConfigurationError):
    error_code: str = "INVALID_TOKEN_LOOKUP"
    default_message: str = "invalid token lookup"


# ---------------------------------------------------------------------------
# Per-request errors
# ---------------------------------------------------------------------------


class AuthenticationError(AuthError):
    """Raised when a request cannot be authenticated.

    Maps to HTTP 401 Unauthorized. All 401 responses carry a
    ``WWW-Authenticate`` challenge naming the realm.
    """

    error_code: str = "AUTHENTICATION_ERROR"
    status_code: int = 401


class AuthHeaderEmptyError(AuthenticationError):
    """No configured token source yielded a token."""

    error_code: str = "AUTH_HEADER_EMPTY"
    default_message: str = "auth header is empty"


class AuthHeaderInvalidError(AuthenticationError):
    """A header source was present but not of the form ``<scheme> <token>``."""

    error_code: str = "AUTH_HEADER_INVALID"
    default_message: str = "auth header is invalid"


class TokenMalformedError(AuthenticationError):
    error_code: str = "TOKEN_MALFORMED"
    default_message: str = "token is malformed"


class TokenAlgorithmMismatchError(AuthenticationError):
    """The token header declares an algorithm other than the configured one."""

    error_code: str = "TOKEN_ALGORITHM_MISMATCH"
    default_message: str = "invalid signing algorithm"


class TokenSignatureInvalidError(AuthenticationError):
    error_code: str = "TOKEN_SIGNATURE_INVALID"
    default_message: str = "signature is invalid"


class TokenExpiredError(AuthenticationError):
    error_code: str = "TOKEN_EXPIRED"
    default_message: str = "token is expired"


class RefreshExpiredError(AuthenticationError):
    """The token's original issue time is outside the refresh grace window.

    Distinct from :class:`TokenExpiredError`: a token whose ``exp`` has
    passed may still be refreshable, and a token with a live ``exp`` may
    already be past its grace window.
    """

    error_code: str = "REFRESH_EXPIRED"
    default_message: str = "token refresh window has expired"


class MalformedClaimsError(AuthenticationError):
    error_code: str = "MALFORMED_CLAIMS"
    default_message: str = "token claims are malformed"


class FailedAuthenticationError(AuthenticationError):
    error_code: str = "FAILED_AUTHENTICATION"
    default_message: str = "incorrect username or password"


class ForbiddenError(AuthError):
    """Raised when an authenticated identity is rejected by the authorizator.

    Maps to HTTP 403 Forbidden, distinct from the 401 family.
    """

    error_code: str = "FORBIDDEN"
    status_code: int = 403
    default_message: str = "you don't have permission to access this resource"


class MissingLoginValuesError(AuthError):
    """Raised when the login payload is absent or incomplete.

    Maps to HTTP 400 Bad Request. Checked before the authenticator runs.
    """

    error_code: str = "MISSING_LOGIN_VALUES"
    status_code: int = 400
    default_message: str = "missing username or password"


class SigningError(AuthError):
    """Raised when a token cannot be signed with the configured key."""

    error_code: str = "SIGNING_ERROR"
    status_code: int = 500
    default_message: str = "failed to create JWT token"
