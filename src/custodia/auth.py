"""Token lifecycle: authentication state machine, login, refresh, generate.

:class:`JWTAuth` is built once from :class:`~custodia.settings.AuthSettings`
plus application callbacks. The constructor validates everything and raises
a :class:`~custodia.exceptions.ConfigurationError` on the first problem, so a
misconfigured application never serves a request. After construction the
instance is read-only and may be shared by any number of concurrent
requests; several instances with different keys can coexist in one process.

Per-request flow (:meth:`JWTAuth.evaluate`)::

    UNAUTHENTICATED -> TOKEN_LOCATED -> TOKEN_VERIFIED -> CLAIMS_EXTRACTED
                                                            -> AUTHORIZED
                                                            -> FORBIDDEN

Any failing transition short-circuits to ``FAILED`` (401) and no further
callbacks run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse

from custodia.claims import Claims, build_claims, read_identity
from custodia.context import extract_claims, store_on_request
from custodia.exceptions import (
    AuthError,
    FailedAuthenticationError,
    ForbiddenError,
    InvalidTimeoutError,
    MissingAuthenticatorError,
    MissingLoginValuesError,
    MissingRealmError,
    RefreshExpiredError,
    TokenMalformedError,
)
from custodia.extraction import TokenExtractor, TokenLookup
from custodia.protocols import LoginCredentials
from custodia.responses import TokenResponse, default_message_formatter, default_unauthorized
from custodia.settings import get_auth_settings
from custodia.signing import TokenSigner, parse_algorithm, resolve_key_material

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection, Request
    from starlette.responses import Response

    from custodia.protocols import (
        Authenticator,
        Authorizator,
        MessageFormatter,
        PayloadFunc,
        TimeFunc,
        UnauthorizedResponder,
    )
    from custodia.settings import AuthSettings

logger = logging.getLogger(__name__)


class AuthState(StrEnum):
    """States of a single request's authentication."""

    UNAUTHENTICATED = "unauthenticated"
    TOKEN_LOCATED = "token_located"
    TOKEN_VERIFIED = "token_verified"
    CLAIMS_EXTRACTED = "claims_extracted"
    AUTHORIZED = "authorized"
    FORBIDDEN = "forbidden"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AuthOutcome:
    """Result of evaluating one request.

    Attributes:
        state: Terminal state reached.
        identity: Authenticated identity, once claims were extracted.
        claims: Decoded claims, once the token was verified.
        error: The failure, for ``FAILED`` and ``FORBIDDEN`` outcomes.
    """

    state: AuthState
    identity: str | None = None
    claims: dict[str, Any] | None = None
    error: AuthError | None = None

    @property
    def authorized(self) -> bool:
        return self.state is AuthState.AUTHORIZED


def _allow_all(identity: str, request: Request) -> bool:
    return True


def _no_payload(identity: str) -> Mapping[str, Any]:
    return {}


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _from_timestamp(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, UTC)


class JWTAuth:
    """JWT issuing and verification for one realm and one signing key.

    Args:
        settings: Configuration. Loaded from the environment if omitted.
        authenticator: Checks login credentials. Required.
        authorizator: Access decision run after authentication. Defaults to
            allowing every authenticated identity.
        payload_func: Extra claims to embed at mint time. Defaults to none.
        unauthorized: Failure response renderer. Defaults to a JSON body
            ``{"code": status, "message": text}``.
        message_formatter: Maps a failure to its message text. Defaults to
            the error's stable message.
        time_func: Clock. Defaults to the current UTC time.

    Raises:
        MissingRealmError: ``realm`` is empty.
        MissingAuthenticatorError: No authenticator was given.
        InvalidSigningAlgorithmError: Unknown algorithm name.
        InvalidTimeoutError: ``timeout`` is not positive or ``max_refresh``
            is negative.
        InvalidTokenLookupError: ``token_lookup`` does not parse.
        MissingSecretKeyError: Key material for the algorithm is absent.
        InvalidKeyFileError: Key material is unreadable or of the wrong family.

    Example:
        >>> auth = JWTAuth(
        ...     AuthSettings(realm="test zone", secret_key="change-me"),
        ...     authenticator=lambda c: (c.username, c.password == "admin"),
        ... )
        >>> auth.generate_token("admin").token
        'eyJ...'
    """

    def __init__(
        self,
        settings: AuthSettings | None = None,
        *,
        authenticator: Authenticator | None = None,
        authorizator: Authorizator | None = None,
        payload_func: PayloadFunc | None = None,
        unauthorized: UnauthorizedResponder | None = None,
        message_formatter: MessageFormatter | None = None,
        time_func: TimeFunc | None = None,
    ) -> None:
        settings = settings or get_auth_settings()

        if not settings.realm:
            raise MissingRealmError()
        if authenticator is None:
            raise MissingAuthenticatorError()

        algorithm = parse_algorithm(settings.signing_algorithm)

        if settings.timeout <= timedelta(0):
            raise InvalidTimeoutError(context={"timeout": settings.timeout})
        if settings.max_refresh < timedelta(0):
            raise InvalidTimeoutError(
                "max refresh must not be negative",
                context={"max_refresh": settings.max_refresh},
            )

        self._extractor = TokenExtractor(
            TokenLookup.parse(settings.token_lookup),
            settings.token_head_name,
        )

        key_material = resolve_key_material(
            algorithm,
            secret_key=settings.secret_key,
            private_key=settings.private_key,
            private_key_file=settings.private_key_file,
            private_key_passphrase=settings.private_key_passphrase,
            public_key=settings.public_key,
            public_key_file=settings.public_key_file,
        )
        self._signer = TokenSigner(algorithm, key_material, leeway=settings.leeway)

        self._realm = settings.realm
        self._timeout = settings.timeout
        self._max_refresh = settings.max_refresh
        self._identity_key = settings.identity_key
        self._username_field = settings.username_field
        self._password_field = settings.password_field

        self._authenticator = authenticator
        self._authorizator = authorizator or _allow_all
        self._payload_func = payload_func or _no_payload
        self._unauthorized = unauthorized or default_unauthorized
        self._message_formatter = message_formatter or default_message_formatter
        self._time_func = time_func or _utc_now

        logger.info(
            "jwt_auth_initialized",
            extra={
                "realm": self._realm,
                "algorithm": algorithm.value,
                "timeout_seconds": self._timeout.total_seconds(),
                "max_refresh_seconds": self._max_refresh.total_seconds(),
                "token_lookup": settings.token_lookup,
            },
        )

    # ------------------------------------------------------------------
    # Read-only configuration
    # ------------------------------------------------------------------

    @property
    def realm(self) -> str:
        return self._realm

    @property
    def timeout(self) -> timedelta:
        return self._timeout

    @property
    def max_refresh(self) -> timedelta:
        return self._max_refresh

    @property
    def identity_key(self) -> str:
        return self._identity_key

    def now(self) -> datetime:
        return self._time_func()

    # ------------------------------------------------------------------
    # Authentication state machine
    # ------------------------------------------------------------------

    def parse_token(self, token: str) -> dict[str, Any]:
        """Verify a raw token string and return its claims.

        Raises:
            AuthenticationError: Any verification failure, by kind.
        """
        return self._signer.verify(token, self.now())

    def parse_request(self, request: HTTPConnection) -> dict[str, Any]:
        """Locate and verify the token carried by ``request``.

        Raises:
            AuthenticationError: Any extraction or verification failure.
        """
        return self.parse_token(self._extractor.extract(request))

    def evaluate(self, request: Request) -> AuthOutcome:
        """Run the authentication state machine for one request.

        On reaching ``CLAIMS_EXTRACTED`` the claims and identity are stored on
        ``request.state`` so the authorizator and the handler can read them.

        Returns:
            The outcome. Never raises for per-request failures.
        """
        state = AuthState.UNAUTHENTICATED
        try:
            token = self._extractor.extract(request)
            state = AuthState.TOKEN_LOCATED

            try:
                claims = self._signer.verify(token, self.now())
            except AuthError:
                raise
            except Exception as exc:
                logger.exception("jwt_validation_unexpected_error")
                raise TokenMalformedError() from exc
            state = AuthState.TOKEN_VERIFIED

            identity = read_identity(claims, self._identity_key)
            state = AuthState.CLAIMS_EXTRACTED
        except AuthError as exc:
            logger.debug(
                "jwt_authentication_failed",
                extra={"state": state.value, "error_code": exc.error_code},
            )
            return AuthOutcome(state=AuthState.FAILED, error=exc)

        store_on_request(request, identity, claims)

        if not self._authorizator(identity, request):
            return AuthOutcome(
                state=AuthState.FORBIDDEN,
                identity=identity,
                claims=claims,
                error=ForbiddenError(context={"identity": identity}),
            )

        return AuthOutcome(state=AuthState.AUTHORIZED, identity=identity, claims=claims)

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def generate_token(self, identity: str) -> TokenResponse:
        """Mint a token for an already trusted identity.

        Args:
            identity: Identity to embed.

        Returns:
            Token with its expiry and issue instants.

        Raises:
            SigningError: If the token cannot be signed.
        """
        now = self.now()
        issued_at = int(now.timestamp())
        expires_at = int((now + self._timeout).timestamp())
        claims = build_claims(
            identity,
            self._payload_func(identity),
            issued_at=issued_at,
            expires_at=expires_at,
            identity_key=self._identity_key,
        )
        token = self._signer.sign(claims)
        return TokenResponse(
            token=token,
            expire=_from_timestamp(expires_at),
            issued_at=_from_timestamp(issued_at),
        )

    def login(self, payload: Any) -> TokenResponse:
        """Exchange login credentials for a token.

        Args:
            payload: Decoded request body; must be a mapping holding
                non-empty username and password strings.

        Raises:
            MissingLoginValuesError: Payload absent or incomplete.
            FailedAuthenticationError: The authenticator rejected the
                credentials.
            SigningError: If the token cannot be signed.
        """
        credentials = self._read_credentials(payload)

        identity, ok = self._authenticator(credentials)
        if not ok:
            logger.info("jwt_login_failed", extra={"username": credentials.username})
            raise FailedAuthenticationError()

        identity = identity or credentials.username
        logger.info("jwt_login_succeeded", extra={"identity": identity})
        return self.generate_token(identity)

    def refresh(self, claims: Mapping[str, Any]) -> TokenResponse:
        """Mint a replacement for an already validated token.

        The original issue time is carried over unchanged, every other claim
        is copied, and ``exp`` restarts from now.

        Raises:
            MalformedClaimsError: Identity or ``orig_iat`` missing or mistyped.
            RefreshExpiredError: ``now`` is past ``orig_iat + timeout +
                max_refresh``.
            SigningError: If the token cannot be signed.
        """
        previous = Claims.from_mapping(claims, self._identity_key)
        now = self.now()

        window_end = previous.original_issued_at + (
            self._timeout + self._max_refresh
        ).total_seconds()
        if now.timestamp() > window_end:
            raise RefreshExpiredError(
                context={"orig_iat": previous.original_issued_at, "identity": previous.identity}
            )

        expires_at = int((now + self._timeout).timestamp())
        renewed = Claims(
            identity=previous.identity,
            expires_at=expires_at,
            original_issued_at=previous.original_issued_at,
            extra=previous.extra,
            identity_key=self._identity_key,
        )
        token = self._signer.sign(renewed)
        logger.info("jwt_token_refreshed", extra={"identity": previous.identity})
        return TokenResponse(
            token=token,
            expire=_from_timestamp(expires_at),
            issued_at=now,
        )

    # ------------------------------------------------------------------
    # HTTP endpoints
    # ------------------------------------------------------------------

    async def login_handler(self, request: Request) -> Response:
        """``POST`` endpoint: ``{username, password}`` -> ``{token, expire}``."""
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        try:
            issued = self.login(payload)
        except AuthError as exc:
            return self.unauthorized(request, exc)
        return JSONResponse(issued.to_json())

    async def refresh_handler(self, request: Request) -> Response:
        """Endpoint exchanging a valid token for a fresh one.

        Uses the claims already validated by ``JWTAuthMiddleware``; when
        mounted outside the middleware it validates the presented token
        itself.
        """
        try:
            claims = extract_claims(request) or self.parse_request(request)
            issued = self.refresh(claims)
        except AuthError as exc:
            return self.unauthorized(request, exc)
        return JSONResponse(issued.to_json())

    def unauthorized(self, request: Request, error: AuthError) -> Response:
        """Render ``error`` through the configured responder.

        Adds ``WWW-Authenticate: JWT realm=<realm>`` to 401 responses.
        """
        message = self._message_formatter(error, request)
        logger.info(
            "auth_validation_failed",
            extra={
                "error_code": error.error_code,
                "status_code": error.status_code,
                "path": request.url.path,
                "method": request.method,
            },
        )

        response = self._unauthorized(request, error.status_code, message)
        if error.status_code == 401:
            response.headers["WWW-Authenticate"] = f"JWT realm={self._realm}"
        return response

    def _read_credentials(self, payload: Any) -> LoginCredentials:
        if not isinstance(payload, Mapping):
            raise MissingLoginValuesError()
        username = payload.get(self._username_field)
        password = payload.get(self._password_field)
        if not isinstance(username, str) or not isinstance(password, str):
            raise MissingLoginValuesError()
        if not username or not password:
            raise MissingLoginValuesError()
        return LoginCredentials(username=username, password=password)
