"""JWT authentication configuration settings.

Loaded from environment variables with JWT_ prefix.
Follows Pydantic BaseSettings pattern for type-safe configuration. Only
shape is checked here; semantic validation (required realm, key material
matching the algorithm family) runs once in the ``JWTAuth`` constructor.

Environment Variables:
    JWT_REALM: Realm name echoed in WWW-Authenticate challenges (required)
    JWT_SIGNING_ALGORITHM: HS256/384/512, RS256/384/512 or ES256/384/512
    JWT_SECRET_KEY: Shared secret for HMAC algorithms
    JWT_PRIVATE_KEY / JWT_PRIVATE_KEY_FILE: PEM private key for RSA/ECDSA
    JWT_PRIVATE_KEY_PASSPHRASE: Passphrase for an encrypted private key
    JWT_PUBLIC_KEY / JWT_PUBLIC_KEY_FILE: PEM public key for RSA/ECDSA
    JWT_TIMEOUT: Token lifetime (seconds or ISO 8601 duration)
    JWT_MAX_REFRESH: Refresh grace period after timeout
    JWT_LEEWAY: Clock-skew tolerance for exp
    JWT_TOKEN_LOOKUP: Token sources, e.g. "header:Authorization,query:token"
    JWT_TOKEN_HEAD_NAME: Scheme expected before header tokens
    JWT_IDENTITY_KEY: Claim carrying the identity
    JWT_USERNAME_FIELD / JWT_PASSWORD_FIELD: Login body field names
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from custodia.claims import DEFAULT_IDENTITY_KEY
from custodia.extraction import DEFAULT_TOKEN_HEAD_NAME, DEFAULT_TOKEN_LOOKUP


class AuthSettings(BaseSettings):
    """JWT authentication configuration loaded from environment variables.

    Example:
        >>> settings = AuthSettings(realm="test zone", secret_key="s3cr3t")
        >>> settings.signing_algorithm
        'HS256'
        >>> settings.timeout
        datetime.timedelta(seconds=3600)
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    realm: str = Field(
        default="",
        description="Realm name displayed in failure challenges",
    )
    signing_algorithm: str = Field(
        default="HS256",
        description="JWS signing algorithm",
    )

    # Key material
    secret_key: str = Field(
        default="",
        repr=False,  # Security: never log the shared secret
        description="Shared secret for HMAC algorithms",
    )
    private_key: str = Field(
        default="",
        repr=False,
        description="Inline PEM private key for RSA/ECDSA algorithms",
    )
    private_key_file: str = Field(
        default="",
        description="Path to a PEM private key for RSA/ECDSA algorithms",
    )
    private_key_passphrase: str = Field(
        default="",
        repr=False,
        description="Passphrase protecting the private key",
    )
    public_key: str = Field(
        default="",
        description="Inline PEM public key for RSA/ECDSA algorithms",
    )
    public_key_file: str = Field(
        default="",
        description="Path to a PEM public key for RSA/ECDSA algorithms",
    )

    # Lifetimes
    timeout: timedelta = Field(
        default=timedelta(hours=1),
        description="Duration a freshly issued token remains valid",
    )
    max_refresh: timedelta = Field(
        default=timedelta(0),
        description="Refresh grace period after timeout, from original issuance",
    )
    leeway: timedelta = Field(
        default=timedelta(0),
        description="Clock-skew tolerance applied to exp",
    )

    # Transport
    token_lookup: str = Field(
        default=DEFAULT_TOKEN_LOOKUP,
        description="Ordered source:name pairs to search for a token",
    )
    token_head_name: str = Field(
        default=DEFAULT_TOKEN_HEAD_NAME,
        description="Scheme expected before header tokens",
    )

    # Claims and login payload
    identity_key: str = Field(
        default=DEFAULT_IDENTITY_KEY,
        description="Claim name carrying the identity",
    )
    username_field: str = Field(
        default="username",
        description="Login body field holding the username",
    )
    password_field: str = Field(
        default="password",
        description="Login body field holding the password",
    )


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """Get singleton AuthSettings instance.

    Cached for performance - settings are loaded once per application lifecycle.
    Clear cache with ``get_auth_settings.cache_clear()`` for testing.

    Returns:
        AuthSettings instance with configuration from environment.
    """
    return AuthSettings()
