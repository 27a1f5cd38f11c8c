"""Shared fixtures: clock, key material, JWTAuth factory, request builder."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from starlette.requests import Request

from custodia.auth import JWTAuth
from custodia.settings import AuthSettings

if TYPE_CHECKING:
    from collections.abc import Callable

    from custodia.protocols import LoginCredentials

SECRET = "custodia-test-secret-" * 4
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Controllable clock passed as ``time_func``."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment


def admin_authenticator(credentials: LoginCredentials) -> tuple[str, bool]:
    return credentials.username, (
        credentials.username == "admin" and credentials.password == "admin"
    )


def make_settings(**overrides: Any) -> AuthSettings:
    values: dict[str, Any] = {"realm": "test zone", "secret_key": SECRET}
    values.update(overrides)
    return AuthSettings(_env_file=None, **values)  # type: ignore[call-arg]


def make_request(
    headers: dict[str, str] | None = None,
    query: str = "",
    cookies: dict[str, str] | None = None,
    path: str = "/",
    method: str = "GET",
) -> Request:
    """Build a bare Starlette request from an ASGI scope."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": raw_headers,
        "query_string": query.encode(),
    }
    return Request(scope)


def _pem(key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


def _public_pem(key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> str:
    return (
        key.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return _pem(rsa_private_key)


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return _public_pem(rsa_private_key)


@pytest.fixture(scope="session")
def ec_private_pems() -> dict[str, str]:
    """PEM private keys keyed by the ES algorithm whose curve they use."""
    return {
        "ES256": _pem(ec.generate_private_key(ec.SECP256R1())),
        "ES384": _pem(ec.generate_private_key(ec.SECP384R1())),
        "ES512": _pem(ec.generate_private_key(ec.SECP521R1())),
    }


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def auth_factory(clock: FrozenClock) -> Callable[..., JWTAuth]:
    """Build a JWTAuth on the frozen clock.

    Keyword arguments matching AuthSettings fields become settings; the rest
    are passed to the JWTAuth constructor.
    """

    def _factory(**kwargs: Any) -> JWTAuth:
        setting_names = set(AuthSettings.model_fields)
        settings_kwargs = {k: v for k, v in kwargs.items() if k in setting_names}
        auth_kwargs = {k: v for k, v in kwargs.items() if k not in setting_names}
        auth_kwargs.setdefault("authenticator", admin_authenticator)
        auth_kwargs.setdefault("time_func", clock)
        return JWTAuth(make_settings(**settings_kwargs), **auth_kwargs)

    return _factory
