"""Signer/verifier adapter over PyJWT.

Resolves the configured algorithm and key material into a tagged variant
exactly once (:func:`resolve_key_material`), then exposes a uniform
``sign(claims) -> token`` / ``verify(token, now) -> claims`` contract.

Verification order:
1. Parse the JOSE header (``TokenMalformedError`` if it does not parse)
2. Compare the declared ``alg`` with the configured algorithm
   (``TokenAlgorithmMismatchError``) before any key is touched
3. Verify the signature (``TokenSignatureInvalidError``)
4. Check ``exp`` against the supplied clock (``TokenExpiredError``)

Expiry is checked here rather than by PyJWT so that the clock can be
injected and the comparison is strictly ``now > exp``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jwt as pyjwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from custodia.claims import read_expires_at
from custodia.exceptions import (
    InvalidKeyFileError,
    InvalidSigningAlgorithmError,
    MissingSecretKeyError,
    SigningError,
    TokenAlgorithmMismatchError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureInvalidError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from custodia.claims import Claims

logger = logging.getLogger(__name__)


class KeyFamily(StrEnum):
    """Signing algorithm family."""

    HMAC = "hmac"
    RSA = "rsa"
    ECDSA = "ecdsa"


class SigningAlgorithm(StrEnum):
    """Supported JWS algorithms."""

    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"
    RS256 = "RS256"
    RS384 = "RS384"
    RS512 = "RS512"
    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"

    @property
    def family(self) -> KeyFamily:
        return _FAMILY_BY_PREFIX[self.value[:2]]


_FAMILY_BY_PREFIX = {
    "HS": KeyFamily.HMAC,
    "RS": KeyFamily.RSA,
    "ES": KeyFamily.ECDSA,
}

# ECDSA algorithms are bound to one curve each (RFC 7518 section 3.4).
_CURVE_BY_ALGORITHM = {
    SigningAlgorithm.ES256: "secp256r1",
    SigningAlgorithm.ES384: "secp384r1",
    SigningAlgorithm.ES512: "secp521r1",
}


def parse_algorithm(value: str) -> SigningAlgorithm:
    """Parse an algorithm name.

    Raises:
        InvalidSigningAlgorithmError: If the name is not supported.
    """
    try:
        return SigningAlgorithm(value.strip().upper())
    except ValueError:
        raise InvalidSigningAlgorithmError(context={"algorithm": value}) from None


@dataclass(frozen=True, slots=True)
class SymmetricKey:
    """Shared secret for the HMAC family."""

    secret: bytes = field(repr=False)

    @property
    def signing_key(self) -> bytes:
        return self.secret

    @property
    def verification_key(self) -> bytes:
        return self.secret


@dataclass(frozen=True, slots=True)
class AsymmetricKeyPair:
    """Private/public key pair for the RSA and ECDSA families."""

    private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey = field(repr=False)
    public_key: rsa.RSAPublicKey | ec.EllipticCurvePublicKey

    @property
    def signing_key(self) -> rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey:
        return self.private_key

    @property
    def verification_key(self) -> rsa.RSAPublicKey | ec.EllipticCurvePublicKey:
        return self.public_key


KeyMaterial = SymmetricKey | AsymmetricKeyPair


def _read_pem(inline: str | bytes | None, path: str | Path | None) -> bytes | None:
    if inline:
        return inline.encode() if isinstance(inline, str) else inline
    if not path:
        return None
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise InvalidKeyFileError(
            "unable to read key file", context={"path": str(path), "reason": exc.strerror}
        ) from exc


def _check_key_type(algorithm: SigningAlgorithm, key: Any, *, private: bool) -> None:
    if algorithm.family is KeyFamily.RSA:
        expected: type = rsa.RSAPrivateKey if private else rsa.RSAPublicKey
        if not isinstance(key, expected):
            raise InvalidKeyFileError(
                "key does not match algorithm family",
                context={"algorithm": algorithm.value, "expected": "RSA"},
            )
        return

    expected = ec.EllipticCurvePrivateKey if private else ec.EllipticCurvePublicKey
    if not isinstance(key, expected):
        raise InvalidKeyFileError(
            "key does not match algorithm family",
            context={"algorithm": algorithm.value, "expected": "EC"},
        )
    curve = _CURVE_BY_ALGORITHM[algorithm]
    if key.curve.name != curve:
        raise InvalidKeyFileError(
            "key curve does not match algorithm",
            context={"algorithm": algorithm.value, "expected": curve, "actual": key.curve.name},
        )


def resolve_key_material(
    algorithm: SigningAlgorithm,
    *,
    secret_key: str | bytes | None = None,
    private_key: str | bytes | None = None,
    private_key_file: str | Path | None = None,
    private_key_passphrase: str | bytes | None = None,
    public_key: str | bytes | None = None,
    public_key_file: str | Path | None = None,
) -> KeyMaterial:
    """Resolve configured key material for ``algorithm``.

    HMAC algorithms use ``secret_key``. RSA and ECDSA algorithms load a PEM
    private key (inline or from a file) and a PEM public key; the public key
    is derived from the private key when not supplied.

    Raises:
        MissingSecretKeyError: If the key required by the family is absent.
        InvalidKeyFileError: If key material cannot be read or parsed, or
            does not belong to the algorithm's family.
    """
    if algorithm.family is KeyFamily.HMAC:
        if not secret_key:
            raise MissingSecretKeyError(context={"algorithm": algorithm.value})
        secret = secret_key.encode() if isinstance(secret_key, str) else secret_key
        return SymmetricKey(secret=secret)

    private_pem = _read_pem(private_key, private_key_file)
    if private_pem is None:
        raise MissingSecretKeyError(
            "private key is required", context={"algorithm": algorithm.value}
        )

    passphrase = (
        private_key_passphrase.encode()
        if isinstance(private_key_passphrase, str)
        else private_key_passphrase
    ) or None

    try:
        loaded_private = serialization.load_pem_private_key(private_pem, password=passphrase)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidKeyFileError(
            "unable to parse private key", context={"algorithm": algorithm.value}
        ) from exc
    _check_key_type(algorithm, loaded_private, private=True)

    public_pem = _read_pem(public_key, public_key_file)
    if public_pem is None:
        loaded_public = loaded_private.public_key()  # type: ignore[union-attr]
    else:
        try:
            loaded_public = serialization.load_pem_public_key(public_pem)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise InvalidKeyFileError(
                "unable to parse public key", context={"algorithm": algorithm.value}
            ) from exc
        _check_key_type(algorithm, loaded_public, private=False)
        if loaded_public.public_numbers() != loaded_private.public_key().public_numbers():  # type: ignore[union-attr]
            raise InvalidKeyFileError(
                "public key does not match private key",
                context={"algorithm": algorithm.value},
            )

    return AsymmetricKeyPair(private_key=loaded_private, public_key=loaded_public)  # type: ignore[arg-type]


class TokenSigner:
    """Signs and verifies tokens for one algorithm and one key.

    Instances are immutable after construction and safe to share across
    concurrent requests.

    Args:
        algorithm: Configured signing algorithm.
        key_material: Key material resolved by :func:`resolve_key_material`.
        leeway: Clock-skew tolerance applied to ``exp``. Defaults to none.
    """

    def __init__(
        self,
        algorithm: SigningAlgorithm,
        key_material: KeyMaterial,
        leeway: timedelta = timedelta(0),
    ) -> None:
        self._algorithm = algorithm
        self._key_material = key_material
        self._leeway = leeway.total_seconds()

    def sign(self, claims: Claims) -> str:
        """Sign ``claims`` into a compact JWS string.

        Raises:
            SigningError: If PyJWT rejects the key or the payload.
        """
        try:
            return pyjwt.encode(
                claims.to_dict(),
                self._key_material.signing_key,
                algorithm=self._algorithm.value,
            )
        except (pyjwt.PyJWTError, ValueError, TypeError) as exc:
            logger.error(
                "jwt_signing_failed",
                extra={"algorithm": self._algorithm.value, "error": type(exc).__name__},
            )
            raise SigningError(context={"algorithm": self._algorithm.value}) from exc

    def verify(self, token: str, now: datetime) -> dict[str, Any]:
        """Verify ``token`` and return its claims.

        Args:
            token: Compact JWS string.
            now: Current time, used for the expiry check.

        Returns:
            Decoded claim mapping.

        Raises:
            TokenMalformedError: Token does not parse.
            TokenAlgorithmMismatchError: Header ``alg`` differs from the
                configured algorithm.
            TokenSignatureInvalidError: Signature does not verify.
            MalformedClaimsError: ``exp`` is absent or not numeric.
            TokenExpiredError: ``now`` is past ``exp``.
        """
        try:
            header = pyjwt.get_unverified_header(token)
        except pyjwt.InvalidTokenError as exc:
            raise TokenMalformedError(context={"reason": str(exc)}) from exc

        declared = header.get("alg")
        if declared != self._algorithm.value:
            raise TokenAlgorithmMismatchError(
                context={"expected": self._algorithm.value, "declared": declared}
            )

        try:
            claims = pyjwt.decode(
                token,
                self._key_material.verification_key,
                algorithms=[self._algorithm.value],
                options={
                    "verify_exp": False,
                    "verify_aud": False,
                    "verify_iss": False,
                },
            )
        except pyjwt.InvalidSignatureError as exc:
            raise TokenSignatureInvalidError() from exc
        except pyjwt.InvalidAlgorithmError as exc:
            raise TokenAlgorithmMismatchError(
                context={"expected": self._algorithm.value}
            ) from exc
        except pyjwt.DecodeError as exc:
            raise TokenMalformedError() from exc
        except pyjwt.InvalidTokenError as exc:
            raise TokenMalformedError(context={"reason": type(exc).__name__}) from exc

        expires_at = read_expires_at(claims)
        if now.timestamp() > expires_at + self._leeway:
            raise TokenExpiredError(context={"exp": expires_at})

        return claims
