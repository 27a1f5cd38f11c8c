"""Claims codec: builds and reads the claim set embedded in a token.

The three reserved claims (identity, ``exp``, ``orig_iat``) are typed fields
of :class:`Claims`; caller payload lives in a separate read-only extension
map. :meth:`Claims.to_dict` writes the extension map first and the reserved
keys last, so payload can never replace them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from custodia.exceptions import MalformedClaimsError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_KEY = "id"
EXPIRES_AT_KEY = "exp"
ORIGINAL_ISSUED_AT_KEY = "orig_iat"


def reserved_keys(identity_key: str = DEFAULT_IDENTITY_KEY) -> frozenset[str]:
    """Claim names that caller payload may not set."""
    return frozenset({identity_key, EXPIRES_AT_KEY, ORIGINAL_ISSUED_AT_KEY})


@dataclass(frozen=True, slots=True)
class Claims:
    """Decoded or freshly built token claims.

    Attributes:
        identity: The authenticated identity.
        expires_at: ``exp`` as Unix seconds. Whole seconds when minted here.
        original_issued_at: ``orig_iat`` as Unix seconds. Preserved verbatim
            across refreshes.
        extra: Caller-supplied payload claims (read-only).
        identity_key: Claim name the identity is stored under.
    """

    identity: str
    expires_at: float
    original_issued_at: int
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    identity_key: str = DEFAULT_IDENTITY_KEY

    def to_dict(self) -> dict[str, Any]:
        """Render the wire mapping, reserved keys last."""
        data = dict(self.extra)
        data[self.identity_key] = self.identity
        data[EXPIRES_AT_KEY] = self.expires_at
        data[ORIGINAL_ISSUED_AT_KEY] = self.original_issued_at
        return data

    @classmethod
    def from_mapping(
        cls,
        claims: Mapping[str, Any],
        identity_key: str = DEFAULT_IDENTITY_KEY,
    ) -> Claims:
        """Parse a decoded claim mapping into a typed record.

        Raises:
            MalformedClaimsError: If any reserved claim is missing or has
                the wrong type.
        """
        reserved = reserved_keys(identity_key)
        return cls(
            identity=read_identity(claims, identity_key),
            expires_at=read_expires_at(claims),
            original_issued_at=read_original_issued_at(claims),
            extra=MappingProxyType({k: v for k, v in claims.items() if k not in reserved}),
            identity_key=identity_key,
        )


def build_claims(
    identity: str,
    extra: Mapping[str, Any] | None,
    issued_at: int,
    expires_at: int,
    identity_key: str = DEFAULT_IDENTITY_KEY,
) -> Claims:
    """Build the claim set for a new token.

    Args:
        identity: Canonical identity to embed.
        extra: Caller payload. Reserved keys in it are discarded.
        issued_at: Original issue time (Unix seconds).
        expires_at: Expiry time (Unix seconds).
        identity_key: Claim name for the identity.

    Returns:
        Typed claims record.
    """
    reserved = reserved_keys(identity_key)
    payload: dict[str, Any] = {}
    for key, value in (extra or {}).items():
        if key in reserved:
            logger.warning("reserved_claim_ignored", extra={"claim": key})
            continue
        payload[key] = value

    return Claims(
        identity=identity,
        expires_at=expires_at,
        original_issued_at=issued_at,
        extra=MappingProxyType(payload),
        identity_key=identity_key,
    )


def read_identity(claims: Mapping[str, Any], identity_key: str = DEFAULT_IDENTITY_KEY) -> str:
    """Read the identity claim.

    Raises:
        MalformedClaimsError: If the claim is absent or not a string.
    """
    identity = claims.get(identity_key)
    if not isinstance(identity, str):
        raise MalformedClaimsError(context={"claim": identity_key})
    return identity


def _read_timestamp(claims: Mapping[str, Any], key: str) -> int | float:
    value = claims.get(key)
    # bool is an int subclass but never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedClaimsError(context={"claim": key})
    return value


def read_original_issued_at(claims: Mapping[str, Any]) -> int:
    """Read ``orig_iat``.

    Raises:
        MalformedClaimsError: If the claim is absent or not numeric.
    """
    return int(_read_timestamp(claims, ORIGINAL_ISSUED_AT_KEY))


def read_expires_at(claims: Mapping[str, Any]) -> float:
    """Read ``exp``, keeping any fractional part.

    Raises:
        MalformedClaimsError: If the claim is absent or not numeric.
    """
    return _read_timestamp(claims, EXPIRES_AT_KEY)
