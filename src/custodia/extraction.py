"""Token extractor: locates a candidate token on an inbound request.

Sources are probed in the configured order and the first non-empty token
wins. The extractor never checks the token's authenticity.

Lookup syntax: comma-separated ``source:name`` pairs, e.g.
``"header:Authorization,query:token,cookie:jwt"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from custodia.exceptions import (
    AuthHeaderEmptyError,
    AuthHeaderInvalidError,
    InvalidTokenLookupError,
)

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

DEFAULT_TOKEN_LOOKUP = "header:Authorization"
DEFAULT_TOKEN_HEAD_NAME = "Bearer"


class TokenSource(StrEnum):
    """Where a token may be carried."""

    HEADER = "header"
    QUERY = "query"
    COOKIE = "cookie"


_EMPTY_MESSAGES = {
    TokenSource.HEADER: "auth header is empty",
    TokenSource.QUERY: "query token is empty",
    TokenSource.COOKIE: "cookie token is empty",
}


@dataclass(frozen=True, slots=True)
class TokenLookup:
    """One ``(source, name)`` probe."""

    source: TokenSource
    name: str

    @classmethod
    def parse(cls, value: str) -> tuple[TokenLookup, ...]:
        """Parse a lookup string into an ordered tuple of probes.

        Raises:
            InvalidTokenLookupError: On an unknown source, an empty name, or
                an empty lookup list.
        """
        lookups: list[TokenLookup] = []
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            source, sep, name = part.partition(":")
            name = name.strip()
            if not sep or not name:
                raise InvalidTokenLookupError(context={"lookup": part})
            try:
                lookups.append(cls(TokenSource(source.strip().lower()), name))
            except ValueError:
                raise InvalidTokenLookupError(context={"lookup": part}) from None

        if not lookups:
            raise InvalidTokenLookupError(context={"lookup": value})
        return tuple(lookups)


class TokenExtractor:
    """Probe request sources for a token in priority order.

    Args:
        lookups: Ordered probes, typically from :meth:`TokenLookup.parse`.
        token_head_name: Scheme expected before header tokens.
    """

    def __init__(
        self,
        lookups: tuple[TokenLookup, ...],
        token_head_name: str = DEFAULT_TOKEN_HEAD_NAME,
    ) -> None:
        if not lookups:
            raise InvalidTokenLookupError()
        self._lookups = lookups
        self._token_head_name = token_head_name.strip() or DEFAULT_TOKEN_HEAD_NAME

    def extract(self, request: HTTPConnection) -> str:
        """Return the first token found.

        Raises:
            AuthHeaderInvalidError: A header source was present but malformed
                and no other source produced a token.
            AuthHeaderEmptyError: No source produced a token.
        """
        invalid_header: AuthHeaderInvalidError | None = None

        for lookup in self._lookups:
            if lookup.source is TokenSource.HEADER:
                raw = request.headers.get(lookup.name, "")
                if not raw:
                    continue
                token = self._split_header(raw)
                if token is None:
                    invalid_header = invalid_header or AuthHeaderInvalidError(
                        context={"header": lookup.name}
                    )
                    continue
                return token

            if lookup.source is TokenSource.QUERY:
                token = request.query_params.get(lookup.name, "")
            else:
                token = request.cookies.get(lookup.name, "")
            if token:
                return token

        if invalid_header is not None:
            raise invalid_header
        last = self._lookups[-1]
        raise AuthHeaderEmptyError(
            _EMPTY_MESSAGES[last.source], context={"source": last.source.value}
        )

    def _split_header(self, value: str) -> str | None:
        parts = value.split(" ")
        if len(parts) != 2 or parts[0] != self._token_head_name or not parts[1]:
            return None
        return parts[1]
