"""Default response rendering for token and failure payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from custodia.exceptions import AuthError


def format_rfc3339(moment: datetime) -> str:
    """Render ``moment`` as an RFC 3339 timestamp with second precision.

    UTC instants use the ``Z`` suffix.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    rendered = moment.isoformat(timespec="seconds")
    if rendered.endswith("+00:00"):
        rendered = rendered[: -len("+00:00")] + "Z"
    return rendered


@dataclass(frozen=True, slots=True)
class TokenResponse:
    """A freshly minted token.

    Attributes:
        token: Compact signed token string.
        expire: Expiry instant (``exp``).
        issued_at: Instant the token was minted.
    """

    token: str
    expire: datetime
    issued_at: datetime

    def to_json(self) -> dict[str, Any]:
        return {"token": self.token, "expire": format_rfc3339(self.expire)}


def default_unauthorized(request: Request, status_code: int, message: str) -> Response:
    """Render ``{"code": ..., "message": ...}`` with ``status_code``."""
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "message": message},
    )


def default_message_formatter(error: AuthError, request: Request) -> str:
    return error.message
