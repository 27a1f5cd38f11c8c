"""Tests for the claims codec: reserved-key precedence and typed reads."""

from __future__ import annotations

import pytest

from custodia.claims import (
    Claims,
    build_claims,
    read_expires_at,
    read_identity,
    read_original_issued_at,
    reserved_keys,
)
from custodia.exceptions import MalformedClaimsError


@pytest.mark.unit
class TestBuildClaims:
    def test_reserved_keys_set(self) -> None:
        claims = build_claims("admin", None, issued_at=100, expires_at=3700)
        assert claims.to_dict() == {"id": "admin", "exp": 3700, "orig_iat": 100}

    def test_payload_merged(self) -> None:
        claims = build_claims("admin", {"role": "ops"}, issued_at=100, expires_at=3700)
        assert claims.to_dict()["role"] == "ops"

    def test_payload_cannot_override_reserved_keys(self) -> None:
        claims = build_claims(
            "admin",
            {"id": "root", "exp": 99999999999, "orig_iat": 0, "role": "ops"},
            issued_at=100,
            expires_at=3700,
        )
        data = claims.to_dict()
        assert data["id"] == "admin"
        assert data["exp"] == 3700
        assert data["orig_iat"] == 100
        assert data["role"] == "ops"
        assert "id" not in claims.extra

    def test_custom_identity_key(self) -> None:
        claims = build_claims(
            "admin", {"sub": "root"}, issued_at=1, expires_at=2, identity_key="sub"
        )
        assert claims.to_dict()["sub"] == "admin"
        assert "id" not in claims.to_dict()
        assert reserved_keys("sub") == frozenset({"sub", "exp", "orig_iat"})

    def test_extra_is_read_only(self) -> None:
        claims = build_claims("admin", {"role": "ops"}, issued_at=1, expires_at=2)
        with pytest.raises(TypeError):
            claims.extra["role"] = "root"  # type: ignore[index]


@pytest.mark.unit
class TestReadClaims:
    def test_read_identity(self) -> None:
        assert read_identity({"id": "admin"}) == "admin"

    @pytest.mark.parametrize("claims", [{}, {"id": 42}, {"id": None}, {"sub": "admin"}])
    def test_read_identity_malformed(self, claims: dict[str, object]) -> None:
        with pytest.raises(MalformedClaimsError):
            read_identity(claims)

    def test_read_original_issued_at(self) -> None:
        assert read_original_issued_at({"orig_iat": 1700000000}) == 1700000000
        assert read_original_issued_at({"orig_iat": 1700000000.7}) == 1700000000

    @pytest.mark.parametrize(
        "claims", [{}, {"orig_iat": "1700000000"}, {"orig_iat": True}, {"orig_iat": None}]
    )
    def test_read_original_issued_at_malformed(self, claims: dict[str, object]) -> None:
        with pytest.raises(MalformedClaimsError):
            read_original_issued_at(claims)

    def test_read_expires_at_malformed(self) -> None:
        with pytest.raises(MalformedClaimsError):
            read_expires_at({"exp": "soon"})


@pytest.mark.unit
class TestClaimsFromMapping:
    def test_separates_reserved_and_extra(self) -> None:
        claims = Claims.from_mapping({"id": "admin", "exp": 10, "orig_iat": 5, "role": "ops"})
        assert claims.identity == "admin"
        assert claims.expires_at == 10
        assert claims.original_issued_at == 5
        assert dict(claims.extra) == {"role": "ops"}
        assert claims.to_dict()["role"] == "ops"

    def test_missing_orig_iat(self) -> None:
        with pytest.raises(MalformedClaimsError):
            Claims.from_mapping({"id": "admin", "exp": 10})

    def test_fractional_exp_kept(self) -> None:
        assert read_expires_at({"exp": 1700000000.9}) == 1700000000.9
        assert read_expires_at({"exp": 1700000000}) == 1700000000
