"""Tests for the auth error hierarchy: codes, statuses, stable messages."""

from __future__ import annotations

import pytest

from custodia.exceptions import (
    AuthError,
    AuthHeaderEmptyError,
    AuthHeaderInvalidError,
    ConfigurationError,
    FailedAuthenticationError,
    ForbiddenError,
    InvalidKeyFileError,
    MalformedClaimsError,
    MissingAuthenticatorError,
    MissingLoginValuesError,
    MissingRealmError,
    MissingSecretKeyError,
    RefreshExpiredError,
    SigningError,
    TokenAlgorithmMismatchError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureInvalidError,
)


@pytest.mark.unit
class TestAuthError:
    def test_default_message(self) -> None:
        exc = TokenExpiredError()
        assert exc.message == "token is expired"
        assert str(exc) == "token is expired"

    def test_context_in_str(self) -> None:
        exc = AuthHeaderInvalidError(context={"header": "Authorization"})
        assert str(exc) == "auth header is invalid (header=Authorization)"
        assert exc.message == "auth header is invalid"

    def test_repr(self) -> None:
        exc = AuthError("boom", context={"a": 1})
        assert repr(exc) == "AuthError('boom', context={'a': 1})"

    def test_explicit_message_overrides_default(self) -> None:
        exc = InvalidKeyFileError("unable to read key file")
        assert exc.message == "unable to read key file"
        assert exc.error_code == "INVALID_KEY_FILE"


@pytest.mark.unit
class TestTaxonomy:
    @pytest.mark.parametrize(
        ("exc_cls", "status", "message"),
        [
            (AuthHeaderEmptyError, 401, "auth header is empty"),
            (AuthHeaderInvalidError, 401, "auth header is invalid"),
            (TokenMalformedError, 401, "token is malformed"),
            (TokenAlgorithmMismatchError, 401, "invalid signing algorithm"),
            (TokenSignatureInvalidError, 401, "signature is invalid"),
            (TokenExpiredError, 401, "token is expired"),
            (RefreshExpiredError, 401, "token refresh window has expired"),
            (MalformedClaimsError, 401, "token claims are malformed"),
            (FailedAuthenticationError, 401, "incorrect username or password"),
            (ForbiddenError, 403, "you don't have permission to access this resource"),
            (MissingLoginValuesError, 400, "missing username or password"),
            (SigningError, 500, "failed to create JWT token"),
        ],
    )
    def test_status_and_message(self, exc_cls: type[AuthError], status: int, message: str) -> None:
        exc = exc_cls()
        assert exc.status_code == status
        assert exc.message == message

    def test_messages_are_distinguishable(self) -> None:
        kinds = [
            TokenMalformedError,
            TokenAlgorithmMismatchError,
            TokenSignatureInvalidError,
            TokenExpiredError,
            RefreshExpiredError,
        ]
        assert len({k().message for k in kinds}) == len(kinds)

    @pytest.mark.parametrize(
        "exc_cls",
        [MissingRealmError, MissingSecretKeyError, MissingAuthenticatorError, InvalidKeyFileError],
    )
    def test_configuration_errors_are_value_errors(self, exc_cls: type[ConfigurationError]) -> None:
        exc = exc_cls()
        assert isinstance(exc, ValueError)
        assert isinstance(exc, AuthError)
        assert exc.status_code == 500
