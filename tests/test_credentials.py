"""Tests for password validation."""

import pytest

from tenant_broker.credentials import validate_password
from tenant_broker.exceptions import ApiRequestError, CredentialRejectedError


@pytest.mark.parametrize("password", ["123456", "0", "007"])
def test_numeric_only_password_is_rejected(password):
    with pytest.raises(CredentialRejectedError) as exc_info:
        validate_password(password)

    assert str(exc_info.value) == "Numeric-only passwords are not accepted"
    assert exc_info.value.error_code == "CREDENTIAL_REJECTED"
    assert isinstance(exc_info.value, ApiRequestError)


# Superscript and Arabic-Indic digits are not ASCII digits.
@pytest.mark.parametrize(
    "password",
    ["dummy", "abc123", "123 456", "12.5", "\u00b2\u00b3", "\u0661\u0662", "", None],
)
def test_other_passwords_pass(password):
    assert validate_password(password) is None
