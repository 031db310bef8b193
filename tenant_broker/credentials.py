"""Password checks performed before any request leaves the process."""

from typing import Optional

from .exceptions import NUMERIC_PASSWORD_MESSAGE, CredentialRejectedError


def validate_password(password: Optional[str]) -> None:
    """
    Reject passwords made only of digits.

    The identity service mangles such passwords into numbers when they are
    serialized, so authentication would fail in a confusing way later on.

    Raises:
        CredentialRejectedError: If the password is non-empty and all ASCII digits
    """
    text = str(password) if password else ""
    if text.isascii() and text.isdigit():
        raise CredentialRejectedError(NUMERIC_PASSWORD_MESSAGE)
