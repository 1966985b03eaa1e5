from __future__ import annotations

import secrets
import string
from uuid import uuid4

IDENTIFIER_LEN = 10
PASSWORD_LEN = 16

_LOWER = string.ascii_lowercase
_UPPER = string.ascii_uppercase
_DIGITS = string.digits
_SPECIAL = "!@#%^*()-_=+[]{}"
_PASSWORD_ALPHABET = _LOWER + _UPPER + _DIGITS + _SPECIAL


def new_uuid() -> str:
    return str(uuid4())


def new_identifier() -> str:
    """Random lowercase alphanumeric identifier that starts with a letter.

    Valid as an Azure SQL login name and database name.
    """
    return secrets.choice(_LOWER) + "".join(
        secrets.choice(_LOWER + _DIGITS) for _ in range(IDENTIFIER_LEN - 1)
    )


def new_password(length: int = PASSWORD_LEN) -> str:
    """Random password satisfying the Azure SQL complexity rules (all four character classes)."""
    if length < 4:
        raise ValueError("password length must be at least 4")
    chars = [
        secrets.choice(_LOWER),
        secrets.choice(_UPPER),
        secrets.choice(_DIGITS),
        secrets.choice(_SPECIAL),
    ]
    chars.extend(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
