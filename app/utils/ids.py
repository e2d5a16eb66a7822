"""
Identifier helpers.

Every stored entity uses a 24 character lowercase hex id. Shape checks run
before any store access so a malformed id never reaches the database.
"""

import re
import secrets

from app.services.errors import InvalidIdError

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def new_object_id() -> str:
    return secrets.token_hex(12)


def is_object_id(value: object) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def ensure_object_id(value: object) -> str:
    """Return the id lowercased, or raise InvalidIdError."""
    if not is_object_id(value):
        raise InvalidIdError(value)
    return value.lower()
