import re
import secrets
import string
from typing import Any, Optional

# Client-side placeholder ids: 9 lowercase base36 characters
TEMPORARY_ID_LENGTH = 9
_TEMPORARY_ID_RE = re.compile(r"^[a-z0-9]{9}$", re.IGNORECASE)
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_NUMERIC_RE = re.compile(r"^\d+$")
_ALPHABET = string.ascii_lowercase + string.digits


def generate_temporary_id() -> str:
    """Return a new temporary identifier for an entity created client-side."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(TEMPORARY_ID_LENGTH))


def is_temporary_id(value: Optional[str]) -> bool:
    """
    True when `value` cannot be a backend identifier.

    Missing and empty ids count as temporary, so callers never route an
    unsaved entity to an update endpoint.
    """
    if not value:
        return True
    return bool(_TEMPORARY_ID_RE.match(str(value)))


def is_identifier_like(value: Any) -> bool:
    """True for strings shaped like backend ids (UUIDs or plain numbers)."""
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    return bool(_UUID_RE.match(candidate) or _NUMERIC_RE.match(candidate))
