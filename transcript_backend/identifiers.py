"""Identifier validation for ids that end up inside object store keys."""
from __future__ import annotations

import re

from transcript_backend.errors import InvalidIdentifierError

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_identifier(value: str | None) -> bool:
    return bool(value) and bool(_IDENTIFIER_PATTERN.match(value or ""))


def validate_identifier(raw: str | None, kind: str = "session") -> str:
    """Trim ``raw`` and return it, or raise ``InvalidIdentifierError``.

    Only letters, digits, hyphen and underscore are accepted, which keeps path
    separators and traversal sequences out of store keys.
    """
    value = (raw or "").strip()
    if not is_valid_identifier(value):
        raise InvalidIdentifierError(value, kind)
    return value
