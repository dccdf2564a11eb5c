"""Extract UUIDs from pasted free text."""
from __future__ import annotations

import re

_UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def parse_uuids(text: str | None) -> list[str]:
    """Lowercased, de-duplicated UUIDs in order of appearance."""
    if not text or not isinstance(text, str):
        return []
    seen: set[str] = set()
    result: list[str] = []
    for match in _UUID_PATTERN.findall(text):
        lowered = match.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        result.append(lowered)
    return result


def parse_first_uuid(text: str | None) -> str | None:
    uuids = parse_uuids(text)
    return uuids[0] if uuids else None
