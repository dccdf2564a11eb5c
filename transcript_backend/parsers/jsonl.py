"""Parse JSONL transcript blobs into event records."""
from __future__ import annotations

import json
from typing import Any, Iterator

from pydantic import ValidationError

from transcript_backend.errors import MalformedRecordError
from transcript_backend.models import TranscriptRecord


def decode_blob(blob: bytes | str, source: str = "") -> str:
    if isinstance(blob, str):
        return blob
    try:
        return blob.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedRecordError(source, 0, "not valid UTF-8") from exc


def _iter_objects(blob: bytes | str, source: str) -> Iterator[tuple[int, dict[str, Any]]]:
    text = decode_blob(blob, source)
    for line_number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError as exc:
            raise MalformedRecordError(source, line_number, exc.msg) from exc
        if not isinstance(parsed, dict):
            raise MalformedRecordError(source, line_number, "expected a JSON object")
        yield line_number, parsed


def parse_jsonl(blob: bytes | str, source: str = "") -> list[dict[str, Any]]:
    """Parse one JSON object per non-blank line, preserving line order.

    Blank and whitespace-only lines are skipped but still counted, so the line
    number on a ``MalformedRecordError`` points at the line in the original
    blob. Any bad line aborts the whole parse.
    """
    return [parsed for _, parsed in _iter_objects(blob, source)]


def parse_records(blob: bytes | str, source: str = "") -> list[TranscriptRecord]:
    """Parse a blob into ``TranscriptRecord`` models.

    Recognized keys with the wrong shape (e.g. a numeric ``sessionId``) are
    reported as malformed at their line, like undecodable JSON.
    """
    records: list[TranscriptRecord] = []
    for line_number, parsed in _iter_objects(blob, source):
        try:
            records.append(TranscriptRecord.model_validate(parsed))
        except ValidationError as exc:
            errors = exc.errors()
            first = errors[0] if errors else {}
            field = ".".join(str(part) for part in first.get("loc", ()))
            reason = f"{field}: {first.get('msg', 'invalid value')}" if field else "invalid record"
            raise MalformedRecordError(source, line_number, reason) from exc
    return records
