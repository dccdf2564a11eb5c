"""Helpers for deriving tool usage from transcript records."""
from __future__ import annotations

from typing import Iterable, Iterator

from transcript_backend.date_utils import iso_to_epoch
from transcript_backend.models import ContentBlock, MessageBody, ToolUsage, TranscriptRecord


def iter_content_blocks(record: TranscriptRecord) -> Iterator[ContentBlock]:
    message = record.message
    if not isinstance(message, MessageBody) or not isinstance(message.content, list):
        return
    for block in message.content:
        if isinstance(block, ContentBlock):
            yield block


def iter_tool_uses(records: Iterable[TranscriptRecord]) -> Iterator[tuple[TranscriptRecord, ContentBlock]]:
    for record in records:
        for block in iter_content_blocks(record):
            if block.type == "tool_use":
                yield record, block


def summarize_tools(records: Iterable[TranscriptRecord]) -> list[ToolUsage]:
    """Count ``tool_use`` blocks per tool name, in first-seen order."""
    counts: dict[str, int] = {}
    for _, block in iter_tool_uses(records):
        name = (block.name or "").strip() or "unknown"
        counts[name] = counts.get(name, 0) + 1
    return [ToolUsage(name=name, invocations=count) for name, count in counts.items()]


def unmatched_tool_results(records: Iterable[TranscriptRecord]) -> list[str]:
    """Return ``tool_use_id``s whose ``tool_result`` has no earlier-or-equal ``tool_use``.

    ``records`` is expected in timeline order.
    """
    seen: dict[str, float] = {}
    unmatched: list[str] = []
    for record in records:
        epoch = iso_to_epoch(record.timestamp)
        for block in iter_content_blocks(record):
            if block.type == "tool_use" and block.id:
                seen.setdefault(block.id, epoch)
            elif block.type == "tool_result" and block.tool_use_id:
                used_at = seen.get(block.tool_use_id)
                if used_at is None or used_at > epoch:
                    unmatched.append(block.tool_use_id)
    return unmatched
