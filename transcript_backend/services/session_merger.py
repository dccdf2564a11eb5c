"""Merge a session's main and subagent transcripts into one timeline."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from transcript_backend.date_utils import iso_to_epoch
from transcript_backend.errors import (
    MalformedRecordError,
    ObjectNotFoundError,
    SessionNotFoundError,
    StoreUnavailableError,
    TranscriptError,
)
from transcript_backend.identifiers import validate_identifier
from transcript_backend.models import SessionTranscript, SubagentTranscript, TranscriptRecord
from transcript_backend.observability import record_merge, record_parser_failure, start_span
from transcript_backend.parsers.jsonl import parse_records
from transcript_backend.storage.object_store import ObjectStore
from transcript_backend.tool_usage import summarize_tools, unmatched_tool_results

logger = logging.getLogger("transcript_viewer.merge")

_TRANSCRIPT_SUFFIX = ".jsonl"
_AGENT_FILE_PREFIX = "agent-"


@dataclass(frozen=True)
class SessionDescriptor:
    session_id: str
    main_key: str
    subagent_keys: tuple[str, ...] = ()


@dataclass
class SessionTimeline:
    session_id: str
    messages: list[TranscriptRecord] = field(default_factory=list)
    subagents: list[SubagentTranscript] = field(default_factory=list)

    def to_response(self) -> SessionTranscript:
        return SessionTranscript(
            id=self.session_id,
            session_id=self.session_id,
            messages=self.messages,
            subagents=self.subagents,
            tools_used=summarize_tools(self.messages),
        )


def main_key_for(session_id: str) -> str:
    return f"{session_id}{_TRANSCRIPT_SUFFIX}"


def subagent_id_from_key(key: str) -> str:
    """``<session>/agent-a1b2.jsonl`` -> ``a1b2``; other names fall back to the stem."""
    stem = PurePosixPath(key).name
    if stem.endswith(_TRANSCRIPT_SUFFIX):
        stem = stem[: -len(_TRANSCRIPT_SUFFIX)]
    if stem.startswith(_AGENT_FILE_PREFIX) and len(stem) > len(_AGENT_FILE_PREFIX):
        return stem[len(_AGENT_FILE_PREFIX):]
    return stem


def _timeline_sort_key(record: TranscriptRecord) -> float:
    return iso_to_epoch(record.timestamp)


class SessionMerger:
    """Builds a ``SessionTimeline`` from whatever the store holds for a session.

    Every call lists and fetches afresh; nothing is cached between requests.
    Fetches fan out concurrently and the merge fails closed: any list, get or
    parse failure aborts the whole request.
    """

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    async def resolve(self, session_id: str) -> SessionDescriptor:
        keys = await asyncio.to_thread(self.store.list_keys, session_id)
        main_key = main_key_for(session_id)
        if main_key not in keys:
            raise SessionNotFoundError(session_id)
        subagent_prefix = f"{session_id}/"
        subagent_keys = sorted(
            key for key in keys
            if key.startswith(subagent_prefix) and key.endswith(_TRANSCRIPT_SUFFIX)
        )
        return SessionDescriptor(session_id=session_id, main_key=main_key, subagent_keys=tuple(subagent_keys))

    async def _load(self, key: str) -> list[TranscriptRecord]:
        blob = await asyncio.to_thread(self.store.get_object, key)
        try:
            return parse_records(blob, source=key)
        except MalformedRecordError:
            record_parser_failure("jsonl")
            raise

    async def _load_subagent(self, key: str) -> list[TranscriptRecord]:
        try:
            return await self._load(key)
        except ObjectNotFoundError as exc:
            # Listed a moment ago; treat disappearance as a store inconsistency.
            raise StoreUnavailableError("get", f"{key} vanished after listing") from exc

    async def _load_main(self, descriptor: SessionDescriptor) -> list[TranscriptRecord]:
        try:
            return await self._load(descriptor.main_key)
        except ObjectNotFoundError as exc:
            raise SessionNotFoundError(descriptor.session_id) from exc

    async def merge(self, session_id: str) -> SessionTimeline:
        session_id = validate_identifier(session_id)
        started = time.perf_counter()
        with start_span("transcript.merge_session", {"session.id": session_id}):
            try:
                timeline = await self._merge(session_id)
            except TranscriptError as exc:
                record_merge(type(exc).__name__)
                raise
        record_merge("ok", len(timeline.messages))
        logger.info(
            "Merged session %s: %d records from %d subagent(s) in %.1fms",
            session_id,
            len(timeline.messages),
            len(timeline.subagents),
            (time.perf_counter() - started) * 1000,
        )
        return timeline

    async def _merge(self, session_id: str) -> SessionTimeline:
        descriptor = await self.resolve(session_id)
        loaded = await asyncio.gather(
            self._load_main(descriptor),
            *(self._load_subagent(key) for key in descriptor.subagent_keys),
        )
        main_records, subagent_records = loaded[0], loaded[1:]

        combined: list[TranscriptRecord] = []
        for record in main_records:
            record.agentId = session_id
            combined.append(record)

        subagents: list[SubagentTranscript] = []
        for key, records in zip(descriptor.subagent_keys, subagent_records):
            fallback_id = subagent_id_from_key(key)
            for record in records:
                record.agentId = (record.sessionId or "").strip() or fallback_id
                combined.append(record)
            subagents.append(
                SubagentTranscript(
                    id=records[0].agentId if records else fallback_id,
                    name=fallback_id,
                    transcript_file=key,
                    messages=records,
                )
            )

        # sorted() is stable: equal timestamps keep main-then-subagent discovery order.
        messages = sorted(combined, key=_timeline_sort_key)

        unmatched = unmatched_tool_results(messages)
        if unmatched:
            logger.warning(
                "Session %s has %d tool_result block(s) without a preceding tool_use: %s",
                session_id,
                len(unmatched),
                ", ".join(unmatched[:5]),
            )
        return SessionTimeline(session_id=session_id, messages=messages, subagents=subagents)
