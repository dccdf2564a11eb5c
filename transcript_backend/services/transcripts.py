"""Single-transcript reads: fetch by id, fetch a subagent file, list transcripts."""
from __future__ import annotations

import asyncio
import logging
from pathlib import PurePosixPath

from transcript_backend import config
from transcript_backend.date_utils import normalize_iso_date
from transcript_backend.errors import MalformedRecordError, ObjectNotFoundError, TranscriptNotFoundError
from transcript_backend.identifiers import validate_identifier
from transcript_backend.models import TranscriptData, TranscriptFile, TranscriptListing, TranscriptRecord
from transcript_backend.observability import record_parser_failure
from transcript_backend.parsers.jsonl import parse_records
from transcript_backend.storage.object_store import ObjectStore

logger = logging.getLogger("transcript_viewer.transcripts")

_TRANSCRIPT_SUFFIX = ".jsonl"


class TranscriptService:
    def __init__(self, store: ObjectStore, transcripts_prefix: str | None = None) -> None:
        self.store = store
        self.transcripts_prefix = config.TRANSCRIPTS_PREFIX if transcripts_prefix is None else transcripts_prefix

    def transcript_key(self, transcript_id: str) -> str:
        return f"{self.transcripts_prefix}{transcript_id}{_TRANSCRIPT_SUFFIX}"

    async def _fetch_records(self, key: str) -> list[TranscriptRecord]:
        blob = await asyncio.to_thread(self.store.get_object, key)
        try:
            return parse_records(blob, source=key)
        except MalformedRecordError:
            record_parser_failure("jsonl")
            raise

    async def get_transcript(self, transcript_id: str) -> TranscriptData:
        transcript_id = validate_identifier(transcript_id, "transcript")
        try:
            events = await self._fetch_records(self.transcript_key(transcript_id))
        except ObjectNotFoundError as exc:
            raise TranscriptNotFoundError(transcript_id) from exc
        return TranscriptData(events=events)

    async def get_subagent_transcript(self, transcript_id: str, subagent_id: str) -> TranscriptData:
        """Fetch ``<transcript>/agent-<subagent>.jsonl``.

        Older uploads stored subagents as standalone transcripts, so a miss
        falls back to ``transcripts/<subagent>.jsonl`` before reporting 404.
        """
        transcript_id = validate_identifier(transcript_id, "transcript")
        subagent_id = validate_identifier(subagent_id, "transcript")
        candidates = (
            f"{transcript_id}/agent-{subagent_id}{_TRANSCRIPT_SUFFIX}",
            self.transcript_key(subagent_id),
        )
        for key in candidates:
            try:
                events = await self._fetch_records(key)
            except ObjectNotFoundError:
                logger.debug("Subagent transcript not at %s", key)
                continue
            for event in events:
                event.agentId = (event.sessionId or "").strip() or subagent_id
            return TranscriptData(events=events)
        raise TranscriptNotFoundError(subagent_id)

    async def list_transcripts(self) -> TranscriptListing:
        refs = await asyncio.to_thread(self.store.list_objects, self.transcripts_prefix)
        files: list[TranscriptFile] = []
        for ref in refs:
            relative = ref.key[len(self.transcripts_prefix):] if ref.key.startswith(self.transcripts_prefix) else ref.key
            # Nested keys are subagent files, not standalone transcripts.
            if "/" in relative or not relative.endswith(_TRANSCRIPT_SUFFIX):
                continue
            name = PurePosixPath(relative).name
            transcript_id = name[: -len(_TRANSCRIPT_SUFFIX)]
            if not transcript_id:
                continue
            files.append(
                TranscriptFile(
                    id=transcript_id,
                    key=ref.key,
                    size=ref.size,
                    lastModified=normalize_iso_date(ref.last_modified) or None,
                )
            )
        return TranscriptListing(files=files)
