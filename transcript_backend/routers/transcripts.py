"""Transcript API routers.

``session_router`` carries the static ``session`` segment and is registered
ahead of ``transcript_router``; the id routes never share a segment count with
``/session/{session_id}`` either, so neither shadows the other.
"""
from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Request

from transcript_backend.errors import (
    InvalidIdentifierError,
    MalformedRecordError,
    SessionNotFoundError,
    StoreUnavailableError,
    TranscriptError,
    TranscriptNotFoundError,
)
from transcript_backend.identifiers import validate_identifier
from transcript_backend.models import LookupRequest, SessionTranscript, TranscriptData, TranscriptListing
from transcript_backend.services.session_merger import SessionMerger
from transcript_backend.services.transcripts import TranscriptService
from transcript_backend.uuid_lookup import parse_first_uuid

logger = logging.getLogger("transcript_viewer.routes")

session_router = APIRouter(prefix="/api/transcript/session", tags=["sessions"])
transcript_router = APIRouter(prefix="/api/transcript", tags=["transcripts"])
transcripts_router = APIRouter(prefix="/api/transcripts", tags=["transcripts"])


def _get_store(request: Request):
    store = getattr(request.app.state, "object_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Object store not initialized")
    return store


def _raise_http(exc: TranscriptError, context: str) -> NoReturn:
    if isinstance(exc, InvalidIdentifierError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, (SessionNotFoundError, TranscriptNotFoundError)):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, MalformedRecordError):
        logger.error("Malformed transcript while %s: %s", context, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(exc, StoreUnavailableError):
        logger.error("Object store failure while %s: %s", context, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    logger.exception("Unexpected transcript error while %s", context)
    raise HTTPException(status_code=500, detail="Failed to fetch transcript") from exc


async def _merged_session(request: Request, session_id: str) -> SessionTranscript:
    merger = SessionMerger(_get_store(request))
    try:
        timeline = await merger.merge(session_id)
    except TranscriptError as exc:
        _raise_http(exc, f"merging session {session_id}")
    return timeline.to_response()


# ── Session router ──────────────────────────────────────────────────

@session_router.get("/{session_id}", response_model=SessionTranscript, response_model_exclude_unset=True)
async def get_session_transcript(request: Request, session_id: str):
    """Merged main + subagent timeline for one session."""
    trimmed = (session_id or "").strip()
    if not trimmed:
        raise HTTPException(status_code=400, detail="Session ID is required")
    try:
        trimmed = validate_identifier(trimmed, "session")
    except InvalidIdentifierError as exc:
        _raise_http(exc, "validating session id")
    return await _merged_session(request, trimmed)


# ── Transcript router ───────────────────────────────────────────────

@transcript_router.post("/lookup", response_model=SessionTranscript, response_model_exclude_unset=True)
async def lookup_session_by_message(request: Request, payload: LookupRequest):
    """Extract the first UUID from pasted text and merge that session."""
    session_id = parse_first_uuid(payload.text)
    if not session_id:
        raise HTTPException(status_code=400, detail="No UUID found in input")
    return await _merged_session(request, session_id)


@transcript_router.get("/{transcript_id}", response_model=TranscriptData, response_model_exclude_unset=True)
async def get_transcript(request: Request, transcript_id: str):
    service = TranscriptService(_get_store(request))
    try:
        return await service.get_transcript(transcript_id)
    except TranscriptError as exc:
        _raise_http(exc, f"fetching transcript {transcript_id}")


@transcript_router.get(
    "/{transcript_id}/subagent/{subagent_id}",
    response_model=TranscriptData,
    response_model_exclude_unset=True,
)
async def get_subagent_transcript(request: Request, transcript_id: str, subagent_id: str):
    service = TranscriptService(_get_store(request))
    try:
        return await service.get_subagent_transcript(transcript_id, subagent_id)
    except TranscriptNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Subagent transcript not found") from exc
    except TranscriptError as exc:
        _raise_http(exc, f"fetching subagent {subagent_id} of {transcript_id}")


# ── Transcripts listing router ──────────────────────────────────────

@transcripts_router.get("", response_model=TranscriptListing)
async def list_transcripts(request: Request):
    service = TranscriptService(_get_store(request))
    try:
        return await service.list_transcripts()
    except StoreUnavailableError as exc:
        logger.error("Failed to list transcripts: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to list transcripts") from exc
