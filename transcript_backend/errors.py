"""Error taxonomy shared by the store adapter, parsers, services and routers."""
from __future__ import annotations


class TranscriptError(Exception):
    """Base class for every failure surfaced by the transcript backend."""


class InvalidIdentifierError(TranscriptError):
    def __init__(self, identifier: str, kind: str = "session") -> None:
        self.identifier = identifier
        self.kind = kind
        super().__init__(f"Invalid {kind} ID format")


class SessionNotFoundError(TranscriptError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("No transcript found for session ID")


class TranscriptNotFoundError(TranscriptError):
    def __init__(self, transcript_id: str) -> None:
        self.transcript_id = transcript_id
        super().__init__("Transcript not found")


class MalformedRecordError(TranscriptError):
    """A transcript line is not a JSON object.

    ``line_number`` is 1-based; 0 means the blob could not be decoded at all.
    """

    def __init__(self, source: str, line_number: int, reason: str = "") -> None:
        self.source = source
        self.line_number = line_number
        self.reason = reason
        location = f"{source or '<transcript>'} line {line_number}"
        message = f"Invalid JSONL format at {location}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ObjectNotFoundError(TranscriptError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Object not found: {key}")


class StoreUnavailableError(TranscriptError):
    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        message = f"Object store {operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
