"""Observability helpers."""

from transcript_backend.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_store_request,
    record_parser_failure,
    record_merge,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_store_request",
    "record_parser_failure",
    "record_merge",
]
