"""Transcript Viewer backend configuration."""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_prefix(name: str, default: str = "") -> str:
    value = (os.getenv(name) or default).strip().strip("/")
    return f"{value}/" if value else ""


# Object store
S3_BUCKET = os.getenv("S3_BUCKET", "claude-transcripts")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
S3_ENDPOINT = os.getenv("S3_ENDPOINT") or os.getenv("LOCALSTACK_URL") or None
S3_FORCE_PATH_STYLE = _env_bool("S3_FORCE_PATH_STYLE", True)
# Optional namespace applied to every key this service reads.
S3_KEY_PREFIX = _env_prefix("S3_KEY_PREFIX")
TRANSCRIPTS_PREFIX = _env_prefix("TRANSCRIPTS_PREFIX", "transcripts")

# Observability
OTEL_ENABLED = _env_bool("TRANSCRIPT_VIEWER_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("TRANSCRIPT_VIEWER_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("TRANSCRIPT_VIEWER_OTEL_SERVICE_NAME", "transcript-viewer-backend")
PROM_PORT = _env_int("TRANSCRIPT_VIEWER_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("TRANSCRIPT_VIEWER_HOST", "0.0.0.0")
PORT = _env_int("TRANSCRIPT_VIEWER_PORT", 3001)

# CORS
FRONTEND_ORIGIN = os.getenv("TRANSCRIPT_VIEWER_FRONTEND_ORIGIN", "http://localhost:5173")
