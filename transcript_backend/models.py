"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Any, Optional, Union

# ── Transcript record models ───────────────────────────────────────
# Only the fields the merge reads (sessionId, timestamp) are typed strictly;
# everything else passes through whatever JSON value the line carried.

class ContentBlock(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = ""
    text: Any = None
    id: Optional[str] = None
    name: Optional[str] = None
    input: Any = None
    tool_use_id: Optional[str] = None
    content: Any = None
    is_error: Any = None


# Blocks that do not fit ContentBlock (e.g. a bare string) are kept verbatim.
ContentItem = Annotated[Union[ContentBlock, Any], Field(union_mode="left_to_right")]


class MessageBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Any = None
    content: Annotated[Union[str, list[ContentItem], Any], Field(union_mode="left_to_right")] = None
    model: Any = None


class TranscriptRecord(BaseModel):
    """One JSONL line: recognized keys plus every other field passed through."""

    model_config = ConfigDict(extra="allow")

    type: Any = ""
    sessionId: Optional[str] = None
    timestamp: Optional[str] = None
    uuid: Any = None
    parentUuid: Any = None
    agentId: Optional[str] = None
    message: Annotated[Union[MessageBody, Any], Field(union_mode="left_to_right")] = None
    isSidechain: Any = None
    cwd: Any = None
    version: Any = None
    gitBranch: Any = None
    userType: Any = None
    operation: Any = None


# ── Response models ────────────────────────────────────────────────

class ToolUsage(BaseModel):
    name: str
    invocations: int = 0


class SubagentTranscript(BaseModel):
    id: str
    name: str
    transcript_file: str = ""
    messages: list[TranscriptRecord] = Field(default_factory=list)


class SessionTranscript(BaseModel):
    id: str
    session_id: str
    messages: list[TranscriptRecord] = Field(default_factory=list)
    subagents: list[SubagentTranscript] = Field(default_factory=list)
    tools_used: list[ToolUsage] = Field(default_factory=list)


class TranscriptData(BaseModel):
    events: list[TranscriptRecord] = Field(default_factory=list)


class TranscriptFile(BaseModel):
    id: str
    key: str
    size: int = 0
    lastModified: Optional[str] = None


class TranscriptListing(BaseModel):
    files: list[TranscriptFile] = Field(default_factory=list)


class LookupRequest(BaseModel):
    text: str = Field(..., min_length=1)
