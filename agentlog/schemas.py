"""
Typed models for parsed agent transcripts.

Raw transcript records are plain JSON objects. They are normalized once into
these pydantic models so renderers never re-check the shape of a field:

    Entry           one top-level record (system init, assistant turn, user turn)
    ContentBlock    text | tool_use | tool_result inside a turn
    InitInfo        payload of the system init record
    StatsInfo       run statistics carried by the final record
    Transcript      entries + init + stats, the view every renderer walks

Usage:
    from agentlog.schemas import ToolResultBlock

    block = ToolResultBlock.model_validate(raw_block)
    print(block.content)  # always a string
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Coercion helpers ---


def _as_text(value: Any) -> str | None:
    """Coerce an optional scalar into a string, keeping None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _as_number(value: Any) -> float:
    """Coerce a JSON number into a float, 0 for anything else."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    return 0.0


def _as_count(value: Any) -> int:
    """Coerce a JSON number into an int, 0 for anything else."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def join_content_fragments(content: Any) -> str:
    """Resolve a tool result `content` field into one string.

    Accepts either a scalar string or a list of fragments. String fragments are
    used as-is, typed fragments (``{"type": "text", "text": ...}``) contribute
    their ``text`` field. Fragments are joined with newlines. Any other shape
    (objects, numbers) has no display text and gives the empty string.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for fragment in content:
            if isinstance(fragment, str):
                parts.append(fragment)
            elif isinstance(fragment, dict):
                text = fragment.get("text")
                parts.append(text if isinstance(text, str) else "")
            else:
                parts.append("")
        return "\n".join(parts)
    return ""


# --- Content blocks ---


class TextBlock(BaseModel):
    """Free-text reasoning or response from the agent."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["text"] = "text"
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value) or ""


class ToolUseBlock(BaseModel):
    """A tool invocation issued by the agent."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str = ""
    name: str = ""
    input: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> str:
        return _as_text(value) or ""

    @field_validator("input", mode="before")
    @classmethod
    def _coerce_input(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}


class ToolResultBlock(BaseModel):
    """The outcome of a tool invocation, correlated by ``tool_use_id``.

    Attributes:
        tool_use_id: Id of the invocation this result answers
        content: Result content, already joined into a single string
        is_error: True only when the raw record says exactly ``true``
        duration_ms: Optional execution time reported by the engine
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = ""
    content: str = ""
    is_error: bool = False
    duration_ms: float | None = None

    @field_validator("tool_use_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _as_text(value) or ""

    @field_validator("content", mode="before")
    @classmethod
    def _join_content(cls, value: Any) -> str:
        return join_content_fragments(value)

    @field_validator("is_error", mode="before")
    @classmethod
    def _strict_error_flag(cls, value: Any) -> bool:
        return value is True

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return float(value)


ContentBlock = Annotated[TextBlock | ToolUseBlock | ToolResultBlock, Field(discriminator="type")]

CONTENT_BLOCK_TYPES = frozenset({"text", "tool_use", "tool_result"})


# --- Initialization ---


class McpServer(BaseModel):
    """Connection status of one MCP server reported at startup."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str = ""
    status: str = ""
    error: str | None = None
    stderr: str | None = None
    exit_code: int | None = Field(None, alias="exitCode")
    command: str | None = None
    message: str | None = None
    reason: str | None = None

    @field_validator("name", "status", mode="before")
    @classmethod
    def _coerce_required(cls, value: Any) -> str:
        return _as_text(value) or ""

    @field_validator("error", "stderr", "command", "message", "reason", mode="before")
    @classmethod
    def _coerce_optional(cls, value: Any) -> str | None:
        return _as_text(value)

    @field_validator("exit_code", mode="before")
    @classmethod
    def _coerce_exit_code(cls, value: Any) -> int | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return int(value)


class InitInfo(BaseModel):
    """Payload of the ``system``/``init`` record."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    model: str | None = None
    session_id: str | None = None
    cwd: str | None = None
    mcp_servers: list[McpServer] | None = None
    tools: list[str] | None = None
    slash_commands: list[str] | None = None

    @field_validator("model", "session_id", "cwd", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return _as_text(value)

    @field_validator("mcp_servers", mode="before")
    @classmethod
    def _keep_server_objects(cls, value: Any) -> list[Any] | None:
        if not isinstance(value, list):
            return None
        return [server for server in value if isinstance(server, dict)]

    @field_validator("tools", mode="before")
    @classmethod
    def _keep_tool_names(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [tool for tool in value if isinstance(tool, str)]

    @field_validator("slash_commands", mode="before")
    @classmethod
    def _keep_commands(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [str(command) for command in value]


# --- Statistics ---


class UsageInfo(BaseModel):
    """Token usage totals for the run."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @field_validator(
        "input_tokens",
        "output_tokens",
        "cache_creation_input_tokens",
        "cache_read_input_tokens",
        mode="before",
    )
    @classmethod
    def _coerce_counts(cls, value: Any) -> int:
        return _as_count(value)

    @property
    def total(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_input_tokens
            + self.cache_read_input_tokens
        )


class StatsInfo(BaseModel):
    """Run statistics read from the last record of a transcript."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    num_turns: int = 0
    duration_ms: float = 0.0
    total_cost_usd: float = 0.0
    usage: UsageInfo = Field(default_factory=UsageInfo)
    errors: list[str] = Field(default_factory=list)
    permission_denials: int = 0

    @field_validator("num_turns", mode="before")
    @classmethod
    def _coerce_turns(cls, value: Any) -> int:
        return _as_count(value)

    @field_validator("duration_ms", "total_cost_usd", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> float:
        return _as_number(value)

    @field_validator("usage", mode="before")
    @classmethod
    def _coerce_usage(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("errors", mode="before")
    @classmethod
    def _coerce_errors(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(error) for error in value]

    @field_validator("permission_denials", mode="before")
    @classmethod
    def _count_denials(cls, value: Any) -> int:
        if isinstance(value, list):
            return len(value)
        return _as_count(value)


# --- Entries ---


class EntryKind(StrEnum):
    SYSTEM_INIT = "system-init"
    ASSISTANT = "assistant"
    USER = "user"
    OTHER = "other"


class Entry(BaseModel):
    """One top-level transcript record after normalization."""

    model_config = ConfigDict(frozen=True)

    kind: EntryKind
    raw_type: str = ""
    content: list[ContentBlock] = Field(default_factory=list)
    init: InitInfo | None = None

    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    def tool_results(self) -> list[ToolResultBlock]:
        return [block for block in self.content if isinstance(block, ToolResultBlock)]


class Transcript(BaseModel):
    """Normalized transcript walked by every renderer."""

    model_config = ConfigDict(frozen=True)

    entries: list[Entry] = Field(default_factory=list)
    init: InitInfo | None = None
    stats: StatsInfo | None = None

    def assistant_entries(self) -> list[Entry]:
        return [entry for entry in self.entries if entry.kind == EntryKind.ASSISTANT]


# --- Results ---


class LogParseResult(BaseModel):
    """Output of one engine log parse.

    Attributes:
        markdown: The rich, size-bounded report
        mcp_failures: Names of MCP servers that failed to launch
        max_turns_hit: True when the run reached the configured turn limit
        log_entries: Raw entries as parsed, for the plain and compact renderers
    """

    markdown: str
    mcp_failures: list[str] = Field(default_factory=list)
    max_turns_hit: bool = False
    log_entries: list[Any] = Field(default_factory=list)
