"""
Per-tool rendering of invocations for the rich report.

Each tool name resolves to a ToolKind; each kind has a pure summary function
in SUMMARY_FORMATTERS. The summary, status glyph and metadata form the one-line
header of a collapsible <details> block whose body holds the parameter and
output sections.

Usage:
    from agentlog.tool_format import format_tool_use

    markdown = format_tool_use(tool_use, paired_result)
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from agentlog.pairing import result_status_icon
from agentlog.schemas import ToolResultBlock, ToolUseBlock

logger = logging.getLogger(__name__)

# Section bodies longer than this are cut and marked "... (truncated)".
MAX_TOOL_OUTPUT_LENGTH = 256

MAX_BASH_COMMAND_LENGTH = 300
MAX_SEARCH_QUERY_LENGTH = 80
MAX_PARAM_VALUE_LENGTH = 40
MAX_MAIN_PARAM_LENGTH = 100
MAX_MCP_PARAMS = 4

# File and search tools, hidden from the recap list and plain summaries.
INTERNAL_TOOLS = frozenset({"Read", "Write", "Edit", "MultiEdit", "LS", "Grep", "Glob", "TodoWrite"})

# Runner workspace prefix, e.g. /home/runner/work/repo/
_WORKSPACE_PREFIX = re.compile(r"^/[^/]*/[^/]*/[^/]*/[^/]*/")

MAIN_PARAM_KEYS = ("query", "command", "path", "file_path", "content")

# Six back-ticks so tool output containing ``` or ````` cannot close the fence.
_FENCE = "``````"


class ToolKind(StrEnum):
    BASH = "bash"
    READ = "read"
    WRITE = "write"
    SEARCH = "search"
    LIST = "list"
    TODO = "todo"
    MCP = "mcp"
    OTHER = "other"


_KIND_BY_NAME: dict[str, ToolKind] = {
    "Bash": ToolKind.BASH,
    "Read": ToolKind.READ,
    "Write": ToolKind.WRITE,
    "Edit": ToolKind.WRITE,
    "MultiEdit": ToolKind.WRITE,
    "Grep": ToolKind.SEARCH,
    "Glob": ToolKind.SEARCH,
    "LS": ToolKind.LIST,
    "TodoWrite": ToolKind.TODO,
}


def tool_kind(name: str) -> ToolKind:
    """Resolve a tool name to its rendering kind. Unknown names are OTHER."""
    if name in _KIND_BY_NAME:
        return _KIND_BY_NAME[name]
    if name.startswith("mcp__"):
        return ToolKind.MCP
    return ToolKind.OTHER


# --- Text helpers ---


def compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def stringify(value: Any) -> str:
    """Render a JSON value as display text.

    Strings pass through, None becomes the empty string, booleans are
    lower-case, integral floats drop their fraction, containers are compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list):
        return compact_json(value)
    return str(value)


def _stringify_item(item: Any) -> str:
    if item is None:
        return "null"
    return stringify(item)


def format_duration(ms: float | None) -> str:
    """Format milliseconds as ``Ns``, ``Mm`` or ``Mm Ss``.

    Seconds are rounded half up. Missing or non-positive values give "".
    """
    if not ms or ms <= 0:
        return ""

    seconds = math.floor(ms / 1000 + 0.5)
    if seconds < 60:
        return f"{seconds}s"

    minutes, remaining = divmod(seconds, 60)
    if remaining == 0:
        return f"{minutes}m"
    return f"{minutes}m {remaining}s"


def format_bash_command(command: str | None) -> str:
    """Collapse a shell command onto one line for inline code display.

    Args:
        command: Raw command, possibly multi-line

    Returns:
        Single-line command with back-ticks escaped, cut at 300 characters plus "..."
    """
    if not command:
        return ""

    formatted = command.replace("\n", " ").replace("\r", " ").replace("\t", " ")
    formatted = re.sub(r"\s+", " ", formatted).strip()
    formatted = formatted.replace("`", "\\`")

    if len(formatted) > MAX_BASH_COMMAND_LENGTH:
        formatted = formatted[:MAX_BASH_COMMAND_LENGTH] + "..."
    return formatted


def truncate_string(text: str | None, max_length: int) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def estimate_tokens(text: str | None) -> int:
    """Approximate token count at four characters per token."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def format_mcp_name(tool_name: str) -> str:
    """``mcp__github__search_issues`` -> ``github::search_issues``.

    Method segments after the provider are joined with ``_``. Names with fewer
    than three ``__`` segments are returned unchanged.
    """
    if tool_name.startswith("mcp__"):
        parts = tool_name.split("__")
        if len(parts) >= 3:
            return f"{parts[1]}::{'_'.join(parts[2:])}"
    return tool_name


def format_mcp_parameters(params: dict[str, Any]) -> str:
    """Render up to four parameters as ``key: value`` pairs.

    Args:
        params: Tool input, in the order the agent supplied it

    Returns:
        Comma-joined pairs, each value cut at 40 characters
    """
    keys = list(params)
    if not keys:
        return ""

    rendered = []
    for key in keys[:MAX_MCP_PARAMS]:
        raw_value = params[key]
        if isinstance(raw_value, list):
            if not raw_value:
                value = "[]"
            elif len(raw_value) <= 3:
                value = "[" + ", ".join(_stringify_item(item) for item in raw_value) + "]"
            else:
                shown = ", ".join(_stringify_item(item) for item in raw_value[:2])
                value = f"[{shown}, ...{len(raw_value) - 2} more]"
        elif isinstance(raw_value, dict):
            value = compact_json(raw_value)
        else:
            value = stringify(raw_value) if raw_value else ""

        rendered.append(f"{key}: {truncate_string(value, MAX_PARAM_VALUE_LENGTH)}")

    if len(keys) > MAX_MCP_PARAMS:
        rendered.append("...")

    return ", ".join(rendered)


def strip_workspace_prefix(path: str) -> str:
    return _WORKSPACE_PREFIX.sub("", path, count=1)


def _input_path(params: dict[str, Any]) -> str:
    return stringify(params.get("file_path") or params.get("path") or "")


# --- Summary formatters ---


def _summarize_bash(name: str, params: dict[str, Any]) -> str:
    command = format_bash_command(stringify(params.get("command") or ""))
    description = stringify(params.get("description") or "")
    if description:
        return f"{description}: <code>{command}</code>"
    return f"<code>{command}</code>"


def _summarize_read(name: str, params: dict[str, Any]) -> str:
    return f"Read <code>{strip_workspace_prefix(_input_path(params))}</code>"


def _summarize_write(name: str, params: dict[str, Any]) -> str:
    return f"Write <code>{strip_workspace_prefix(_input_path(params))}</code>"


def _summarize_search(name: str, params: dict[str, Any]) -> str:
    query = stringify(params.get("query") or params.get("pattern") or "")
    return f"Search for <code>{truncate_string(query, MAX_SEARCH_QUERY_LENGTH)}</code>"


def _summarize_list(name: str, params: dict[str, Any]) -> str:
    path = stringify(params.get("path") or "")
    return f"LS: {strip_workspace_prefix(path) or path}"


def _summarize_todo(name: str, params: dict[str, Any]) -> str:
    return ""


def _summarize_mcp(name: str, params: dict[str, Any]) -> str:
    return f"{format_mcp_name(name)}({format_mcp_parameters(params)})"


def _summarize_other(name: str, params: dict[str, Any]) -> str:
    if not params:
        return name

    main_key = next((key for key in params if key in MAIN_PARAM_KEYS), next(iter(params)))
    raw_value = params[main_key]
    value = stringify(raw_value) if raw_value else ""
    if value:
        return f"{name}: {truncate_string(value, MAX_MAIN_PARAM_LENGTH)}"
    return name


SUMMARY_FORMATTERS: dict[ToolKind, Callable[[str, dict[str, Any]], str]] = {
    ToolKind.BASH: _summarize_bash,
    ToolKind.READ: _summarize_read,
    ToolKind.WRITE: _summarize_write,
    ToolKind.SEARCH: _summarize_search,
    ToolKind.LIST: _summarize_list,
    ToolKind.TODO: _summarize_todo,
    ToolKind.MCP: _summarize_mcp,
    ToolKind.OTHER: _summarize_other,
}


def summarize_tool(name: str, params: dict[str, Any]) -> str:
    """One-line summary for a tool invocation, dispatched on its kind."""
    return SUMMARY_FORMATTERS[tool_kind(name)](name, params)


# --- Details block ---


@dataclass(frozen=True)
class Section:
    """A labelled, fenced body inside a tool call's details block."""

    label: str
    content: str
    language: str | None = None


def format_tool_call_as_details(
    summary: str,
    status_icon: str | None = None,
    sections: Sequence[Section] = (),
    metadata: str | None = None,
    max_content_length: int = MAX_TOOL_OUTPUT_LENGTH,
) -> str:
    """Render a tool call as a collapsible HTML details block.

    Args:
        summary: Header text shown while collapsed
        status_icon: Glyph prefixed to the summary unless it already starts with it
        sections: Bodies to show when expanded, blank ones are skipped
        metadata: Appended to the header, e.g. duration and token estimate
        max_content_length: Section bodies are cut to this many characters

    Returns:
        A ``<details>`` block, or just the header line when no section has content
    """
    full_summary = summary
    if status_icon and not summary.startswith(status_icon):
        full_summary = f"{status_icon} {summary}"
    if metadata:
        full_summary += f" {metadata}"

    visible = [section for section in sections if section.content and section.content.strip()]
    if not visible:
        return f"{full_summary}\n\n"

    details = ""
    for section in visible:
        content = section.content
        if len(content) > max_content_length:
            content = content[:max_content_length] + "... (truncated)"

        details += f"**{section.label}:**\n\n"
        details += f"{_FENCE}{section.language or ''}\n"
        details += content
        details += f"\n{_FENCE}\n\n"

    details = details.rstrip()
    return f"<details>\n<summary>{full_summary}</summary>\n\n{details}\n</details>\n\n"


def format_tool_use(
    tool_use: ToolUseBlock,
    tool_result: ToolResultBlock | None,
    *,
    include_detailed_parameters: bool = False,
    max_content_length: int = MAX_TOOL_OUTPUT_LENGTH,
) -> str:
    """Render one tool invocation and its paired result for the rich report.

    Args:
        tool_use: The invocation
        tool_result: The paired result, or None when the transcript has none
        include_detailed_parameters: Add a pretty-printed Parameters section and
            label the output "Response" instead of "Output"
        max_content_length: Section body cut-off

    Returns:
        Markdown for the invocation, "" for TodoWrite
    """
    name = tool_use.name
    params = tool_use.input
    kind = tool_kind(name)

    if kind == ToolKind.TODO:
        return ""

    details = tool_result.content if tool_result is not None else ""

    total_tokens = estimate_tokens(compact_json(params)) + estimate_tokens(details)
    metadata = ""
    if tool_result is not None and tool_result.duration_ms:
        metadata += f"<code>{format_duration(tool_result.duration_ms)}</code> "
    if total_tokens > 0:
        metadata += f"<code>~{total_tokens}t</code>"
    metadata = metadata.strip()

    summary = SUMMARY_FORMATTERS[kind](name, params)

    sections = []
    if include_detailed_parameters and params:
        sections.append(
            Section(
                label="Parameters",
                content=json.dumps(params, indent=2, ensure_ascii=False),
                language="json",
            )
        )
    if details and details.strip():
        sections.append(Section(label="Response" if include_detailed_parameters else "Output", content=details))

    return format_tool_call_as_details(
        summary,
        status_icon=result_status_icon(tool_result),
        sections=sections,
        metadata=metadata or None,
        max_content_length=max_content_length,
    )
