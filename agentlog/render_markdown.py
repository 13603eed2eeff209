"""
Rich markdown report for CI step summaries.

The report has up to four parts, written in this order through a
StepSummaryTracker:

    ## 🚀 Initialization       model, session, MCP servers, tool inventory
    ## 🤖 Reasoning            agent text and one details block per tool call
    ## 🤖 Commands and Tools   recap list of external commands
    ## 📊 Information          turns, duration, cost, token usage

Once the tracker refuses a fragment the size warning is appended once and
nothing further is rendered.
"""

from __future__ import annotations

import logging
import math
import re
import textwrap
from collections.abc import Callable
from dataclasses import dataclass, field

from agentlog.budget import SIZE_LIMIT_WARNING, StepSummaryTracker
from agentlog.pairing import CallPairingIndex
from agentlog.schemas import (
    InitInfo,
    McpServer,
    StatsInfo,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Transcript,
)
from agentlog.tool_categories import categorize_tools
from agentlog.tool_format import INTERNAL_TOOLS, format_bash_command, format_mcp_name, stringify

logger = logging.getLogger(__name__)

MAX_INLINE_SLASH_COMMANDS = 10
SLASH_COMMAND_PREVIEW = 5

MCP_STATUS_ICONS = {"connected": "✅", "failed": "❌"}

_RUNNER_WORKDIR = re.compile(r"^/home/runner/work/[^/]+/[^/]+")

# One outer fence around the whole text, optionally tagged markdown/md.
_OUTER_FENCE = re.compile(
    r"\A(?P<fence>`{3,}|~{3,})[ \t]*(?:markdown|md)?[ \t]*\r?\n(?P<body>.*?)\r?\n(?P=fence)[ \t]*\Z",
    re.DOTALL | re.IGNORECASE,
)

FormatToolFn = Callable[[ToolUseBlock, ToolResultBlock | None], str]


@dataclass
class InitSummary:
    markdown: str
    mcp_failures: list[str] = field(default_factory=list)


@dataclass
class ConversationMarkdown:
    """Rendered conversation plus what the caller needs to finish the report."""

    markdown: str
    command_summary: list[str] = field(default_factory=list)
    size_limit_reached: bool = False
    mcp_failures: list[str] = field(default_factory=list)


FormatInitFn = Callable[[InitInfo], InitSummary | str]


def unfence_markdown(text: str) -> str:
    """Remove an accidental code fence that wraps the entire text.

    Agents sometimes answer with their whole message inside ```` ```markdown ````.
    Only a single fence spanning all of the text is removed; text containing
    further fences of the same kind is left alone.
    """
    if not text:
        return text

    match = _OUTER_FENCE.match(text)
    if match is None:
        return text

    fence = match.group("fence")
    body = match.group("body")
    if re.search(rf"^{re.escape(fence[0])}{{3,}}", body, re.MULTILINE):
        return text
    return body.strip()


def clean_working_directory(cwd: str) -> str:
    return _RUNNER_WORKDIR.sub(".", cwd, count=1)


def format_initialization_summary(
    init: InitInfo,
    *,
    mcp_failure_details: Callable[[McpServer], str] | None = None,
    model_info: Callable[[InitInfo], str] | None = None,
    include_slash_commands: bool = False,
) -> InitSummary:
    """Render the system init record.

    Args:
        init: Parsed init payload
        mcp_failure_details: Called for each failed MCP server, its output is
            inserted below the server line
        model_info: Called once, its output is inserted after the model line
        include_slash_commands: Render the slash command inventory

    Returns:
        InitSummary with the markdown and the names of failed MCP servers
    """
    markdown = ""
    mcp_failures: list[str] = []

    if init.model:
        markdown += f"**Model:** {init.model}\n\n"

    if model_info is not None:
        extra = model_info(init)
        if extra:
            markdown += extra

    if init.session_id:
        markdown += f"**Session ID:** {init.session_id}\n\n"

    if init.cwd:
        markdown += f"**Working Directory:** {clean_working_directory(init.cwd)}\n\n"

    if init.mcp_servers is not None:
        markdown += "**MCP Servers:**\n"
        for server in init.mcp_servers:
            icon = MCP_STATUS_ICONS.get(server.status, "❓")
            markdown += f"- {icon} {server.name} ({server.status})\n"

            if server.status == "failed":
                mcp_failures.append(server.name)
                if mcp_failure_details is not None:
                    details = mcp_failure_details(server)
                    if details:
                        markdown += details
        markdown += "\n"

    if init.tools is not None:
        markdown += "**Available Tools:**\n"
        for category, tools in categorize_tools(init.tools).items():
            if tools:
                markdown += f"- **{category}:** {len(tools)} tools\n"
                markdown += f"  - {', '.join(tools)}\n"
        markdown += "\n"

    if include_slash_commands and init.slash_commands is not None:
        commands = init.slash_commands
        markdown += f"**Slash Commands:** {len(commands)} available\n"
        if len(commands) <= MAX_INLINE_SLASH_COMMANDS:
            markdown += f"- {', '.join(commands)}\n"
        else:
            shown = ", ".join(commands[:SLASH_COMMAND_PREVIEW])
            markdown += f"- {shown}, and {len(commands) - SLASH_COMMAND_PREVIEW} more\n"
        markdown += "\n"

    return InitSummary(markdown=markdown, mcp_failures=mcp_failures)


def format_mcp_failure_details(server: McpServer, max_stderr_length: int = 500) -> str:
    """Indented detail lines for a failed MCP server."""
    lines = []
    if server.error:
        lines.append(f"  - **Error:** {server.error}")
    if server.stderr:
        stderr = server.stderr
        if len(stderr) > max_stderr_length:
            stderr = stderr[:max_stderr_length] + "..."
        lines.append("  - **Stderr:**")
        lines.append(textwrap.indent(f"```\n{stderr}\n```", "    ", lambda line: True))
    if server.exit_code is not None:
        lines.append(f"  - **Exit Code:** {server.exit_code}")
    if server.command:
        lines.append(f"  - **Command:** `{server.command}`")
    if server.message:
        lines.append(f"  - **Message:** {server.message}")
    if server.reason:
        lines.append(f"  - **Reason:** {server.reason}")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def recap_line(tool_use: ToolUseBlock, status_icon: str) -> str:
    """One bullet of the Commands and Tools list."""
    name = tool_use.name
    if name == "Bash":
        command = format_bash_command(stringify(tool_use.input.get("command") or ""))
        return f"* {status_icon} `{command}`"
    if name.startswith("mcp__"):
        return f"* {status_icon} `{format_mcp_name(name)}(...)`"
    return f"* {status_icon} {name}"


def generate_conversation_markdown(
    transcript: Transcript,
    *,
    format_tool: FormatToolFn,
    format_init: FormatInitFn | None = None,
    tracker: StepSummaryTracker | None = None,
) -> ConversationMarkdown:
    """Render initialization, reasoning and the command recap.

    Tool results are indexed before the walk, so an invocation is paired with
    its result regardless of where the result appears in the transcript.

    Args:
        transcript: Normalized transcript
        format_tool: Renders one invocation and its paired result
        format_init: Renders the init record, returning InitSummary or markdown
        tracker: Byte budget, every fragment is offered to it before being kept

    Returns:
        ConversationMarkdown; on overflow the markdown ends with the size
        warning and the recap is not rendered
    """
    pairs = CallPairingIndex.from_entries(transcript.entries)
    markdown = ""
    mcp_failures: list[str] = []

    def add(content: str) -> bool:
        nonlocal markdown
        if tracker is not None and not tracker.add(content):
            return False
        markdown += content
        return True

    def overflow(command_summary: list[str] | None = None) -> ConversationMarkdown:
        logger.debug(f"Conversation truncated after {len(markdown)} characters")
        return ConversationMarkdown(
            markdown=markdown + SIZE_LIMIT_WARNING,
            command_summary=command_summary or [],
            size_limit_reached=True,
            mcp_failures=mcp_failures,
        )

    if transcript.init is not None and format_init is not None:
        if not add("## 🚀 Initialization\n\n"):
            return overflow()

        init_result = format_init(transcript.init)
        if isinstance(init_result, InitSummary):
            mcp_failures = init_result.mcp_failures
            init_markdown = init_result.markdown
        else:
            init_markdown = init_result
        if init_markdown and not add(init_markdown):
            return overflow()
        if not add("\n"):
            return overflow()

    if not add("\n## 🤖 Reasoning\n\n"):
        return overflow()

    for entry in transcript.assistant_entries():
        for block in entry.content:
            if isinstance(block, TextBlock):
                if not block.text:
                    continue
                text = unfence_markdown(block.text.strip())
                if text and not add(text + "\n\n"):
                    return overflow()
            elif isinstance(block, ToolUseBlock):
                tool_markdown = format_tool(block, pairs.get(block.id))
                if tool_markdown and not add(tool_markdown):
                    return overflow()

    if not add("## 🤖 Commands and Tools\n\n"):
        return overflow()

    command_summary = []
    for entry in transcript.assistant_entries():
        for tool_use in entry.tool_uses():
            if tool_use.name in INTERNAL_TOOLS:
                continue
            command_summary.append(recap_line(tool_use, pairs.status_icon(tool_use.id)))

    if command_summary:
        for line in command_summary:
            if not add(f"{line}\n"):
                return overflow(command_summary)
    elif not add("No commands or tools used.\n"):
        return overflow()

    return ConversationMarkdown(
        markdown=markdown,
        command_summary=command_summary,
        size_limit_reached=False,
        mcp_failures=mcp_failures,
    )


def generate_information_section(
    stats: StatsInfo | None,
    *,
    additional_info: Callable[[StatsInfo], str] | None = None,
) -> str:
    """Render run statistics as the Information section.

    Args:
        stats: Statistics from the last transcript record
        additional_info: Engine-specific lines inserted after the cost line

    Returns:
        Markdown starting with the section heading
    """
    markdown = "\n## 📊 Information\n\n"
    if stats is None:
        return markdown

    if stats.num_turns:
        markdown += f"**Turns:** {stats.num_turns}\n\n"

    if stats.duration_ms:
        duration_sec = math.floor(stats.duration_ms / 1000 + 0.5)
        minutes, seconds = divmod(duration_sec, 60)
        markdown += f"**Duration:** {minutes}m {seconds}s\n\n"

    if stats.total_cost_usd:
        markdown += f"**Total Cost:** ${stats.total_cost_usd:.4f}\n\n"

    if additional_info is not None:
        extra = additional_info(stats)
        if extra:
            markdown += extra

    usage = stats.usage
    if usage.input_tokens or usage.output_tokens:
        markdown += "**Token Usage:**\n"
        if usage.total > 0:
            markdown += f"- Total: {usage.total:,}\n"
        if usage.input_tokens:
            markdown += f"- Input: {usage.input_tokens:,}\n"
        if usage.cache_creation_input_tokens:
            markdown += f"- Cache Creation: {usage.cache_creation_input_tokens:,}\n"
        if usage.cache_read_input_tokens:
            markdown += f"- Cache Read: {usage.cache_read_input_tokens:,}\n"
        if usage.output_tokens:
            markdown += f"- Output: {usage.output_tokens:,}\n"
        markdown += "\n"

    if stats.errors:
        markdown += "**Errors:**\n"
        for error in stats.errors:
            markdown += f"- {error}\n"
        markdown += "\n"

    if stats.permission_denials > 0:
        markdown += f"**Permission Denials:** {stats.permission_denials}\n\n"

    return markdown


def render_rich_report(
    transcript: Transcript,
    *,
    format_tool: FormatToolFn,
    format_init: FormatInitFn | None = None,
    tracker: StepSummaryTracker | None = None,
    additional_info: Callable[[StatsInfo], str] | None = None,
) -> ConversationMarkdown:
    """Conversation followed by the Information section, both under one budget."""
    conversation = generate_conversation_markdown(
        transcript,
        format_tool=format_tool,
        format_init=format_init,
        tracker=tracker,
    )
    if conversation.size_limit_reached or transcript.stats is None:
        return conversation

    information = generate_information_section(transcript.stats, additional_info=additional_info)
    if tracker is not None and not tracker.add(information):
        conversation.markdown += SIZE_LIMIT_WARNING
        conversation.size_limit_reached = True
        return conversation

    conversation.markdown += information
    return conversation


def wrap_agent_log_in_section(markdown: str, *, open: bool = True) -> str:
    """Wrap a report in a collapsible "Agentic Conversation" section."""
    if not markdown or not markdown.strip():
        return ""

    open_attr = " open" if open else ""
    return f"<details{open_attr}>\n<summary>Agentic Conversation</summary>\n\n{markdown}\n</details>"
