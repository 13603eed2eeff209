"""
Plain-text renderings of a transcript.

generate_plain_text_summary() is written to the console log;
generate_compact_summary() is the same conversation and statistics inside a
single code fence, for step summaries where the rich report is too heavy.

Both skip file and search tools and stop the conversation walk at
MAX_CONVERSATION_LINES.
"""

from __future__ import annotations

import logging

from agentlog.pairing import CallPairingIndex
from agentlog.schemas import TextBlock, ToolResultBlock, ToolUseBlock, Transcript
from agentlog.render_markdown import unfence_markdown
from agentlog.tool_format import INTERNAL_TOOLS, format_bash_command, format_duration, format_mcp_name, stringify

logger = logging.getLogger(__name__)

MAX_CONVERSATION_LINES = 5000
MAX_TEXT_LENGTH = 500
MAX_PREVIEW_LENGTH = 80

ICON_OK = "✓"
ICON_FAILED = "✗"


def _result_preview(tool_use: ToolUseBlock, result: ToolResultBlock | None) -> str:
    if result is None or not result.content:
        return ""

    text = result.content
    if tool_use.name == "Bash":
        lines = [line for line in text.split("\n") if line.strip()]
        if not lines:
            return ""
        if len(lines) > 1:
            return f"   └ {len(lines)} lines..."
        return f"   └ {lines[0][:MAX_PREVIEW_LENGTH]}"

    if len(text) > MAX_PREVIEW_LENGTH:
        text = text[:MAX_PREVIEW_LENGTH] + "..."
    return f"   └ {text}"


def _display_name(tool_use: ToolUseBlock) -> str:
    if tool_use.name == "Bash":
        return f"$ {format_bash_command(stringify(tool_use.input.get('command') or ''))}"
    if tool_use.name.startswith("mcp__"):
        return format_mcp_name(tool_use.name).replace("::", "-", 1)
    return tool_use.name


def _conversation_lines(transcript: Transcript, pairs: CallPairingIndex) -> list[str]:
    """Agent text and external tool calls, capped at MAX_CONVERSATION_LINES."""
    lines = ["Conversation:", ""]
    count = 0
    truncated = False

    for entry in transcript.assistant_entries():
        if count >= MAX_CONVERSATION_LINES:
            truncated = True
            break

        for block in entry.content:
            if count >= MAX_CONVERSATION_LINES:
                truncated = True
                break

            if isinstance(block, TextBlock):
                if not block.text:
                    continue
                text = unfence_markdown(block.text.strip())
                if not text:
                    continue
                if len(text) > MAX_TEXT_LENGTH:
                    text = text[:MAX_TEXT_LENGTH] + "..."

                for line in text.split("\n"):
                    if count >= MAX_CONVERSATION_LINES:
                        truncated = True
                        break
                    lines.append(f"Agent: {line}")
                    count += 1
                lines.append("")
                count += 1

            elif isinstance(block, ToolUseBlock):
                if block.name in INTERNAL_TOOLS:
                    continue

                result = pairs.get(block.id)
                icon = ICON_FAILED if result is not None and result.is_error else ICON_OK
                lines.append(f"{icon} {_display_name(block)}")
                count += 1

                preview = _result_preview(block, result)
                if preview:
                    lines.append(preview)
                    count += 1

                lines.append("")
                count += 1

    if truncated:
        logger.debug(f"Plain conversation truncated at {MAX_CONVERSATION_LINES} lines")
        lines.append("... (conversation truncated)")
        lines.append("")
    return lines


def _statistics_lines(transcript: Transcript, pairs: CallPairingIndex) -> list[str]:
    lines = ["Statistics:"]
    stats = transcript.stats

    if stats is not None and stats.num_turns:
        lines.append(f"  Turns: {stats.num_turns}")
    if stats is not None and stats.duration_ms:
        duration = format_duration(stats.duration_ms)
        if duration:
            lines.append(f"  Duration: {duration}")

    total = 0
    succeeded = 0
    for entry in transcript.assistant_entries():
        for tool_use in entry.tool_uses():
            if tool_use.name in INTERNAL_TOOLS:
                continue
            total += 1
            result = pairs.get(tool_use.id)
            if result is None or not result.is_error:
                succeeded += 1

    if total > 0:
        lines.append(f"  Tools: {succeeded}/{total} succeeded")

    if stats is not None:
        usage = stats.usage
        if usage.input_tokens or usage.output_tokens:
            lines.append(
                f"  Tokens: {usage.total:,} total ({usage.input_tokens:,} in / {usage.output_tokens:,} out)"
            )
        if stats.total_cost_usd:
            lines.append(f"  Cost: ${stats.total_cost_usd:.4f}")

    return lines


def generate_plain_text_summary(
    transcript: Transcript,
    *,
    model: str | None = None,
    parser_name: str = "Agent",
) -> str:
    """Console summary: header, conversation, statistics.

    Args:
        transcript: Normalized transcript
        model: Model name for the header, omitted when empty
        parser_name: Engine label for the header

    Returns:
        Newline-joined plain text
    """
    pairs = CallPairingIndex.from_entries(transcript.entries)

    lines = [f"=== {parser_name} Execution Summary ==="]
    if model:
        lines.append(f"Model: {model}")
    lines.append("")

    lines.extend(_conversation_lines(transcript, pairs))
    lines.extend(_statistics_lines(transcript, pairs))
    return "\n".join(lines)


def generate_compact_summary(
    transcript: Transcript,
    *,
    model: str | None = None,
    parser_name: str = "Agent",
) -> str:
    """Conversation and statistics in one code fence, without the header."""
    pairs = CallPairingIndex.from_entries(transcript.entries)

    lines = ["```"]
    lines.extend(_conversation_lines(transcript, pairs))
    lines.extend(_statistics_lines(transcript, pairs))
    lines.append("```")
    return "\n".join(lines)
