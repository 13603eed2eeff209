"""
Engine entry points.

Each agent engine (Claude, Copilot, Codex) writes the same entry format but is
rendered with slightly different options, captured in an EngineProfile.

Usage:
    from agentlog.engine import summarize_agent_log

    result = summarize_agent_log(log_text, engine="copilot")
    if result.mcp_failures:
        ...
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from agentlog.budget import StepSummaryTracker
from agentlog.config import ParserSettings, load_settings
from agentlog.entry_parser import build_transcript, parse_log_entries
from agentlog.render_markdown import (
    format_initialization_summary,
    format_mcp_failure_details,
    render_rich_report,
)
from agentlog.schemas import LogParseResult
from agentlog.tool_format import format_tool_use

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineProfile:
    """Rendering options for one engine.

    Attributes:
        name: Label used in headers and fallback text
        include_slash_commands: Render the slash command inventory at init
        include_mcp_failure_details: Render error, stderr and exit code of failed MCP servers
        include_detailed_parameters: Add a Parameters section to each tool call
    """

    name: str
    include_slash_commands: bool = False
    include_mcp_failure_details: bool = False
    include_detailed_parameters: bool = False


ENGINE_PROFILES: dict[str, EngineProfile] = {
    "claude": EngineProfile(name="Claude", include_slash_commands=True, include_mcp_failure_details=True),
    "copilot": EngineProfile(name="Copilot", include_detailed_parameters=True),
    "codex": EngineProfile(name="Codex"),
}


def get_engine_profile(engine: str) -> EngineProfile:
    """Profile for an engine label. Unknown labels get default options."""
    profile = ENGINE_PROFILES.get(engine.lower())
    if profile is None:
        logger.debug(f"No profile for engine {engine!r}, using defaults")
        return EngineProfile(name=engine)
    return profile


def parse_agent_log(
    log_content: str,
    *,
    engine: str = "claude",
    settings: ParserSettings | None = None,
) -> LogParseResult:
    """Parse a transcript and render the rich report.

    Args:
        log_content: Raw transcript text (JSON array or JSONL)
        engine: Engine label selecting the EngineProfile
        settings: Tunables; resolved from file and environment when omitted

    Returns:
        LogParseResult. Unparseable input gives a one-line report and no entries.
    """
    if settings is None:
        settings = load_settings()
    profile = get_engine_profile(engine)

    raw_entries = parse_log_entries(log_content)
    if raw_entries is None:
        logger.info(f"No {profile.name} log entries found")
        return LogParseResult(
            markdown=f"## Agent Log Summary\n\nLog format not recognized as {profile.name} JSON array or JSONL.\n"
        )

    transcript = build_transcript(raw_entries)
    logger.debug(f"Parsed {len(transcript.entries)} {profile.name} entries")

    format_tool = functools.partial(
        format_tool_use,
        include_detailed_parameters=profile.include_detailed_parameters,
        max_content_length=settings.max_tool_output_length,
    )
    format_init = functools.partial(
        format_initialization_summary,
        mcp_failure_details=format_mcp_failure_details if profile.include_mcp_failure_details else None,
        include_slash_commands=profile.include_slash_commands,
    )

    report = render_rich_report(
        transcript,
        format_tool=format_tool,
        format_init=format_init,
        tracker=StepSummaryTracker(settings.max_summary_bytes),
    )

    max_turns_hit = False
    if settings.max_turns is not None and transcript.stats is not None and transcript.stats.num_turns:
        max_turns_hit = transcript.stats.num_turns >= settings.max_turns

    return LogParseResult(
        markdown=report.markdown,
        mcp_failures=report.mcp_failures,
        max_turns_hit=max_turns_hit,
        log_entries=raw_entries,
    )


def wrap_log_parser(
    parse_function: Callable[[str], LogParseResult],
    parser_name: str,
    log_content: str,
) -> LogParseResult:
    """Run a parser, turning any exception into an error report.

    Args:
        parse_function: Parser taking the raw log text
        parser_name: Engine label for the error text
        log_content: Raw log text

    Returns:
        The parser's result, or an error report with empty failure data
    """
    try:
        return parse_function(log_content)
    except Exception as e:
        logger.warning(f"{parser_name} log parsing failed: {type(e).__name__}: {e}")
        return LogParseResult(
            markdown=(
                f"## Agent Log Summary\n\nError parsing {parser_name} log "
                f"(tried both JSON array and JSONL formats): {e}\n"
            ),
        )


def summarize_agent_log(
    log_content: str,
    *,
    engine: str = "claude",
    settings: ParserSettings | None = None,
) -> LogParseResult:
    """parse_agent_log() that never raises."""
    profile = get_engine_profile(engine)
    parse = functools.partial(parse_agent_log, engine=engine, settings=settings)
    return wrap_log_parser(parse, profile.name, log_content)
