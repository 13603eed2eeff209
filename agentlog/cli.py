#!/usr/bin/env python3
"""
agentlog: summarize an agent transcript for a CI job.

Prints the plain-text summary to stdout and appends a markdown summary to the
job's step summary file. Launch failures and turn-limit hits are reported as
warnings; the exit status never depends on the transcript's content.

A directory holding conversation.md is summarized from that file directly.

Usage:
    agentlog agent-stdio.log --engine claude
    agentlog logs/ --engine copilot --step-summary summary.md --max-turns 30
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from pathlib import Path

from filelock import FileLock
from pydantic import ValidationError

from agentlog.config import ParserSettings, load_settings
from agentlog.engine import get_engine_profile, summarize_agent_log
from agentlog.entry_parser import build_transcript
from agentlog.render_markdown import wrap_agent_log_in_section
from agentlog.render_plain import generate_compact_summary, generate_plain_text_summary
from agentlog.safe_outputs import format_safe_outputs_preview

logger = logging.getLogger(__name__)

STEP_SUMMARY_ENV = "GITHUB_STEP_SUMMARY"
SAFE_OUTPUTS_ENV = "GH_AW_SAFE_OUTPUTS"
CONVERSATION_FILE = "conversation.md"

_HEADING = re.compile(r"^(#{1,6}) ", re.MULTILINE)


def read_log_content(log_path: Path) -> str | None:
    """
    Read a log file, or every file in a directory joined with newlines.

    Returns:
        Log text, or None if the path is missing or the directory is empty.
    """
    if not log_path.exists():
        logger.info(f"Log path not found: {log_path}")
        return None

    if log_path.is_dir():
        files = sorted(p for p in log_path.iterdir() if p.is_file())
        if not files:
            logger.info(f"No log files found in directory: {log_path}")
            return None
        logger.debug(f"Reading {len(files)} log files from {log_path}")
        return "\n".join(p.read_text(encoding="utf-8", errors="replace") for p in files)

    return log_path.read_text(encoding="utf-8", errors="replace")


def read_conversation_markdown(log_path: Path) -> str | None:
    """
    Read the conversation.md an engine wrote into its output directory.

    Headings are shifted down one level so the file nests under the step
    summary's own headings.

    Returns:
        Markdown, or None if log_path is not a directory holding conversation.md.
    """
    conversation_path = log_path / CONVERSATION_FILE
    if not log_path.is_dir() or not conversation_path.is_file():
        return None

    logger.debug(f"Using {conversation_path} instead of parsing transcript files")
    content = conversation_path.read_text(encoding="utf-8", errors="replace")
    return _HEADING.sub(r"#\1 ", content)


def read_safe_outputs(safe_outputs_path: Path | None) -> str:
    if safe_outputs_path is None:
        return ""
    if not safe_outputs_path.is_file():
        logger.debug(f"Safe outputs file not found: {safe_outputs_path}")
        return ""
    return safe_outputs_path.read_text(encoding="utf-8", errors="replace")


def append_step_summary(summary_path: Path, markdown: str) -> None:
    """Append to the step summary file, serialized across concurrent jobs."""
    lock_path = summary_path.with_suffix(summary_path.suffix + ".lock")
    lock = FileLock(lock_path, timeout=10)

    with lock:
        with open(summary_path, "a", encoding="utf-8") as f:
            f.write(markdown)
            if not markdown.endswith("\n"):
                f.write("\n")


def step_summary_path(args: argparse.Namespace) -> Path | None:
    if args.step_summary is not None:
        return args.step_summary
    if os.environ.get(STEP_SUMMARY_ENV):
        return Path(os.environ[STEP_SUMMARY_ENV])
    return None


def resolve_settings(args: argparse.Namespace) -> ParserSettings:
    settings = load_settings(args.config)
    if args.max_turns is None:
        return settings
    return ParserSettings.model_validate({**settings.model_dump(), "max_turns": args.max_turns})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Summarize an agent execution transcript")
    parser.add_argument("log_path", type=Path, help="Transcript file, or a directory of transcript files")
    parser.add_argument("--engine", default="claude", help="Engine that produced the transcript (default: claude)")
    parser.add_argument(
        "--step-summary",
        type=Path,
        default=None,
        help=f"Markdown file to append the summary to (default: ${STEP_SUMMARY_ENV})",
    )
    parser.add_argument(
        "--safe-outputs",
        type=Path,
        default=None,
        help=f"Safe outputs JSONL file to preview (default: ${SAFE_OUTPUTS_ENV})",
    )
    parser.add_argument("--max-turns", type=int, default=None, help="Turn limit the run was started with")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = resolve_settings(args)
    except ValidationError as e:
        parser.error(f"invalid settings: {e}")

    profile = get_engine_profile(args.engine)

    conversation = read_conversation_markdown(args.log_path)
    if conversation is not None:
        print(conversation)
        summary_path = step_summary_path(args)
        if summary_path is not None and conversation.strip():
            append_step_summary(summary_path, wrap_agent_log_in_section(conversation))
            logger.info(f"Appended {profile.name} conversation to {summary_path}")
        return 0

    log_content = read_log_content(args.log_path)
    if log_content is None:
        return 0

    result = summarize_agent_log(log_content, engine=args.engine, settings=settings)

    safe_outputs_path = args.safe_outputs
    if safe_outputs_path is None and os.environ.get(SAFE_OUTPUTS_ENV):
        safe_outputs_path = Path(os.environ[SAFE_OUTPUTS_ENV])
    safe_outputs = read_safe_outputs(safe_outputs_path)

    if result.log_entries:
        transcript = build_transcript(result.log_entries)
        model = transcript.init.model if transcript.init is not None else None

        plain = generate_plain_text_summary(transcript, model=model, parser_name=profile.name)
        if safe_outputs:
            plain += format_safe_outputs_preview(safe_outputs, plain_text=True)
        print(plain)

        summary_markdown = generate_compact_summary(transcript, model=model, parser_name=profile.name)
    else:
        print(result.markdown)
        summary_markdown = wrap_agent_log_in_section(result.markdown)
        logger.warning(
            f"{profile.name} execution failed: no structured log entries were produced. "
            "This usually indicates a startup or configuration error before tool execution."
        )

    if safe_outputs:
        summary_markdown += format_safe_outputs_preview(safe_outputs)

    summary_path = step_summary_path(args)
    if summary_path is not None and summary_markdown:
        append_step_summary(summary_path, summary_markdown)
        logger.info(f"Appended {profile.name} summary to {summary_path}")

    if result.mcp_failures:
        logger.warning(f"MCP server(s) failed to launch: {', '.join(result.mcp_failures)}")
    if result.max_turns_hit:
        logger.warning(
            "Agent execution stopped: max-turns limit reached. The agent did not complete its task successfully."
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
