"""agentlog: size-bounded summaries of coding-agent transcripts.

Usage:
    from agentlog import summarize_agent_log

    result = summarize_agent_log(raw_text, engine="claude")
    print(result.markdown)
"""

from agentlog.engine import parse_agent_log, summarize_agent_log, wrap_log_parser
from agentlog.entry_parser import build_transcript, parse_log_entries
from agentlog.schemas import LogParseResult

__all__ = [
    "LogParseResult",
    "build_transcript",
    "parse_agent_log",
    "parse_log_entries",
    "summarize_agent_log",
    "wrap_log_parser",
]
