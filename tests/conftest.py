"""Shared transcript fixtures."""

import json

import pytest

from agentlog.config import ParserSettings


def tool_use(tool_id, name, params=None):
    return {"type": "tool_use", "id": tool_id, "name": name, "input": params or {}}


def tool_result(tool_id, content, is_error=False, **extra):
    return {"type": "tool_result", "tool_use_id": tool_id, "content": content, "is_error": is_error, **extra}


def assistant(*blocks):
    return {"type": "assistant", "message": {"content": list(blocks)}}


def user(*blocks):
    return {"type": "user", "message": {"content": list(blocks)}}


def text(value):
    return {"type": "text", "text": value}


@pytest.fixture
def init_entry():
    return {
        "type": "system",
        "subtype": "init",
        "session_id": "sess-123",
        "model": "claude-sonnet-4-20250514",
        "cwd": "/home/runner/work/repo/repo",
        "tools": ["Bash", "Read", "mcp__github__search_issues"],
        "mcp_servers": [{"name": "github", "status": "connected"}],
    }


@pytest.fixture
def result_entry():
    return {
        "type": "result",
        "num_turns": 3,
        "duration_ms": 65000,
        "total_cost_usd": 0.1234,
        "usage": {"input_tokens": 1200, "output_tokens": 300},
    }


@pytest.fixture
def sample_entries(init_entry, result_entry):
    """Init, one Bash call, one MCP call, results, and final stats."""
    return [
        init_entry,
        assistant(
            text("Let me look around."),
            tool_use("t1", "Bash", {"command": "ls -la"}),
            tool_use("t2", "mcp__github__search_issues", {"state": "open"}),
        ),
        user(
            tool_result("t1", "file1.txt\nfile2.txt"),
            tool_result("t2", [{"type": "text", "text": "[]"}]),
        ),
        assistant(text("Done.")),
        result_entry,
    ]


@pytest.fixture
def sample_log(sample_entries):
    return json.dumps(sample_entries)


@pytest.fixture
def sample_jsonl(sample_entries):
    return "\n".join(json.dumps(entry) for entry in sample_entries)


@pytest.fixture
def settings():
    return ParserSettings()
