"""Tests for the rich markdown report."""

import functools

from conftest import assistant, text, tool_result, tool_use, user

from agentlog.budget import SIZE_LIMIT_WARNING, StepSummaryTracker
from agentlog.entry_parser import build_transcript
from agentlog.render_markdown import (
    InitSummary,
    format_initialization_summary,
    format_mcp_failure_details,
    generate_conversation_markdown,
    generate_information_section,
    render_rich_report,
    unfence_markdown,
    wrap_agent_log_in_section,
)
from agentlog.schemas import InitInfo, McpServer, StatsInfo
from agentlog.tool_format import format_tool_use


def _render(raw_entries, tracker=None):
    return render_rich_report(
        build_transcript(raw_entries),
        format_tool=format_tool_use,
        format_init=format_initialization_summary,
        tracker=tracker,
    )


def test_full_report_sections_in_order(sample_entries) -> None:
    markdown = _render(sample_entries).markdown

    headings = ["## 🚀 Initialization", "## 🤖 Reasoning", "## 🤖 Commands and Tools", "## 📊 Information"]
    positions = [markdown.find(heading) for heading in headings]
    assert all(pos >= 0 for pos in positions), f"Missing heading in:\n{markdown}"
    assert positions == sorted(positions), "Sections out of order"


def test_bash_recap_line(sample_entries) -> None:
    """A paired successful Bash call appears in the recap with its command."""
    report = _render(sample_entries)

    assert "* ✅ `ls -la`" in report.command_summary
    assert "* ✅ `ls -la`\n" in report.markdown
    assert "* ✅ `github::search_issues(...)`" in report.command_summary


def test_mcp_summary_in_reasoning(sample_entries) -> None:
    markdown = _render(sample_entries).markdown

    assert "github::search_issues(state: open)" in markdown


def test_internal_tools_excluded_from_recap() -> None:
    report = _render(
        [
            assistant(tool_use("r", "Read", {"file_path": "a.py"}), tool_use("w", "WebFetch", {"url": "u"})),
            user(tool_result("r", "x")),
        ]
    )

    assert report.command_summary == ["* ❓ WebFetch"]


def test_no_tools_message() -> None:
    markdown = _render([assistant(text("just thinking"))]).markdown

    assert "No commands or tools used.\n" in markdown


def test_reasoning_text_is_trimmed_and_unfenced() -> None:
    markdown = _render([assistant(text("  ```markdown\n# Plan\nstep\n```  "))]).markdown

    assert "# Plan\nstep\n\n" in markdown
    assert "```markdown" not in markdown


def test_render_is_idempotent(sample_entries) -> None:
    assert _render(sample_entries).markdown == _render(sample_entries).markdown


def test_budget_exhausted_mid_reasoning() -> None:
    """The warning appears once and no later section is rendered."""
    raw = [assistant(*[text(f"paragraph {i} " + "x" * 200) for i in range(20)]), {"type": "result", "num_turns": 1}]
    report = _render(raw, tracker=StepSummaryTracker(max_size=1000))

    assert report.size_limit_reached
    assert report.markdown.count(SIZE_LIMIT_WARNING) == 1
    assert report.markdown.endswith(SIZE_LIMIT_WARNING)
    assert "## 🤖 Commands and Tools" not in report.markdown
    assert "## 📊 Information" not in report.markdown
    assert report.command_summary == []


def test_budget_bounds_report_size(sample_entries) -> None:
    """Report bytes never exceed the budget plus one warning."""
    warning_bytes = len(SIZE_LIMIT_WARNING.encode("utf-8"))
    for max_size in (50, 200, 600, 1500, 5000):
        report = _render(sample_entries, tracker=StepSummaryTracker(max_size=max_size))
        size = len(report.markdown.encode("utf-8"))
        assert size <= max_size + warning_bytes, f"{size} bytes for budget {max_size}"


def test_information_section_tracked_by_budget(sample_entries) -> None:
    """When only the Information section does not fit, it is replaced by the warning."""
    full = _render(sample_entries).markdown
    information = generate_information_section(build_transcript(sample_entries).stats)
    budget = len(full.encode("utf-8")) - len(information.encode("utf-8")) + 1

    report = _render(sample_entries, tracker=StepSummaryTracker(max_size=budget))

    assert "## 🤖 Commands and Tools" in report.markdown
    assert "## 📊 Information" not in report.markdown
    assert report.markdown.endswith(SIZE_LIMIT_WARNING)


def test_initialization_summary() -> None:
    init = InitInfo.model_validate(
        {
            "model": "claude-sonnet",
            "session_id": "abc",
            "cwd": "/home/runner/work/repo/repo/sub",
            "mcp_servers": [
                {"name": "github", "status": "connected"},
                {"name": "broken", "status": "failed"},
                {"name": "odd", "status": "pending"},
            ],
            "tools": ["Bash", "Read", "mcp__github__get_issue", "safeoutputs-create_issue"],
        }
    )
    summary = format_initialization_summary(init)

    assert summary.mcp_failures == ["broken"]
    assert "**Model:** claude-sonnet\n\n" in summary.markdown
    assert "**Session ID:** abc\n\n" in summary.markdown
    assert "**Working Directory:** ./sub\n\n" in summary.markdown
    assert "- ✅ github (connected)\n" in summary.markdown
    assert "- ❌ broken (failed)\n" in summary.markdown
    assert "- ❓ odd (pending)\n" in summary.markdown
    assert "- **Core:** 1 tools\n  - Bash\n" in summary.markdown
    assert "- **Safe Outputs:** 1 tools\n  - create_issue\n" in summary.markdown
    assert "- **Git/GitHub:** 1 tools\n  - github::get_issue\n" in summary.markdown
    assert summary.markdown.index("**Core:**") < summary.markdown.index("**File Operations:**")


def test_slash_commands() -> None:
    few = InitInfo(slash_commands=["/a", "/b"])
    many = InitInfo(slash_commands=[f"/c{i}" for i in range(12)])

    assert "Slash Commands" not in format_initialization_summary(few).markdown
    assert "**Slash Commands:** 2 available\n- /a, /b\n" in format_initialization_summary(
        few, include_slash_commands=True
    ).markdown
    assert "- /c0, /c1, /c2, /c3, /c4, and 7 more\n" in format_initialization_summary(
        many, include_slash_commands=True
    ).markdown


def test_mcp_failure_details() -> None:
    server = McpServer.model_validate(
        {
            "name": "github",
            "status": "failed",
            "error": "Connection timeout after 30s",
            "stderr": "x" * 600,
            "exitCode": 0,
            "command": "npx @github/github-mcp-server",
            "message": "Failed to initialize",
            "reason": "Network error",
        }
    )
    details = format_mcp_failure_details(server)

    assert "**Error:** Connection timeout after 30s" in details
    assert "**Stderr:**" in details
    assert "x" * 500 + "..." in details
    assert "x" * 501 not in details
    assert "**Exit Code:** 0" in details, "Exit code 0 is still rendered"
    assert "**Command:** `npx @github/github-mcp-server`" in details
    assert "**Message:** Failed to initialize" in details
    assert "**Reason:** Network error" in details


def test_failure_details_hook_output_follows_server_line() -> None:
    init = InitInfo.model_validate({"mcp_servers": [{"name": "gh", "status": "failed", "error": "boom"}]})
    summary = format_initialization_summary(init, mcp_failure_details=format_mcp_failure_details)

    assert "- ❌ gh (failed)\n  - **Error:** boom\n" in summary.markdown


def test_init_string_result_is_accepted(sample_entries) -> None:
    result = generate_conversation_markdown(
        build_transcript(sample_entries),
        format_tool=format_tool_use,
        format_init=lambda init: f"custom {init.model}\n",
    )

    assert "## 🚀 Initialization\n\ncustom claude-sonnet-4-20250514\n\n" in result.markdown
    assert result.mcp_failures == []


def test_init_failures_propagate(sample_entries) -> None:
    sample_entries[0]["mcp_servers"] = [{"name": "gh", "status": "failed"}]
    result = generate_conversation_markdown(
        build_transcript(sample_entries),
        format_tool=functools.partial(format_tool_use, include_detailed_parameters=True),
        format_init=lambda init: InitSummary(markdown="init\n", mcp_failures=["gh"]),
    )

    assert result.mcp_failures == ["gh"]


def test_information_section() -> None:
    stats = StatsInfo.model_validate(
        {
            "num_turns": 4,
            "duration_ms": 125400,
            "total_cost_usd": 0.5,
            "usage": {
                "input_tokens": 1500,
                "output_tokens": 250,
                "cache_creation_input_tokens": 1000000,
                "cache_read_input_tokens": 0,
            },
            "errors": ["rate limited"],
            "permission_denials": [{"tool_name": "Bash"}],
        }
    )
    markdown = generate_information_section(stats, additional_info=lambda s: "**Premium Requests:** 2\n\n")

    assert markdown.startswith("\n## 📊 Information\n\n")
    assert "**Turns:** 4\n\n" in markdown
    assert "**Duration:** 2m 5s\n\n" in markdown
    assert "**Total Cost:** $0.5000\n\n" in markdown
    assert "**Premium Requests:** 2\n\n" in markdown
    assert "- Total: 1,001,750\n" in markdown
    assert "- Input: 1,500\n" in markdown
    assert "- Cache Creation: 1,000,000\n" in markdown
    assert "Cache Read" not in markdown
    assert "- Output: 250\n" in markdown
    assert "**Errors:**\n- rate limited\n\n" in markdown
    assert "**Permission Denials:** 1\n\n" in markdown


def test_information_section_without_stats() -> None:
    assert generate_information_section(None) == "\n## 📊 Information\n\n"
    assert generate_information_section(StatsInfo()) == "\n## 📊 Information\n\n"


def test_unfence_markdown() -> None:
    assert unfence_markdown("```\nhello\n```") == "hello"
    assert unfence_markdown("~~~md\nhello\n~~~") == "hello"
    assert unfence_markdown("plain text") == "plain text"
    assert unfence_markdown("```python\ncode\n```") == "```python\ncode\n```", "Only markdown fences are removed"
    assert unfence_markdown("```\r\nhello\r\n```") == "hello", "CRLF fences are removed too"
    assert unfence_markdown("```markdown\r\n# Plan\r\nstep\r\n```") == "# Plan\r\nstep"
    two_blocks = "```\na\n```\nmiddle\n```\nb\n```"
    assert unfence_markdown(two_blocks) == two_blocks


def test_wrap_agent_log_in_section() -> None:
    assert wrap_agent_log_in_section("") == ""
    assert wrap_agent_log_in_section("  \n") == ""
    assert wrap_agent_log_in_section("body") == (
        "<details open>\n<summary>Agentic Conversation</summary>\n\nbody\n</details>"
    )
    assert wrap_agent_log_in_section("body", open=False).startswith("<details>\n")
