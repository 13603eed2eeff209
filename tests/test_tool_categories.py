"""Tests for tool category classification."""

import pytest

from agentlog.tool_categories import (
    ToolCategory,
    categorize_tools,
    classify_tool,
    display_tool_name,
    is_likely_custom_agent,
)


@pytest.mark.parametrize(
    "name, category",
    [
        ("Task", ToolCategory.CORE),
        ("Bash", ToolCategory.CORE),
        ("NotebookEdit", ToolCategory.FILE_OPERATIONS),
        ("Grep", ToolCategory.FILE_OPERATIONS),
        ("view", ToolCategory.BUILTIN),
        ("REPORT_PROGRESS", ToolCategory.BUILTIN),
        ("gh-advisory-database", ToolCategory.BUILTIN),
        ("fetch_copilot_cli_documentation", ToolCategory.BUILTIN),
        ("safeoutputs-create_issue", ToolCategory.SAFE_OUTPUTS),
        ("safe_outputs-add_comment", ToolCategory.SAFE_OUTPUTS),
        ("safeinputs-fetch", ToolCategory.SAFE_INPUTS),
        ("safe_inputs-read", ToolCategory.SAFE_INPUTS),
        ("mcp__github__get_issue", ToolCategory.GIT_GITHUB),
        ("mcp__playwright__browser_click", ToolCategory.PLAYWRIGHT),
        ("mcp__serena__find_symbol", ToolCategory.SERENA),
        ("mcp__tavily__search", ToolCategory.MCP),
        ("ListMcpResourcesTool", ToolCategory.MCP),
        ("cli-consistency-checker", ToolCategory.CUSTOM_AGENTS),
        ("WebFetch", ToolCategory.OTHER),
        ("Some-Agent", ToolCategory.OTHER),
    ],
)
def test_classify_tool(name, category) -> None:
    assert classify_tool(name) == category, f"{name} should be {category}"


def test_core_wins_over_builtin() -> None:
    """Bash is both a Core name and, lower-cased, a builtin; the first rule wins."""
    assert classify_tool("Bash") == ToolCategory.CORE
    assert classify_tool("bash") == ToolCategory.BUILTIN


@pytest.mark.parametrize(
    "name, expected",
    [
        ("add-safe-output-type", True),
        ("agent-1", True),
        ("plain", False),
        ("mcp__a-b", False),
        ("safe-agent", False),
        ("Upper-Case", False),
        ("trailing-", False),
        ("", False),
        (None, False),
    ],
)
def test_is_likely_custom_agent(name, expected) -> None:
    assert is_likely_custom_agent(name) is expected


def test_display_names_strip_prefixes() -> None:
    assert display_tool_name("safeoutputs-create_issue", ToolCategory.SAFE_OUTPUTS) == "create_issue"
    assert display_tool_name("safe_inputs-read", ToolCategory.SAFE_INPUTS) == "read"
    assert display_tool_name("mcp__github__get_issue", ToolCategory.GIT_GITHUB) == "github::get_issue"
    assert display_tool_name("ReadMcpResourceTool", ToolCategory.MCP) == "ReadMcpResourceTool"


def test_categorize_tools_keeps_display_order() -> None:
    categories = categorize_tools(["my-agent", "Bash", "mcp__github__get_issue", "Read", "WebFetch"])

    assert list(categories) == list(ToolCategory), "All categories in display order"
    assert categories[ToolCategory.CORE] == ["Bash"]
    assert categories[ToolCategory.FILE_OPERATIONS] == ["Read"]
    assert categories[ToolCategory.GIT_GITHUB] == ["github::get_issue"]
    assert categories[ToolCategory.CUSTOM_AGENTS] == ["my-agent"]
    assert categories[ToolCategory.OTHER] == ["WebFetch"]
    assert categories[ToolCategory.SERENA] == []
