"""
Tool categories: grouping of the tool names an agent announces at startup.

This module defines:
1. The categories, in display order
2. The name sets and prefixes that place a tool in a category
3. classify_tool(), where the first matching rule wins

Classification is heuristic. A kebab-case name is only *likely* a custom agent.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import StrEnum

from agentlog.tool_format import format_mcp_name


class ToolCategory(StrEnum):
    CORE = "Core"
    FILE_OPERATIONS = "File Operations"
    BUILTIN = "Builtin"
    SAFE_OUTPUTS = "Safe Outputs"
    SAFE_INPUTS = "Safe Inputs"
    GIT_GITHUB = "Git/GitHub"
    PLAYWRIGHT = "Playwright"
    SERENA = "Serena"
    MCP = "MCP"
    CUSTOM_AGENTS = "Custom Agents"
    OTHER = "Other"


# =============================================================================
# NAME SETS
# =============================================================================

CORE_TOOLS: frozenset[str] = frozenset({"Task", "Bash", "BashOutput", "KillBash", "ExitPlanMode"})

FILE_OPERATION_TOOLS: frozenset[str] = frozenset(
    {"Read", "Edit", "MultiEdit", "Write", "LS", "Grep", "Glob", "NotebookEdit"}
)

# Matched case-insensitively.
BUILTIN_TOOLS: frozenset[str] = frozenset(
    {
        "bash",
        "write_bash",
        "read_bash",
        "stop_bash",
        "list_bash",
        "grep",
        "glob",
        "view",
        "create",
        "edit",
        "store_memory",
        "code_review",
        "codeql_checker",
        "report_progress",
        "report_intent",
        "gh-advisory-database",
    }
)

CLI_INTERNAL_TOOLS: frozenset[str] = frozenset({"fetch_copilot_cli_documentation"})

MCP_RESOURCE_TOOLS: frozenset[str] = frozenset({"ListMcpResourcesTool", "ReadMcpResourceTool"})

# =============================================================================
# PREFIXES
# =============================================================================

SAFE_OUTPUT_PREFIXES = ("safeoutputs-", "safe_outputs-")
SAFE_INPUT_PREFIXES = ("safeinputs-", "safe_inputs-")

MCP_PROVIDER_PREFIXES: dict[str, ToolCategory] = {
    "mcp__github__": ToolCategory.GIT_GITHUB,
    "mcp__playwright__": ToolCategory.PLAYWRIGHT,
    "mcp__serena__": ToolCategory.SERENA,
}

_KEBAB_CASE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)+$")


# =============================================================================
# CLASSIFICATION
# =============================================================================


def is_likely_custom_agent(tool_name: str | None) -> bool:
    """True for kebab-case names such as ``cli-consistency-checker``."""
    if not tool_name or not isinstance(tool_name, str):
        return False
    if "-" not in tool_name:
        return False
    if "__" in tool_name:
        return False
    if tool_name.lower().startswith("safe"):
        return False
    return _KEBAB_CASE.fullmatch(tool_name) is not None


def classify_tool(tool_name: str) -> ToolCategory:
    """Place a tool name in its category. The first matching rule wins."""
    if tool_name in CORE_TOOLS:
        return ToolCategory.CORE
    if tool_name in FILE_OPERATION_TOOLS:
        return ToolCategory.FILE_OPERATIONS

    lowered = tool_name.lower()
    if lowered in BUILTIN_TOOLS or lowered in CLI_INTERNAL_TOOLS:
        return ToolCategory.BUILTIN

    if tool_name.startswith(SAFE_OUTPUT_PREFIXES):
        return ToolCategory.SAFE_OUTPUTS
    if tool_name.startswith(SAFE_INPUT_PREFIXES):
        return ToolCategory.SAFE_INPUTS

    for prefix, category in MCP_PROVIDER_PREFIXES.items():
        if tool_name.startswith(prefix):
            return category
    if tool_name.startswith("mcp__") or tool_name in MCP_RESOURCE_TOOLS:
        return ToolCategory.MCP

    if is_likely_custom_agent(tool_name):
        return ToolCategory.CUSTOM_AGENTS
    return ToolCategory.OTHER


def _strip_prefix(tool_name: str, prefixes: tuple[str, ...]) -> str:
    for prefix in prefixes:
        if tool_name.startswith(prefix):
            return tool_name[len(prefix) :]
    return tool_name


def display_tool_name(tool_name: str, category: ToolCategory) -> str:
    """Name as listed under its category heading."""
    if category == ToolCategory.SAFE_OUTPUTS:
        return _strip_prefix(tool_name, SAFE_OUTPUT_PREFIXES)
    if category == ToolCategory.SAFE_INPUTS:
        return _strip_prefix(tool_name, SAFE_INPUT_PREFIXES)
    if tool_name.startswith("mcp__"):
        return format_mcp_name(tool_name)
    return tool_name


def categorize_tools(tools: Iterable[str]) -> dict[ToolCategory, list[str]]:
    """Group tool names by category.

    Args:
        tools: Tool names in announcement order

    Returns:
        Every category in display order, each with its display names (possibly empty)
    """
    categories: dict[ToolCategory, list[str]] = {category: [] for category in ToolCategory}
    for tool in tools:
        category = classify_tool(tool)
        categories[category].append(display_tool_name(tool, category))
    return categories
