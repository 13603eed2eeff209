"""Correlate tool invocations with their results.

Results arrive in later user turns, not necessarily in invocation order, so
the index is built from a full scan before any rendering starts.
"""

from __future__ import annotations

from collections.abc import Iterable

from agentlog.schemas import Entry, EntryKind, ToolResultBlock

ICON_SUCCESS = "✅"
ICON_ERROR = "❌"
ICON_UNKNOWN = "❓"


class CallPairingIndex:
    """Mapping of tool_use_id to its ToolResultBlock. Last write wins."""

    def __init__(self, results: dict[str, ToolResultBlock] | None = None):
        self._results: dict[str, ToolResultBlock] = results or {}

    @classmethod
    def from_entries(cls, entries: Iterable[Entry]) -> CallPairingIndex:
        results: dict[str, ToolResultBlock] = {}
        for entry in entries:
            if entry.kind != EntryKind.USER:
                continue
            for result in entry.tool_results():
                if result.tool_use_id:
                    results[result.tool_use_id] = result
        return cls(results)

    def get(self, tool_use_id: str) -> ToolResultBlock | None:
        return self._results.get(tool_use_id)

    def status_icon(self, tool_use_id: str) -> str:
        """Glyph for an invocation: error, success, or unknown when unpaired."""
        return result_status_icon(self.get(tool_use_id))

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, tool_use_id: object) -> bool:
        return tool_use_id in self._results


def result_status_icon(result: ToolResultBlock | None) -> str:
    if result is None:
        return ICON_UNKNOWN
    return ICON_ERROR if result.is_error else ICON_SUCCESS
