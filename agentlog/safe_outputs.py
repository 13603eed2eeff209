"""Preview of the safe-output records an agent emitted.

Safe outputs are JSONL records (create_issue, add_comment, ...) that are
applied later by gated jobs. Only a short preview is rendered here.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from agentlog.tool_format import stringify, truncate_string

logger = logging.getLogger(__name__)

PLAIN_TITLE_LENGTH = 60
PLAIN_BODY_LENGTH = 80
MARKDOWN_BODY_LENGTH = 200


def parse_safe_outputs(content: str) -> list[Any]:
    """Parse JSONL, skipping lines that are not valid JSON."""
    entries = []
    for line in content.strip().split("\n"):
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"Skipped invalid safe-output line: {line[:80]}")
            continue
    return entries


def _field(entry: Any, key: str) -> Any:
    return entry.get(key) if isinstance(entry, dict) else None


def _plural(count: int) -> str:
    return "entry" if count == 1 else "entries"


def format_safe_outputs_preview(
    content: str | None,
    *,
    plain_text: bool = False,
    max_entries: int = 5,
) -> str:
    """Render the first few safe-output records.

    Args:
        content: Raw JSONL from the safe outputs file
        plain_text: Console format instead of markdown
        max_entries: Number of records to show

    Returns:
        Preview text, "" when there is nothing to show
    """
    if not content or not content.strip():
        return ""

    entries = parse_safe_outputs(content)
    if not entries:
        return ""

    shown = entries[:max_entries]
    remaining = len(entries) - max_entries
    preview: list[str] = []

    if plain_text:
        preview.append("")
        preview.append("Safe Outputs Preview:")
        preview.append(f"  Total: {len(entries)} {_plural(len(entries))}")

        for i, entry in enumerate(shown, start=1):
            preview.append("")
            preview.append(f"  [{i}] {stringify(_field(entry, 'type')) or 'unknown'}")
            title = _field(entry, "title")
            if title:
                preview.append(f"      Title: {truncate_string(stringify(title), PLAIN_TITLE_LENGTH)}")
            body = _field(entry, "body")
            if body:
                body_text = stringify(body).replace("\n", " ")
                preview.append(f"      Body: {truncate_string(body_text, PLAIN_BODY_LENGTH)}")

        if remaining > 0:
            preview.append("")
            preview.append(f"  ... and {remaining} more {_plural(remaining)}")
    else:
        preview.append("")
        preview.append("<details>")
        preview.append("<summary>Safe Outputs</summary>\n")
        preview.append(f"**Total Entries:** {len(entries)}")
        preview.append("")

        for i, entry in enumerate(shown, start=1):
            preview.append(f"**{i}. {stringify(_field(entry, 'type')) or 'Unknown Type'}**")
            preview.append("")

            title = _field(entry, "title")
            if title:
                preview.append(f"**Title:** {stringify(title)}")
                preview.append("")

            body = _field(entry, "body")
            if body:
                preview.append("<details>")
                preview.append("<summary>Preview</summary>")
                preview.append("")
                preview.append("```")
                preview.append(truncate_string(stringify(body), MARKDOWN_BODY_LENGTH))
                preview.append("```")
                preview.append("</details>")
                preview.append("")

        if remaining > 0:
            preview.append(f"*... and {remaining} more {_plural(remaining)}*")
            preview.append("")

        preview.append("</details>")

    return "\n".join(preview)
