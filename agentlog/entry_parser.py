"""
Raw transcript text to ordered entries.

Agent engines write their transcript either as one JSON array or as JSON
Lines, and the JSONL variant is often interleaved with timestamped debug
output. parse_log_entries() accepts both and drops anything that is not a
JSON object. build_transcript() then normalizes the raw dicts into the typed
models in agentlog.schemas.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from agentlog.schemas import (
    CONTENT_BLOCK_TYPES,
    ContentBlock,
    Entry,
    EntryKind,
    InitInfo,
    StatsInfo,
    Transcript,
)

logger = logging.getLogger(__name__)

_CONTENT_BLOCK_ADAPTER: TypeAdapter[Any] = TypeAdapter(ContentBlock)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {token}")


def _loads(text: str) -> Any:
    """json.loads() that rejects NaN, Infinity and -Infinity."""
    return json.loads(text, parse_constant=_reject_constant)


def parse_log_entries(log_content: str) -> list[Any] | None:
    """Parse raw transcript text into a list of entries.

    The whole text is first tried as a single JSON array. If that fails (or
    yields something other than a non-empty array) the text is read line by
    line: blank lines are skipped, a line starting with ``[{`` is parsed as an
    embedded array whose elements are spliced in, lines not starting with
    ``{`` are treated as noise, and each remaining line is parsed as one JSON
    object. Lines that fail to parse are skipped.

    Args:
        log_content: Raw transcript text

    Returns:
        The entries in order, or None when nothing could be parsed
    """
    try:
        parsed = _loads(log_content)
    except (TypeError, ValueError):
        parsed = None
    if isinstance(parsed, list) and parsed:
        return parsed

    entries: list[Any] = []
    skipped = 0
    for line in (log_content or "").split("\n"):
        line = line.strip()
        if not line:
            continue

        if line.startswith("[{"):
            try:
                array_entries = _loads(line)
            except ValueError:
                skipped += 1
                continue
            if isinstance(array_entries, list):
                entries.extend(array_entries)
                continue

        if not line.startswith("{"):
            skipped += 1
            continue

        try:
            entries.append(_loads(line))
        except ValueError:
            skipped += 1
            continue

    if skipped:
        logger.debug(f"Skipped {skipped} non-JSON transcript lines")

    if not entries:
        return None
    return entries


def _parse_content_blocks(raw_content: Any) -> list[Any]:
    if not isinstance(raw_content, list):
        return []

    blocks = []
    for raw_block in raw_content:
        if not isinstance(raw_block, dict) or raw_block.get("type") not in CONTENT_BLOCK_TYPES:
            continue
        try:
            blocks.append(_CONTENT_BLOCK_ADAPTER.validate_python(raw_block))
        except ValidationError as e:
            logger.debug(f"Dropped malformed {raw_block.get('type')} block: {e}")
    return blocks


def normalize_entry(raw: dict[str, Any]) -> Entry:
    """Normalize one raw record into an Entry."""
    raw_type = raw.get("type")
    raw_type = raw_type if isinstance(raw_type, str) else ""

    if raw_type == "system" and raw.get("subtype") == "init":
        return Entry(kind=EntryKind.SYSTEM_INIT, raw_type=raw_type, init=InitInfo.model_validate(raw))

    if raw_type in (EntryKind.ASSISTANT, EntryKind.USER):
        message = raw.get("message")
        raw_content = message.get("content") if isinstance(message, dict) else None
        return Entry(
            kind=EntryKind(raw_type),
            raw_type=raw_type,
            content=_parse_content_blocks(raw_content),
        )

    return Entry(kind=EntryKind.OTHER, raw_type=raw_type)


def build_transcript(raw_entries: list[Any]) -> Transcript:
    """Normalize parsed entries into a Transcript.

    Non-object elements are ignored. The first system-init entry provides the
    initialization info and the last element of the sequence provides the run
    statistics.

    Args:
        raw_entries: Output of parse_log_entries()

    Returns:
        Transcript with typed entries, init info and stats
    """
    entries = [normalize_entry(raw) for raw in raw_entries if isinstance(raw, dict)]

    init = next((entry.init for entry in entries if entry.kind == EntryKind.SYSTEM_INIT), None)

    stats = None
    if raw_entries and isinstance(raw_entries[-1], dict):
        stats = StatsInfo.model_validate(raw_entries[-1])

    return Transcript(entries=entries, init=init, stats=stats)
