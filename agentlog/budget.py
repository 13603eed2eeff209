"""Byte budget for step summaries.

CI step summaries are rejected above 1024KB, so rendering stops at 1000KB and
a fixed warning is appended instead.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

MAX_STEP_SUMMARY_SIZE = 1000 * 1024

# Appended directly by renderers, never counted against the budget.
SIZE_LIMIT_WARNING = "\n\n⚠️ *Step summary size limit reached. Additional content truncated.*\n\n"


class StepSummaryTracker:
    """Accumulates the UTF-8 size of rendered content against a ceiling.

    Once a single add() would cross the ceiling the tracker latches: that
    fragment and every later one are refused.
    """

    def __init__(self, max_size: int = MAX_STEP_SUMMARY_SIZE):
        self.current_size = 0
        self.max_size = max_size
        self.limit_reached = False

    def add(self, content: str) -> bool:
        """Account for a fragment.

        Args:
            content: Fragment about to be appended to the report

        Returns:
            True if the fragment fits and was counted, False once the limit is reached
        """
        if self.limit_reached:
            return False

        content_size = len(content.encode("utf-8"))
        if self.current_size + content_size > self.max_size:
            self.limit_reached = True
            logger.info(
                f"Step summary budget reached at {self.current_size} bytes "
                f"(fragment of {content_size} bytes refused, max {self.max_size})"
            )
            return False

        self.current_size += content_size
        return True

    def is_limit_reached(self) -> bool:
        return self.limit_reached

    @property
    def size(self) -> int:
        return self.current_size

    def reset(self) -> None:
        self.current_size = 0
        self.limit_reached = False
