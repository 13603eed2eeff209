"""Tests for the step summary byte budget."""

from agentlog.budget import MAX_STEP_SUMMARY_SIZE, SIZE_LIMIT_WARNING, StepSummaryTracker


def test_default_ceiling() -> None:
    assert StepSummaryTracker().max_size == MAX_STEP_SUMMARY_SIZE == 1024000


def test_add_counts_utf8_bytes() -> None:
    tracker = StepSummaryTracker(max_size=100)

    assert tracker.add("✅")
    assert tracker.size == 3, "Check mark is three bytes in UTF-8"


def test_fragment_reaching_exact_limit_is_accepted() -> None:
    tracker = StepSummaryTracker(max_size=10)

    assert tracker.add("12345")
    assert tracker.add("67890")
    assert not tracker.is_limit_reached()


def test_limit_latches_after_first_refusal() -> None:
    """Once a fragment is refused, even tiny fragments are refused."""
    tracker = StepSummaryTracker(max_size=10)

    assert tracker.add("12345678")
    assert not tracker.add("abc")
    assert tracker.is_limit_reached()
    assert not tracker.add("")
    assert not tracker.add("x")
    assert tracker.size == 8, "Refused fragments must not be counted"


def test_reset_clears_state() -> None:
    tracker = StepSummaryTracker(max_size=4)
    tracker.add("toolong")
    tracker.reset()

    assert tracker.size == 0
    assert not tracker.is_limit_reached()
    assert tracker.add("ok")


def test_warning_text() -> None:
    assert "Step summary size limit reached" in SIZE_LIMIT_WARNING
    assert SIZE_LIMIT_WARNING.startswith("\n\n⚠️")
