"""Leitner-box review scheduling."""
from datetime import datetime, timedelta

from daily_dose.constants import DUE_HOUR, DUE_MINUTE, MAX_BOX, MIN_BOX, REVIEW_INTERVALS_DAYS
from daily_dose.models import ReviewOutcome


def clamp_box(box: int) -> int:
    return max(MIN_BOX, min(MAX_BOX, box))


def interval_for_box(box: int) -> int:
    """Days until the next review for a card sitting in ``box``."""
    return REVIEW_INTERVALS_DAYS[clamp_box(box) - 1]


def due_date_for(now: datetime, interval_days: int) -> datetime:
    """Shift ``now`` by the interval and pin it to the daily due time."""
    due = now + timedelta(days=interval_days)
    return due.replace(hour=DUE_HOUR, minute=DUE_MINUTE, second=0, microsecond=0)


def apply_review_outcome(
    current_box: int,
    correct: bool,
    now: datetime,
    correct_streak: int = 0,
    incorrect_streak: int = 0,
) -> ReviewOutcome:
    """Move a card up or down one box and compute its next due date.

    Args:
        current_box: Box the card is in now. Out-of-range values are clamped.
        correct: Whether the card was answered correctly this session.
        now: Review time; the due date keeps its tzinfo.
        correct_streak: Consecutive correct reviews before this one.
        incorrect_streak: Consecutive incorrect reviews before this one.

    Returns:
        ReviewOutcome with the new box, interval, due date and streaks.
    """
    box = clamp_box(current_box)
    if correct:
        box = min(MAX_BOX, box + 1)
        correct_streak += 1
        incorrect_streak = 0
    else:
        box = max(MIN_BOX, box - 1)
        incorrect_streak += 1
        correct_streak = 0

    interval = interval_for_box(box)
    return ReviewOutcome(
        box=box,
        interval_days=interval,
        due_at=due_date_for(now, interval),
        correct_streak=correct_streak,
        incorrect_streak=incorrect_streak,
    )
