"""Session scoring: accuracy, per-card correctness, XP and streaks."""
from datetime import date, datetime, timedelta
from typing import Iterable

from daily_dose.constants import CARD_CORRECT_THRESHOLD, XP_PER_CORRECT, XP_PER_SESSION
from daily_dose.models import CardResult


def calculate_accuracy(correct_count: int, question_count: int) -> float:
    if question_count <= 0:
        return 0.0
    return correct_count / question_count


def is_card_correct(result: CardResult) -> bool:
    """A card counts as answered correctly when enough of its questions were right."""
    if result.question_count <= 0:
        return False
    return calculate_accuracy(result.correct_count, result.question_count) >= CARD_CORRECT_THRESHOLD


def calculate_session_xp(correct_count: int, questions_attempted: int) -> int:
    if questions_attempted <= 0:
        return 0
    return XP_PER_SESSION + XP_PER_CORRECT * max(0, correct_count)


def _previous_day(day: date, weekday_only: bool) -> date:
    day -= timedelta(days=1)
    while weekday_only and day.weekday() >= 5:
        day -= timedelta(days=1)
    return day


def calculate_streak(completed: Iterable[datetime | date], today: date, weekday_only: bool = False) -> int:
    """Consecutive days (or weekdays) with at least one completed session.

    A streak is still alive if today has no session yet but the previous
    counted day does. With ``weekday_only`` weekends neither extend nor break it.
    """
    days = {d.date() if isinstance(d, datetime) else d for d in completed}
    cursor = today
    if weekday_only and cursor.weekday() >= 5:
        cursor = _previous_day(cursor, weekday_only)
    if cursor not in days:
        cursor = _previous_day(cursor, weekday_only)

    streak = 0
    while cursor in days:
        streak += 1
        cursor = _previous_day(cursor, weekday_only)
    return streak
