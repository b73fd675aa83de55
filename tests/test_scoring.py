# tests/test_scoring.py
from datetime import date, datetime

from daily_dose.models import CardResult
from daily_dose.scoring import (
    calculate_accuracy, calculate_session_xp, calculate_streak, is_card_correct,
)


def test_accuracy_handles_zero_questions():
    assert calculate_accuracy(0, 0) == 0.0
    assert calculate_accuracy(3, 4) == 0.75


def test_card_correct_threshold():
    assert is_card_correct(CardResult("c", 7, 10))
    assert not is_card_correct(CardResult("c", 6, 10))
    assert not is_card_correct(CardResult("c", 0, 0))


def test_session_xp():
    assert calculate_session_xp(0, 0) == 0
    assert calculate_session_xp(0, 5) == 10
    assert calculate_session_xp(4, 5) == 30


def test_streak_counts_consecutive_days():
    today = date(2026, 3, 4)  # Wednesday
    done = [datetime(2026, 3, 4, 9), datetime(2026, 3, 3, 18), datetime(2026, 3, 2, 8), datetime(2026, 2, 27, 8)]
    assert calculate_streak(done, today) == 3


def test_streak_alive_before_todays_session():
    today = date(2026, 3, 4)
    assert calculate_streak([date(2026, 3, 3), date(2026, 3, 2)], today) == 2


def test_streak_broken_by_a_missed_day():
    today = date(2026, 3, 4)
    assert calculate_streak([date(2026, 3, 2)], today) == 0
    assert calculate_streak([], today) == 0


def test_weekday_streak_skips_weekend():
    monday = date(2026, 3, 2)
    done = [date(2026, 3, 2), date(2026, 2, 27), date(2026, 2, 26)]  # Mon, Fri, Thu
    assert calculate_streak(done, monday, weekday_only=True) == 3
    assert calculate_streak(done, monday, weekday_only=False) == 1


def test_weekday_streak_on_a_weekend_day():
    saturday = date(2026, 2, 28)
    done = [date(2026, 2, 27), date(2026, 2, 26)]
    assert calculate_streak(done, saturday, weekday_only=True) == 2
