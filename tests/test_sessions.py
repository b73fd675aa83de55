# tests/test_sessions.py
import sqlite3
from datetime import timedelta

import pytest

from daily_dose.cards import get_card_states
from daily_dose.db import get_connection, init_db
from daily_dose.errors import (
    InvalidCardResult, NoEligibleContent, SessionAlreadyCompleted, SessionNotFound,
)
from daily_dose.models import CardResult
from daily_dose.sessions import (
    complete_session, get_history, get_open_session, get_session, should_resume_session,
    start_session,
)
from daily_dose.seed import SAMPLE_CATALOG, load_catalog


@pytest.fixture
def seeded_db(tmp_db):
    init_db(tmp_db)
    load_catalog(tmp_db, SAMPLE_CATALOG)
    return tmp_db


def perfect_results(quiz):
    """Card results for answering every quiz question correctly."""
    results = {}
    for q in quiz:
        r = results.setdefault(q.card_id, CardResult(q.card_id, 0, 0))
        r.correct_count += 1
        r.question_count += 1
        r.question_ids.append(q.question_id)
    return list(results.values())


# --- should_resume_session ---

def test_resume_window(now):
    assert should_resume_session(now, now - timedelta(hours=7, minutes=59), None)
    assert not should_resume_session(now, now - timedelta(hours=8), None)
    assert not should_resume_session(now, now - timedelta(minutes=5), now)


# --- start_session ---

def test_start_session_draws_a_whole_batch(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    assert started["resumed"] is False
    assert {c.id for c in started["cards"]} == {"c-chest-pain", "c-stroke", "c-sepsis", "c-anaphylaxis"}
    assert started["recall_cards"] == []
    assert [q.order for q in started["quiz"]] == [1, 2, 3, 4, 5]

    stored = get_session(seeded_db, started["session"].id)
    assert stored.card_ids == [c.id for c in started["cards"]]
    assert stored.completed_at is None


def test_start_session_resumes_recent_open_session(seeded_db, now):
    first = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    again = start_session(seeded_db, "u1", "s1", "ADMIN", now + timedelta(hours=2))
    assert again["resumed"] is True
    assert again["session"].id == first["session"].id
    assert [c.id for c in again["cards"]] == [c.id for c in first["cards"]]


def test_start_session_abandons_stale_session(seeded_db, now):
    first = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    later = start_session(seeded_db, "u1", "s1", "ADMIN", now + timedelta(hours=9))
    assert later["resumed"] is False
    assert later["session"].id != first["session"].id
    assert get_session(seeded_db, first["session"].id).completed_at is None
    assert get_open_session(seeded_db, "u1", "s1").id == later["session"].id


def test_sessions_are_per_learner(seeded_db, now):
    first = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    other = start_session(seeded_db, "u2", "s1", "ADMIN", now)
    assert other["resumed"] is False
    assert other["session"].id != first["session"].id


def test_start_session_without_content(seeded_db, now):
    with pytest.raises(NoEligibleContent):
        start_session(seeded_db, "u1", "s1", "GP", now, topic_ids=["t-admin"])


# --- complete_session ---

def test_complete_session_updates_states_units_and_xp(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    results = perfect_results(started["quiz"])

    summary = complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)

    assert summary["questions_attempted"] == 5
    assert summary["correct_count"] == 5
    assert summary["xp_earned"] == 35
    assert set(summary["units_updated"]) == {"u-urgent-intro", "u-urgent-core"}

    states = get_card_states(seeded_db, "u1", "s1")
    assert set(states) == {r.card_id for r in results}
    assert all(s.box == 2 and s.interval_days == 3 for s in states.values())

    stored = get_session(seeded_db, started["session"].id)
    assert stored.completed_at == now
    assert stored.xp_earned == 35
    assert stored.card_results == results


def test_incorrect_card_stays_in_box_one(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    results = perfect_results(started["quiz"])
    results[0].correct_count = 0
    complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)

    state = get_card_states(seeded_db, "u1", "s1")[results[0].card_id]
    assert state.box == 1
    assert state.incorrect_streak == 1
    assert state.due_at == (now + timedelta(days=1)).replace(hour=8, minute=0)


def test_complete_session_twice_rejected(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    results = perfect_results(started["quiz"])
    complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)
    with pytest.raises(SessionAlreadyCompleted):
        complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)


def test_complete_unknown_or_foreign_session(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    results = perfect_results(started["quiz"])
    with pytest.raises(SessionNotFound):
        complete_session(seeded_db, "missing", "u1", "s1", results, now)
    with pytest.raises(SessionNotFound):
        complete_session(seeded_db, started["session"].id, "u2", "s1", results, now)


@pytest.mark.parametrize("results", [
    [],
    [CardResult("c-stroke", 3, 2)],
    [CardResult("c-stroke", -1, 2)],
])
def test_invalid_results_rejected(seeded_db, now, results):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    with pytest.raises(InvalidCardResult):
        complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)


def test_failed_completion_leaves_nothing_behind(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    results = [CardResult("c-stroke", 1, 1), CardResult("no-such-card", 1, 1)]
    with pytest.raises(sqlite3.IntegrityError):
        complete_session(seeded_db, started["session"].id, "u1", "s1", results, now)

    assert get_session(seeded_db, started["session"].id).completed_at is None
    assert get_card_states(seeded_db, "u1", "s1") == {}
    conn = get_connection(seeded_db)
    assert conn.execute("SELECT COUNT(*) FROM unit_progress").fetchone()[0] == 0
    conn.close()


def test_next_session_prefers_unseen_questions(seeded_db, now):
    first = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    complete_session(seeded_db, first["session"].id, "u1", "s1", perfect_results(first["quiz"]), now)

    second = start_session(seeded_db, "u1", "s1", "ADMIN", now + timedelta(hours=1))
    assert [c.id for c in second["cards"]][:2] == ["c-new-patient", "c-repeat-rx"]
    quiz = second["quiz"]
    assert {q.card_id for q in quiz[:2]} == {"c-new-patient", "c-repeat-rx"}
    assert len({q.question_id for q in quiz}) == len(quiz)


# --- get_history ---

def test_history_totals_streak_and_queue(seeded_db, now):
    started = start_session(seeded_db, "u1", "s1", "ADMIN", now)
    complete_session(seeded_db, started["session"].id, "u1", "s1", perfect_results(started["quiz"]), now)

    history = get_history(seeded_db, "u1", "s1", now)
    assert history["total_xp"] == 35
    assert history["completed_sessions"] == 1
    assert history["streak"] == 1
    assert history["review_queue"] == []
    assert [s.id for s in history["recent_sessions"]] == [started["session"].id]

    later = get_history(seeded_db, "u1", "s1", now + timedelta(days=3))
    assert len(later["review_queue"]) == 4
    assert later["streak"] == 0


def test_history_ignores_open_sessions(seeded_db, now):
    start_session(seeded_db, "u1", "s1", "ADMIN", now)
    history = get_history(seeded_db, "u1", "s1", now)
    assert history["completed_sessions"] == 0
    assert history["total_xp"] == 0
    assert history["recent_sessions"] == []
