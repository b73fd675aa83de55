"""Session lifecycle: resume or start, complete, and history."""
import json
import sqlite3
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import uuid4

from loguru import logger

from daily_dose.cards import (
    get_card_states, get_cards_by_ids, get_due_states, get_eligible_cards, save_card_state,
)
from daily_dose.constants import (
    CARDS_PER_SESSION_DEFAULT, HISTORY_SESSION_LIMIT, QUIZ_LENGTH_DEFAULT,
    SESSION_RESUME_WINDOW_HOURS, WARMUP_RECALL_MAX,
)
from daily_dose.db import get_connection
from daily_dose.errors import (
    InvalidCardResult, NoEligibleContent, SessionAlreadyCompleted, SessionNotFound,
)
from daily_dose.exclusion import get_recent_question_ids
from daily_dose.models import CardResult, Session
from daily_dose.pathway import record_unit_results
from daily_dose.quiz import build_session_quiz
from daily_dose.scheduler import apply_review_outcome
from daily_dose.scoring import calculate_session_xp, calculate_streak, is_card_correct
from daily_dose.selection import select_session_cards, select_warmup_recall_cards


def should_resume_session(now: datetime, created_at: datetime, completed_at: Optional[datetime]) -> bool:
    """An unfinished session is resumed only while it is recent; older ones are abandoned."""
    if completed_at is not None:
        return False
    return now - created_at < timedelta(hours=SESSION_RESUME_WINDOW_HOURS)


def _results_to_json(results: list[CardResult]) -> str:
    return json.dumps([
        {
            "card_id": r.card_id,
            "correct_count": r.correct_count,
            "question_count": r.question_count,
            "question_ids": list(r.question_ids),
        }
        for r in results
    ])


def _results_from_json(value: Optional[str]) -> list[CardResult]:
    if not value:
        return []
    return [
        CardResult(
            card_id=r["card_id"],
            correct_count=r.get("correct_count", 0),
            question_count=r.get("question_count", 0),
            question_ids=list(r.get("question_ids") or []),
        )
        for r in json.loads(value)
    ]


def _session_from_row(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        context_id=row["context_id"],
        card_ids=json.loads(row["card_ids"]),
        recall_card_ids=json.loads(row["recall_card_ids"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
        card_results=_results_from_json(row["card_results"]),
        questions_attempted=row["questions_attempted"],
        correct_count=row["correct_count"],
        xp_earned=row["xp_earned"],
    )


def get_session(db_path: str, session_id: str) -> Session | None:
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
    finally:
        conn.close()
    return _session_from_row(row) if row else None


def get_open_session(db_path: str, user_id: str, context_id: str) -> Session | None:
    """Most recently created session that has not been completed."""
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            """SELECT * FROM sessions
            WHERE user_id = ? AND context_id = ? AND completed_at IS NULL
            ORDER BY created_at DESC LIMIT 1""",
            (user_id, context_id),
        ).fetchone()
    finally:
        conn.close()
    return _session_from_row(row) if row else None


def create_session(
    db_path: str,
    user_id: str,
    context_id: str,
    card_ids: list[str],
    now: datetime,
    recall_card_ids: Iterable[str] = (),
) -> Session:
    session = Session(
        id=uuid4().hex,
        user_id=user_id,
        context_id=context_id,
        card_ids=list(card_ids),
        recall_card_ids=list(recall_card_ids),
        created_at=now,
    )
    conn = get_connection(db_path)
    try:
        conn.execute(
            """INSERT INTO sessions (id, user_id, context_id, card_ids, recall_card_ids, created_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (
                session.id, user_id, context_id, json.dumps(session.card_ids),
                json.dumps(session.recall_card_ids), now.isoformat(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return session


def start_session(
    db_path: str,
    user_id: str,
    context_id: str,
    role: str,
    now: datetime,
    topic_ids: Optional[Iterable[str]] = None,
    target_count: int = CARDS_PER_SESSION_DEFAULT,
    quiz_length: int = QUIZ_LENGTH_DEFAULT,
) -> dict:
    """Resume the learner's open session if it is recent, otherwise build a new one.

    Returns a dict with ``session``, ``cards``, ``recall_cards``, ``quiz`` and
    ``resumed``. Raises NoEligibleContent when nothing is published for the role.
    """
    recent_ids = get_recent_question_ids(db_path, user_id, context_id)

    open_session = get_open_session(db_path, user_id, context_id)
    if open_session is not None:
        if should_resume_session(now, open_session.created_at, open_session.completed_at):
            cards = get_cards_by_ids(db_path, open_session.card_ids)
            if cards:
                recall_cards = get_cards_by_ids(db_path, open_session.recall_card_ids)
                logger.info("Resuming session {} for {}", open_session.id, user_id)
                return {
                    "session": open_session,
                    "cards": cards,
                    "recall_cards": recall_cards,
                    "quiz": build_session_quiz(cards, recall_cards, recent_ids, quiz_length),
                    "resumed": True,
                }
        else:
            logger.info("Abandoning stale session {} from {}", open_session.id, open_session.created_at)

    eligible = get_eligible_cards(db_path, role, topic_ids, context_id)
    if not eligible:
        raise NoEligibleContent(f"No Daily Dose cards available for role {role!r}")

    states = get_card_states(db_path, user_id, context_id)
    cards = select_session_cards(eligible, states, now, target_count)
    chosen = {c.id for c in cards}
    recall_cards = select_warmup_recall_cards(
        [c for c in eligible if c.id not in chosen], states, now, WARMUP_RECALL_MAX,
    )
    quiz = build_session_quiz(cards, recall_cards, recent_ids, quiz_length)

    session = create_session(
        db_path, user_id, context_id, [c.id for c in cards], now, [c.id for c in recall_cards],
    )
    logger.info(
        "Started session {} for {}: {} cards, {} recall, {} quiz questions",
        session.id, user_id, len(cards), len(recall_cards), len(quiz),
    )
    return {
        "session": session,
        "cards": cards,
        "recall_cards": recall_cards,
        "quiz": quiz,
        "resumed": False,
    }


def validate_card_results(card_results: list[CardResult]) -> None:
    if not card_results:
        raise InvalidCardResult("At least one card result is required")
    for result in card_results:
        if result.correct_count < 0 or result.question_count < 0:
            raise InvalidCardResult(f"Negative counts for card {result.card_id}")
        if result.correct_count > result.question_count:
            raise InvalidCardResult(
                f"Card {result.card_id}: {result.correct_count} correct of {result.question_count}"
            )


def complete_session(
    db_path: str,
    session_id: str,
    user_id: str,
    context_id: str,
    card_results: list[CardResult],
    now: datetime,
) -> dict:
    """Record results, move every answered card through the scheduler and update unit progress.

    All writes happen in one transaction.
    """
    validate_card_results(card_results)

    conn = get_connection(db_path)
    try:
        with conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE id = ? AND user_id = ? AND context_id = ?",
                (session_id, user_id, context_id),
            ).fetchone()
            if row is None:
                raise SessionNotFound(session_id)
            if row["completed_at"]:
                raise SessionAlreadyCompleted(session_id)

            questions = sum(r.question_count for r in card_results)
            correct = sum(r.correct_count for r in card_results)
            xp = calculate_session_xp(correct, questions)
            conn.execute(
                """UPDATE sessions SET card_results = ?, questions_attempted = ?, correct_count = ?,
                xp_earned = ?, completed_at = ? WHERE id = ?""",
                (_results_to_json(card_results), questions, correct, xp, now.isoformat(), session_id),
            )

            outcomes = {}
            for result in card_results:
                existing = conn.execute(
                    """SELECT box, correct_streak, incorrect_streak FROM card_states
                    WHERE user_id = ? AND context_id = ? AND card_id = ?""",
                    (user_id, context_id, result.card_id),
                ).fetchone()
                outcome = apply_review_outcome(
                    current_box=existing["box"] if existing else 1,
                    correct=is_card_correct(result),
                    now=now,
                    correct_streak=existing["correct_streak"] if existing else 0,
                    incorrect_streak=existing["incorrect_streak"] if existing else 0,
                )
                save_card_state(conn, user_id, context_id, result.card_id, outcome, now)
                outcomes[result.card_id] = outcome

            units = record_unit_results(conn, user_id, context_id, card_results, now)
    finally:
        conn.close()

    logger.info(
        "Completed session {}: {}/{} correct, {} XP, {} units updated",
        session_id, correct, questions, xp, len(units),
    )
    return {
        "session_id": session_id,
        "xp_earned": xp,
        "correct_count": correct,
        "questions_attempted": questions,
        "outcomes": outcomes,
        "units_updated": units,
    }


def get_history(
    db_path: str,
    user_id: str,
    context_id: str,
    now: datetime,
    weekday_only: bool = False,
) -> dict:
    """Totals, streak, recent completed sessions and the current review queue."""
    conn = get_connection(db_path)
    try:
        totals = conn.execute(
            """SELECT COUNT(*) AS sessions, COALESCE(SUM(xp_earned), 0) AS xp
            FROM sessions WHERE user_id = ? AND context_id = ? AND completed_at IS NOT NULL""",
            (user_id, context_id),
        ).fetchone()
        rows = conn.execute(
            """SELECT * FROM sessions
            WHERE user_id = ? AND context_id = ? AND completed_at IS NOT NULL
            ORDER BY completed_at DESC LIMIT ?""",
            (user_id, context_id, HISTORY_SESSION_LIMIT),
        ).fetchall()
    finally:
        conn.close()

    recent = [_session_from_row(r) for r in rows]
    return {
        "total_xp": totals["xp"],
        "completed_sessions": totals["sessions"],
        "streak": calculate_streak([s.completed_at for s in recent], now.date(), weekday_only),
        "weekday_only": weekday_only,
        "recent_sessions": recent,
        "review_queue": get_due_states(db_path, user_id, context_id, now),
    }
