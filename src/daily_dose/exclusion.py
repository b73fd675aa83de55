"""Recent-question exclusion and question-type variety."""
import json
from typing import Iterable

from loguru import logger

from daily_dose.constants import QUIZ_MAX_TRUE_FALSE, RECENT_SESSION_EXCLUSION_WINDOW
from daily_dose.db import get_connection
from daily_dose.models import Question, QuestionType


def exclude_recent(questions: list[Question], recent_ids: Iterable[str]) -> list[Question]:
    """Drop questions whose id was shown recently. Order is preserved."""
    recent = set(recent_ids)
    if not recent:
        return list(questions)
    return [q for q in questions if q.question_id not in recent]


def apply_variety_constraints(
    questions: list[Question], max_true_false: int = QUIZ_MAX_TRUE_FALSE
) -> list[Question]:
    """Put at most ``max_true_false`` True/False questions ahead of the rest.

    Extra True/False questions are appended after the others rather than
    dropped, so a caller truncating to a length only falls back on them when
    nothing else is left.
    """
    true_false = [q for q in questions if q.question_type == QuestionType.TRUE_FALSE]
    others = [q for q in questions if q.question_type != QuestionType.TRUE_FALSE]

    selected = true_false[:max_true_false] + others
    if len(selected) < len(questions) and len(true_false) > max_true_false:
        needed = len(questions) - len(selected)
        selected += true_false[max_true_false:max_true_false + needed]
    return selected


def question_ids_from_results(card_results) -> set[str]:
    """Collect recorded question ids from a session's stored card results."""
    ids: set[str] = set()
    if not isinstance(card_results, list):
        return ids
    for result in card_results:
        if not isinstance(result, dict):
            continue
        question_ids = result.get("question_ids")
        if isinstance(question_ids, list):
            ids.update(str(qid) for qid in question_ids)
    return ids


def get_recent_question_ids(
    db_path: str,
    user_id: str,
    context_id: str,
    exclude_last_n_sessions: int = RECENT_SESSION_EXCLUSION_WINDOW,
) -> set[str]:
    """Union of question ids answered in the learner's last N completed sessions."""
    if exclude_last_n_sessions <= 0:
        return set()
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT card_results FROM sessions
            WHERE user_id = ? AND context_id = ? AND completed_at IS NOT NULL
            ORDER BY completed_at DESC
            LIMIT ?""",
            (user_id, context_id, exclude_last_n_sessions),
        ).fetchall()
    finally:
        conn.close()

    ids: set[str] = set()
    for row in rows:
        if not row["card_results"]:
            continue
        ids |= question_ids_from_results(json.loads(row["card_results"]))
    logger.debug("Excluding {} recent question ids from {} sessions", len(ids), len(rows))
    return ids
