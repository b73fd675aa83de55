"""Pathway mastery: unit status, theme RAG and next-unit recommendation."""
import sqlite3
from datetime import datetime
from typing import Optional

from daily_dose.constants import (
    PATHWAY_RAG_AMBER, PATHWAY_RAG_GREEN, PATHWAY_SECURE_ACCURACY, PATHWAY_SECURE_MIN_SESSIONS,
)
from daily_dose.db import get_connection
from daily_dose.models import ThemeRAG, UnitLevel, UnitProgress, UnitStatus


def compute_unit_status(sessions_completed: int, correct_count: int, total_questions: int) -> UnitStatus:
    if sessions_completed <= 0:
        return UnitStatus.NOT_STARTED
    accuracy = correct_count / total_questions if total_questions > 0 else 0.0
    if accuracy >= PATHWAY_SECURE_ACCURACY and sessions_completed >= PATHWAY_SECURE_MIN_SESSIONS:
        return UnitStatus.SECURE
    return UnitStatus.IN_PROGRESS


def compute_theme_rag(units: list[UnitProgress]) -> ThemeRAG:
    """Red/amber/green health of a theme from the share of its units that are secure."""
    if all(u.status == UnitStatus.NOT_STARTED for u in units):
        return ThemeRAG.NOT_STARTED
    ratio = sum(1 for u in units if u.status == UnitStatus.SECURE) / len(units)
    if ratio >= PATHWAY_RAG_GREEN:
        return ThemeRAG.GREEN
    if ratio >= PATHWAY_RAG_AMBER:
        return ThemeRAG.AMBER
    return ThemeRAG.RED


def compute_secure_percentage(units: list[UnitProgress]) -> int:
    if not units:
        return 0
    secure = sum(1 for u in units if u.status == UnitStatus.SECURE)
    return round(secure / len(units) * 100)


def _by_level(units: list[UnitProgress], level: UnitLevel) -> list[UnitProgress]:
    return sorted((u for u in units if u.level == level), key=lambda u: u.ordering)


def recommend_next_unit(units: list[UnitProgress]) -> Optional[str]:
    """Pick the one unit to study next.

    1. First Intro unit (by ordering) that is not yet secure.
    2. Otherwise the weakest Core unit that is not yet secure.
    3. Otherwise the first Stretch unit that is not yet secure.
    4. Otherwise (everything secure) the lowest-accuracy unit, for maintenance.
    """
    if not units:
        return None

    for unit in _by_level(units, UnitLevel.INTRO):
        if unit.status != UnitStatus.SECURE:
            return unit.unit_id

    open_core = [u for u in _by_level(units, UnitLevel.CORE) if u.status != UnitStatus.SECURE]
    if open_core:
        return min(open_core, key=lambda u: u.accuracy).unit_id

    for unit in _by_level(units, UnitLevel.STRETCH):
        if unit.status != UnitStatus.SECURE:
            return unit.unit_id

    # min() keeps the first of equal accuracies, i.e. input order
    return min(units, key=lambda u: u.accuracy).unit_id


def get_theme_units(db_path: str, user_id: str, context_id: str, theme_id: str) -> list[UnitProgress]:
    """Active units of a theme with the learner's counters (zero when never studied)."""
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT u.id, u.level, u.ordering,
                COALESCE(p.sessions_completed, 0) AS sessions_completed,
                COALESCE(p.correct_count, 0) AS correct_count,
                COALESCE(p.total_questions, 0) AS total_questions
            FROM units u
            LEFT JOIN unit_progress p
                ON p.unit_id = u.id AND p.user_id = ? AND p.context_id = ?
            WHERE u.theme_id = ? AND u.is_active = 1
            ORDER BY u.level, u.ordering""",
            (user_id, context_id, theme_id),
        ).fetchall()
    finally:
        conn.close()
    return [
        UnitProgress(
            unit_id=r["id"],
            level=UnitLevel(r["level"]),
            ordering=r["ordering"],
            sessions_completed=r["sessions_completed"],
            correct_count=r["correct_count"],
            total_questions=r["total_questions"],
        )
        for r in rows
    ]


def get_theme_overview(db_path: str, user_id: str, context_id: str) -> list[dict]:
    """Per-theme mastery summary for the pathway screen."""
    conn = get_connection(db_path)
    try:
        themes = conn.execute(
            """SELECT * FROM themes
            WHERE is_active = 1 AND (context_id IS NULL OR context_id = ?)
            ORDER BY ordering, name""",
            (context_id,),
        ).fetchall()
    finally:
        conn.close()

    overview = []
    for theme in themes:
        units = get_theme_units(db_path, user_id, context_id, theme["id"])
        overview.append({
            "id": theme["id"],
            "name": theme["name"],
            "description": theme["description"] or "",
            "rag": compute_theme_rag(units),
            "secure_percentage": compute_secure_percentage(units),
            "unit_count": len(units),
            "secure_unit_count": sum(1 for u in units if u.status == UnitStatus.SECURE),
            "recommended_unit_id": recommend_next_unit(units),
        })
    return overview


def record_unit_results(
    conn: sqlite3.Connection,
    user_id: str,
    context_id: str,
    card_results: list,
    now: datetime,
) -> list[str]:
    """Add a completed session's card results to every unit those cards belong to.

    Runs on the caller's connection so it commits with the rest of the session
    completion. Returns the ids of the units touched.
    """
    per_unit: dict[str, list[int]] = {}
    for result in card_results:
        unit_rows = conn.execute(
            "SELECT unit_id FROM unit_cards WHERE card_id = ?", (result.card_id,)
        ).fetchall()
        for row in unit_rows:
            totals = per_unit.setdefault(row["unit_id"], [0, 0])
            totals[0] += result.correct_count
            totals[1] += result.question_count

    for unit_id, (correct, total) in per_unit.items():
        conn.execute(
            """INSERT INTO unit_progress
            (user_id, context_id, unit_id, sessions_completed, correct_count, total_questions, last_session_at)
            VALUES (?, ?, ?, 1, ?, ?, ?)
            ON CONFLICT(user_id, context_id, unit_id) DO UPDATE SET
                sessions_completed = sessions_completed + 1,
                correct_count = correct_count + excluded.correct_count,
                total_questions = total_questions + excluded.total_questions,
                last_session_at = excluded.last_session_at""",
            (user_id, context_id, unit_id, correct, total, now.isoformat()),
        )
    return list(per_unit)
