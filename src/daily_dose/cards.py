"""Card catalog and per-learner review state storage."""
import json
import sqlite3
from datetime import date, datetime
from typing import Iterable, Optional, assert_never

from daily_dose.db import get_connection
from daily_dose.models import (
    CalloutBlock, CardReviewState, CardStatus, ContentBlock, DoDontBlock, Interaction,
    LearningCard, ParagraphBlock, QuestionBlock, QuestionType, ReviewOutcome, RevealBlock,
    Source, StepsBlock, TextBlock,
)

TEXT_BLOCKS = {
    "paragraph": ParagraphBlock,
    "text": TextBlock,
    "callout": CalloutBlock,
    "reveal": RevealBlock,
}


def block_from_dict(data: dict) -> ContentBlock:
    block_type = data.get("type")
    if block_type in TEXT_BLOCKS:
        return TEXT_BLOCKS[block_type](text=data["text"])
    if block_type == "steps":
        return StepsBlock(items=tuple(data.get("items", ())))
    if block_type == "do_dont":
        return DoDontBlock(do=tuple(data.get("do", ())), dont=tuple(data.get("dont", ())))
    if block_type == "question":
        return QuestionBlock(
            question_type=QuestionType(data["question_type"]),
            prompt=data["prompt"],
            options=tuple(data["options"]),
            correct_answer=data["correct_answer"],
            rationale=data.get("rationale", ""),
            difficulty=data.get("difficulty"),
        )
    raise ValueError(f"Unknown content block type: {block_type!r}")


def block_to_dict(block: ContentBlock) -> dict:
    match block:
        case ParagraphBlock(text=text):
            return {"type": "paragraph", "text": text}
        case TextBlock(text=text):
            return {"type": "text", "text": text}
        case CalloutBlock(text=text):
            return {"type": "callout", "text": text}
        case RevealBlock(text=text):
            return {"type": "reveal", "text": text}
        case StepsBlock(items=items):
            return {"type": "steps", "items": list(items)}
        case DoDontBlock(do=do, dont=dont):
            return {"type": "do_dont", "do": list(do), "dont": list(dont)}
        case QuestionBlock():
            return {
                "type": "question",
                "question_type": block.question_type.value,
                "prompt": block.prompt,
                "options": list(block.options),
                "correct_answer": block.correct_answer,
                "rationale": block.rationale,
                "difficulty": block.difficulty,
            }
        case _:
            assert_never(block)


def interaction_from_dict(data: dict) -> Interaction:
    return Interaction(
        type=data.get("type", "mcq"),
        question=data["question"],
        options=tuple(data.get("options", ())),
        correct_index=int(data.get("correct_index", 0)),
        explanation=data.get("explanation", ""),
    )


def card_from_dict(data: dict) -> LearningCard:
    """Build a card from its JSON form (the same shape seed files use)."""
    review_by = data.get("review_by_date")
    return LearningCard(
        id=data["id"],
        title=data["title"],
        topic_id=data["topic_id"],
        role_scope=list(data.get("role_scope", [])),
        content_blocks=[block_from_dict(b) for b in data.get("content_blocks", [])],
        interactions=[interaction_from_dict(i) for i in data.get("interactions", [])],
        sources=[Source(**s) for s in data.get("sources", [])],
        review_by_date=date.fromisoformat(review_by) if review_by else None,
        version=int(data.get("version", 1)),
        status=CardStatus(data.get("status", CardStatus.DRAFT.value)),
        tags=list(data.get("tags") or []),
        batch_id=data.get("batch_id"),
    )


def _card_from_row(row: sqlite3.Row) -> LearningCard:
    return card_from_dict({
        "id": row["id"],
        "title": row["title"],
        "topic_id": row["topic_id"],
        "role_scope": json.loads(row["role_scope"]),
        "content_blocks": json.loads(row["content_blocks"]),
        "interactions": json.loads(row["interactions"]),
        "sources": json.loads(row["sources"]),
        "review_by_date": row["review_by_date"],
        "version": row["version"],
        "status": row["status"],
        "tags": json.loads(row["tags"]),
        "batch_id": row["batch_id"],
    })


def save_card(db_path: str, card: LearningCard, context_id: Optional[str] = None) -> None:
    conn = get_connection(db_path)
    try:
        conn.execute(
            """INSERT OR REPLACE INTO cards
            (id, context_id, topic_id, title, role_scope, content_blocks, interactions, sources,
             review_by_date, version, status, tags, batch_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                card.id, context_id, card.topic_id, card.title,
                json.dumps(card.role_scope),
                json.dumps([block_to_dict(b) for b in card.content_blocks]),
                json.dumps([
                    {"type": i.type, "question": i.question, "options": list(i.options),
                     "correct_index": i.correct_index, "explanation": i.explanation}
                    for i in card.interactions
                ]),
                json.dumps([s.__dict__ for s in card.sources]),
                card.review_by_date.isoformat() if card.review_by_date else None,
                card.version, card.status.value, json.dumps(card.tags), card.batch_id,
            ),
        )
        conn.commit()
    finally:
        conn.close()


def _in_role_scope(scope: list[str], role: str) -> bool:
    # An empty scope means the card or topic is for everyone.
    return not scope or role in scope


def get_eligible_cards(
    db_path: str,
    role: str,
    topic_ids: Optional[Iterable[str]] = None,
    context_id: Optional[str] = None,
) -> list[LearningCard]:
    """Published cards in active topics that are relevant to ``role``."""
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT c.*, t.role_scope AS topic_role_scope
            FROM cards c JOIN topics t ON c.topic_id = t.id
            WHERE c.status = ? AND t.is_active = 1
              AND (c.context_id IS NULL OR c.context_id = ?)
            ORDER BY t.ordering, c.id""",
            (CardStatus.PUBLISHED.value, context_id),
        ).fetchall()
    finally:
        conn.close()

    wanted = set(topic_ids) if topic_ids else None
    cards = []
    for row in rows:
        if wanted is not None and row["topic_id"] not in wanted:
            continue
        if not _in_role_scope(json.loads(row["topic_role_scope"]), role):
            continue
        card = _card_from_row(row)
        if _in_role_scope(card.role_scope, role):
            cards.append(card)
    return cards


def get_cards_by_ids(db_path: str, card_ids: list[str]) -> list[LearningCard]:
    """Cards in the order given; ids that no longer exist are skipped."""
    if not card_ids:
        return []
    conn = get_connection(db_path)
    try:
        placeholders = ",".join("?" for _ in card_ids)
        rows = conn.execute(f"SELECT * FROM cards WHERE id IN ({placeholders})", card_ids).fetchall()
    finally:
        conn.close()
    by_id = {row["id"]: _card_from_row(row) for row in rows}
    return [by_id[cid] for cid in card_ids if cid in by_id]


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _state_from_row(row: sqlite3.Row) -> CardReviewState:
    return CardReviewState(
        card_id=row["card_id"],
        due_at=datetime.fromisoformat(row["due_at"]),
        box=row["box"],
        interval_days=row["interval_days"],
        correct_streak=row["correct_streak"],
        incorrect_streak=row["incorrect_streak"],
        last_reviewed_at=_parse_dt(row["last_reviewed_at"]),
    )


def get_card_states(db_path: str, user_id: str, context_id: str) -> dict[str, CardReviewState]:
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT * FROM card_states WHERE user_id = ? AND context_id = ?",
            (user_id, context_id),
        ).fetchall()
    finally:
        conn.close()
    return {row["card_id"]: _state_from_row(row) for row in rows}


def get_due_states(db_path: str, user_id: str, context_id: str, now: datetime) -> list[dict]:
    """Review queue: states whose due date has passed, earliest first, with card titles."""
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT s.*, c.title, t.name AS topic_name
            FROM card_states s
            JOIN cards c ON s.card_id = c.id
            LEFT JOIN topics t ON c.topic_id = t.id
            WHERE s.user_id = ? AND s.context_id = ? AND s.due_at <= ?
            ORDER BY s.due_at ASC""",
            (user_id, context_id, now.isoformat()),
        ).fetchall()
    finally:
        conn.close()
    return [
        {
            "card_id": row["card_id"],
            "title": row["title"],
            "topic_name": row["topic_name"],
            "due_at": datetime.fromisoformat(row["due_at"]),
            "box": row["box"],
        }
        for row in rows
    ]


def save_card_state(
    conn: sqlite3.Connection,
    user_id: str,
    context_id: str,
    card_id: str,
    outcome: ReviewOutcome,
    reviewed_at: datetime,
) -> None:
    """Upsert one card's state on the caller's connection (no commit)."""
    conn.execute(
        """INSERT INTO card_states
        (user_id, context_id, card_id, box, interval_days, due_at, last_reviewed_at,
         correct_streak, incorrect_streak)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, context_id, card_id) DO UPDATE SET
            box = excluded.box,
            interval_days = excluded.interval_days,
            due_at = excluded.due_at,
            last_reviewed_at = excluded.last_reviewed_at,
            correct_streak = excluded.correct_streak,
            incorrect_streak = excluded.incorrect_streak""",
        (
            user_id, context_id, card_id, outcome.box, outcome.interval_days,
            outcome.due_at.isoformat(), reviewed_at.isoformat(),
            outcome.correct_streak, outcome.incorrect_streak,
        ),
    )
