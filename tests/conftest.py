from datetime import datetime, timedelta

import pytest

from daily_dose.models import (
    CardReviewState, CardStatus, Interaction, LearningCard, ParagraphBlock, QuestionBlock,
    QuestionType,
)

NOW = datetime(2026, 3, 2, 12, 0)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_daily_dose.db")
    return db_path


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_card():
    """Build a published card with ``n_mcq`` MCQ and ``n_tf`` True/False blocks."""
    def _make(card_id, batch_id=None, n_mcq=1, n_tf=0, topic_id="t1", interactions=(), **kwargs):
        blocks = [ParagraphBlock(text=f"About {card_id}.")]
        for i in range(n_mcq):
            blocks.append(QuestionBlock(
                question_type=QuestionType.MCQ,
                prompt=f"{card_id} question {i}?",
                options=("a", "b", "c"),
                correct_answer="a",
            ))
        for i in range(n_tf):
            blocks.append(QuestionBlock(
                question_type=QuestionType.TRUE_FALSE,
                prompt=f"{card_id} statement {i}.",
                options=("True", "False"),
                correct_answer="True",
            ))
        return LearningCard(
            id=card_id,
            title=f"Card {card_id}",
            topic_id=topic_id,
            content_blocks=blocks,
            interactions=list(interactions),
            status=kwargs.pop("status", CardStatus.PUBLISHED),
            batch_id=batch_id,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_state():
    def _make(card_id, due_in_days=0, incorrect_streak=0, last_reviewed_days_ago=None, box=1):
        last = NOW - timedelta(days=last_reviewed_days_ago) if last_reviewed_days_ago is not None else None
        return CardReviewState(
            card_id=card_id,
            due_at=NOW + timedelta(days=due_in_days),
            box=box,
            incorrect_streak=incorrect_streak,
            last_reviewed_at=last,
        )
    return _make


@pytest.fixture
def interaction():
    def _make(question="Pick one", type="mcq", options=("x", "y"), correct_index=0):
        return Interaction(type=type, question=question, options=tuple(options), correct_index=correct_index)
    return _make
