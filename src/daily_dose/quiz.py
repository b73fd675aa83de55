"""End-of-session quiz assembly."""
import dataclasses
from typing import Iterable

from loguru import logger

from daily_dose.constants import (
    QUIZ_LENGTH_DEFAULT, QUIZ_LENGTH_MAX, QUIZ_LENGTH_MIN, QUIZ_MAX_TRUE_FALSE,
    QUIZ_MAX_TRUE_FALSE_RELAXED, QUIZ_RECALL_CARD_LIMIT, QUIZ_RECALL_QUESTION_LIMIT,
)
from daily_dose.exclusion import apply_variety_constraints, exclude_recent
from daily_dose.models import LearningCard, Question
from daily_dose.questions import extract_all


def clamp_quiz_length(target_length: int) -> int:
    return max(QUIZ_LENGTH_MIN, min(QUIZ_LENGTH_MAX, target_length))


def _questions_for(cards: Iterable[LearningCard]) -> list[Question]:
    seen = set()
    questions = []
    for card in cards:
        for question in extract_all(card):
            if question.question_id not in seen:
                seen.add(question.question_id)
                questions.append(question)
    return questions


def build_session_quiz(
    session_cards: list[LearningCard],
    recall_cards: Iterable[LearningCard] = (),
    recent_question_ids: Iterable[str] = (),
    target_length: int = QUIZ_LENGTH_DEFAULT,
) -> list[Question]:
    """Compose the quiz shown at the end of a session.

    Session-card questions form the pool. Recall cards only top it up, and
    never by more than QUIZ_RECALL_QUESTION_LIMIT questions. Type variety and
    recency exclusion are relaxed, in that order, before the quiz is allowed
    to come up short of the material available.
    """
    length = clamp_quiz_length(target_length)
    recent = set(recent_question_ids)
    recall_cards = list(recall_cards)[:QUIZ_RECALL_CARD_LIMIT]

    session_questions = _questions_for(session_cards)
    session_ids = {q.question_id for q in session_questions}
    pool = exclude_recent(session_questions, recent)

    recall_questions = [q for q in _questions_for(recall_cards) if q.question_id not in session_ids]
    recall_used = 0
    if len(pool) < length:
        for question in exclude_recent(recall_questions, recent):
            if len(pool) >= length or recall_used >= QUIZ_RECALL_QUESTION_LIMIT:
                break
            pool.append(question)
            recall_used += 1

    max_true_false = QUIZ_MAX_TRUE_FALSE_RELAXED if len(pool) < length else QUIZ_MAX_TRUE_FALSE
    selected = apply_variety_constraints(pool, max_true_false)[:length]

    if len(selected) < length:
        logger.debug(
            "Quiz short after exclusion ({}/{}); reusing recently seen questions",
            len(selected), length,
        )
        selected_ids = {q.question_id for q in selected}
        for question in session_questions + recall_questions:
            if len(selected) >= length:
                break
            if question.question_id in selected_ids:
                continue
            is_recall = question.question_id not in session_ids
            if is_recall and recall_used >= QUIZ_RECALL_QUESTION_LIMIT:
                continue
            selected.append(question)
            selected_ids.add(question.question_id)
            if is_recall:
                recall_used += 1

    return [dataclasses.replace(q, order=i) for i, q in enumerate(selected, 1)]
