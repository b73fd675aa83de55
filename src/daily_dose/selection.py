"""Choose the cards for a session and its warm-up recall."""
from datetime import datetime
from typing import Mapping

from loguru import logger

from daily_dose.constants import (
    CARDS_PER_SESSION_DEFAULT, CARDS_PER_SESSION_MAX, CARDS_PER_SESSION_MIN, NO_BATCH,
    RECALL_ELIGIBILITY_DAYS, WARMUP_RECALL_MAX,
)
from daily_dose.models import CardReviewState, LearningCard


def clamp_session_size(target_count: int) -> int:
    return max(CARDS_PER_SESSION_MIN, min(CARDS_PER_SESSION_MAX, target_count))


def _unique(cards: list[LearningCard]) -> list[LearningCard]:
    seen = set()
    result = []
    for card in cards:
        if card.id not in seen:
            seen.add(card.id)
            result.append(card)
    return result


def _fill(selected: list[LearningCard], candidates: list[LearningCard], count: int) -> list[LearningCard]:
    chosen = {c.id for c in selected}
    for card in candidates:
        if len(selected) >= count:
            break
        if card.id not in chosen:
            selected.append(card)
            chosen.add(card.id)
    return selected


def priority_order(
    eligible_cards: list[LearningCard],
    card_states: Mapping[str, CardReviewState],
    now: datetime,
) -> list[LearningCard]:
    """Due cards, then never-seen cards, then cards with a live incorrect streak."""
    due = [c for c in eligible_cards if c.id in card_states and card_states[c.id].due_at <= now]
    new = [c for c in eligible_cards if c.id not in card_states]
    struggling = [
        c for c in eligible_cards
        if c.id in card_states and card_states[c.id].incorrect_streak > 0
    ]
    return _unique(due + new + struggling)


def select_session_cards(
    eligible_cards: list[LearningCard],
    card_states: Mapping[str, CardReviewState],
    now: datetime,
    target_count: int = CARDS_PER_SESSION_DEFAULT,
) -> list[LearningCard]:
    """Pick today's learning block, keeping a batch together where possible."""
    count = clamp_session_size(target_count)
    if not eligible_cards:
        return []

    priority = priority_order(eligible_cards, card_states, now)

    batches: dict[str, list[LearningCard]] = {}
    for card in priority:
        batches.setdefault(card.batch_id or NO_BATCH, []).append(card)
    real_batches = [(bid, cards) for bid, cards in batches.items() if bid != NO_BATCH]

    selected: list[LearningCard] = []
    for batch_id, cards in real_batches:
        if len(cards) >= count:
            logger.debug("Session drawn entirely from batch {}", batch_id)
            selected = cards[:count]
            break

    if not selected and real_batches:
        # sorted() is stable, so the first of several equally large batches wins
        batch_id, cards = sorted(real_batches, key=lambda item: len(item[1]), reverse=True)[0]
        logger.debug("No batch fills the session; starting from batch {} ({} cards)", batch_id, len(cards))
        selected = cards[:count]

    selected = _fill(list(selected), priority, count)
    selected = _fill(selected, eligible_cards, count)
    return selected[:count]


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed, rounded down."""
    return int((later - earlier).total_seconds() // 86400)


def is_recall_eligible(state: CardReviewState, now: datetime) -> bool:
    if state.incorrect_streak > 0:
        return True
    if state.last_reviewed_at is not None:
        return days_between(state.last_reviewed_at, now) >= RECALL_ELIGIBILITY_DAYS
    return False


def select_warmup_recall_cards(
    eligible_cards: list[LearningCard],
    card_states: Mapping[str, CardReviewState],
    now: datetime,
    max_count: int = WARMUP_RECALL_MAX,
) -> list[LearningCard]:
    """Cards worth a retrieval-practice warm-up: recent mistakes first, then the stalest."""
    eligible = [
        c for c in eligible_cards
        if c.id in card_states and is_recall_eligible(card_states[c.id], now)
    ]

    def sort_key(card: LearningCard):
        state = card_states[card.id]
        reviewed = state.last_reviewed_at
        # Cards with a review date come before undated ones among equal streaks.
        return (
            -state.incorrect_streak,
            reviewed is None,
            reviewed.timestamp() if reviewed is not None else 0.0,
        )

    eligible.sort(key=sort_key)
    return eligible[:max(0, max_count)]
