"""Turn card content into a flat list of answerable questions."""
import hashlib
import json
from typing import Iterable, Optional, assert_never

from daily_dose.models import (
    CalloutBlock, ContentBlock, DoDontBlock, LearningCard, ParagraphBlock, Question,
    QuestionBlock, QuestionSource, QuestionType, RevealBlock, StepsBlock, TextBlock,
)

INTERACTION_TYPES = {
    "true_false": QuestionType.TRUE_FALSE,
    "choose_action": QuestionType.SCENARIO,
}


def _normalize(value: str) -> str:
    return " ".join(value.split()).lower()


def generate_question_id(
    prompt: str,
    options: Iterable[str],
    correct_answer: str,
    question_type: QuestionType,
) -> str:
    """Content hash identifying a question regardless of which card it came from.

    Case, surrounding/repeated whitespace and option order do not change the id.
    """
    payload = {
        "prompt": _normalize(prompt),
        "options": sorted(_normalize(o) for o in options),
        "answer": _normalize(correct_answer),
        "type": QuestionType(question_type).value,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def block_text(block: ContentBlock) -> Optional[str]:
    """Readable text of a block for question context; None for question blocks."""
    match block:
        case ParagraphBlock(text=text) | TextBlock(text=text) | CalloutBlock(text=text) | RevealBlock(text=text):
            return text
        case StepsBlock(items=items):
            return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))
        case DoDontBlock(do=do, dont=dont):
            lines = [f"Do: {item}" for item in do] + [f"Don't: {item}" for item in dont]
            return "\n".join(lines)
        case QuestionBlock():
            return None
        case _:
            assert_never(block)


def _context(title: str, texts: list[str]) -> str:
    return "\n\n".join([title, *[t for t in texts if t]]).strip()


def extract_from_content_blocks(card: LearningCard) -> list[Question]:
    questions = []
    preceding: list[str] = []
    for index, block in enumerate(card.content_blocks):
        text = block_text(block)
        if text is not None:
            preceding.append(text)
            continue
        assert isinstance(block, QuestionBlock)
        questions.append(Question(
            card_id=card.id,
            topic_id=card.topic_id,
            question_type=block.question_type,
            prompt=block.prompt,
            options=tuple(block.options),
            correct_answer=block.correct_answer,
            question_id=generate_question_id(
                block.prompt, block.options, block.correct_answer, block.question_type,
            ),
            source=QuestionSource.CONTENT,
            block_index=index,
            rationale=block.rationale,
            difficulty=block.difficulty,
            context=_context(card.title, preceding),
        ))
    return questions


def extract_from_interactions(card: LearningCard) -> list[Question]:
    # Interactions sit outside the block order, so they see the whole card.
    texts = [t for t in (block_text(b) for b in card.content_blocks) if t is not None]
    context = _context(card.title, texts)
    questions = []
    for index, interaction in enumerate(card.interactions):
        options = tuple(interaction.options)
        if 0 <= interaction.correct_index < len(options):
            answer = options[interaction.correct_index]
        else:
            answer = options[0] if options else ""
        question_type = INTERACTION_TYPES.get(interaction.type, QuestionType.MCQ)
        questions.append(Question(
            card_id=card.id,
            topic_id=card.topic_id,
            question_type=question_type,
            prompt=interaction.question,
            options=options,
            correct_answer=answer,
            question_id=generate_question_id(interaction.question, options, answer, question_type),
            source=QuestionSource.INTERACTION,
            block_index=index,
            rationale=interaction.explanation,
            context=context,
        ))
    return questions


def extract_all(card: LearningCard) -> list[Question]:
    return extract_from_content_blocks(card) + extract_from_interactions(card)
