"""Data classes for the Daily Dose domain model."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class CardStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    RETIRED = "RETIRED"


class QuestionType(str, Enum):
    MCQ = "MCQ"
    TRUE_FALSE = "TRUE_FALSE"
    SCENARIO = "SCENARIO"


class QuestionSource(str, Enum):
    CONTENT = "content"
    INTERACTION = "interaction"


class UnitLevel(str, Enum):
    INTRO = "INTRO"
    CORE = "CORE"
    STRETCH = "STRETCH"


class UnitStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SECURE = "SECURE"


class ThemeRAG(str, Enum):
    RED = "red"
    AMBER = "amber"
    GREEN = "green"
    NOT_STARTED = "not_started"


# --- Content blocks: a closed union, matched exhaustively by consumers ---


@dataclass(frozen=True)
class ParagraphBlock:
    text: str


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class CalloutBlock:
    text: str


@dataclass(frozen=True)
class RevealBlock:
    text: str


@dataclass(frozen=True)
class StepsBlock:
    items: tuple[str, ...]


@dataclass(frozen=True)
class DoDontBlock:
    do: tuple[str, ...] = ()
    dont: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuestionBlock:
    question_type: QuestionType
    prompt: str
    options: tuple[str, ...]
    correct_answer: str
    rationale: str = ""
    difficulty: Optional[int] = None


ContentBlock = Union[
    ParagraphBlock, TextBlock, CalloutBlock, RevealBlock, StepsBlock, DoDontBlock, QuestionBlock
]


@dataclass(frozen=True)
class Interaction:
    type: str  # "mcq" | "true_false" | "choose_action"
    question: str
    options: tuple[str, ...]
    correct_index: int = 0
    explanation: str = ""


@dataclass(frozen=True)
class Source:
    title: str
    org: str
    url: str
    published_date: Optional[str] = None


@dataclass
class LearningCard:
    id: str
    title: str
    topic_id: str
    role_scope: list[str] = field(default_factory=list)
    content_blocks: list[ContentBlock] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    review_by_date: Optional[date] = None
    version: int = 1
    status: CardStatus = CardStatus.DRAFT
    tags: list[str] = field(default_factory=list)
    batch_id: Optional[str] = None


@dataclass(frozen=True)
class Question:
    card_id: str
    topic_id: str
    question_type: QuestionType
    prompt: str
    options: tuple[str, ...]
    correct_answer: str
    question_id: str
    source: QuestionSource
    block_index: int
    rationale: str = ""
    difficulty: Optional[int] = None
    context: str = ""
    order: Optional[int] = None


@dataclass
class CardReviewState:
    card_id: str
    due_at: datetime
    box: int = 1
    interval_days: int = 1
    correct_streak: int = 0
    incorrect_streak: int = 0
    last_reviewed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReviewOutcome:
    box: int
    interval_days: int
    due_at: datetime
    correct_streak: int
    incorrect_streak: int


@dataclass
class CardResult:
    card_id: str
    correct_count: int
    question_count: int
    question_ids: list[str] = field(default_factory=list)


@dataclass
class Session:
    id: str
    user_id: str
    context_id: str
    card_ids: list[str]
    created_at: datetime
    recall_card_ids: list[str] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    card_results: list[CardResult] = field(default_factory=list)
    questions_attempted: int = 0
    correct_count: int = 0
    xp_earned: int = 0


@dataclass
class UnitProgress:
    unit_id: str
    level: UnitLevel
    ordering: int = 0
    sessions_completed: int = 0
    correct_count: int = 0
    total_questions: int = 0

    @property
    def accuracy(self) -> float:
        if self.total_questions <= 0:
            return 0.0
        return self.correct_count / self.total_questions

    @property
    def status(self) -> UnitStatus:
        # Always derived from the counters, never stored.
        from daily_dose.pathway import compute_unit_status
        return compute_unit_status(self.sessions_completed, self.correct_count, self.total_questions)
