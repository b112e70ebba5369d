from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Untrusted generator output; only the sanitizer turns these into Question values.
CandidateQuestion = Mapping[str, Any]

# Labels the exam tables use regardless of the generation scheme.
EXAM_LABELS: Tuple[str, str, str] = ("Easy", "Medium", "Hard")


class TierScheme(Enum):
    """Closed, ordered set of three difficulty labels (lowest first)."""

    EXPERT = ("Expert", "Master", "Champion")
    FOUNDATION = ("Easy", "Medium", "Hard")

    @property
    def labels(self) -> Tuple[str, str, str]:
        return self.value

    @property
    def lowest(self) -> str:
        return self.value[0]

    def index_of(self, label: str) -> int:
        return self.value.index(label)

    def match(self, value: Any) -> Optional[str]:
        """Return the canonical label for ``value`` or None when it is not in the scheme."""
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for label in self.value:
            if label.lower() == wanted:
                return label
        return None

    @classmethod
    def from_value(cls, value: Optional[str | "TierScheme"]) -> "TierScheme":
        if isinstance(value, cls):
            return value
        normalized = (value or cls.EXPERT.name).strip().upper()
        for member in cls:
            if member.name == normalized:
                return member
        return cls.EXPERT


@dataclass
class RawDocument:
    """Downloaded document bytes; dropped once text has been extracted."""

    source_id: str
    data: bytes


@dataclass(frozen=True)
class DifficultyTarget:
    """Requested question counts per tier (A = lowest)."""

    tier_a: int
    tier_b: int
    tier_c: int

    def __post_init__(self) -> None:
        if min(self.tier_a, self.tier_b, self.tier_c) < 0:
            raise ValueError(f"Tier counts must be non-negative: {self.as_tuple()}")

    @property
    def total(self) -> int:
        return self.tier_a + self.tier_b + self.tier_c

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.tier_a, self.tier_b, self.tier_c)


@dataclass(frozen=True)
class Question:
    """Canonical question record. Built by ``pdfquiz.workflow.sanitizer.sanitize``."""

    question: str
    options: Tuple[str, str, str, str]
    correct_answer: int
    difficulty: str
    source_pdf: str
    explanation: str = ""
    hint: str = ""
    category: str = "ISTQB"
    reasoning: str = ""
    complexity_score: int = 7

    def __post_init__(self) -> None:
        if not self.question.strip():
            raise ValueError("question text must not be empty")
        if len(self.options) != 4:
            raise ValueError(f"expected exactly 4 options, got {len(self.options)}")
        if not 0 <= self.correct_answer <= 3:
            raise ValueError(f"correct_answer out of range: {self.correct_answer}")
        if not 6 <= self.complexity_score <= 10:
            raise ValueError(f"complexity_score out of range: {self.complexity_score}")

    def to_record(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "hint": self.hint,
            "category": self.category,
            "difficulty": self.difficulty,
            "reasoning": self.reasoning,
            "complexity_score": self.complexity_score,
            "source_pdf": self.source_pdf,
        }


class DocumentState(str, Enum):
    FETCHED = "fetched"
    EXTRACTED = "extracted"
    DISTRIBUTED = "distributed"
    GENERATED = "generated"
    SANITIZED = "sanitized"
    DEDUPLICATED = "deduplicated"
    PERSISTED = "persisted"
    SKIPPED = "skipped"


@dataclass
class ProcessingOutcome:
    """Per-document report; only used for logging and API responses.

    ``questions`` is the full sanitized set, including questions already stored.
    """

    source_id: str
    state: DocumentState = DocumentState.FETCHED
    inserted: int = 0
    generated: int = 0
    strategy: Optional[str] = None
    error: Optional[str] = None
    questions: List[Question] = field(default_factory=list, repr=False)


@dataclass
class PassSummary:
    outcomes: List[ProcessingOutcome] = field(default_factory=list)

    @property
    def documents(self) -> int:
        return len(self.outcomes)

    @property
    def inserted(self) -> int:
        return sum(outcome.inserted for outcome in self.outcomes)

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state == DocumentState.SKIPPED)
