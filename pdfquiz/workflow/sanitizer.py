from __future__ import annotations

import math
import random
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import CandidateQuestion, Question, TierScheme

logger = get_logger(__name__)

DEFAULT_CATEGORY = "ISTQB"
DEFAULT_COMPLEXITY = 7
SECONDS_PER_QUESTION = 90
MIXED_TEST_CAPS = (8, 12, 10)
ULTIMATE_TEST_SIZE = 20
PASS_SCORES = {TierScheme.EXPERT: 85, TierScheme.FOUNDATION: 75}


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _clamp(value: float, low: int, high: int) -> int:
    if math.isinf(value):
        return high if value > 0 else low
    return int(max(low, min(high, int(value))))


def _text(value: Any, default: str = "") -> str:
    if not value:
        return default
    return str(value)


def _sanitize_one(item: Any, source_id: str, scheme: TierScheme) -> Optional[Question]:
    if not isinstance(item, Mapping):
        return None
    question = item.get("question")
    options = item.get("options")
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(options, (list, tuple)) or len(options) < 4:
        return None

    answer = _to_number(item.get("correct_answer"))
    complexity = _to_number(item.get("complexity_score"))

    return Question(
        question=question,
        options=tuple(str(option) for option in options[:4]),
        correct_answer=_clamp(answer, 0, 3) if answer is not None else 0,
        explanation=_text(item.get("explanation")),
        hint=_text(item.get("hint")),
        category=_text(item.get("category"), DEFAULT_CATEGORY),
        difficulty=scheme.match(item.get("difficulty")) or scheme.lowest,
        reasoning=_text(item.get("reasoning")),
        complexity_score=_clamp(complexity, 6, 10) if complexity else DEFAULT_COMPLEXITY,
        source_pdf=source_id,
    )


def sanitize(candidates: Iterable[CandidateQuestion] | None, source_id: str, *, scheme: TierScheme = TierScheme.EXPERT) -> List[Question]:
    """Coerce untrusted candidates into canonical questions, dropping malformed entries.

    Never raises: anything that cannot be coerced is discarded. ``source_pdf``
    always comes from ``source_id``, never from the candidate.
    """
    if candidates is None or isinstance(candidates, (str, bytes, Mapping)):
        return []
    try:
        items = list(candidates)
    except TypeError:
        return []

    questions: List[Question] = []
    for item in items:
        try:
            sanitized = _sanitize_one(item, source_id, scheme)
        except Exception:
            logger.debug("Dropping candidate that failed coercion | source=%s", source_id, exc_info=True)
            continue
        if sanitized is not None:
            questions.append(sanitized)

    dropped = len(items) - len(questions)
    if dropped:
        logger.info("Dropped malformed candidates | source=%s dropped=%s kept=%s", source_id, dropped, len(questions))
    return questions


def summarize(questions: Sequence[Question], scheme: TierScheme = TierScheme.EXPERT) -> Dict[str, Any]:
    """Exam-facing summary of a generated question set."""
    per_tier = {label: sum(1 for q in questions if q.difficulty == label) for label in scheme.labels}
    average = sum(q.complexity_score for q in questions) / len(questions) if questions else 0.0
    return {
        "total_questions": len(questions),
        "per_tier": per_tier,
        "average_complexity": round(average, 2),
        "estimated_exam_time": len(questions) * SECONDS_PER_QUESTION,
        "recommended_pass_score": PASS_SCORES[scheme],
    }


def build_test_sets(questions: Sequence[Question], scheme: TierScheme = TierScheme.EXPERT, *, rng: Optional[random.Random] = None) -> Dict[str, List[Question]]:
    """Group a question set into practice tests.

    One set per tier label, a ``mixed`` test drawing at most 8/12/10 shuffled
    questions from the three tiers, and an ``ultimate`` test holding the 20 most
    complex questions in shuffled order.
    """
    rng = rng or random.Random()

    def shuffled(items: Sequence[Question]) -> List[Question]:
        out = list(items)
        rng.shuffle(out)
        return out

    tiers = {label: [q for q in questions if q.difficulty == label] for label in scheme.labels}
    mixed: List[Question] = []
    for label, cap in zip(scheme.labels, MIXED_TEST_CAPS):
        mixed.extend(shuffled(tiers[label])[:cap])
    # sorted() is stable, so equally complex questions keep their input order
    hardest = sorted(questions, key=lambda q: q.complexity_score, reverse=True)[:ULTIMATE_TEST_SIZE]

    sets: Dict[str, List[Question]] = {label.lower(): tiers[label] for label in scheme.labels}
    sets["mixed"] = shuffled(mixed)
    sets["ultimate"] = shuffled(hardest)
    return sets


__all__ = ["sanitize", "summarize", "build_test_sets", "DEFAULT_CATEGORY", "DEFAULT_COMPLEXITY"]
