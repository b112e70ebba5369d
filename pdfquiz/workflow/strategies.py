from __future__ import annotations

import re
from typing import Any, Dict, List, Protocol

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import CandidateQuestion, DifficultyTarget, TierScheme
from pdfquiz.workflow.llm import ChatProvider, extract_json_array

logger = get_logger(__name__)

MAX_PROMPT_CHARS = 16000
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
OPTION_PREFIX_CHARS = 90


class GenerationStrategy(Protocol):
    name: str

    async def generate(self, text: str, source_id: str, target: DifficultyTarget) -> List[CandidateQuestion]:
        ...


class AIQuestionStrategy:
    """Asks a chat provider for a JSON array of multiple-choice questions."""

    system_prompt = "You write high-quality ISTQB exam questions with rigorous explanations."

    def __init__(self, provider: ChatProvider, *, max_chars: int = MAX_PROMPT_CHARS, scheme: TierScheme = TierScheme.EXPERT) -> None:
        self.provider = provider
        self.max_chars = max_chars
        self.scheme = scheme
        self.name = f"ai:{provider.name}"

    def build_prompt(self, target: DifficultyTarget) -> str:
        low, mid, high = self.scheme.labels
        return (
            f"You are an expert ISTQB instructor. Create {target.total} multiple-choice questions strictly from the provided content. "
            f"Difficulty distribution: {low} {target.tier_a}, {mid} {target.tier_b}, {high} {target.tier_c}. "
            "Each question must have exactly 4 options and one correct_answer (0-3). "
            "Output ONLY a JSON array with objects having keys: question, options, correct_answer, explanation, hint, category, "
            f"difficulty ({low}|{mid}|{high}), reasoning, complexity_score (1-10)."
        )

    async def generate(self, text: str, source_id: str, target: DifficultyTarget) -> List[CandidateQuestion]:
        user = f"{self.build_prompt(target)}\n\nPDF Content (trimmed):\n{text[: self.max_chars]}"
        content = await self.provider.complete(self.system_prompt, user)
        array = extract_json_array(content)
        if array is None:
            logger.warning("No JSON array in provider output | provider=%s source=%s", self.provider.name, source_id)
            return []
        return array


class HeuristicStrategy:
    """Offline fallback turning statements of the source into recognition questions.

    Option 0 always restates the statement and is therefore always correct; the
    point is to guarantee something to persist, not to teach.
    """

    name = "heuristic"

    def __init__(self, *, min_length: int = 40, max_length: int = 240, scheme: TierScheme = TierScheme.EXPERT) -> None:
        self.min_length = min_length
        self.max_length = max_length
        self.scheme = scheme

    def fragments(self, text: str) -> List[str]:
        pieces = (piece.strip() for piece in SENTENCE_BOUNDARY.split(text or ""))
        return [piece for piece in pieces if self.min_length < len(piece) < self.max_length]

    def tier_slots(self, target: DifficultyTarget) -> List[str]:
        slots: List[str] = []
        for label, count in zip(self.scheme.labels, target.as_tuple()):
            slots.extend([label] * count)
        return slots

    async def generate(self, text: str, source_id: str, target: DifficultyTarget) -> List[CandidateQuestion]:
        return self.build(text, source_id, target)

    def build(self, text: str, source_id: str, target: DifficultyTarget) -> List[Dict[str, Any]]:
        sentences = self.fragments(text)
        slots = self.tier_slots(target)
        out: List[Dict[str, Any]] = []
        for sentence, difficulty in zip(sentences, slots):
            prefix = sentence[:OPTION_PREFIX_CHARS]
            out.append(
                {
                    "question": f"Which option best reflects the statement: {sentence}",
                    "options": [
                        f"Directly supports: {prefix}",
                        f"Contradicts: {prefix}",
                        f"Irrelevant to: {prefix}",
                        f"Partially supports: {prefix}",
                    ],
                    "correct_answer": 0,
                    "explanation": "Derived from source content; validate against the PDF.",
                    "hint": "Recall the key phrase of the statement.",
                    "category": "ISTQB",
                    "difficulty": difficulty,
                    "reasoning": "Heuristic conversion from statement to concept question.",
                    "complexity_score": 7 + self.scheme.index_of(difficulty),
                    "source_pdf": source_id,
                }
            )
        logger.debug("Heuristic produced %s questions | source=%s fragments=%s", len(out), source_id, len(sentences))
        return out


__all__ = ["GenerationStrategy", "AIQuestionStrategy", "HeuristicStrategy", "MAX_PROMPT_CHARS"]
