from __future__ import annotations

from typing import Dict, List, Sequence, Set

from pdfquiz.errors import ExtractionError, GenerationError, StoreError
from pdfquiz.utils.types import Question


class FakeNormalizer:
    """Treats document bytes as UTF-8 text; ``b"corrupt"`` fails like a broken PDF."""

    def normalize(self, raw: bytes) -> str:
        if raw == b"corrupt":
            raise ExtractionError("Failed to parse PDF: corrupt")
        return " ".join(raw.decode("utf-8").split())


class FakeDocumentStore:
    def __init__(self, documents: Dict[str, bytes], *, fail_download: Sequence[str] = (), fail_list: bool = False) -> None:
        self.documents = dict(documents)
        self.fail_download = set(fail_download)
        self.fail_list = fail_list

    async def list(self, limit: int) -> List[str]:
        if self.fail_list:
            raise StoreError("list failed")
        return list(self.documents)[:limit]

    async def download(self, source_id: str) -> bytes:
        if source_id in self.fail_download:
            raise StoreError(f"download failed: {source_id}")
        return self.documents[source_id]


class FakeQuestionStore:
    def __init__(self, *, fail_query: bool = False, fail_insert: bool = False) -> None:
        self.rows: List[Question] = []
        self.fail_query = fail_query
        self.fail_insert = fail_insert
        self.query_limits: List[int] = []

    async def existing_question_texts(self, source_id: str, limit: int) -> Set[str]:
        self.query_limits.append(limit)
        if self.fail_query:
            raise StoreError("query failed")
        return {row.question for row in self.rows if row.source_pdf == source_id}

    async def insert_many(self, questions: Sequence[Question]) -> List[int]:
        if self.fail_insert:
            raise StoreError("insert failed")
        start = len(self.rows)
        self.rows.extend(questions)
        return list(range(start + 1, start + 1 + len(questions)))


class FakeStrategy:
    def __init__(self, name: str, result=None, error: Exception | None = None) -> None:
        self.name = name
        self.result = result if result is not None else []
        self.error = error
        self.calls = 0

    async def generate(self, text, source_id, target):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def failing_strategy(name: str = "ai:broken") -> FakeStrategy:
    return FakeStrategy(name, error=GenerationError("provider down"))


def ai_question(text: str, difficulty: str = "Master") -> dict:
    return {
        "question": text,
        "options": ["A", "B", "C", "D"],
        "correct_answer": 2,
        "explanation": "Because.",
        "difficulty": difficulty,
        "complexity_score": 8,
    }
