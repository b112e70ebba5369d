from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from sqlalchemy import select

from pdfquiz.db.async_session import create_async_engine_and_session, normalize_async_db_url
from pdfquiz.db.models import Base, QuestionEmbedding, QuestionRow
from pdfquiz.errors import StoreError
from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import EXAM_LABELS, Question, TierScheme

logger = get_logger(__name__)


class AsyncQuestionStore:
    """Async SQLAlchemy-backed question table used for dedup lookups and inserts."""

    def __init__(self, db_url: Union[str, Path], *, scheme: TierScheme = TierScheme.EXPERT):
        self.db_url = normalize_async_db_url(db_url)
        self.scheme = scheme
        self.engine, self.SessionLocal = create_async_engine_and_session(self.db_url)

    async def init_models(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as exc:
            raise StoreError(f"Failed to initialise question tables: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()

    def _to_row(self, question: Question) -> QuestionRow:
        label = self.scheme.match(question.difficulty) or self.scheme.lowest
        tier = self.scheme.index_of(label)
        return QuestionRow(
            question=question.question,
            options=list(question.options),
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            hint=question.hint,
            category=question.category,
            difficulty=EXAM_LABELS[tier],
            tier=tier,
            tier_label=label,
            reasoning=question.reasoning,
            complexity_score=question.complexity_score,
            source_pdf=question.source_pdf,
        )

    async def existing_question_texts(self, source_id: str, limit: int) -> Set[str]:
        stmt = select(QuestionRow.question).where(QuestionRow.source_pdf == source_id).limit(limit)
        try:
            async with self.SessionLocal() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except Exception as exc:
            raise StoreError(f"Failed to query existing questions for {source_id}: {exc}") from exc
        return set(rows)

    async def insert_many(self, questions: Sequence[Question]) -> List[int]:
        """Insert questions and return their new row ids."""
        if not questions:
            return []
        rows = [self._to_row(question) for question in questions]
        try:
            async with self.SessionLocal() as session:
                session.add_all(rows)
                await session.commit()
        except Exception as exc:
            raise StoreError(f"Failed to insert {len(rows)} questions: {exc}") from exc
        logger.info("Inserted questions | source=%s count=%s", rows[0].source_pdf, len(rows))
        return [row.id for row in rows]

    async def load_questions(self, source_id: Optional[str] = None, difficulty: Optional[str] = None, limit: int = 100) -> List[dict]:
        stmt = select(QuestionRow).order_by(QuestionRow.id.asc()).limit(limit)
        if source_id:
            stmt = stmt.where(QuestionRow.source_pdf == source_id)
        if difficulty:
            stmt = stmt.where(QuestionRow.difficulty == difficulty)
        try:
            async with self.SessionLocal() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except Exception as exc:
            raise StoreError(f"Failed to load questions: {exc}") from exc
        return [
            {
                "id": row.id,
                "question": row.question,
                "options": list(row.options or []),
                "correct_answer": row.correct_answer,
                "explanation": row.explanation,
                "hint": row.hint,
                "category": row.category,
                "difficulty": row.difficulty,
                "tier_label": row.tier_label,
                "reasoning": row.reasoning,
                "complexity_score": row.complexity_score,
                "source_pdf": row.source_pdf,
            }
            for row in rows
        ]

    async def store_embeddings(self, source_id: str, questions: Sequence[Question], vectors: Sequence[Sequence[float]], *, model: str, question_ids: Sequence[int] | None = None) -> None:
        ids = list(question_ids or [])
        rows = [
            QuestionEmbedding(
                question_id=ids[idx] if idx < len(ids) else None,
                source_pdf=source_id,
                question=question.question,
                model=model,
                embedding=[float(value) for value in vector],
            )
            for idx, (question, vector) in enumerate(zip(questions, vectors))
        ]
        if not rows:
            return
        try:
            async with self.SessionLocal() as session:
                session.add_all(rows)
                await session.commit()
        except Exception as exc:
            raise StoreError(f"Failed to store embeddings for {source_id}: {exc}") from exc

    async def count_embeddings(self, source_id: str) -> int:
        stmt = select(QuestionEmbedding.id).where(QuestionEmbedding.source_pdf == source_id)
        async with self.SessionLocal() as session:
            return len((await session.execute(stmt)).scalars().all())


__all__ = ["AsyncQuestionStore"]
