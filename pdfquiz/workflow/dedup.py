from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Protocol, Sequence, Set

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import Question

logger = get_logger(__name__)

DEFAULT_FETCH_LIMIT = 5000


class ExistingQuestionSource(Protocol):
    async def existing_question_texts(self, source_id: str, limit: int) -> Set[str]:
        ...


class IngestionGate:
    """Filters sanitized questions down to the ones not yet stored for a source.

    The key is the exact ``question`` text (case-sensitive, no normalization).
    The existing set is a bounded fetch, so sources with more stored rows than
    ``fetch_limit`` can still receive duplicates.
    """

    def __init__(self, store: ExistingQuestionSource, *, fetch_limit: int = DEFAULT_FETCH_LIMIT) -> None:
        self.store = store
        self.fetch_limit = fetch_limit
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, source_id: str) -> AsyncIterator[None]:
        """Hold the per-source lock across the fetch-then-insert sequence.

        The lock is forgotten once its last holder or waiter leaves.
        """
        lock = self._locks.setdefault(source_id, asyncio.Lock())
        self._holders[source_id] = self._holders.get(source_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[source_id] -= 1
            if not self._holders[source_id]:
                del self._holders[source_id]
                del self._locks[source_id]

    @property
    def active_sources(self) -> int:
        return len(self._locks)

    async def existing(self, source_id: str) -> Set[str]:
        try:
            return set(await self.store.existing_question_texts(source_id, self.fetch_limit))
        except Exception:
            logger.warning("Failed to fetch existing questions; treating as none | source=%s", source_id, exc_info=True)
            return set()

    async def filter_new(self, candidates: Sequence[Question], source_id: str) -> List[Question]:
        seen = await self.existing(source_id)
        fresh: List[Question] = []
        for question in candidates:
            if question.question in seen:
                continue
            seen.add(question.question)
            fresh.append(question)
        logger.info("Dedup | source=%s candidates=%s new=%s", source_id, len(candidates), len(fresh))
        return fresh


__all__ = ["IngestionGate", "DEFAULT_FETCH_LIMIT"]
