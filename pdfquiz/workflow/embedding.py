from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Protocol, Sequence

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import Question

logger = get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class PostPersistHook(Protocol):
    async def on_persisted(self, source_id: str, questions: Sequence[Question], question_ids: Sequence[int]) -> None:
        ...


class QuestionVectorizer:
    """Encodes question text with a sentence-transformers model."""

    _MODEL_CACHE: Dict[str, Any] = {}

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL) -> None:
        self.model_name = model_name
        self._model = None

    def _load(self):
        if self._model is None:
            if self.model_name in self._MODEL_CACHE:
                self._model = self._MODEL_CACHE[self.model_name]
                logger.info("Reusing cached embedding model %s", self.model_name)
            else:
                # Deferred so the agent runs without the embeddings extra installed.
                from sentence_transformers import SentenceTransformer

                self._model = SentenceTransformer(self.model_name)
                self._MODEL_CACHE[self.model_name] = self._model
                logger.info("Loaded embedding model %s", self.model_name)
        return self._model

    def vectorize(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        vectors = self._load().encode(list(texts), convert_to_numpy=True, normalize_embeddings=True)
        return [vector.tolist() for vector in vectors]


class QuestionEmbeddingHook:
    """Embeds freshly persisted questions and stores the vectors next to them."""

    def __init__(self, vectorizer: QuestionVectorizer, store: Any) -> None:
        self.vectorizer = vectorizer
        self.store = store

    async def on_persisted(self, source_id: str, questions: Sequence[Question], question_ids: Sequence[int]) -> None:
        if not questions:
            return
        vectors = await asyncio.to_thread(self.vectorizer.vectorize, [q.question for q in questions])
        await self.store.store_embeddings(source_id, questions, vectors, model=self.vectorizer.model_name, question_ids=question_ids)
        logger.info("Stored question embeddings | source=%s count=%s", source_id, len(vectors))


__all__ = ["PostPersistHook", "QuestionVectorizer", "QuestionEmbeddingHook", "DEFAULT_EMBEDDING_MODEL"]
