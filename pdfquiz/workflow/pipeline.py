from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Sequence, Tuple

from pdfquiz.errors import ExtractionError, GenerationError, StoreError
from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import DifficultyTarget, DocumentState, PassSummary, ProcessingOutcome, Question, RawDocument, TierScheme
from pdfquiz.workflow.dedup import DEFAULT_FETCH_LIMIT, IngestionGate
from pdfquiz.workflow.distribution import compute_distribution, rescale_distribution
from pdfquiz.workflow.embedding import PostPersistHook
from pdfquiz.workflow.normalization import ContentNormalizer
from pdfquiz.workflow.sanitizer import sanitize
from pdfquiz.workflow.strategies import GenerationStrategy, HeuristicStrategy

logger = get_logger(__name__)

DEFAULT_MAX_FILES = 50
DEFAULT_MAX_QUESTIONS = 48
DEFAULT_PACING_SECONDS = 1.5
DEFAULT_INTERVAL_SECONDS = 600.0


class QuestionPipeline:
    """Runs fetch -> extract -> distribute -> generate -> sanitize -> dedup -> persist per document.

    Documents are processed strictly one after another. AI strategies are tried
    in order and the heuristic strategy always closes the chain, so a document
    with usable text always yields candidates.
    """

    def __init__(
        self,
        document_store: Optional[Any],
        question_store: Any,
        *,
        normalizer: Optional[ContentNormalizer] = None,
        strategies: Sequence[GenerationStrategy] = (),
        heuristic: Optional[HeuristicStrategy] = None,
        scheme: TierScheme = TierScheme.EXPERT,
        max_files: int = DEFAULT_MAX_FILES,
        max_questions: int = DEFAULT_MAX_QUESTIONS,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        post_persist_hooks: Sequence[PostPersistHook] = (),
    ) -> None:
        self.document_store = document_store
        self.question_store = question_store
        self.normalizer = normalizer or ContentNormalizer()
        self.strategies = [s for s in strategies if not isinstance(s, HeuristicStrategy)]
        self.heuristic = heuristic or HeuristicStrategy(scheme=scheme)
        self.scheme = scheme
        self.max_files = max_files
        self.max_questions = max_questions
        self.pacing_seconds = pacing_seconds
        self.gate = IngestionGate(question_store, fetch_limit=fetch_limit)
        self.post_persist_hooks = list(post_persist_hooks)

    @property
    def ai_enabled(self) -> bool:
        return bool(self.strategies)

    def target_for(self, text: str) -> DifficultyTarget:
        ideal = compute_distribution(text)
        target = rescale_distribution(ideal, self.max_questions)
        logger.debug("Difficulty target | ideal=%s capped=%s", ideal.as_tuple(), target.as_tuple())
        return target

    async def generate(self, text: str, source_id: str, target: DifficultyTarget) -> Tuple[List[Question], str]:
        """Return sanitized questions from the first strategy that yields any, plus its name."""
        for strategy in self.strategies:
            try:
                candidates = await strategy.generate(text, source_id, target)
            except GenerationError as exc:
                logger.warning("Generation failed; falling back | strategy=%s source=%s error=%s", strategy.name, source_id, exc)
                continue
            except Exception:
                logger.warning("Unexpected generation failure; falling back | strategy=%s source=%s", strategy.name, source_id, exc_info=True)
                continue
            questions = sanitize(candidates, source_id, scheme=self.scheme)
            if questions:
                return questions, strategy.name
            logger.info("Strategy produced no usable questions | strategy=%s source=%s", strategy.name, source_id)

        candidates = await self.heuristic.generate(text, source_id, target)
        return sanitize(candidates, source_id, scheme=self.scheme), self.heuristic.name

    async def _notify(self, source_id: str, questions: Sequence[Question], question_ids: Sequence[int]) -> None:
        for hook in self.post_persist_hooks:
            try:
                await hook.on_persisted(source_id, questions, question_ids)
            except Exception:
                logger.warning("Post-persist hook failed | hook=%s source=%s", type(hook).__name__, source_id, exc_info=True)

    async def process_bytes(self, source_id: str, data: bytes) -> ProcessingOutcome:
        """Process an already downloaded document. Raises ExtractionError for unparseable bytes."""
        return await self.process_raw(RawDocument(source_id=source_id, data=data))

    async def process_raw(self, document: RawDocument) -> ProcessingOutcome:
        source_id = document.source_id
        outcome = ProcessingOutcome(source_id=source_id, state=DocumentState.FETCHED)

        text = await asyncio.to_thread(self.normalizer.normalize, document.data)
        outcome.state = DocumentState.EXTRACTED
        if not text:
            logger.info("No text to process; skipping | source=%s", source_id)
            outcome.state = DocumentState.SKIPPED
            return outcome

        target = self.target_for(text)
        outcome.state = DocumentState.DISTRIBUTED

        questions, strategy = await self.generate(text, source_id, target)
        outcome.state = DocumentState.GENERATED if not questions else DocumentState.SANITIZED
        outcome.strategy = strategy
        outcome.generated = len(questions)
        outcome.questions = questions

        async with self.gate.lock(source_id):
            fresh = await self.gate.filter_new(questions, source_id)
            outcome.state = DocumentState.DEDUPLICATED
            question_ids: List[int] = []
            if fresh:
                try:
                    question_ids = list(await self.question_store.insert_many(fresh) or [])
                except StoreError as exc:
                    logger.error("Insert failed | source=%s count=%s error=%s", source_id, len(fresh), exc)
                    outcome.error = str(exc)
                    return outcome
            outcome.state = DocumentState.PERSISTED
            outcome.inserted = len(fresh)

        if fresh:
            await self._notify(source_id, fresh, question_ids)
        logger.info("Processed document | source=%s strategy=%s generated=%s added=%s", source_id, strategy, outcome.generated, outcome.inserted)
        return outcome

    async def process_document(self, source_id: str) -> ProcessingOutcome:
        if self.document_store is None:
            raise RuntimeError("QuestionPipeline was built without a document store")
        logger.info("Processing %s", source_id)
        try:
            data = await self.document_store.download(source_id)
        except StoreError as exc:
            logger.warning("Download failed; skipping | source=%s error=%s", source_id, exc)
            return ProcessingOutcome(source_id=source_id, state=DocumentState.SKIPPED, error=str(exc))
        try:
            return await self.process_raw(RawDocument(source_id=source_id, data=data))
        except ExtractionError as exc:
            logger.warning("Extraction failed; skipping | source=%s error=%s", source_id, exc)
            return ProcessingOutcome(source_id=source_id, state=DocumentState.SKIPPED, error=str(exc))

    async def run_once(self) -> PassSummary:
        summary = PassSummary()
        if self.document_store is None:
            raise RuntimeError("QuestionPipeline was built without a document store")
        try:
            sources = await self.document_store.list(self.max_files)
        except Exception:
            logger.error("Failed to list documents; nothing to do this pass", exc_info=True)
            return summary

        for index, source_id in enumerate(sources):
            try:
                summary.outcomes.append(await self.process_document(source_id))
            except Exception as exc:
                logger.error("Unexpected error processing document | source=%s", source_id, exc_info=True)
                summary.outcomes.append(ProcessingOutcome(source_id=source_id, state=DocumentState.SKIPPED, error=str(exc)))
            if index < len(sources) - 1 and self.pacing_seconds > 0:
                await asyncio.sleep(self.pacing_seconds)

        logger.info("Pass complete | documents=%s added=%s skipped=%s", summary.documents, summary.inserted, summary.skipped)
        return summary

    async def run_forever(self, interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> None:
        logger.info("Starting polling loop | interval=%ss max_files=%s", interval_seconds, self.max_files)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.error("Pass failed", exc_info=True)
            await asyncio.sleep(interval_seconds)


__all__ = ["QuestionPipeline", "DEFAULT_MAX_FILES", "DEFAULT_MAX_QUESTIONS", "DEFAULT_PACING_SECONDS", "DEFAULT_INTERVAL_SECONDS"]
