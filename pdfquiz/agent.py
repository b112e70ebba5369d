"""
Background agent: polls the PDF bucket and (re)generates questions for every document.

Dependencies are built once at startup and handed to the pipeline; a missing
document-store configuration is fatal before the polling loop starts.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from pdfquiz.config import AgentSettings, load_env
from pdfquiz.db.document_store import LocalDocumentStore, SupabaseDocumentStore
from pdfquiz.db.question_store import AsyncQuestionStore
from pdfquiz.errors import StoreError
from pdfquiz.utils.logging_config import get_logger
from pdfquiz.workflow.embedding import PostPersistHook, QuestionEmbeddingHook, QuestionVectorizer
from pdfquiz.workflow.extraction import PdfTextExtractor
from pdfquiz.workflow.llm import groq_provider, openai_provider
from pdfquiz.workflow.normalization import ContentNormalizer
from pdfquiz.workflow.pipeline import QuestionPipeline
from pdfquiz.workflow.strategies import AIQuestionStrategy, HeuristicStrategy

logger = get_logger("pdfquiz.agent")


def build_strategies(settings: AgentSettings) -> List[AIQuestionStrategy]:
    """AI strategies in priority order; providers without a key are left out."""
    strategies: List[AIQuestionStrategy] = []
    if settings.openai_api_key:
        strategies.append(AIQuestionStrategy(openai_provider(settings.openai_api_key, settings.openai_model), scheme=settings.tier_scheme))
    if settings.groq_api_key:
        strategies.append(AIQuestionStrategy(groq_provider(settings.groq_api_key, settings.groq_model), scheme=settings.tier_scheme))
    if not strategies:
        logger.info("No AI providers configured; using heuristic generation only")
    return strategies


def build_document_store(settings: AgentSettings):
    if settings.source_dir:
        return LocalDocumentStore(settings.source_dir)
    return SupabaseDocumentStore()


def build_pipeline(settings: AgentSettings, document_store=None, *, question_store: Optional[AsyncQuestionStore] = None) -> QuestionPipeline:
    question_store = question_store or AsyncQuestionStore(settings.db_url, scheme=settings.tier_scheme)
    hooks: List[PostPersistHook] = []
    if settings.embeddings_enabled:
        hooks.append(QuestionEmbeddingHook(QuestionVectorizer(settings.embedding_model), question_store))
    return QuestionPipeline(
        document_store,
        question_store,
        normalizer=ContentNormalizer(PdfTextExtractor(ocr_fallback=settings.ocr_fallback)),
        strategies=build_strategies(settings),
        heuristic=HeuristicStrategy(scheme=settings.tier_scheme),
        scheme=settings.tier_scheme,
        max_files=settings.max_files,
        max_questions=settings.max_questions_per_file,
        pacing_seconds=settings.pacing_seconds,
        fetch_limit=settings.dedup_fetch_limit,
        post_persist_hooks=hooks,
    )


async def run(pipeline: QuestionPipeline, settings: AgentSettings, *, once: bool = False) -> None:
    await pipeline.question_store.init_models()
    try:
        if once:
            await pipeline.run_once()
        else:
            await pipeline.run_forever(settings.interval_seconds)
    finally:
        await pipeline.question_store.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll a PDF bucket and generate practice questions.")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--interval", type=float, default=None, help="Seconds to sleep between passes")
    parser.add_argument("--source-dir", default=None, help="Read PDFs from a local directory instead of Supabase storage")
    parser.add_argument("--max-files", type=int, default=None, help="Maximum documents per pass")
    parser.add_argument("--env-file", default=".env", help="Optional .env file to load before reading settings")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    load_env(args.env_file)
    settings = AgentSettings.from_env()
    if args.interval is not None:
        settings.interval_seconds = args.interval
    if args.source_dir:
        settings.source_dir = args.source_dir
    if args.max_files is not None:
        settings.max_files = args.max_files

    logger.info("Starting agent | interval=%ss scheme=%s source=%s", settings.interval_seconds, settings.tier_scheme.name, settings.source_dir or "supabase")
    try:
        pipeline = build_pipeline(settings, build_document_store(settings))
    except RuntimeError as exc:
        logger.error("Agent failed to start: %s", exc)
        return 1

    try:
        asyncio.run(run(pipeline, settings, once=args.once))
    except StoreError as exc:
        logger.error("Question store unavailable: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Agent stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
