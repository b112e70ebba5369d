from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from pdfquiz.agent import build_pipeline
from pdfquiz.config import AgentSettings, load_env
from pdfquiz.errors import ExtractionError, StoreError
from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import DocumentState
from pdfquiz.workflow.pipeline import QuestionPipeline
from pdfquiz.workflow.sanitizer import build_test_sets, sanitize, summarize

logger = get_logger("pdfquiz.service")

FALLBACK_NOTICE = "AI generation unavailable; falling back to simpler generation."
MAX_UPLOAD_BYTES = 150 * 1024 * 1024


class UploadResult(BaseModel):
    source_pdf: str
    status: str
    inserted: int = 0
    generated: int = 0
    strategy: Optional[str] = None
    notice: Optional[str] = None
    error: Optional[str] = None
    summary: dict = Field(default_factory=dict)


def create_app(pipeline: Optional[QuestionPipeline] = None, settings: Optional[AgentSettings] = None) -> FastAPI:
    """Build the upload service; the pipeline is created from the environment unless given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pipeline is None:
            load_env()
            app.state.pipeline = build_pipeline(settings or AgentSettings.from_env())
        await app.state.pipeline.question_store.init_models()
        try:
            yield
        finally:
            # Disposing only drops pooled connections; the store stays usable.
            await app.state.pipeline.question_store.close()

    app = FastAPI(title="PDF Quiz Service", lifespan=lifespan)
    app.state.pipeline = pipeline

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @app.post("/documents/{source_id}", response_model=UploadResult)
    async def upload_document(source_id: str, request: Request) -> UploadResult:
        """Accepts the raw PDF as the request body and stores generated questions for it."""
        data = await request.body()
        if not data:
            raise HTTPException(status_code=400, detail="Request body must contain the PDF bytes")
        if len(data) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="PDF exceeds the upload limit")

        active: QuestionPipeline = app.state.pipeline
        try:
            outcome = await active.process_bytes(source_id, data)
        except ExtractionError as exc:
            logger.warning("Upload extraction failed | source=%s error=%s", source_id, exc)
            raise HTTPException(status_code=422, detail="Failed to extract PDF content") from exc

        notice = None
        if outcome.strategy == active.heuristic.name and active.ai_enabled:
            notice = FALLBACK_NOTICE
        if outcome.state == DocumentState.SKIPPED:
            notice = "No text could be extracted from this PDF."
        return UploadResult(
            source_pdf=source_id,
            status=outcome.state.value,
            inserted=outcome.inserted,
            generated=outcome.generated,
            strategy=outcome.strategy,
            notice=notice,
            error=outcome.error,
            summary=summarize(outcome.questions, active.scheme),
        )

    @app.get("/questions")
    async def list_questions(
        source_pdf: Optional[str] = Query(None, description="Only questions generated from this document"),
        difficulty: Optional[str] = Query(None, description="Exam difficulty label (Easy, Medium, Hard)"),
        limit: int = Query(100, ge=1, le=1000),
    ) -> JSONResponse:
        active: QuestionPipeline = app.state.pipeline
        try:
            rows = await active.question_store.load_questions(source_pdf, difficulty, limit)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail="Question store unavailable") from exc
        return JSONResponse({"questions": rows, "count": len(rows)})

    @app.get("/exams")
    async def list_exams(
        source_pdf: str = Query(..., description="Document the practice tests are assembled from"),
        limit: int = Query(1000, ge=1, le=5000),
    ) -> JSONResponse:
        """Per-tier, mixed and ultimate practice tests built from the stored questions of one document."""
        active: QuestionPipeline = app.state.pipeline
        try:
            rows = await active.question_store.load_questions(source_pdf, None, limit)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail="Question store unavailable") from exc
        # Stored rows carry the exam label in difficulty; tests are grouped by the generation label.
        candidates = [{**row, "difficulty": row.get("tier_label") or row.get("difficulty")} for row in rows]
        questions = sanitize(candidates, source_pdf, scheme=active.scheme)
        sets = build_test_sets(questions, active.scheme)
        return JSONResponse(
            {
                "source_pdf": source_pdf,
                "summary": summarize(questions, active.scheme),
                "tests": {name: [q.to_record() for q in items] for name, items in sets.items()},
            }
        )

    return app


app = create_app()
