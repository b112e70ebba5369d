import asyncio

import pytest
from fakes import FakeDocumentStore, FakeNormalizer, FakeQuestionStore, FakeStrategy, ai_question, failing_strategy

from pdfquiz.utils.types import DocumentState, RawDocument
from pdfquiz.workflow import pipeline as pipeline_module
from pdfquiz.workflow.pipeline import QuestionPipeline
from pdfquiz.workflow.strategies import HeuristicStrategy

SAMPLE_TEXT = "Testing principles are easy. Risk based testing is hard. Mutation testing is an expert technique."


def _pipeline(documents=None, *, store=None, strategies=(), document_options=None, **kwargs):
    return QuestionPipeline(
        FakeDocumentStore(documents or {}, **(document_options or {})),
        store or FakeQuestionStore(),
        normalizer=FakeNormalizer(),
        strategies=strategies,
        heuristic=HeuristicStrategy(min_length=10),
        pacing_seconds=0,
        **kwargs,
    )


class _RecordingHook:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def on_persisted(self, source_id, questions, question_ids):
        self.calls.append((source_id, [q.question for q in questions], list(question_ids)))
        if self.error is not None:
            raise self.error


def test_heuristic_only_run_persists_every_sentence():
    store = FakeQuestionStore()
    pipeline = _pipeline({"intro.pdf": SAMPLE_TEXT.encode()}, store=store)

    outcome = asyncio.run(pipeline.process_document("intro.pdf"))

    assert outcome.state == DocumentState.PERSISTED
    assert outcome.strategy == "heuristic"
    assert outcome.inserted == 3
    assert len(store.rows) == 3
    assert {row.source_pdf for row in store.rows} == {"intro.pdf"}
    # the lowest tier's slots cover all three statements
    assert {row.difficulty for row in store.rows} == {"Expert"}
    assert all(row.correct_answer == 0 and len(row.options) == 4 for row in store.rows)


def test_second_run_inserts_nothing():
    store = FakeQuestionStore()
    pipeline = _pipeline({"intro.pdf": SAMPLE_TEXT.encode()}, store=store)

    asyncio.run(pipeline.process_document("intro.pdf"))
    second = asyncio.run(pipeline.process_document("intro.pdf"))

    assert second.state == DocumentState.PERSISTED
    assert second.generated == 3
    assert second.inserted == 0
    assert len(store.rows) == 3


def test_first_productive_ai_strategy_wins():
    first = failing_strategy("ai:openai")
    second = FakeStrategy("ai:groq", result=[ai_question("What is regression testing?"), {"question": "broken"}])
    store = FakeQuestionStore()
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, store=store, strategies=[first, second])

    outcome = asyncio.run(pipeline.process_document("doc.pdf"))

    assert first.calls == 1 and second.calls == 1
    assert outcome.strategy == "ai:groq"
    assert [row.question for row in store.rows] == ["What is regression testing?"]
    assert store.rows[0].difficulty == "Master"


def test_unexpected_strategy_exception_falls_through():
    broken = FakeStrategy("ai:openai", error=KeyError("choices"))
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, strategies=[broken])

    outcome = asyncio.run(pipeline.process_document("doc.pdf"))

    assert outcome.strategy == "heuristic"
    assert outcome.inserted == 3


def test_empty_ai_output_falls_back_to_heuristic():
    empty = FakeStrategy("ai:openai", result=[])
    garbage = FakeStrategy("ai:groq", result=[{"question": "", "options": []}])
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, strategies=[empty, garbage])

    outcome = asyncio.run(pipeline.process_document("doc.pdf"))

    assert outcome.strategy == "heuristic"
    assert pipeline.ai_enabled


def test_heuristic_passed_in_strategies_is_not_tried_twice():
    pipeline = _pipeline(strategies=[HeuristicStrategy()])
    assert pipeline.strategies == []
    assert not pipeline.ai_enabled


def test_text_without_fragments_reaches_generated_state():
    pipeline = _pipeline({"tiny.pdf": b"Hi. Ok."})
    outcome = asyncio.run(pipeline.process_document("tiny.pdf"))

    assert outcome.state == DocumentState.PERSISTED
    assert outcome.generated == 0
    assert outcome.inserted == 0


def test_blank_document_is_skipped():
    store = FakeQuestionStore()
    pipeline = _pipeline({"blank.pdf": b"   \n\t "}, store=store)

    outcome = asyncio.run(pipeline.process_document("blank.pdf"))

    assert outcome.state == DocumentState.SKIPPED
    assert store.query_limits == []


def test_insert_failure_keeps_document_unpersisted():
    store = FakeQuestionStore(fail_insert=True)
    hook = _RecordingHook()
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, store=store, post_persist_hooks=[hook])

    outcome = asyncio.run(pipeline.process_document("doc.pdf"))

    assert outcome.state == DocumentState.DEDUPLICATED
    assert outcome.inserted == 0
    assert outcome.error == "insert failed"
    assert hook.calls == []


def test_hook_receives_persisted_questions_and_failure_is_ignored():
    hook = _RecordingHook(error=RuntimeError("vector store down"))
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, post_persist_hooks=[hook])

    outcome = asyncio.run(pipeline.process_document("doc.pdf"))

    assert outcome.state == DocumentState.PERSISTED
    assert len(hook.calls) == 1
    source_id, texts, ids = hook.calls[0]
    assert source_id == "doc.pdf"
    assert len(texts) == 3
    assert ids == [1, 2, 3]


def test_pass_skips_broken_documents_and_continues():
    store = FakeQuestionStore()
    documents = {
        "corrupt.pdf": b"corrupt",
        "missing.pdf": b"",
        "good.pdf": SAMPLE_TEXT.encode(),
    }
    pipeline = _pipeline(documents, store=store, document_options={"fail_download": ["missing.pdf"]})

    summary = asyncio.run(pipeline.run_once())

    states = {outcome.source_id: outcome.state for outcome in summary.outcomes}
    assert states == {
        "corrupt.pdf": DocumentState.SKIPPED,
        "missing.pdf": DocumentState.SKIPPED,
        "good.pdf": DocumentState.PERSISTED,
    }
    assert summary.skipped == 2
    assert summary.inserted == 3
    assert {row.source_pdf for row in store.rows} == {"good.pdf"}


def test_pass_respects_max_files():
    documents = {f"doc{i}.pdf": SAMPLE_TEXT.encode() for i in range(5)}
    pipeline = _pipeline(documents, max_files=2)

    summary = asyncio.run(pipeline.run_once())

    assert summary.documents == 2


def test_list_failure_yields_empty_pass():
    pipeline = _pipeline({"doc.pdf": SAMPLE_TEXT.encode()}, document_options={"fail_list": True})
    summary = asyncio.run(pipeline.run_once())
    assert summary.documents == 0


def test_upload_only_pipeline_cannot_poll():
    pipeline = QuestionPipeline(None, FakeQuestionStore(), normalizer=FakeNormalizer())
    with pytest.raises(RuntimeError):
        asyncio.run(pipeline.run_once())


def test_target_is_capped_by_question_budget():
    pipeline = _pipeline(max_questions=24)
    target = pipeline.target_for("easy " * 100)
    assert target.as_tuple() == (16, 4, 4)


def test_pacing_sleeps_between_documents_only(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    documents = {f"doc{i}.pdf": SAMPLE_TEXT.encode() for i in range(3)}
    pipeline = _pipeline(documents)
    pipeline.pacing_seconds = 1.5
    monkeypatch.setattr(pipeline_module.asyncio, "sleep", fake_sleep)

    summary = asyncio.run(pipeline.run_once())

    assert summary.documents == 3
    assert sleeps == [1.5, 1.5]


def test_polling_loop_survives_failed_passes(monkeypatch):
    sleeps = []
    calls = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    async def flaky_pass():
        calls.append(len(calls))
        if len(calls) == 3:
            raise asyncio.CancelledError()
        raise ValueError("pass exploded")

    pipeline = _pipeline()
    monkeypatch.setattr(pipeline_module.asyncio, "sleep", fake_sleep)
    monkeypatch.setattr(pipeline, "run_once", flaky_pass)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(pipeline.run_forever(30))

    assert len(calls) == 3
    assert sleeps == [30, 30]


def test_outcome_reports_full_generated_set_on_rerun():
    pipeline = _pipeline({"intro.pdf": SAMPLE_TEXT.encode()})

    asyncio.run(pipeline.process_document("intro.pdf"))
    second = asyncio.run(pipeline.process_document("intro.pdf"))

    assert second.inserted == 0
    assert len(second.questions) == 3


def test_raw_document_is_processed_directly():
    store = FakeQuestionStore()
    pipeline = _pipeline(store=store)

    outcome = asyncio.run(pipeline.process_raw(RawDocument(source_id="raw.pdf", data=SAMPLE_TEXT.encode())))

    assert outcome.state == DocumentState.PERSISTED
    assert {row.source_pdf for row in store.rows} == {"raw.pdf"}
