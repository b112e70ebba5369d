import random

import pytest

from pdfquiz.utils.types import TierScheme
from pdfquiz.workflow.sanitizer import build_test_sets, sanitize, summarize


def _candidate(**overrides):
    candidate = {
        "question": "Which activity belongs to test analysis?",
        "options": ["Identify test conditions", "Execute tests", "Report defects", "Close the test project"],
        "correct_answer": 0,
        "explanation": "Test analysis identifies test conditions.",
        "hint": "Think about what comes before design.",
        "category": "ISTQB",
        "difficulty": "Master",
        "reasoning": "Checks process knowledge.",
        "complexity_score": 8,
        "source_pdf": "ignored.pdf",
    }
    candidate.update(overrides)
    return candidate


def test_valid_candidate_is_kept_and_source_is_forced():
    questions = sanitize([_candidate()], "syllabus.pdf")

    assert len(questions) == 1
    question = questions[0]
    assert question.source_pdf == "syllabus.pdf"
    assert question.difficulty == "Master"
    assert question.options[0] == "Identify test conditions"
    assert question.complexity_score == 8


@pytest.mark.parametrize(
    "bad",
    [
        None,
        "not a mapping",
        42,
        _candidate(question=""),
        _candidate(question="   "),
        _candidate(question=None),
        _candidate(question=12),
        _candidate(options=["a", "b", "c"]),
        _candidate(options="abcd"),
        _candidate(options=None),
    ],
)
def test_malformed_candidates_are_dropped(bad):
    assert len(sanitize([bad, _candidate()], "doc.pdf")) == 1


def test_extra_options_are_truncated_to_four():
    questions = sanitize([_candidate(options=["a", "b", "c", "d", "e", "f"])], "doc.pdf")
    assert questions[0].options == ("a", "b", "c", "d")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (99, 3),
        (-5, 0),
        ("2", 2),
        (2.9, 2),
        (float("nan"), 0),
        ("second", 0),
        (None, 0),
    ],
)
def test_correct_answer_is_clamped(raw, expected):
    questions = sanitize([_candidate(correct_answer=raw)], "doc.pdf")
    assert questions[0].correct_answer == expected


def test_absent_correct_answer_defaults_to_zero():
    candidate = _candidate()
    del candidate["correct_answer"]
    assert sanitize([candidate], "doc.pdf")[0].correct_answer == 0


@pytest.mark.parametrize(
    "raw, expected",
    [
        (8, 8),
        (3, 6),
        (15, 10),
        ("9", 9),
        (0, 7),
        (None, 7),
        ("very hard", 7),
    ],
)
def test_complexity_is_clamped_with_default(raw, expected):
    assert sanitize([_candidate(complexity_score=raw)], "doc.pdf")[0].complexity_score == expected


def test_unknown_difficulty_falls_back_to_lowest_tier():
    questions = sanitize([_candidate(difficulty="Legendary"), _candidate(difficulty=None)], "doc.pdf")
    assert [q.difficulty for q in questions] == ["Expert", "Expert"]


def test_difficulty_matching_ignores_case():
    assert sanitize([_candidate(difficulty="champion")], "doc.pdf")[0].difficulty == "Champion"


def test_foundation_scheme_uses_its_own_labels():
    questions = sanitize(
        [_candidate(difficulty="Hard"), _candidate(difficulty="Master")],
        "doc.pdf",
        scheme=TierScheme.FOUNDATION,
    )
    assert [q.difficulty for q in questions] == ["Hard", "Easy"]


def test_text_fields_default():
    candidate = _candidate(explanation=None, hint=False, category="")
    del candidate["reasoning"]
    question = sanitize([candidate], "doc.pdf")[0]

    assert question.explanation == ""
    assert question.hint == ""
    assert question.reasoning == ""
    assert question.category == "ISTQB"


@pytest.mark.parametrize("payload", [None, "[]", {"question": "x"}, 7])
def test_non_sequence_input_yields_empty_list(payload):
    assert sanitize(payload, "doc.pdf") == []


def test_summarize_reports_counts_and_timing():
    questions = sanitize(
        [_candidate(difficulty="Expert", complexity_score=6), _candidate(difficulty="Champion", complexity_score=9)],
        "doc.pdf",
    )
    summary = summarize(questions)

    assert summary["total_questions"] == 2
    assert summary["per_tier"] == {"Expert": 1, "Master": 0, "Champion": 1}
    assert summary["average_complexity"] == 7.5
    assert summary["estimated_exam_time"] == 180
    assert summary["recommended_pass_score"] == 85


def test_summarize_empty_set():
    summary = summarize([], TierScheme.FOUNDATION)
    assert summary["total_questions"] == 0
    assert summary["average_complexity"] == 0.0
    assert summary["recommended_pass_score"] == 75


def test_falsy_text_values_become_defaults():
    question = sanitize([_candidate(explanation=0, hint=[], category=0)], "doc.pdf")[0]
    assert question.explanation == ""
    assert question.hint == ""
    assert question.category == "ISTQB"


def _tiered(counts, scheme=TierScheme.EXPERT):
    candidates = []
    for label, count in zip(scheme.labels, counts):
        for index in range(count):
            candidates.append(_candidate(question=f"{label} question {index}", difficulty=label, complexity_score=6 + index % 5))
    return sanitize(candidates, "doc.pdf", scheme=scheme)


def test_test_sets_group_by_tier_and_cap_the_mixed_test():
    questions = _tiered((15, 15, 15))

    sets = build_test_sets(questions, rng=random.Random(7))

    assert [len(sets[name]) for name in ("expert", "master", "champion")] == [15, 15, 15]
    mixed_labels = [q.difficulty for q in sets["mixed"]]
    assert mixed_labels.count("Expert") == 8
    assert mixed_labels.count("Master") == 12
    assert mixed_labels.count("Champion") == 10
    assert len({q.question for q in sets["mixed"]}) == 30


def test_ultimate_test_holds_the_most_complex_questions():
    questions = _tiered((15, 15, 15))

    ultimate = build_test_sets(questions, rng=random.Random(3))["ultimate"]

    assert len(ultimate) == 20
    cutoff = sorted((q.complexity_score for q in questions), reverse=True)[19]
    assert min(q.complexity_score for q in ultimate) == cutoff
    # every question strictly harder than the cutoff made it in
    harder = {q.question for q in questions if q.complexity_score > cutoff}
    assert harder <= {q.question for q in ultimate}


def test_small_sets_keep_every_question():
    questions = _tiered((2, 1, 0), TierScheme.FOUNDATION)

    sets = build_test_sets(questions, TierScheme.FOUNDATION, rng=random.Random(1))

    assert set(sets) == {"easy", "medium", "hard", "mixed", "ultimate"}
    assert sets["hard"] == []
    assert sorted(q.question for q in sets["mixed"]) == sorted(q.question for q in questions)
    assert sorted(q.question for q in sets["ultimate"]) == sorted(q.question for q in questions)


def test_test_sets_of_nothing_are_empty():
    sets = build_test_sets([])
    assert all(items == [] for items in sets.values())
