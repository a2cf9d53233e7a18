from __future__ import annotations

import pytest

from coachbot.faq.models import FAQMetadata, FAQResult
from coachbot.faq.relevance import (
    RelevanceThresholds,
    are_results_relevant,
    assess_results,
    deduplicate_results,
    rerank_score,
    should_expand_query,
    simple_reranking,
    sort_by_similarity,
)


def _result(key: str, question: str, answer: str, similarity: float = 0.5) -> FAQResult:
    return FAQResult(
        upsert_key=key,
        content=answer,
        data_type="faq",
        source_doc_name="faq.csv",
        custom_metadata=FAQMetadata(question=question, answer=answer),
        similarity=similarity,
    )


def test_should_expand_query_is_true_for_empty_results():
    for query in ("", "protein", "how much creatine should I take"):
        assert should_expand_query(query, []) is True


def test_should_expand_query_false_for_strong_exact_results():
    query = "creatine dose"
    results = [
        _result("a", "What creatine dose works?", "Take 5g daily.", 0.9),
        _result("b", "Creatine timing", "Any time.", 0.8),
        _result("c", "Creatine loading", "Optional.", 0.7),
    ]
    assert should_expand_query(query, results) is False


def test_should_expand_query_checks_each_gate():
    query = "creatine dose"
    strong = [
        _result("a", "creatine dose", "5g", 0.9),
        _result("b", "b", "b", 0.8),
        _result("c", "c", "c", 0.7),
    ]
    low_top = [r.with_similarity(0.39) for r in strong]
    too_few_decent = [strong[0], strong[1].with_similarity(0.3), strong[2].with_similarity(0.1)]
    no_exact = [_result("x", "creatine", "dose", 0.9), *strong[1:]]

    assert should_expand_query(query, low_top)
    assert should_expand_query(query, too_few_decent)
    assert should_expand_query(query, no_exact)


def test_are_results_relevant_requires_overlap_and_similarity():
    query = "how much protein should I eat"
    relevant = [_result("a", "Protein intake", "Eat 1g per pound.", 0.9)]
    weak = [_result("a", "Protein intake", "Eat 1g per pound.", 0.2)]
    unrelated = [_result("a", "Cardio timing", "Morning is fine.", 0.9)]

    assert are_results_relevant(query, relevant)
    assert not are_results_relevant(query, weak)
    assert not are_results_relevant(query, unrelated)
    assert not are_results_relevant(query, [])


def test_are_results_relevant_only_considers_top_three():
    filler = [_result(str(i), "cardio", "run", 0.9) for i in range(3)]
    late_match = _result("late", "protein", "protein", 0.9)
    assert not are_results_relevant("protein intake", [*filler, late_match])
    assert are_results_relevant("protein intake", [late_match, *filler])


def test_assess_results_counts_decent_scores_strictly():
    results = [_result("a", "q", "a", 0.31), _result("b", "q", "a", 0.3)]
    assessment = assess_results("q", results)
    assert assessment.decent_count == 1
    assert assessment.top_similarity == 0.31


def test_exact_phrase_outranks_identical_result_even_when_saturated():
    query = "creatine timing"
    exact = _result("exact", "Creatine timing advice", "You should take it daily.", 0.95)
    other = _result("other", "Timing of creatine advice", "You should take it daily.", 0.95)

    assert rerank_score(query, exact) > rerank_score(query, other)
    ranked = simple_reranking(query, [other, exact])
    assert [r.upsert_key for r in ranked] == ["exact", "other"]
    assert ranked[0].similarity == 1.0
    assert ranked[1].similarity == 1.0


def test_rerank_score_components():
    thresholds = RelevanceThresholds()
    result = _result("a", "protein sources", "You can eat chicken.", 0.5)
    # exact substring, full question overlap, full text overlap, action word
    expected = 0.5 + 0.4 + 0.3 + 0.2 + 0.1
    assert rerank_score("protein sources", result, thresholds) == pytest.approx(expected)


def test_rerank_score_skips_overlap_for_short_words():
    result = _result("a", "x", "nothing here", 0.5)
    assert rerank_score("a an", result) == pytest.approx(0.5)


def test_reranking_does_not_mutate_inputs():
    original = _result("a", "q", "a", 0.2)
    simple_reranking("q", [original])
    assert original.similarity == 0.2


def test_deduplicate_keeps_first_occurrence_in_order():
    results = [
        _result("a", "q1", "a1", 0.1),
        _result("b", "q2", "a2", 0.9),
        _result("a", "q3", "a3", 0.99),
        _result("c", "q4", "a4", 0.5),
    ]
    unique = deduplicate_results(results)
    assert [r.upsert_key for r in unique] == ["a", "b", "c"]
    assert unique[0].question == "q1"
    assert all(r in results for r in unique)


def test_sort_by_similarity_is_stable_and_descending():
    results = [
        _result("a", "q", "a", 0.5),
        _result("b", "q", "a", 0.9),
        _result("c", "q", "a", 0.5),
    ]
    assert [r.upsert_key for r in sort_by_similarity(results)] == ["b", "a", "c"]
