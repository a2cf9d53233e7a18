"""Relevance signals, gates and reranking over retrieved FAQ results.

Every signal is computed once by :func:`assess_results`; the gates
(:func:`are_results_relevant`, :func:`should_expand_query`) only read from the
resulting :class:`ResultAssessment`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from coachbot.faq.models import FAQResult

__all__ = [
    "ACTION_WORDS",
    "RelevanceThresholds",
    "ResultAssessment",
    "assess_results",
    "are_results_relevant",
    "should_expand_query",
    "rerank_score",
    "simple_reranking",
    "deduplicate_results",
    "sort_by_similarity",
]

ACTION_WORDS = ("should", "need", "take", "eat", "avoid", "use", "can", "will")


@dataclass(slots=True, frozen=True)
class RelevanceThresholds:
    relevance_top_n: int = 3
    relevance_min_word_length: int = 3
    relevance_min_similarity: float = 0.2
    expand_top_score: float = 0.4
    expand_decent_score: float = 0.3
    expand_min_decent: int = 3
    expand_exact_top_n: int = 3
    rerank_min_word_length: int = 2
    rerank_exact_bonus: float = 0.4
    rerank_question_weight: float = 0.3
    rerank_content_weight: float = 0.2
    rerank_action_bonus: float = 0.1
    rerank_max_score: float = 1.0


DEFAULT_THRESHOLDS = RelevanceThresholds()


@dataclass(slots=True, frozen=True)
class ResultAssessment:
    """Signals derived from one query and its ranked results."""

    result_count: int
    top_similarity: float
    decent_count: int
    relevant_in_top: bool
    exact_in_top: bool


def _words_longer_than(query: str, length: int) -> list[str]:
    return [word for word in query.lower().split() if len(word) > length]


def assess_results(
    query: str,
    results: Sequence[FAQResult],
    thresholds: RelevanceThresholds = DEFAULT_THRESHOLDS,
) -> ResultAssessment:
    if not results:
        return ResultAssessment(
            result_count=0,
            top_similarity=0.0,
            decent_count=0,
            relevant_in_top=False,
            exact_in_top=False,
        )

    query_lower = query.lower()
    relevance_words = _words_longer_than(query, thresholds.relevance_min_word_length)

    relevant_in_top = False
    for result in results[: thresholds.relevance_top_n]:
        text = result.searchable_text()
        if result.similarity > thresholds.relevance_min_similarity and any(
            word in text for word in relevance_words
        ):
            relevant_in_top = True
            break

    exact_in_top = any(
        query_lower in result.question.lower() or query_lower in result.answer.lower()
        for result in results[: thresholds.expand_exact_top_n]
    )

    return ResultAssessment(
        result_count=len(results),
        top_similarity=results[0].similarity,
        decent_count=sum(
            1 for result in results if result.similarity > thresholds.expand_decent_score
        ),
        relevant_in_top=relevant_in_top,
        exact_in_top=exact_in_top,
    )


def are_results_relevant(
    query: str,
    results: Sequence[FAQResult],
    thresholds: RelevanceThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    return assess_results(query, results, thresholds).relevant_in_top


def should_expand_query(
    query: str,
    results: Sequence[FAQResult],
    thresholds: RelevanceThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Return True when the simple results look too weak to stand on their own."""

    assessment = assess_results(query, results, thresholds)
    if assessment.result_count == 0:
        return True
    if assessment.top_similarity < thresholds.expand_top_score:
        return True
    if assessment.decent_count < thresholds.expand_min_decent:
        return True
    return not assessment.exact_in_top


def rerank_score(
    query: str,
    result: FAQResult,
    thresholds: RelevanceThresholds = DEFAULT_THRESHOLDS,
) -> float:
    """Unclamped additive relevance score for one result."""

    query_lower = query.lower()
    question = result.question.lower()
    answer = result.answer.lower()
    text = f"{question} {answer}"

    score = result.similarity
    if query_lower in text:
        score += thresholds.rerank_exact_bonus

    words = _words_longer_than(query, thresholds.rerank_min_word_length)
    if words:
        question_hits = sum(1 for word in words if word in question)
        text_hits = sum(1 for word in words if word in text)
        score += (question_hits / len(words)) * thresholds.rerank_question_weight
        score += (text_hits / len(words)) * thresholds.rerank_content_weight

    if any(action in answer for action in ACTION_WORDS):
        score += thresholds.rerank_action_bonus
    return score


def simple_reranking(
    query: str,
    results: Iterable[FAQResult],
    thresholds: RelevanceThresholds = DEFAULT_THRESHOLDS,
) -> list[FAQResult]:
    scored = [(rerank_score(query, result, thresholds), result) for result in results]
    # Order on the raw score so saturated results keep their relative order.
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        result.with_similarity(min(raw, thresholds.rerank_max_score))
        for raw, result in scored
    ]


def deduplicate_results(results: Iterable[FAQResult]) -> list[FAQResult]:
    seen: set[str] = set()
    unique: list[FAQResult] = []
    for result in results:
        if result.upsert_key in seen:
            continue
        seen.add(result.upsert_key)
        unique.append(result)
    return unique


def sort_by_similarity(results: Iterable[FAQResult]) -> list[FAQResult]:
    return sorted(results, key=lambda result: result.similarity, reverse=True)
