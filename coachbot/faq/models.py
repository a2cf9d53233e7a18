from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


@dataclass(slots=True, frozen=True)
class FAQMetadata:
    """Question/answer pair stored alongside each FAQ document."""

    question: str
    answer: str


PARSE_ERROR_METADATA = FAQMetadata(question="Parse error", answer="Parse error")
MISSING_METADATA = FAQMetadata(question="No question", answer="No answer")


@dataclass(slots=True, frozen=True)
class FAQResult:
    """One retrieved FAQ, ranked by ``similarity`` (roughly 0-1, not a probability)."""

    upsert_key: str
    content: str
    data_type: str
    source_doc_name: str
    custom_metadata: FAQMetadata
    similarity: float = 0.0

    @property
    def question(self) -> str:
        return self.custom_metadata.question

    @property
    def answer(self) -> str:
        return self.custom_metadata.answer

    def searchable_text(self) -> str:
        return f"{self.question.lower()} {self.answer.lower()}"

    def with_similarity(self, similarity: float) -> "FAQResult":
        return replace(self, similarity=similarity)


class DistanceMetric(str, Enum):
    """How the ``similarity`` column returned by the match RPC is interpreted."""

    LEGACY = "legacy"
    COSINE_DISTANCE = "cosine_distance"
    SIMILARITY = "similarity"

    def to_similarity(self, raw: float) -> float:
        if self is DistanceMetric.LEGACY:
            return max(0.0, 1.0 - abs(raw))
        if self is DistanceMetric.COSINE_DISTANCE:
            return min(1.0, max(0.0, 1.0 - raw))
        return min(1.0, max(0.0, raw))


class ExpansionPolicy(str, Enum):
    """Whether a search expands the query into keyword phrases."""

    ALWAYS = "always"
    NEVER = "never"
    CONDITIONAL = "conditional"


__all__ = [
    "FAQMetadata",
    "FAQResult",
    "DistanceMetric",
    "ExpansionPolicy",
    "PARSE_ERROR_METADATA",
    "MISSING_METADATA",
]
