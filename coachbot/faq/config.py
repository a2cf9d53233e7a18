from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dotenv import load_dotenv

from coachbot.cache import (
    EMBEDDING_CACHE_TTL,
    QUERY_EXPANSION_CACHE_TTL,
    RESULTS_CACHE_TTL,
    SWEEP_INTERVAL,
)
from coachbot.core.config import clean_env, env_float, env_int
from coachbot.faq import constants
from coachbot.faq.models import DistanceMetric, ExpansionPolicy
from coachbot.faq.relevance import RelevanceThresholds

log = logging.getLogger(__name__)


@dataclass(slots=True)
class FAQSearchConfig:
    """Connection details, timeouts and cache lifetimes for FAQ retrieval."""

    openai_api_key: str | None = None
    embedding_model: str = constants.EMBEDDING_MODEL
    embedding_url: str = constants.EMBEDDING_URL
    embedding_dimensions: int = constants.EMBEDDING_DIMENSIONS
    supabase_url: str | None = None
    supabase_key: str | None = None
    table: str = constants.FAQ_TABLE
    match_function: str = constants.MATCH_FUNCTION
    embedding_timeout: float = constants.EMBEDDING_TIMEOUT_SECONDS
    vector_timeout: float = constants.VECTOR_SEARCH_TIMEOUT_SECONDS
    text_timeout: float = constants.TEXT_SEARCH_TIMEOUT_SECONDS
    embedding_cache_ttl: float = EMBEDDING_CACHE_TTL
    results_cache_ttl: float = RESULTS_CACHE_TTL
    expansion_cache_ttl: float = QUERY_EXPANSION_CACHE_TTL
    sweep_interval: float = SWEEP_INTERVAL
    max_match_count: int = constants.MAX_MATCH_COUNT
    distance_metric: DistanceMetric = DistanceMetric.LEGACY
    expansion_max_terms: int = constants.EXPANSION_MAX_TERMS
    default_policy: ExpansionPolicy = ExpansionPolicy.CONDITIONAL
    thresholds: RelevanceThresholds = field(default_factory=RelevanceThresholds)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> "FAQSearchConfig":
        load_dotenv()
        return cls(
            openai_api_key=clean_env("OPENAI_API_KEY"),
            embedding_model=clean_env("FAQ_EMBEDDING_MODEL") or constants.EMBEDDING_MODEL,
            embedding_url=clean_env("FAQ_EMBEDDING_URL") or constants.EMBEDDING_URL,
            supabase_url=clean_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
            supabase_key=clean_env("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY"),
            table=clean_env("FAQ_TABLE") or constants.FAQ_TABLE,
            match_function=clean_env("FAQ_MATCH_FUNCTION") or constants.MATCH_FUNCTION,
            embedding_timeout=_seconds("FAQ_EMBEDDING_TIMEOUT", constants.EMBEDDING_TIMEOUT_SECONDS),
            vector_timeout=_seconds("FAQ_VECTOR_TIMEOUT", constants.VECTOR_SEARCH_TIMEOUT_SECONDS),
            text_timeout=_seconds("FAQ_TEXT_TIMEOUT", constants.TEXT_SEARCH_TIMEOUT_SECONDS),
            embedding_cache_ttl=_seconds("FAQ_EMBEDDING_CACHE_TTL", EMBEDDING_CACHE_TTL),
            results_cache_ttl=_seconds("FAQ_RESULTS_CACHE_TTL", RESULTS_CACHE_TTL),
            expansion_cache_ttl=_seconds("FAQ_EXPANSION_CACHE_TTL", QUERY_EXPANSION_CACHE_TTL),
            sweep_interval=_seconds("FAQ_CACHE_SWEEP_INTERVAL", SWEEP_INTERVAL),
            max_match_count=env_int("FAQ_MAX_MATCH_COUNT", constants.MAX_MATCH_COUNT, minimum=1),
            distance_metric=_enum_from_env(
                "FAQ_DISTANCE_METRIC", DistanceMetric, DistanceMetric.LEGACY
            ),
            expansion_max_terms=env_int(
                "FAQ_EXPANSION_MAX_TERMS", constants.EXPANSION_MAX_TERMS, minimum=1
            ),
            default_policy=_enum_from_env(
                "FAQ_SEARCH_POLICY", ExpansionPolicy, ExpansionPolicy.CONDITIONAL
            ),
        )


def _seconds(name: str, default: float) -> float:
    return env_float(name, default, minimum=0.1)


def _enum_from_env(name, enum_cls, default):
    raw = clean_env(name)
    if raw is None:
        return default
    try:
        return enum_cls(raw.lower())
    except ValueError:
        log.warning("Invalid %s=%s; using %s", name, raw, default.value)
        return default


__all__ = ["FAQSearchConfig"]
