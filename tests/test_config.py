from __future__ import annotations

import logging

import pytest

from coachbot.core.config import clean_env, load_runtime_config, parse_bool, parse_float, parse_int
from coachbot.core.logging import NOISY_LIBRARIES, configure_logging
from coachbot.faq.config import FAQSearchConfig
from coachbot.faq.models import DistanceMetric, ExpansionPolicy


def test_parse_int_handles_blank_invalid_and_minimum():
    assert parse_int(None, default=5) == 5
    assert parse_int("   ", default=5) == 5
    assert parse_int("abc", default=5) == 5
    assert parse_int(" 12 ", default=5) == 12
    assert parse_int("0", default=5, minimum=1) == 1


def test_parse_float_rejects_nan():
    assert parse_float("nan", default=2.5) == 2.5
    assert parse_float("1.5", default=2.5) == 1.5
    assert parse_float("0.01", default=2.5, minimum=0.1) == 0.1
    assert parse_float("fast", default=2.5) == 2.5


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, True), ("", True), ("yes", True), ("ON", True), ("0", False), ("nope", False)],
)
def test_parse_bool(raw, expected):
    assert parse_bool(raw, default=True) is expected


def test_clean_env_returns_first_non_blank(monkeypatch):
    monkeypatch.setenv("COACHBOT_PRIMARY", "   ")
    monkeypatch.setenv("COACHBOT_SECONDARY", " value ")
    monkeypatch.delenv("COACHBOT_MISSING", raising=False)

    assert clean_env("COACHBOT_MISSING", "COACHBOT_PRIMARY", "COACHBOT_SECONDARY") == "value"
    assert clean_env("COACHBOT_MISSING") is None


def test_load_runtime_config_defaults_to_warning(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert load_runtime_config().log_level == "WARNING"

    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_runtime_config().log_level == "DEBUG"


def test_configure_logging_quiets_noisy_libraries():
    configure_logging("debug")

    for name in NOISY_LIBRARIES:
        assert logging.getLogger(name).level == logging.WARNING


_FAQ_ENV = (
    "OPENAI_API_KEY",
    "SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_KEY",
    "FAQ_TABLE",
    "FAQ_EMBEDDING_TIMEOUT",
    "FAQ_RESULTS_CACHE_TTL",
    "FAQ_MAX_MATCH_COUNT",
    "FAQ_DISTANCE_METRIC",
    "FAQ_SEARCH_POLICY",
    "FAQ_EXPANSION_MAX_TERMS",
)


@pytest.fixture
def clean_faq_env(monkeypatch):
    for name in _FAQ_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_faq_config_defaults(clean_faq_env):
    config = FAQSearchConfig.from_env()

    assert config.openai_api_key is None
    assert not config.has_supabase
    assert config.table == "jtt_v2"
    assert config.embedding_timeout == 10.0
    assert config.results_cache_ttl == 120.0
    assert config.distance_metric is DistanceMetric.LEGACY
    assert config.default_policy is ExpansionPolicy.CONDITIONAL
    assert config.thresholds.expand_top_score == 0.4


def test_faq_config_reads_environment(clean_faq_env):
    clean_faq_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_faq_env.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://example.supabase.co")
    clean_faq_env.setenv("SUPABASE_KEY", "anon")
    clean_faq_env.setenv("FAQ_TABLE", "faq_docs")
    clean_faq_env.setenv("FAQ_EMBEDDING_TIMEOUT", "0")
    clean_faq_env.setenv("FAQ_MAX_MATCH_COUNT", "20")
    clean_faq_env.setenv("FAQ_DISTANCE_METRIC", "COSINE_DISTANCE")
    clean_faq_env.setenv("FAQ_SEARCH_POLICY", "never")

    config = FAQSearchConfig.from_env()

    assert config.openai_api_key == "sk-test"
    assert config.has_supabase
    assert config.table == "faq_docs"
    assert config.embedding_timeout == 0.1
    assert config.max_match_count == 20
    assert config.distance_metric is DistanceMetric.COSINE_DISTANCE
    assert config.default_policy is ExpansionPolicy.NEVER


def test_faq_config_invalid_enum_falls_back(clean_faq_env, caplog):
    clean_faq_env.setenv("FAQ_SEARCH_POLICY", "sometimes")

    with caplog.at_level(logging.WARNING, logger="coachbot.faq.config"):
        config = FAQSearchConfig.from_env()

    assert config.default_policy is ExpansionPolicy.CONDITIONAL
    assert "FAQ_SEARCH_POLICY" in caplog.text
