"""Defaults for the FAQ retrieval pipeline."""

EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_URL = "https://api.openai.com/v1/embeddings"
EMBEDDING_DIMENSIONS = 1536

FAQ_TABLE = "jtt_v2"
MATCH_FUNCTION = "match_documents"
FAQ_DATA_TYPE = "faq"

EMBEDDING_TIMEOUT_SECONDS = 10.0
VECTOR_SEARCH_TIMEOUT_SECONDS = 8.0
TEXT_SEARCH_TIMEOUT_SECONDS = 5.0

MAX_MATCH_COUNT = 50
DEFAULT_LIMIT = 5

# Over-fetch factors used by the hybrid (no expansion) stage.
HYBRID_VECTOR_FACTOR = 4
HYBRID_TEXT_FACTOR = 2

MAX_SMART_KEYWORDS = 4
MAX_TEXT_SEARCH_TERMS = 5
TEXT_SEARCH_MIN_WORD_LENGTH = 2
TEXT_SEARCH_BASE_SCORE = 0.3
TEXT_SEARCH_TERM_SCORE = 0.1
TEXT_SEARCH_MAX_SCORE = 0.8

EXPANSION_MAX_TERMS = 3

SIMILARITY_DECIMALS = 3

__all__ = [
    "EMBEDDING_MODEL",
    "EMBEDDING_URL",
    "EMBEDDING_DIMENSIONS",
    "FAQ_TABLE",
    "MATCH_FUNCTION",
    "FAQ_DATA_TYPE",
    "EMBEDDING_TIMEOUT_SECONDS",
    "VECTOR_SEARCH_TIMEOUT_SECONDS",
    "TEXT_SEARCH_TIMEOUT_SECONDS",
    "MAX_MATCH_COUNT",
    "DEFAULT_LIMIT",
    "HYBRID_VECTOR_FACTOR",
    "HYBRID_TEXT_FACTOR",
    "MAX_SMART_KEYWORDS",
    "MAX_TEXT_SEARCH_TERMS",
    "TEXT_SEARCH_MIN_WORD_LENGTH",
    "TEXT_SEARCH_BASE_SCORE",
    "TEXT_SEARCH_TERM_SCORE",
    "TEXT_SEARCH_MAX_SCORE",
    "EXPANSION_MAX_TERMS",
    "SIMILARITY_DECIMALS",
]
