from __future__ import annotations

import re
from dataclasses import dataclass

from coachbot.faq import constants

__all__ = [
    "KeywordCategory",
    "KEYWORD_CATEGORIES",
    "PED_TRIGGERS",
    "extract_nutrition_keywords",
    "query_words",
    "build_search_terms",
]


@dataclass(slots=True, frozen=True)
class KeywordCategory:
    name: str
    triggers: tuple[str, ...]
    keywords: tuple[str, ...]

    def matches(self, query_lower: str) -> bool:
        return any(trigger in query_lower for trigger in self.triggers)


PED_TRIGGERS = ("ped", "steroid", "cycle", "testosterone", "tren", "anavar")

BASIC_SUPPLEMENT_KEYWORDS = (
    "supplements",
    "vitamins",
    "protein powder",
    "creatine",
    "fish oil",
    "multivitamin",
    "basic supplements",
)
PED_SUPPLEMENT_KEYWORDS = (
    "supplements",
    "vitamins",
    "performance enhancing drugs",
    "steroid cycle",
)

SUPPLEMENT_CATEGORY = KeywordCategory(
    name="supplements",
    triggers=("supplement", "vitamin", "creatine", "ped", "steroid", "testosterone", "tren", "anavar", "cycle"),
    keywords=PED_SUPPLEMENT_KEYWORDS,
)

KEYWORD_CATEGORIES: tuple[KeywordCategory, ...] = (
    KeywordCategory(
        name="protein",
        triggers=("meat", "protein", "substitute", "chicken", "beef", "fish", "whey", "casein"),
        keywords=("protein sources", "meat alternatives", "protein powder", "protein intake"),
    ),
    KeywordCategory(
        name="meal_planning",
        triggers=("meal", "plan", "diet", "eating", "food", "nutrition", "calories", "macros"),
        keywords=("meal plan", "nutrition", "diet plan", "calorie intake", "macronutrients"),
    ),
    SUPPLEMENT_CATEGORY,
    KeywordCategory(
        name="training",
        triggers=("muscle", "build", "training", "workout", "exercise", "lift", "strength", "bulk"),
        keywords=("muscle building", "training", "workout", "strength training", "bulking"),
    ),
    KeywordCategory(
        name="fat_loss",
        triggers=("fat", "lose", "cut", "cutting", "weight loss", "shred", "lean", "cardio"),
        keywords=("fat loss", "cutting", "weight loss", "cardio", "lean muscle"),
    ),
    KeywordCategory(
        name="fasting",
        triggers=("fast", "intermittent", "timing", "when to eat"),
        keywords=("intermittent fasting", "fasting", "meal timing", "eating schedule"),
    ),
    KeywordCategory(
        name="contest_prep",
        triggers=("contest", "prep", "competition", "stage", "bodybuilding"),
        keywords=("contest prep", "bodybuilding", "competition preparation"),
    ),
    KeywordCategory(
        name="recovery",
        triggers=("recovery", "sleep", "rest", "injury", "health"),
        keywords=("recovery", "sleep", "rest day", "injury prevention"),
    ),
)

# Characters with meaning in the PostgREST filter grammar.
_RESERVED_RE = re.compile(r"[,().:*%\\\"']")


def _is_basic_supplement_query(query_lower: str) -> bool:
    return "supplement" in query_lower and not any(trigger in query_lower for trigger in PED_TRIGGERS)


def extract_nutrition_keywords(query: str) -> list[str]:
    """Map a fitness question onto canonical topic phrases (at most four)."""

    query_lower = query.lower()
    keywords: list[str] = []
    for category in KEYWORD_CATEGORIES:
        if not category.matches(query_lower):
            continue
        if category is SUPPLEMENT_CATEGORY and _is_basic_supplement_query(query_lower):
            keywords.extend(BASIC_SUPPLEMENT_KEYWORDS)
        else:
            keywords.extend(category.keywords)
    return keywords[: constants.MAX_SMART_KEYWORDS]


def query_words(query: str, min_length: int = constants.TEXT_SEARCH_MIN_WORD_LENGTH) -> list[str]:
    return [word for word in query.lower().split() if len(word) > min_length]


def _sanitize_term(term: str) -> str:
    return " ".join(_RESERVED_RE.sub(" ", term).split())


def build_search_terms(query: str, max_terms: int = constants.MAX_TEXT_SEARCH_TERMS) -> list[str]:
    terms: list[str] = []
    for candidate in [*extract_nutrition_keywords(query), *query_words(query)]:
        cleaned = _sanitize_term(candidate)
        if cleaned and cleaned not in terms:
            terms.append(cleaned)
        if len(terms) >= max_terms:
            break
    return terms
