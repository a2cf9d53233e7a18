from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from coachbot.faq import constants
from coachbot.faq.models import MISSING_METADATA, PARSE_ERROR_METADATA, ExpansionPolicy, FAQResult
from coachbot.faq.service import FAQSearchService, get_default_service

log = logging.getLogger(__name__)

__all__ = ["NO_KNOWLEDGE_TEXT", "format_knowledge_context", "search_knowledge_base"]

NO_KNOWLEDGE_TEXT = "No specific knowledge found - use your general fitness expertise."
_PLACEHOLDER_QUESTIONS = (MISSING_METADATA.question, PARSE_ERROR_METADATA.question)


def format_knowledge_context(results: Iterable[FAQResult]) -> str:
    """Render results as the knowledge block spliced into a coaching prompt."""

    blocks = []
    for result in results:
        question = result.question
        if question and question not in _PLACEHOLDER_QUESTIONS:
            blocks.append(f"**Q: {question}**\n**A:** {result.content}\n")
        else:
            blocks.append(f"{result.content}\n")
    if not blocks:
        return NO_KNOWLEDGE_TEXT
    return "\n".join(blocks)


async def search_knowledge_base(
    query: str,
    *,
    service: FAQSearchService | None = None,
    limit: int = constants.DEFAULT_LIMIT,
) -> list[FAQResult]:
    try:
        active = service or get_default_service()
        return await active.search(query, limit, policy=ExpansionPolicy.CONDITIONAL)
    except asyncio.CancelledError:
        raise
    except Exception:
        log.exception("Knowledge base search failed for %r", query[:50])
        return []
