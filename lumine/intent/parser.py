"""Expense category resolution (LLM optional; keyword fallback)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal, Protocol

from lumine.intent.llm_classifier import CategoryGuess, LLMClassifierError
from lumine.intent.normalize import normalize_text
from lumine.intent.schema import Category
from lumine.intent.tables import PatternTables, default_tables

logger = logging.getLogger(__name__)

CategorySource = Literal["llm", "rules"]

DEFAULT_MIN_CONFIDENCE = 50


class CategoryClassifier(Protocol):
    """Best-effort external classifier. May raise; may be slow."""

    def classify(self, description: str) -> CategoryGuess: ...


@dataclass(frozen=True)
class CategoryResult:
    """Resolved category plus information about which classifier produced it."""

    category: Category
    confidence: int
    source: CategorySource


def keyword_category(description: str, tables: PatternTables | None = None) -> CategoryResult:
    """Keyword fallback. Confidence grows with the number of keyword hits, capped at 90."""

    value = normalize_text(description)
    for category, pattern in (tables or default_tables()).categories:
        hits = len(pattern.findall(value))
        if hits:
            return CategoryResult(category=category, confidence=min(60 + 10 * hits, 90), source="rules")
    return CategoryResult(category=Category.lainnya, confidence=30, source="rules")


def _accept(guess: CategoryGuess, fallback: CategoryResult, min_confidence: int) -> CategoryResult:
    if guess.confidence < min_confidence:
        return fallback
    if guess.category == Category.lainnya and fallback.category != Category.lainnya:
        return fallback
    return CategoryResult(category=guess.category, confidence=guess.confidence, source="llm")


def resolve_category(
        description: str,
        *,
        classifier: CategoryClassifier | None = None,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        tables: PatternTables | None = None,
) -> CategoryResult:
    """Resolve an expense category.

    Strategy:
        1) If a classifier is configured, ask it and keep a confident answer.
        2) On any failure or a low-confidence answer, fall back to keyword matching.
    """

    fallback = keyword_category(description, tables)
    if classifier is None:
        return fallback

    try:
        guess = classifier.classify(description)
    except (LLMClassifierError, ValueError) as exc:
        logger.warning("category classifier failed reason=%s", exc)
        return fallback
    return _accept(guess, fallback, min_confidence)


async def resolve_category_async(
        description: str,
        *,
        classifier: CategoryClassifier | None = None,
        timeout_s: float = 10.0,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        tables: PatternTables | None = None,
) -> CategoryResult:
    """Async variant: the blocking classifier call runs in a thread under a timeout."""

    fallback = keyword_category(description, tables)
    if classifier is None:
        return fallback

    try:
        guess = await asyncio.wait_for(
            asyncio.to_thread(classifier.classify, description), timeout=timeout_s
        )
    except TimeoutError:
        logger.warning("category classifier timed out timeout_s=%s", timeout_s)
        return fallback
    except (LLMClassifierError, ValueError) as exc:
        logger.warning("category classifier failed reason=%s", exc)
        return fallback
    return _accept(guess, fallback, min_confidence)
