"""Rules-based Indonesian message classifier.

The classifier is deterministic and runs in three ordered stages over normalized text:

    1) budget / goal commands short-circuit everything else;
    2) arbitration: the message is a Query iff at least one information-query rule matches and
       no transaction-record rule matches, otherwise it is a Transaction;
    3) query messages get a fine-grained intent from an ordered first-match-wins table.

All vocabulary comes from `PatternTables`; this module only encodes the stage order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from lumine.intent import dates
from lumine.intent.extractors import (
    categorize,
    extract_amount,
    extract_budget,
    extract_challenge,
    extract_comparison_type,
    extract_goal,
    extract_search_keyword,
    extract_simulation,
)
from lumine.intent.normalize import normalize_text
from lumine.intent.schema import Category, Intent, MessageKind, ParsedQuery
from lumine.intent.tables import PatternTables, default_tables, first_match

logger = logging.getLogger(__name__)


class RulesParserError(ValueError):
    """Raised when the rules parser cannot work on the input at all (e.g. empty text)."""


@dataclass(frozen=True)
class ArbitrationResult:
    """Which information-query and transaction rules matched, by tag."""

    information_tags: tuple[str, ...]
    transaction_tags: tuple[str, ...]

    @property
    def kind(self) -> MessageKind:
        if self.information_tags and not self.transaction_tags:
            return MessageKind.query
        return MessageKind.transaction


def _budget_or_goal(value: str, tables: PatternTables) -> Intent | None:
    return first_match(
        (
            (tables.budget.matches, Intent.budget),
            (tables.goal.matches, Intent.goal),
        ),
        value,
    )


def _arbitrate(value: str, tables: PatternTables) -> ArbitrationResult:
    return ArbitrationResult(
        information_tags=tables.information_query.matched_tags(value),
        transaction_tags=tables.transaction.matched_tags(value),
    )


def arbitrate(text: str, tables: PatternTables | None = None) -> ArbitrationResult:
    """Evaluate both competing rule sets against the text."""

    return _arbitrate(normalize_text(text), tables or default_tables())


def _query_intent(value: str, tables: PatternTables) -> Intent:
    has_category = categorize(value, tables) != Category.lainnya
    eligible = (e for e in tables.query_intents if has_category or not e.requires_category)
    intent = first_match(((e.rules.matches, e.intent) for e in eligible), value)
    return intent or Intent.unknown


def _classify(value: str, tables: PatternTables, now: date | datetime) -> tuple[MessageKind, Intent]:
    intent = _budget_or_goal(value, tables)
    if intent is not None:
        return MessageKind.budget_goal, intent

    verdict = _arbitrate(value, tables)
    if verdict.kind == MessageKind.query:
        intent = _query_intent(value, tables)
        if intent == Intent.unknown:
            return MessageKind.unknown, intent
        return MessageKind.query, intent

    if verdict.transaction_tags or extract_amount(dates.strip_temporal(value, now)) is not None:
        return MessageKind.transaction, Intent.transaction
    return MessageKind.unknown, Intent.unknown


def classify(
        text: str,
        tables: PatternTables | None = None,
        *,
        now: date | datetime | None = None,
) -> Intent:
    """Classify a message into an `Intent` (`Intent.unknown` when nothing applies).

    `now` only decides which dates exist; it defaults to today.
    """

    value = normalize_text(text)
    if not value:
        return Intent.unknown
    return _classify(value, tables or default_tables(), now or date.today())[1]


def parse_message(
        text: str,
        *,
        now: date | datetime,
        sender_id: str = "",
        tables: PatternTables | None = None,
) -> ParsedQuery:
    """Classify a message and extract every entity its intent needs.

    Raises:
        RulesParserError: If the text is empty after normalization.
    """

    value = normalize_text(text)
    if not value:
        raise RulesParserError("Empty message")

    tables = tables or default_tables()
    kind, intent = _classify(value, tables, now)
    base = {"kind": kind, "intent": intent, "raw_text": text, "sender_id": sender_id}

    if intent == Intent.unknown:
        logger.debug("unrecognized message text=%r", value)
        return ParsedQuery(**base)

    if intent == Intent.budget:
        budget = extract_budget(value, tables)
        return ParsedQuery(
            **base,
            budget=budget,
            category=budget.category,
            amount=budget.amount,
            date_range=dates.budget_period_range(budget.period, now),
        )

    if intent == Intent.goal:
        goal = extract_goal(value, now, tables)
        return ParsedQuery(**base, goal=goal, amount=goal.amount)

    time_context = dates.resolve(value, now)
    date_range = dates.to_date_range(time_context, now) if time_context is not None else None
    category = categorize(value, tables)

    if intent == Intent.transaction:
        amount = extract_amount(dates.strip_temporal(value, now))
        if amount is None:
            logger.warning("transaction without amount text=%r", value)
            amount = 0
        return ParsedQuery(
            **base,
            time_context=time_context,
            date_range=date_range,
            category=category,
            amount=amount,
        )

    extras: dict[str, object] = {}
    if intent == Intent.comparison:
        extras["comparison_type"] = extract_comparison_type(value)
    elif intent == Intent.challenge:
        extras["challenge"] = extract_challenge(value)
    elif intent == Intent.simulation:
        extras["simulation"] = extract_simulation(value)
    if intent in (Intent.search, Intent.history, Intent.category):
        extras["search_keyword"] = extract_search_keyword(value, tables)

    return ParsedQuery(
        **base,
        time_context=time_context,
        date_range=date_range,
        category=None if category == Category.lainnya else category,
        **extras,
    )
