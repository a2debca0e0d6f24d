"""Immutable pattern tables for the rules-based classifier.

All regex vocabulary lives in `patterns.toml` next to this module. It is loaded once into frozen
dataclasses and passed to the classifier and extractors explicitly, so tests can inject their own
tables and the default tables are never mutated at runtime.
"""

from __future__ import annotations

import re
import tomllib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

from lumine.intent.schema import Category, Intent

DEFAULT_TABLES_PATH = Path(__file__).resolve().parent / "patterns.toml"

T = TypeVar("T")
R = TypeVar("R")


class PatternTableError(ValueError):
    """Raised when a pattern table file is malformed."""


@dataclass(frozen=True)
class Rule:
    """A single declarative pattern. Lower `precedence` is evaluated first."""

    tag: str
    pattern: re.Pattern[str]
    precedence: int

    def search(self, text: str) -> re.Match[str] | None:
        return self.pattern.search(text)


@dataclass(frozen=True)
class RuleSet:
    """An ordered collection of rules evaluated by one generic matcher."""

    name: str
    rules: tuple[Rule, ...]

    def matched_tags(self, text: str) -> tuple[str, ...]:
        """Tags of every rule matching `text`, in precedence order."""

        return tuple(rule.tag for rule in self.rules if rule.search(text))

    def first(self, text: str) -> Rule | None:
        return first_match(((rule.search, rule) for rule in self.rules), text)

    def matches(self, text: str) -> bool:
        return self.first(text) is not None


@dataclass(frozen=True)
class IntentRule:
    """A fine-grained query intent and the rules that select it."""

    intent: Intent
    rules: RuleSet
    requires_category: bool = False


@dataclass(frozen=True)
class PatternTables:
    version: int
    budget: RuleSet
    goal: RuleSet
    information_query: RuleSet
    transaction: RuleSet
    query_intents: tuple[IntentRule, ...]
    search_templates: tuple[re.Pattern[str], ...]
    categories: tuple[tuple[Category, re.Pattern[str]], ...]


def first_match(candidates: Iterable[tuple[Callable[[T], Any], R]], value: T) -> R | None:
    """Return the result paired with the first predicate that is truthy for `value`."""

    for predicate, result in candidates:
        if predicate(value):
            return result
    return None


def _compile(pattern: str, *, where: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise PatternTableError(f"Invalid regex in {where}: {pattern!r} ({exc})") from exc


def _rule_set(name: str, entries: Any) -> RuleSet:
    if not isinstance(entries, list) or not entries:
        raise PatternTableError(f"Rule set {name!r} must be a non-empty list")

    rules: list[Rule] = []
    for idx, entry in enumerate(entries):
        if isinstance(entry, str):
            tag, pattern = f"{name}_{idx}", entry
        elif isinstance(entry, dict) and "pattern" in entry:
            tag, pattern = str(entry.get("tag") or f"{name}_{idx}"), entry["pattern"]
        else:
            raise PatternTableError(f"Rule set {name!r} has a malformed entry at {idx}")
        rules.append(Rule(tag=tag, pattern=_compile(pattern, where=name), precedence=idx))
    return RuleSet(name=name, rules=tuple(rules))


def _query_intents(entries: Any) -> tuple[IntentRule, ...]:
    if not isinstance(entries, list) or not entries:
        raise PatternTableError("query_intents must be a non-empty list")

    result: list[IntentRule] = []
    for entry in entries:
        try:
            intent = Intent(entry["intent"])
        except (KeyError, ValueError) as exc:
            raise PatternTableError(f"Unknown query intent entry: {entry!r}") from exc
        result.append(
            IntentRule(
                intent=intent,
                rules=_rule_set(intent.value, entry.get("patterns")),
                requires_category=bool(entry.get("requires_category", False)),
            )
        )
    return tuple(result)


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern[str]:
    # Whole-word matching keeps short keywords ("tol", "les") from firing inside longer words.
    alternation = "|".join(re.escape(k.lower()) for k in keywords)
    return re.compile(rf"(?<![0-9a-z])(?:{alternation})(?![0-9a-z])")


def _categories(entries: Any) -> tuple[tuple[Category, re.Pattern[str]], ...]:
    if not isinstance(entries, list) or not entries:
        raise PatternTableError("categories must be a non-empty list")

    result: list[tuple[Category, re.Pattern[str]]] = []
    for entry in entries:
        try:
            category = Category(entry["name"])
        except (KeyError, ValueError) as exc:
            raise PatternTableError(f"Unknown category entry: {entry!r}") from exc
        keywords = entry.get("keywords") or []
        if not keywords:
            raise PatternTableError(f"Category {category} has no keywords")
        result.append((category, _keyword_pattern(keywords)))
    return tuple(result)


def tables_from_obj(obj: dict[str, Any]) -> PatternTables:
    """Build `PatternTables` from a decoded TOML document."""

    search = obj.get("search") or {}
    return PatternTables(
        version=int(obj.get("version", 0)),
        budget=_rule_set("budget", obj.get("budget")),
        goal=_rule_set("goal", obj.get("goal")),
        information_query=_rule_set("information_query", obj.get("information_query")),
        transaction=_rule_set("transaction", obj.get("transaction")),
        query_intents=_query_intents(obj.get("query_intents")),
        search_templates=tuple(
            _compile(p, where="search.templates") for p in search.get("templates", [])
        ),
        categories=_categories(obj.get("categories")),
    )


def load_tables(path: Path | str | None = None) -> PatternTables:
    """Load pattern tables from a TOML file (the bundled `patterns.toml` by default)."""

    table_path = Path(path) if path is not None else DEFAULT_TABLES_PATH
    try:
        with table_path.open("rb") as fh:
            obj = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise PatternTableError(f"Invalid TOML in {table_path}: {exc}") from exc
    return tables_from_obj(obj)


@lru_cache(maxsize=1)
def default_tables() -> PatternTables:
    """The bundled tables, loaded once per process."""

    return load_tables()
