"""Tests for pattern table loading and injection."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from lumine.intent.rules_parser import parse_message
from lumine.intent.schema import Category, Intent
from lumine.intent.tables import PatternTableError, default_tables, load_tables, tables_from_obj

NOW = datetime(2025, 6, 18, 10, 30)


def _minimal_obj() -> dict:
    return {
        "version": 1,
        "budget": [{"tag": "budget", "pattern": r"\bbudget\b"}],
        "goal": [{"tag": "goal", "pattern": r"\btarget\b"}],
        "information_query": [r"^berapa\b"],
        "transaction": [{"tag": "unit", "pattern": r"\d+\s*ribu\b"}],
        "query_intents": [{"intent": "total", "patterns": [r"^berapa\b"]}],
        "search": {"templates": [r"\bcari\s+(?P<keyword>\w+)"]},
        "categories": [{"name": "Hiburan", "keywords": ["kopi"]}],
    }


def test_default_tables_load() -> None:
    tables = default_tables()
    assert tables.version >= 1
    assert tables.budget.rules
    assert [category for category, _ in tables.categories][0] == Category.makanan


def test_rule_precedence_follows_file_order() -> None:
    rules = default_tables().transaction.rules
    assert [rule.precedence for rule in rules] == list(range(len(rules)))


def test_injected_tables_change_classification() -> None:
    tables = tables_from_obj(_minimal_obj())

    parsed = parse_message("beli kopi 5 ribu", now=NOW, tables=tables)
    assert parsed.intent == Intent.transaction
    assert parsed.category == Category.hiburan

    parsed = parse_message("berapa semuanya", now=NOW, tables=tables)
    assert parsed.intent == Intent.total


def test_untagged_rules_get_generated_tags() -> None:
    tables = tables_from_obj(_minimal_obj())
    assert tables.information_query.matched_tags("berapa") == ("information_query_0",)


def test_invalid_regex_is_rejected() -> None:
    obj = _minimal_obj()
    obj["transaction"] = ["(unclosed"]
    with pytest.raises(PatternTableError):
        tables_from_obj(obj)


def test_unknown_intent_is_rejected() -> None:
    obj = _minimal_obj()
    obj["query_intents"] = [{"intent": "teleport", "patterns": ["x"]}]
    with pytest.raises(PatternTableError):
        tables_from_obj(obj)


def test_empty_rule_set_is_rejected() -> None:
    obj = _minimal_obj()
    obj["budget"] = []
    with pytest.raises(PatternTableError):
        tables_from_obj(obj)


def test_malformed_toml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "patterns.toml"
    path.write_text("version = [", encoding="utf-8")
    with pytest.raises(PatternTableError):
        load_tables(path)
