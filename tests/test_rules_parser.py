"""Tests for the deterministic rules-based Indonesian message classifier."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from lumine.intent.rules_parser import RulesParserError, arbitrate, classify, parse_message
from lumine.intent.schema import (
    BudgetAction,
    Category,
    ComparisonType,
    DayContext,
    GoalType,
    Intent,
    MessageKind,
)
from lumine.intent.tables import default_tables

NOW = datetime(2025, 6, 18, 10, 30)

QUERY_FIXTURES: list[tuple[str, Intent]] = [
    ("pengeluaranku 1 minggu lalu", Intent.total),
    ("pengeluaranku hari Senin", Intent.total),
    ("pengeluaran minggu ini", Intent.total),
    ("berapa pengeluaran bulan lalu", Intent.total),
    ("total pengeluaran hari ini", Intent.total),
    ("pengeluaranku", Intent.total),
    ("pengeluaran dari tanggal 5 sampai tanggal 10", Intent.total),
    ("dari tanggal 1 hingga tanggal 15", Intent.total),
    ("antara tanggal 20 dan tanggal 25", Intent.total),
    ("pengeluaran 3 hari lalu", Intent.total),
    ("pengeluaran 2 minggu lalu", Intent.total),
    ("pengeluaran tanggal 5 juni", Intent.total),
    ("pengeluaran untuk makanan", Intent.category),
    ("bandingkan pengeluaran bulan ini dengan bulan lalu", Intent.comparison),
    ("prediksi pengeluaran akhir bulan", Intent.prediction),
    ("pola pengeluaran bulan ini", Intent.pattern),
    ("saran biar hemat", Intent.recommendation),
    ("riwayat transaksi", Intent.history),
    ("transaksi terbesar bulan ini", Intent.history),
    ("beli kopi di mana", Intent.search),
    ("kapan terakhir beli kopi", Intent.search),
    ("hari apa yang paling boros?", Intent.hari_paling_boros),
    ("challenge 7 hari tanpa belanja", Intent.challenge),
    ("simulasi sisa uang", Intent.simulation),
    ("simulasi nabung 1000000 per bulan", Intent.simulation),
]

TRANSACTION_FIXTURES: list[str] = [
    "beli nasi padang 15 ribu",
    "bayar kos 500 ribu",
    "beli kopi di starbucks Rp25000",
    "dari warung makan 25 ribu",
    "makan siang 12.000",
    # Information and transaction rules both match: the transaction wins.
    "bayar dari tanggal 1 sampai tanggal 7 sebesar 50 ribu",
]


@pytest.mark.parametrize(("text", "intent"), QUERY_FIXTURES)
def test_query_fixtures(text: str, intent: Intent) -> None:
    parsed = parse_message(text, now=NOW)
    assert parsed.kind == MessageKind.query
    assert parsed.intent == intent


@pytest.mark.parametrize("text", TRANSACTION_FIXTURES)
def test_transaction_fixtures(text: str) -> None:
    parsed = parse_message(text, now=NOW)
    assert parsed.kind == MessageKind.transaction
    assert parsed.intent == Intent.transaction
    assert parsed.amount is not None and parsed.amount > 0


@pytest.mark.parametrize(
    ("text", "amount", "day"),
    [
        ("beli buku 5 juni 75000", 75_000, date(2025, 6, 5)),
        ("beli bensin 2 hari lalu 30000", 30_000, date(2025, 6, 16)),
        ("bayar listrik tanggal 5 350000", 350_000, date(2025, 6, 5)),
        ("bayar dari tanggal 1 sampai tanggal 7 sebesar 50 ribu", 50_000, date(2025, 6, 1)),
    ],
)
def test_date_numerals_are_not_amounts(text: str, amount: int, day: date) -> None:
    parsed = parse_message(text, now=NOW)

    assert parsed.intent == Intent.transaction
    assert parsed.amount == amount
    assert parsed.date_range is not None
    assert parsed.date_range.start_date == day


def test_transaction_with_only_a_date_numeral_has_no_amount() -> None:
    parsed = parse_message("beli kopi 3 hari lalu", now=NOW)

    assert parsed.intent == Intent.transaction
    assert parsed.amount == 0
    assert parsed.time_context == DayContext(offset=3)


def test_spending_over_past_days_is_a_query() -> None:
    verdict = arbitrate("pengeluaran 2 minggu lalu")

    assert "spending_period" in verdict.information_tags
    assert verdict.transaction_tags == ()
    assert verdict.kind == MessageKind.query


def test_query_intent_order_is_frozen() -> None:
    assert [entry.intent for entry in default_tables().query_intents] == [
        Intent.total,
        Intent.category,
        Intent.comparison,
        Intent.prediction,
        Intent.pattern,
        Intent.recommendation,
        Intent.history,
        Intent.search,
        Intent.hari_paling_boros,
        Intent.challenge,
        Intent.simulation,
    ]


def test_arbitration_requires_no_transaction_match() -> None:
    both = arbitrate("bayar dari tanggal 1 sampai tanggal 7 sebesar 50 ribu")
    assert both.information_tags and both.transaction_tags
    assert both.kind == MessageKind.transaction

    query_only = arbitrate("pengeluaran dari tanggal 5 sampai tanggal 10")
    assert query_only.information_tags
    assert query_only.transaction_tags == ()
    assert query_only.kind == MessageKind.query


def test_budget_commands_short_circuit_amounts() -> None:
    parsed = parse_message("budget makanan 2 juta", now=NOW)
    assert parsed.kind == MessageKind.budget_goal
    assert parsed.intent == Intent.budget
    assert parsed.budget is not None
    assert parsed.budget.action == BudgetAction.set
    assert parsed.budget.amount == 2_000_000
    assert parsed.category == Category.makanan
    assert parsed.date_range is not None
    assert parsed.date_range.start_date == date(2025, 6, 1)


def test_budget_status_command() -> None:
    parsed = parse_message("cek budget", now=NOW)
    assert parsed.intent == Intent.budget
    assert parsed.budget is not None
    assert parsed.budget.action == BudgetAction.status


def test_goal_command() -> None:
    parsed = parse_message("target nabung 10 juta sampai bulan desember", now=NOW)
    assert parsed.kind == MessageKind.budget_goal
    assert parsed.intent == Intent.goal
    assert parsed.goal is not None
    assert parsed.goal.goal_type == GoalType.save
    assert parsed.goal.deadline == date(2025, 12, 31)


def test_transaction_entities() -> None:
    parsed = parse_message("beli nasi padang 15 ribu kemarin", now=NOW, sender_id="u1")
    assert parsed.amount == 15_000
    assert parsed.category == Category.makanan
    assert parsed.sender_id == "u1"
    assert parsed.time_context == DayContext(offset=1)
    assert parsed.date_range is not None
    assert parsed.date_range.start_date == date(2025, 6, 17)


def test_query_entities() -> None:
    parsed = parse_message("pengeluaran untuk makanan bulan lalu", now=NOW)
    assert parsed.intent == Intent.category
    assert parsed.category == Category.makanan
    assert parsed.search_keyword == "makanan"
    assert parsed.date_range is not None
    assert parsed.date_range.start_date == date(2025, 5, 1)


def test_comparison_type_is_extracted() -> None:
    parsed = parse_message("bandingkan minggu ini dengan minggu lalu", now=NOW)
    assert parsed.intent == Intent.comparison
    assert parsed.comparison_type == ComparisonType.week_to_week


def test_search_keyword_is_extracted() -> None:
    parsed = parse_message("beli kopi di mana", now=NOW)
    assert parsed.search_keyword == "kopi"


def test_unrecognized_message_is_failure() -> None:
    parsed = parse_message("halo apa kabar", now=NOW)
    assert parsed.intent == Intent.unknown
    assert parsed.kind == MessageKind.unknown
    assert parsed.is_failure


def test_query_without_sub_intent_is_failure() -> None:
    # "apa" opens an information query, but no fine-grained intent applies.
    parsed = parse_message("apa kabar", now=NOW)
    assert parsed.is_failure


def test_classify_shortcut() -> None:
    assert classify("pengeluaranku") == Intent.total
    assert classify("beli nasi padang 15 ribu") == Intent.transaction
    assert classify("   ") == Intent.unknown


def test_empty_message_raises() -> None:
    with pytest.raises(RulesParserError):
        parse_message("   ", now=NOW)
