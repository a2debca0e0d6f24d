"""Tests for entity extractors (amount, category, keyword, budget, goal, challenge, simulation)."""

from __future__ import annotations

from datetime import date

import pytest

from lumine.intent.extractors import (
    categorize,
    extract_amount,
    extract_budget,
    extract_challenge,
    extract_comparison_type,
    extract_goal,
    extract_period,
    extract_search_keyword,
    extract_simulation,
)
from lumine.intent.schema import (
    BudgetAction,
    BudgetPeriod,
    Category,
    ChallengeKind,
    ComparisonType,
    GoalType,
)

TODAY = date(2025, 6, 18)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("beli nasi padang 15 ribu", 15_000),
        ("kopi 25rb", 25_000),
        ("makan siang 12.000", 12_000),
        ("grab 5k", 5_000),
        ("bayar kos 1,5 juta", 1_500_000),
        ("laptop 2jt", 2_000_000),
        ("beli kopi di starbucks Rp25000", 25_000),
        ("parkir rp 2.000", 2_000),
        ("kopi rp25rb", 25_000),
        ("Rp.15rb parkir", 15_000),
        ("bayar listrik 350000 rupiah", 350_000),
        ("1.250.000 cicilan", 1_250_000),
    ],
)
def test_extract_amount(text: str, expected: int) -> None:
    assert extract_amount(text) == expected


def test_extract_amount_implicit_thousands() -> None:
    assert extract_amount("bakso 5") == 5_000
    assert extract_amount("bakso 20") == 20_000


def test_extract_amount_unit_wins_over_earlier_bare_number() -> None:
    assert extract_amount("beli 2 kopi 30 ribu") == 30_000


def test_extract_amount_none() -> None:
    assert extract_amount("beli kopi") is None
    assert extract_amount("") is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("beli nasi padang", Category.makanan),
        ("isi bensin motor", Category.transportasi),
        ("beli obat di apotek", Category.kesehatan),
        ("bayar spp sekolah", Category.pendidikan),
        ("bayar kos", Category.utilitas),
        ("nonton bioskop", Category.hiburan),
        ("belanja di shopee", Category.belanja),
        ("transfer ke teman", Category.lainnya),
    ],
)
def test_categorize(text: str, expected: Category) -> None:
    assert categorize(text) == expected


def test_categorize_is_whole_word() -> None:
    # "tol" must not fire inside "toilet".
    assert categorize("beli sabun toilet") == Category.lainnya


def test_categorize_first_category_in_table_order_wins() -> None:
    # Both Makanan (kopi) and Belanja (indomaret) match.
    assert categorize("kopi di indomaret") == Category.makanan


def test_extract_search_keyword() -> None:
    assert extract_search_keyword("beli kopi di mana") == "kopi"
    assert extract_search_keyword("kapan terakhir beli bensin") == "bensin"
    assert extract_search_keyword("cari transaksi netflix") == "netflix"
    assert extract_search_keyword("pengeluaran untuk makanan bulan ini") == "makanan"
    assert extract_search_keyword("total pengeluaran") is None


def test_extract_period() -> None:
    assert extract_period("batas harian 100 ribu") == BudgetPeriod.daily
    assert extract_period("budget mingguan") == BudgetPeriod.weekly
    assert extract_period("anggaran per tahun") == BudgetPeriod.yearly
    assert extract_period("budget 2 juta") is None


def test_extract_comparison_type() -> None:
    assert extract_comparison_type("bandingkan bulan ini dengan bulan lalu") == ComparisonType.month_to_month
    assert extract_comparison_type("bandingkan minggu ini dengan minggu lalu") == ComparisonType.week_to_week
    assert extract_comparison_type("bandingkan tahun ini vs tahun lalu") == ComparisonType.year_to_year
    assert extract_comparison_type("bandingkan pengeluaran") == ComparisonType.month_to_month


def test_extract_budget_set() -> None:
    budget = extract_budget("budget makanan 2 juta per bulan")
    assert budget.action == BudgetAction.set
    assert budget.amount == 2_000_000
    assert budget.period == BudgetPeriod.monthly
    assert budget.category == Category.makanan


def test_extract_budget_total_has_no_category() -> None:
    budget = extract_budget("set batas pengeluaran harian 150 ribu")
    assert budget.action == BudgetAction.set
    assert budget.period == BudgetPeriod.daily
    assert budget.category is None


def test_extract_budget_actions_without_amount() -> None:
    assert extract_budget("hapus budget makanan").action == BudgetAction.delete
    assert extract_budget("saran budget").action == BudgetAction.suggest
    status = extract_budget("cek budget 2025")
    assert status.action == BudgetAction.status
    assert status.amount is None
    assert extract_budget("budget").action == BudgetAction.status


def test_extract_goal_save_with_deadline() -> None:
    goal = extract_goal("target nabung 10 juta sampai bulan desember", TODAY)
    assert goal.goal_type == GoalType.save
    assert goal.amount == 10_000_000
    assert goal.deadline == date(2025, 12, 31)


def test_extract_goal_spend_limit_without_deadline() -> None:
    goal = extract_goal("target pengeluaran 3 juta", TODAY)
    assert goal.goal_type == GoalType.spend_limit
    assert goal.amount == 3_000_000
    assert goal.deadline is None


def test_extract_challenge() -> None:
    no_spend = extract_challenge("challenge 7 hari tanpa belanja")
    assert no_spend.kind == ChallengeKind.no_spend_days
    assert no_spend.days == 7

    daily = extract_challenge("tantangan hemat 20 ribu per hari")
    assert daily.kind == ChallengeKind.daily_saving
    assert daily.amount == 20_000

    assert extract_challenge("kasih challenge dong").kind == ChallengeKind.general


def test_extract_challenge_daily_saving_default_amount() -> None:
    challenge = extract_challenge("tantangan hemat per hari")
    assert challenge.kind == ChallengeKind.daily_saving
    assert challenge.amount == 50_000


def test_extract_simulation_monthly() -> None:
    simulation = extract_simulation("simulasi nabung 1 juta per bulan selama 2 tahun")
    assert simulation.monthly_saving == 1_000_000
    assert simulation.months == 24
    assert simulation.daily_saving is None


def test_extract_simulation_daily() -> None:
    simulation = extract_simulation("gimana kalau hemat 20rb sehari")
    assert simulation.daily_saving == 20_000
    assert simulation.monthly_saving is None
    assert simulation.scenario == "hemat 20rb sehari"


def test_extract_simulation_general() -> None:
    simulation = extract_simulation("simulasi sisa uang")
    assert simulation.scenario == "sisa uang"
    assert simulation.daily_saving is None
    assert simulation.monthly_saving is None
