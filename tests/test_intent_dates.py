"""Tests for Indonesian temporal expression resolution."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from lumine.intent.dates import (
    budget_period_range,
    comparison_ranges,
    days_remaining_in_month,
    find_temporal,
    format_date_id,
    resolve,
    resolve_range,
    shift_months,
    strip_temporal,
    to_date_range,
)
from lumine.intent.schema import (
    BudgetPeriod,
    ComparisonType,
    DayContext,
    MonthContext,
    RangeContext,
    SpecificContext,
    WeekContext,
    YearContext,
)

# Wednesday.
NOW = datetime(2025, 6, 18, 10, 30)


def _range(text: str) -> tuple[date, date]:
    date_range = resolve_range(text, NOW)
    assert date_range is not None, text
    return date_range.start_date, date_range.end_date


def test_today_and_yesterday() -> None:
    assert _range("pengeluaran hari ini") == (date(2025, 6, 18), date(2025, 6, 18))
    assert _range("kemarin") == (date(2025, 6, 17), date(2025, 6, 17))
    assert _range("kemarin lusa") == (date(2025, 6, 16), date(2025, 6, 16))


def test_days_ago() -> None:
    assert _range("3 hari lalu") == (date(2025, 6, 15), date(2025, 6, 15))
    assert resolve("5 hari yang lalu", NOW) == DayContext(offset=5)


def test_weekday_resolves_to_latest_occurrence() -> None:
    assert _range("pengeluaranku hari senin") == (date(2025, 6, 16), date(2025, 6, 16))
    assert _range("hari kamis") == (date(2025, 6, 12), date(2025, 6, 12))
    assert _range("hari minggu") == (date(2025, 6, 15), date(2025, 6, 15))


def test_weekday_equal_to_today_is_today() -> None:
    assert _range("hari rabu") == (date(2025, 6, 18), date(2025, 6, 18))


@pytest.mark.parametrize("weekday", ["senin", "selasa", "rabu", "kamis", "jumat", "sabtu", "minggu"])
def test_weekday_is_stable_within_a_day(weekday: str) -> None:
    text = f"pengeluaran hari {weekday}"
    early = resolve_range(text, datetime(2025, 6, 18, 0, 1))
    late = resolve_range(text, datetime(2025, 6, 18, 23, 59))
    assert early is not None
    assert early == late


def test_bare_minggu_means_week_not_sunday() -> None:
    assert resolve("pengeluaran minggu ini", NOW) == WeekContext(offset=0)
    assert _range("minggu ini") == (date(2025, 6, 16), date(2025, 6, 22))


def test_kemarin_after_week_month_or_year() -> None:
    assert resolve("pengeluaran minggu kemarin", NOW) == WeekContext(offset=1)
    assert _range("pengeluaran minggu kemarin") == (date(2025, 6, 9), date(2025, 6, 15))
    assert resolve("bulan kemarin", NOW) == MonthContext(offset=1)
    assert _range("bulan kemarin") == (date(2025, 5, 1), date(2025, 5, 31))
    assert resolve("tahun kemarin", NOW) == YearContext(offset=1)
    assert _range("tahun kemarin") == (date(2024, 1, 1), date(2024, 12, 31))


def test_weeks_run_monday_to_sunday() -> None:
    assert _range("minggu lalu") == (date(2025, 6, 9), date(2025, 6, 15))
    assert _range("pengeluaranku 1 minggu lalu") == (date(2025, 6, 9), date(2025, 6, 15))
    assert _range("2 minggu lalu") == (date(2025, 6, 2), date(2025, 6, 8))


def test_months() -> None:
    assert _range("bulan ini") == (date(2025, 6, 1), date(2025, 6, 30))
    assert _range("berapa pengeluaran bulan lalu") == (date(2025, 5, 1), date(2025, 5, 31))
    assert _range("3 bulan lalu") == (date(2025, 3, 1), date(2025, 3, 31))
    assert _range("bulan februari") == (date(2025, 2, 1), date(2025, 2, 28))


def test_month_with_year_label() -> None:
    date_range = resolve_range("pengeluaran bulan juni 2024", NOW)
    assert date_range is not None
    assert (date_range.start_date, date_range.end_date) == (date(2024, 6, 1), date(2024, 6, 30))
    assert date_range.description == "bulan Juni 2024"


def test_years() -> None:
    assert _range("tahun ini") == (date(2025, 1, 1), date(2025, 12, 31))
    assert _range("tahun lalu") == (date(2024, 1, 1), date(2024, 12, 31))
    assert _range("tahun 2023") == (date(2023, 1, 1), date(2023, 12, 31))


def test_day_ranges_in_current_month() -> None:
    assert _range("pengeluaran dari tanggal 5 sampai tanggal 10") == (
        date(2025, 6, 5),
        date(2025, 6, 10),
    )
    assert _range("dari tanggal 1 hingga tanggal 15") == (date(2025, 6, 1), date(2025, 6, 15))
    assert _range("antara tanggal 20 dan tanggal 25") == (date(2025, 6, 20), date(2025, 6, 25))


def test_reversed_day_range_is_normalized() -> None:
    assert resolve("dari tanggal 10 sampai tanggal 5", NOW) == RangeContext(
        start=date(2025, 6, 5), end=date(2025, 6, 10)
    )


def test_cross_month_range() -> None:
    assert _range("dari 25 mei sampai 5 juni") == (date(2025, 5, 25), date(2025, 6, 5))
    assert _range("dari 1 sampai 7 mei") == (date(2025, 5, 1), date(2025, 5, 7))
    assert _range("dari januari sampai maret") == (date(2025, 1, 1), date(2025, 3, 31))


def test_trailing_period() -> None:
    assert _range("selama 7 hari") == (date(2025, 6, 12), date(2025, 6, 18))


def test_specific_dates() -> None:
    assert _range("tanggal 3 mei") == (date(2025, 5, 3), date(2025, 5, 3))
    assert _range("25/12/2024") == (date(2024, 12, 25), date(2024, 12, 25))


def test_specific_date_label() -> None:
    date_range = resolve_range("tanggal 3 mei", NOW)
    assert date_range is not None
    assert date_range.description == "tanggal 03 Mei 2025"


def test_no_time_expression() -> None:
    assert resolve("beli kopi di warung", NOW) is None
    assert resolve("", NOW) is None


def test_day_context_requires_exactly_one_field() -> None:
    with pytest.raises(ValueError):
        DayContext()
    with pytest.raises(ValueError):
        DayContext(offset=1, weekday=2)


def test_month_context_absolute() -> None:
    date_range = to_date_range(MonthContext(year=2024, month=2), NOW)
    assert (date_range.start_date, date_range.end_date) == (date(2024, 2, 1), date(2024, 2, 29))


def test_shift_months_clamps_day() -> None:
    assert shift_months(date(2025, 3, 31), -1) == date(2025, 2, 28)
    assert shift_months(date(2025, 1, 15), -2) == date(2024, 11, 15)


def test_days_remaining_in_month() -> None:
    assert days_remaining_in_month(NOW) == 12
    assert days_remaining_in_month(date(2025, 6, 30)) == 0


def test_format_date_id() -> None:
    assert format_date_id(date(2025, 6, 3)) == "03 Juni 2025"
    assert format_date_id(date(2025, 8, 17), short=True) == "17 Agu 2025"


def test_comparison_ranges() -> None:
    current, previous = comparison_ranges(ComparisonType.week_to_week, NOW)
    assert current.start_date == date(2025, 6, 16)
    assert previous.start_date == date(2025, 6, 9)

    current, previous = comparison_ranges(None, NOW)
    assert current.start_date == date(2025, 6, 1)
    assert previous.end_date == date(2025, 5, 31)


def test_budget_period_range() -> None:
    daily = budget_period_range(BudgetPeriod.daily, NOW)
    assert daily.start_date == daily.end_date == date(2025, 6, 18)
    yearly = budget_period_range(BudgetPeriod.yearly, NOW)
    assert (yearly.start_date, yearly.end_date) == (date(2025, 1, 1), date(2025, 12, 31))


def test_bare_day_of_month() -> None:
    assert resolve("bayar listrik tanggal 5", NOW) == SpecificContext(day=date(2025, 6, 5))
    assert resolve("tgl 31", NOW) is None


@pytest.mark.parametrize(
    "text",
    [
        "berapa pengeluaran 999999 hari lalu",
        "selama 9999999 hari",
        "total pengeluaran tahun 0000",
        "total pengeluaran bulan mei 1800",
        "99999999 minggu lalu",
    ],
)
def test_out_of_calendar_expressions_resolve_to_nothing(text: str) -> None:
    assert resolve(text, NOW) is None
    assert resolve_range(text, NOW) is None


def test_find_temporal_reports_span() -> None:
    found = find_temporal("beli buku 5 juni 75000", NOW)
    assert found is not None
    assert found.context == SpecificContext(day=date(2025, 6, 5))
    assert "beli buku 5 juni 75000"[found.start:found.end] == "5 juni"


def test_strip_temporal() -> None:
    assert strip_temporal("beli bensin 2 hari lalu 30000", NOW) == "beli bensin 30000"
    assert strip_temporal("Beli kopi", NOW) == "beli kopi"
