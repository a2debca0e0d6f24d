"""Spending summaries, period comparisons and month-end prediction.

All functions are pure: they take already-fetched records and never raise on empty input.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from lumine.intent import dates
from lumine.intent.schema import Category, DateRange, TransactionRecord

_TREND_THRESHOLD_PCT = 5.0
_SIGNIFICANT_CHANGE_PCT = 20.0
_CATEGORY_CHANGE_PCT = 30.0
_FREQUENCY_CHANGE = 5


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SpendingSummary(_Result):
    total: int = 0
    transaction_count: int = 0
    category_breakdown: dict[Category, int] = Field(default_factory=dict)
    average_per_day: float = 0.0
    average_per_transaction: float = 0.0
    largest: TransactionRecord | None = None
    smallest: TransactionRecord | None = None
    most_frequent_category: Category | None = None
    date_range: DateRange | None = None


class Comparison(_Result):
    current: SpendingSummary
    previous: SpendingSummary
    change_amount: int
    change_percent: float
    trend: str
    insights: list[str] = Field(default_factory=list)


class Prediction(_Result):
    current_total: int
    daily_average: float
    days_elapsed: int
    days_remaining: int
    predicted_total: int
    confidence: int


def filter_records(
        records: Iterable[TransactionRecord],
        date_range: DateRange | None = None,
        category: Category | None = None,
) -> list[TransactionRecord]:
    """Keep records inside the inclusive range (if any) and of the category (if any).

    An inverted range (`end < start`) matches nothing.
    """

    result = []
    for record in records:
        if date_range is not None and not date_range.contains(record.date):
            continue
        if category is not None and record.category != category:
            continue
        result.append(record)
    return result


def category_totals(records: Iterable[TransactionRecord]) -> dict[Category, int]:
    totals: dict[Category, int] = defaultdict(int)
    for record in records:
        totals[record.category] += record.amount
    return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))


def _span_days(records: Sequence[TransactionRecord]) -> int:
    first = min(r.date for r in records)
    last = max(r.date for r in records)
    return (last - first).days + 1


def summarize(
        records: Iterable[TransactionRecord],
        date_range: DateRange | None = None,
) -> SpendingSummary:
    """Aggregate records (optionally restricted to `date_range`)."""

    items = filter_records(records, date_range)
    if not items:
        return SpendingSummary(date_range=date_range)

    total = sum(r.amount for r in items)
    days = date_range.days if date_range is not None else _span_days(items)
    counts = Counter(r.category for r in items)

    return SpendingSummary(
        total=total,
        transaction_count=len(items),
        category_breakdown=category_totals(items),
        average_per_day=total / days if days else 0.0,
        average_per_transaction=total / len(items),
        largest=max(items, key=lambda r: r.amount),
        smallest=min(items, key=lambda r: r.amount),
        most_frequent_category=counts.most_common(1)[0][0],
        date_range=date_range,
    )


def percent_change(current: int | float, previous: int | float) -> float:
    """Relative change in percent; 0 when there is no previous value to compare with."""

    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def _direction(value: float, up: str, down: str) -> str:
    return up if value > 0 else down


def compare(current: SpendingSummary, previous: SpendingSummary) -> Comparison:
    """Compare two period summaries and produce short Indonesian insights."""

    change_amount = current.total - previous.total
    change_pct = percent_change(current.total, previous.total)

    if change_pct > _TREND_THRESHOLD_PCT:
        trend = "up"
    elif change_pct < -_TREND_THRESHOLD_PCT:
        trend = "down"
    else:
        trend = "stable"

    insights: list[str] = []
    if abs(change_pct) > _SIGNIFICANT_CHANGE_PCT:
        insights.append(
            f"Pengeluaran {_direction(change_pct, 'meningkat', 'menurun')} signifikan "
            f"sebesar {abs(change_pct):.1f}%"
        )

    for category, amount in current.category_breakdown.items():
        previous_amount = previous.category_breakdown.get(category, 0)
        if previous_amount <= 0:
            continue
        category_pct = percent_change(amount, previous_amount)
        if abs(category_pct) > _CATEGORY_CHANGE_PCT:
            insights.append(
                f"Kategori {category} {_direction(category_pct, 'naik', 'turun')} "
                f"{abs(category_pct):.1f}%"
            )

    frequency_change = current.transaction_count - previous.transaction_count
    if abs(frequency_change) > _FREQUENCY_CHANGE:
        insights.append(
            f"Frekuensi transaksi {_direction(frequency_change, 'meningkat', 'menurun')} "
            f"{abs(frequency_change)} kali"
        )

    return Comparison(
        current=current,
        previous=previous,
        change_amount=change_amount,
        change_percent=round(change_pct, 2),
        trend=trend,
        insights=insights,
    )


def predict_month_end(
        month_records: Iterable[TransactionRecord],
        *,
        today: date,
        previous_total: int = 0,
) -> Prediction:
    """Extrapolate this month's spending to the end of the month.

    The linear projection is blended with last month's total (30/70) when one is known. Confidence
    grows by two points per elapsed day, starting at 50 and capped at 95.
    """

    month = dates.current_month(today)
    items = filter_records(month_records, DateRange(start_date=month.start_date, end_date=today))
    current_total = sum(r.amount for r in items)

    days_elapsed = today.day
    days_remaining = dates.days_remaining_in_month(today)
    daily_average = current_total / days_elapsed if days_elapsed else 0.0

    predicted = current_total + daily_average * days_remaining
    if previous_total > 0:
        predicted = predicted * 0.3 + previous_total * 0.7

    return Prediction(
        current_total=current_total,
        daily_average=daily_average,
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        predicted_total=round(predicted),
        confidence=min(95, 50 + days_elapsed * 2),
    )
