"""Spending pattern analysis: weekday/time-of-day buckets, outliers, recurring expenses.

Also hosts the "hari paling boros" lookup and saving recommendations, which are derived from the
same buckets.
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, time, timedelta

from pydantic import BaseModel, ConfigDict, Field

from lumine.intent.dates import ID_WEEKDAY_NAMES
from lumine.intent.schema import Category, TransactionRecord
from lumine.analysis.spending import SpendingSummary, category_totals

_OUTLIER_FACTOR = 3
_SMALL_EXPENSE_LIMIT = 50_000
_SMALL_EXPENSE_MIN_COUNT = 5
_TOP_CATEGORY_SHARE_PCT = 30.0

# (max mean interval in days, label); irregular intervals are not reported.
_RECURRENCE_BANDS: tuple[tuple[float, str], ...] = (
    (8, "Mingguan"),
    (35, "Bulanan"),
    (95, "Per 3 bulan"),
)

_DIGITS_RE = re.compile(r"\d+")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_MULTISPACE_RE = re.compile(r"\s+")


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RecurringExpense(_Result):
    description: str
    average_amount: int
    occurrences: int
    frequency: str
    next_due: date


class SpendingPattern(_Result):
    by_weekday: dict[str, int] = Field(default_factory=dict)
    by_time_of_day: dict[str, int] = Field(default_factory=dict)
    by_category: dict[Category, int] = Field(default_factory=dict)
    unusual_transactions: list[TransactionRecord] = Field(default_factory=list)
    recurring: list[RecurringExpense] = Field(default_factory=list)


class BusiestDay(_Result):
    day: date
    weekday: str
    total: int
    transaction_count: int
    top_category: Category | None = None


def normalize_description(description: str) -> str:
    """Grouping key for recurring detection: lowercase, no digits, no punctuation."""

    value = _DIGITS_RE.sub("", (description or "").lower())
    value = _NON_WORD_RE.sub("", value)
    return _MULTISPACE_RE.sub(" ", value).strip()


def time_of_day_band(value: time | None) -> str:
    """Pagi before noon (default when unknown), Siang 12-16, Sore 17-20, Malam 21-05."""

    if value is None:
        return "Pagi"
    hour = value.hour
    if 12 <= hour < 17:
        return "Siang"
    if 17 <= hour < 21:
        return "Sore"
    if hour >= 21 or hour < 6:
        return "Malam"
    return "Pagi"


def find_unusual(records: Sequence[TransactionRecord]) -> list[TransactionRecord]:
    """Transactions above three times the mean amount."""

    if not records:
        return []
    mean = sum(r.amount for r in records) / len(records)
    return [r for r in records if r.amount > mean * _OUTLIER_FACTOR]


def _recurrence_label(mean_interval: float) -> str | None:
    for limit, label in _RECURRENCE_BANDS:
        if mean_interval <= limit:
            return label
    return None


def find_recurring(records: Iterable[TransactionRecord]) -> list[RecurringExpense]:
    """Group by normalized description and classify the mean interval between occurrences.

    Groups need at least two occurrences on distinct days.
    """

    groups: dict[str, list[TransactionRecord]] = defaultdict(list)
    for record in records:
        key = normalize_description(record.description)
        if key:
            groups[key].append(record)

    recurring: list[RecurringExpense] = []
    for key, items in groups.items():
        if len(items) < 2:
            continue
        days = sorted(r.date for r in items)
        intervals = [(b - a).days for a, b in zip(days, days[1:])]
        mean_interval = sum(intervals) / len(intervals)
        if mean_interval < 1:
            continue
        label = _recurrence_label(mean_interval)
        if label is None:
            continue
        recurring.append(
            RecurringExpense(
                description=key,
                average_amount=round(sum(r.amount for r in items) / len(items)),
                occurrences=len(items),
                frequency=label,
                next_due=days[-1] + timedelta(days=round(mean_interval)),
            )
        )
    return sorted(recurring, key=lambda r: r.next_due)


def analyze_patterns(records: Iterable[TransactionRecord]) -> SpendingPattern:
    items = list(records)
    if not items:
        return SpendingPattern()

    by_weekday: dict[str, int] = defaultdict(int)
    by_band: dict[str, int] = defaultdict(int)
    for record in items:
        by_weekday[ID_WEEKDAY_NAMES[record.date.weekday()]] += record.amount
        by_band[time_of_day_band(record.time)] += record.amount

    return SpendingPattern(
        by_weekday=dict(by_weekday),
        by_time_of_day=dict(by_band),
        by_category=category_totals(items),
        unusual_transactions=find_unusual(items),
        recurring=find_recurring(items),
    )


def busiest_day(records: Iterable[TransactionRecord]) -> BusiestDay | None:
    """The calendar day with the highest total spending (earliest day wins ties)."""

    per_day: dict[date, list[TransactionRecord]] = defaultdict(list)
    for record in records:
        per_day[record.date].append(record)
    if not per_day:
        return None

    day, items = max(
        sorted(per_day.items()),
        key=lambda item: sum(r.amount for r in item[1]),
    )
    top = category_totals(items)
    return BusiestDay(
        day=day,
        weekday=ID_WEEKDAY_NAMES[day.weekday()],
        total=sum(r.amount for r in items),
        transaction_count=len(items),
        top_category=next(iter(top), None),
    )


def frequent_small_expenses(records: Iterable[TransactionRecord], *, limit: int = 3) -> list[str]:
    """Descriptions of small purchases (< 50 000) seen at least five times, most frequent first."""

    counts = Counter(
        normalize_description(r.description) for r in records if r.amount < _SMALL_EXPENSE_LIMIT
    )
    return [
        desc
        for desc, count in counts.most_common()
        if desc and count >= _SMALL_EXPENSE_MIN_COUNT
    ][:limit]


def _rupiah(amount: int | float) -> str:
    return "Rp" + f"{round(amount):,}".replace(",", ".")


def recommend_savings(
        summary: SpendingSummary,
        pattern: SpendingPattern,
        records: Iterable[TransactionRecord],
) -> list[str]:
    """Saving tips derived from the summary and the pattern buckets."""

    recommendations: list[str] = []

    if summary.total > 0:
        for category, amount in summary.category_breakdown.items():
            share = amount / summary.total * 100
            if share > _TOP_CATEGORY_SHARE_PCT:
                recommendations.append(
                    f"Kategori {category} menghabiskan {share:.1f}% dari total pengeluaran "
                    f"({_rupiah(amount)}). Pertimbangkan untuk mengurangi pengeluaran di kategori ini."
                )

    if pattern.unusual_transactions:
        total_unusual = sum(r.amount for r in pattern.unusual_transactions)
        recommendations.append(
            f"Ada {len(pattern.unusual_transactions)} transaksi tidak biasa senilai "
            f"{_rupiah(total_unusual)}. Pastikan ini sesuai dengan kebutuhan."
        )

    small = frequent_small_expenses(records)
    if small:
        recommendations.append(
            f"Pengeluaran kecil yang sering: {', '.join(small)}. Total bisa cukup besar dalam sebulan."
        )

    if pattern.by_weekday:
        day, amount = max(pattern.by_weekday.items(), key=lambda item: item[1])
        recommendations.append(
            f"Hari {day} adalah hari dengan pengeluaran tertinggi ({_rupiah(amount)}). "
            "Buat rencana khusus untuk hari ini."
        )

    return recommendations
