"""Entity extractors: category, amount, search keyword, budget, goal, challenge and simulation.

Extractors never raise on unrecognized input; they return `None` (or the `Lainnya` category) and
leave it to the caller to pick a safe default.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime

from lumine.intent import dates
from lumine.intent.normalize import normalize_text
from lumine.intent.schema import (
    BudgetAction,
    BudgetPeriod,
    BudgetRequest,
    Category,
    ChallengeKind,
    ChallengeRequest,
    ComparisonType,
    GoalRequest,
    GoalType,
    SimulationRequest,
)
from lumine.intent.tables import PatternTables, default_tables

logger = logging.getLogger(__name__)

_NUMBER = r"\d+(?:[.,]\d+)*"

_UNIT_AMOUNT_RE = re.compile(
    # "rp25rb": the currency prefix may sit directly against the number.
    r"(?:(?<=rp)|(?<=rp\.)|(?<![\w.,]))"
    rf"(?P<num>{_NUMBER})\s*(?P<unit>ribu|rb|juta|jt|k|rupiah)(?![a-z])"
)
_RP_AMOUNT_RE = re.compile(rf"\brp\.?\s*(?P<num>{_NUMBER})")
_BARE_AMOUNT_RE = re.compile(rf"(?<![\w.,/-])(?P<num>{_NUMBER})(?![\w/-])")

_MULTIPLIERS: dict[str, int] = {
    "ribu": 1_000,
    "rb": 1_000,
    "k": 1_000,
    "juta": 1_000_000,
    "jt": 1_000_000,
    "rupiah": 1,
}
_IMPLICIT_THOUSANDS_BELOW = 1_000

_PERIOD_WORDS: tuple[tuple[re.Pattern[str], BudgetPeriod], ...] = (
    (re.compile(r"\b(harian|per\s+hari|sehari|tiap\s+hari)\b"), BudgetPeriod.daily),
    (re.compile(r"\b(mingguan|per\s+minggu|seminggu|tiap\s+minggu)\b"), BudgetPeriod.weekly),
    (re.compile(r"\b(tahunan|per\s+tahun|setahun|tiap\s+tahun)\b"), BudgetPeriod.yearly),
    (re.compile(r"\b(bulanan|per\s+bulan|sebulan|tiap\s+bulan)\b"), BudgetPeriod.monthly),
)

_BUDGET_ACTIONS: tuple[tuple[re.Pattern[str], BudgetAction], ...] = (
    (re.compile(r"\b(hapus|delete|reset|batalkan)\b"), BudgetAction.delete),
    (re.compile(r"\b(saran|rekomendasi|suggest)\b"), BudgetAction.suggest),
    (re.compile(r"\b(status|cek|lihat|sisa)\b"), BudgetAction.status),
)

_SAVE_GOAL_RE = re.compile(r"\b(nabung|tabungan|menabung|kumpul\w*|ngumpulin|hemat)\b")
_DEADLINE_SPLIT_RE = re.compile(r"\b(untuk|sampai|sebelum|hingga|pada|di)\b")

_CHALLENGE_DAYS_RE = re.compile(r"\b(?P<n>\d+)\s*hari\b")
_PER_DAY_RE = re.compile(r"\bper\s+hari\b|\bsehari\b|\btiap\s+hari\b")
_PER_MONTH_RE = re.compile(r"\bper\s+bulan\b|\bsebulan\b|\btiap\s+bulan\b|\bbulanan\b")
_MONTHS_COUNT_RE = re.compile(r"\b(?:selama\s+)?(?P<n>\d+)\s*bulan\b(?!\s+(?:lalu|ini))")
_YEARS_COUNT_RE = re.compile(r"\b(?:selama\s+)?(?P<n>\d+)\s*tahun\b(?!\s+(?:lalu|ini))")
_SCENARIO_RE = re.compile(
    r"\b(?:simulasi|kalau|gimana\s+kalau|bagaimana\s+jika|what\s+if)\s+(?P<scenario>.+)$"
)


def _parse_number(token: str) -> float:
    """Parse a numeric token with Indonesian separators.

    A `.` or `,` followed by exactly three digits is a thousands separator ("12.000", "1,250,000");
    any other single separator is a decimal point ("1.5", "2,5").
    """

    groups = re.split(r"[.,]", token)
    if len(groups) == 1:
        return float(token)

    if all(len(g) == 3 for g in groups[1:]):
        return float("".join(groups))

    # Thousands groups followed by a decimal tail: "1.250,5".
    head, tail = groups[:-1], groups[-1]
    if len(head) > 1 and all(len(g) == 3 for g in head[1:]):
        return float("".join(head) + "." + tail)
    if len(groups) == 2:
        return float(f"{groups[0]}.{groups[1]}")
    raise ValueError(f"Unsupported number format: {token!r}")


def extract_amount(text: str) -> int | None:
    """Extract a rupiah amount as a non-negative integer.

    Preference: a number attached to a unit word (ribu/rb/k/juta/jt/rupiah), then an `rp`-prefixed
    number, then the first bare number. Bare numbers below 1 000 with no unit word at all are read
    as thousands ("5" -> 5 000), following local shorthand.
    """

    value = normalize_text(text)
    if not value:
        return None

    multiplier = 1
    has_unit = False
    match = _UNIT_AMOUNT_RE.search(value)
    if match:
        multiplier = _MULTIPLIERS[match.group("unit")]
        has_unit = True
    else:
        match = _RP_AMOUNT_RE.search(value)
        if match:
            has_unit = True
        else:
            match = _BARE_AMOUNT_RE.search(value)
    if not match:
        return None

    try:
        number = _parse_number(match.group("num"))
    except ValueError:
        logger.warning("amount extraction failed token=%r", match.group("num"))
        return None

    if not has_unit and number < _IMPLICIT_THOUSANDS_BELOW:
        number *= 1_000

    return max(0, round(number * multiplier))


def categorize(text: str, tables: PatternTables | None = None) -> Category:
    """Keyword category lookup; the first category (in table order) with a hit wins."""

    value = normalize_text(text)
    for category, pattern in (tables or default_tables()).categories:
        if pattern.search(value):
            return category
    return Category.lainnya


def extract_search_keyword(text: str, tables: PatternTables | None = None) -> str | None:
    value = normalize_text(text)
    for template in (tables or default_tables()).search_templates:
        match = template.search(value)
        if match:
            keyword = (match.groupdict().get("keyword") or "").strip()
            if keyword:
                return keyword
    return None


def extract_period(text: str) -> BudgetPeriod | None:
    value = normalize_text(text)
    for pattern, period in _PERIOD_WORDS:
        if pattern.search(value):
            return period
    return None


def extract_comparison_type(text: str) -> ComparisonType:
    """Month-to-month unless the message talks about weeks or years."""

    value = normalize_text(text)
    if re.search(r"\bminggu\b", value) and not re.search(r"\bbulan\b", value):
        return ComparisonType.week_to_week
    if re.search(r"\btahun\b", value) and not re.search(r"\bbulan\b", value):
        return ComparisonType.year_to_year
    return ComparisonType.month_to_month


def extract_budget(text: str, tables: PatternTables | None = None) -> BudgetRequest:
    """Extract a budget command. Period defaults to monthly; no category means total spending."""

    value = normalize_text(text)
    amount = extract_amount(value)

    action = next((a for pattern, a in _BUDGET_ACTIONS if pattern.search(value)), None)
    if action is None:
        action = BudgetAction.set if amount else BudgetAction.status
    if action in (BudgetAction.status, BudgetAction.suggest):
        amount = None

    category = categorize(value, tables)
    return BudgetRequest(
        action=action,
        amount=amount,
        period=extract_period(value) or BudgetPeriod.monthly,
        category=None if category == Category.lainnya else category,
    )


def extract_goal(
        text: str,
        now: date | datetime,
        tables: PatternTables | None = None,
) -> GoalRequest:
    """Extract a goal: amount, optional deadline (end of any trailing time phrase) and type."""

    value = normalize_text(text)
    amount = extract_amount(value)

    deadline: date | None = None
    split = _DEADLINE_SPLIT_RE.search(value)
    tail = value[split.end():] if split else value
    date_range = dates.resolve_range(tail, now)
    if date_range is not None:
        deadline = date_range.end_date

    goal_type = GoalType.save if _SAVE_GOAL_RE.search(value) else GoalType.spend_limit
    description = extract_search_keyword(value, tables) or value
    return GoalRequest(goal_type=goal_type, amount=amount, deadline=deadline, description=description)


def extract_challenge(text: str) -> ChallengeRequest:
    value = normalize_text(text)

    if _PER_DAY_RE.search(value) and re.search(r"\bhemat\b", value):
        return ChallengeRequest(kind=ChallengeKind.daily_saving, amount=extract_amount(value) or 50_000)

    match = _CHALLENGE_DAYS_RE.search(value)
    if match and int(match.group("n")) > 0:
        return ChallengeRequest(kind=ChallengeKind.no_spend_days, days=int(match.group("n")))

    return ChallengeRequest(kind=ChallengeKind.general)


def extract_simulation(text: str) -> SimulationRequest:
    value = normalize_text(text)
    match = _SCENARIO_RE.search(value)
    scenario = match.group("scenario").strip() if match else "general"

    has_number = re.search(r"\d", value) is not None
    amount = extract_amount(value) if has_number else None
    if amount is None:
        return SimulationRequest(scenario=scenario)

    if _PER_MONTH_RE.search(value) or re.search(r"\bnabung\b", value):
        months = None
        years = _YEARS_COUNT_RE.search(value)
        count = _MONTHS_COUNT_RE.search(value)
        if years:
            months = int(years.group("n")) * 12
        elif count:
            months = int(count.group("n"))
        return SimulationRequest(
            scenario=scenario, monthly_saving=amount, months=months if months and months > 0 else None
        )
    return SimulationRequest(scenario=scenario, daily_saving=amount)
