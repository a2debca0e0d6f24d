"""Parsed-message schema (Pydantic models).

This schema is the contract between the rules-based classifier and the analysis layer. Every parse
produces exactly one `ParsedQuery`; downstream code never inspects raw text again.
"""

from __future__ import annotations

import datetime as dt
from datetime import date
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Intent(StrEnum):
    """Classification labels.

    `unknown` is the ParseFailure sentinel: the caller falls back to open conversation.
    """

    transaction = "transaction"
    budget = "budget"
    goal = "goal"
    total = "total"
    category = "category"
    comparison = "comparison"
    prediction = "prediction"
    pattern = "pattern"
    recommendation = "recommendation"
    history = "history"
    search = "search"
    hari_paling_boros = "hari_paling_boros"
    challenge = "challenge"
    simulation = "simulation"
    unknown = "unknown"


QUERY_INTENTS: frozenset[Intent] = frozenset(
    {
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
    }
)


class MessageKind(StrEnum):
    """Which classification stage decided the message."""

    budget_goal = "budget_goal"
    query = "query"
    transaction = "transaction"
    unknown = "unknown"


class Category(StrEnum):
    """Closed spending category set. `Utilitas` also covers bills (tagihan)."""

    makanan = "Makanan"
    transportasi = "Transportasi"
    belanja = "Belanja"
    hiburan = "Hiburan"
    kesehatan = "Kesehatan"
    pendidikan = "Pendidikan"
    utilitas = "Utilitas"
    lainnya = "Lainnya"


class BudgetPeriod(StrEnum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class BudgetAction(StrEnum):
    set = "set"
    delete = "delete"
    status = "status"
    suggest = "suggest"


class GoalType(StrEnum):
    save = "save"
    spend_limit = "spend_limit"


class ComparisonType(StrEnum):
    month_to_month = "month_to_month"
    week_to_week = "week_to_week"
    year_to_year = "year_to_year"


class ChallengeKind(StrEnum):
    no_spend_days = "no_spend_days"
    daily_saving = "daily_saving"
    general = "general"


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class DayContext(_Model):
    """A single day, either `offset` days back from today or the latest given `weekday`.

    `weekday` follows `date.weekday()` numbering (Monday=0 .. Sunday=6).
    """

    kind: Literal["day"] = "day"
    offset: int | None = Field(default=None, ge=0)
    weekday: int | None = Field(default=None, ge=0, le=6)

    @model_validator(mode="after")
    def validate_exactly_one(self) -> DayContext:
        """Exactly one of `offset` / `weekday` must be set."""

        if (self.offset is None) == (self.weekday is None):
            raise ValueError("day context requires exactly one of offset or weekday")
        return self


class WeekContext(_Model):
    """A Monday-Sunday week `offset` weeks back from the current one."""

    kind: Literal["week"] = "week"
    offset: int = Field(default=0, ge=0)


class MonthContext(_Model):
    """A calendar month, either relative (`offset`) or absolute (`year` + `month`)."""

    kind: Literal["month"] = "month"
    offset: int | None = Field(default=None, ge=0)
    year: int | None = Field(default=None, ge=1900, le=9999)
    month: int | None = Field(default=None, ge=1, le=12)

    @model_validator(mode="after")
    def validate_exactly_one(self) -> MonthContext:
        """Either `offset` alone, or both `year` and `month`."""

        absolute = self.year is not None and self.month is not None
        partial = (self.year is None) != (self.month is None)
        if partial:
            raise ValueError("month context requires both year and month")
        if (self.offset is None) == (not absolute):
            raise ValueError("month context requires exactly one of offset or year+month")
        return self


class YearContext(_Model):
    kind: Literal["year"] = "year"
    offset: int = Field(default=0, ge=0)


class RangeContext(_Model):
    """An explicit inclusive range. Resolver-built ranges are normalized to `start <= end`."""

    kind: Literal["range"] = "range"
    start: date
    end: date


class SpecificContext(_Model):
    kind: Literal["specific"] = "specific"
    day: date


TimeContext = Annotated[
    DayContext | WeekContext | MonthContext | YearContext | RangeContext | SpecificContext,
    Field(discriminator="kind"),
]


class DateRange(_Model):
    """An inclusive calendar-day range with an Indonesian display label.

    Ordering is deliberately not validated: callers may pass `end_date < start_date`, and consumers
    treat such a range as matching nothing.
    """

    start_date: date
    end_date: date
    description: str = ""

    @property
    def days(self) -> int:
        """Number of calendar days covered (0 for an inverted range)."""

        return max(0, (self.end_date - self.start_date).days + 1)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class BudgetRequest(_Model):
    action: BudgetAction
    amount: int | None = Field(default=None, ge=0)
    period: BudgetPeriod = BudgetPeriod.monthly
    category: Category | None = None


class GoalRequest(_Model):
    goal_type: GoalType
    amount: int | None = Field(default=None, ge=0)
    deadline: date | None = None
    description: str = ""


class ChallengeRequest(_Model):
    kind: ChallengeKind
    days: int | None = Field(default=None, ge=1)
    amount: int | None = Field(default=None, ge=0)


class SimulationRequest(_Model):
    """A "what if" scenario. `daily_saving` is set for "kalau hemat X per hari" phrasings."""

    scenario: str = "general"
    daily_saving: int | None = Field(default=None, ge=0)
    monthly_saving: int | None = Field(default=None, ge=0)
    months: int | None = Field(default=None, ge=1)


class ParsedQuery(_Model):
    """The single canonical output of message classification."""

    kind: MessageKind
    intent: Intent
    raw_text: str
    sender_id: str = ""
    time_context: TimeContext | None = None
    date_range: DateRange | None = None
    comparison_type: ComparisonType | None = None
    category: Category | None = None
    amount: int | None = Field(default=None, ge=0)
    search_keyword: str | None = None
    budget: BudgetRequest | None = None
    goal: GoalRequest | None = None
    challenge: ChallengeRequest | None = None
    simulation: SimulationRequest | None = None

    @property
    def is_failure(self) -> bool:
        return self.intent == Intent.unknown


class TransactionRecord(_Model):
    """A stored expense, as returned by the transaction store."""

    date: dt.date
    time: dt.time | None = None
    description: str
    amount: int = Field(ge=0)
    category: Category = Category.lainnya
    sender: str


def record_from_obj(obj: Any) -> TransactionRecord:
    """Validate a decoded row/dict into a `TransactionRecord`."""

    return TransactionRecord.model_validate(obj)
