"""Budget limits: status evaluation, threshold alerts and suggestions from past spending."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from lumine.intent.schema import BudgetPeriod, Category, DateRange
from lumine.analysis.spending import SpendingSummary

BudgetHealth = Literal["safe", "warning", "danger"]
AlertLevel = Literal["none", "warning", "danger", "exceeded"]

DEFAULT_ALERT_THRESHOLD = 80
_WARNING_PCT = 70.0
_DANGER_PCT = 90.0
_EXCEEDED_PCT = 100.0
_TOTAL_SUGGESTION_FACTOR = 0.9
_CATEGORY_SUGGESTION_FACTOR = 0.85


class BudgetRule(BaseModel):
    """A spending limit for one sender, period and (optionally) category."""

    model_config = ConfigDict(extra="forbid")

    sender: str
    amount: int = Field(ge=0)
    period: BudgetPeriod = BudgetPeriod.monthly
    category: Category | None = None
    alert_threshold: int = Field(default=DEFAULT_ALERT_THRESHOLD, ge=1, le=100)

    @property
    def key(self) -> str:
        return budget_key(self.sender, self.period, self.category)


def budget_key(sender: str, period: BudgetPeriod, category: Category | None) -> str:
    return f"{sender}:{period}:{category or 'all'}"


class BudgetStatus(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rule: BudgetRule
    period_range: DateRange
    spent: int
    percent_used: float
    remaining: int
    days_left: int
    projected_spending: int
    daily_allowance: int
    status: BudgetHealth
    alert_level: AlertLevel


class BudgetSuggestion(BaseModel):
    model_config = ConfigDict(extra="forbid")

    months_considered: int
    average_monthly: int
    suggested_total: int
    suggested_by_category: dict[Category, int] = Field(default_factory=dict)


def _health(percent: float) -> BudgetHealth:
    if percent > _DANGER_PCT:
        return "danger"
    if percent > _WARNING_PCT:
        return "warning"
    return "safe"


def alert_level(percent: float, threshold: int = DEFAULT_ALERT_THRESHOLD) -> AlertLevel:
    if percent >= _EXCEEDED_PCT:
        return "exceeded"
    if percent >= _DANGER_PCT:
        return "danger"
    if percent >= threshold:
        return "warning"
    return "none"


def evaluate_budget(rule: BudgetRule, spent: int, period_range: DateRange, today: date) -> BudgetStatus:
    """Evaluate spending so far against a budget rule for the period containing `today`."""

    if rule.amount > 0:
        percent = spent / rule.amount * 100
    else:
        percent = _EXCEEDED_PCT if spent > 0 else 0.0

    total_days = max(1, period_range.days)
    elapsed = min(total_days, max(1, (today - period_range.start_date).days + 1))
    days_left = max(0, (period_range.end_date - today).days)
    remaining = max(0, rule.amount - spent)

    return BudgetStatus(
        rule=rule,
        period_range=period_range,
        spent=spent,
        percent_used=round(percent, 2),
        remaining=remaining,
        days_left=days_left,
        projected_spending=round(spent / elapsed * total_days),
        daily_allowance=remaining // max(1, days_left),
        status=_health(percent),
        alert_level=alert_level(percent, rule.alert_threshold),
    )


def _round_thousands(value: float) -> int:
    return int(round(value / 1_000) * 1_000)


def suggest_budgets(monthly: Sequence[SpendingSummary], *, top_categories: int = 3) -> BudgetSuggestion:
    """Suggest a monthly limit slightly below the recent average.

    The overall limit is 90% of the average monthly total; the largest categories get 85% of their
    own average.
    """

    months = [m for m in monthly if m.transaction_count > 0]
    if not months:
        return BudgetSuggestion(months_considered=0, average_monthly=0, suggested_total=0)

    average = sum(m.total for m in months) / len(months)

    per_category: dict[Category, int] = defaultdict(int)
    for summary in months:
        for category, amount in summary.category_breakdown.items():
            per_category[category] += amount
    ranked = sorted(per_category.items(), key=lambda item: item[1], reverse=True)[:top_categories]

    return BudgetSuggestion(
        months_considered=len(months),
        average_monthly=round(average),
        suggested_total=_round_thousands(average * _TOTAL_SUGGESTION_FACTOR),
        suggested_by_category={
            category: _round_thousands(amount / len(months) * _CATEGORY_SUGGESTION_FACTOR)
            for category, amount in ranked
        },
    )
