"""Savings simulation with monthly compounding, and goal planning."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from lumine.intent.schema import GoalRequest, GoalType

DEFAULT_ANNUAL_RATE_PCT = 3.5
DEFAULT_MONTHS = 12


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SavingsMonth(_Result):
    month: int
    deposit: int
    interest: float
    balance: float


class SavingsSimulation(_Result):
    monthly_deposit: int
    months: int
    annual_rate_pct: float
    total_deposits: int
    total_interest: float
    final_balance: float
    target: int | None = None
    months_to_target: int | None = None
    target_reached: bool = False
    projections: list[SavingsMonth] = Field(default_factory=list)


class DailySavingProjection(_Result):
    daily_saving: int
    days_remaining: int
    saved_this_month: int
    projected_spending: int
    saved_in_six_months: int
    saved_in_a_year: int


class GoalPlan(_Result):
    goal: GoalRequest
    months_left: int | None = None
    monthly_required: int | None = None


def simulate_savings(
        monthly_deposit: int,
        *,
        months: int = DEFAULT_MONTHS,
        annual_rate_pct: float = DEFAULT_ANNUAL_RATE_PCT,
        target: int | None = None,
) -> SavingsSimulation:
    """Deposit at the start of every month, then apply one month of interest.

    Raises:
        ValueError: If the deposit is not positive or `months` is less than one.
    """

    if monthly_deposit <= 0:
        raise ValueError("monthly_deposit must be > 0")
    if months < 1:
        raise ValueError("months must be >= 1")

    monthly_rate = annual_rate_pct / 100 / 12
    balance = 0.0
    total_interest = 0.0
    months_to_target: int | None = None
    projections: list[SavingsMonth] = []

    for month in range(1, months + 1):
        balance += monthly_deposit
        interest = balance * monthly_rate
        balance += interest
        total_interest += interest
        projections.append(
            SavingsMonth(month=month, deposit=monthly_deposit, interest=interest, balance=balance)
        )
        if target and months_to_target is None and balance >= target:
            months_to_target = month

    return SavingsSimulation(
        monthly_deposit=monthly_deposit,
        months=months,
        annual_rate_pct=annual_rate_pct,
        total_deposits=monthly_deposit * months,
        total_interest=total_interest,
        final_balance=balance,
        target=target,
        months_to_target=months_to_target,
        target_reached=bool(target) and balance >= (target or 0),
        projections=projections,
    )


def required_monthly_saving(
        target: int,
        months: int,
        *,
        annual_rate_pct: float = DEFAULT_ANNUAL_RATE_PCT,
) -> int:
    """Monthly deposit that reaches `target` after `months` (ordinary annuity formula)."""

    if target <= 0:
        return 0
    if months < 1:
        raise ValueError("months must be >= 1")

    rate = annual_rate_pct / 100 / 12
    if rate == 0:
        return round(target / months)
    factor = ((1 + rate) ** months - 1) / rate
    return round(target / factor)


def project_daily_saving(daily_saving: int, *, days_remaining: int, month_total: int) -> DailySavingProjection:
    """What saving a fixed amount every day would do for the rest of the month and beyond."""

    saved = daily_saving * days_remaining
    return DailySavingProjection(
        daily_saving=daily_saving,
        days_remaining=days_remaining,
        saved_this_month=saved,
        projected_spending=max(0, month_total - saved),
        saved_in_six_months=daily_saving * 30 * 6,
        saved_in_a_year=daily_saving * 365,
    )


def months_between(start: date, end: date) -> int:
    """Whole calendar months from `start` to `end`, at least one when `end` is in the future."""

    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(1, months) if end > start else 0


def plan_goal(goal: GoalRequest, today: date) -> GoalPlan:
    """Monthly saving needed for a savings goal with an amount and a deadline."""

    if goal.goal_type != GoalType.save or not goal.amount or goal.deadline is None:
        return GoalPlan(goal=goal)

    months_left = months_between(today, goal.deadline)
    if months_left == 0:
        return GoalPlan(goal=goal, months_left=0)
    return GoalPlan(
        goal=goal,
        months_left=months_left,
        monthly_required=required_monthly_saving(goal.amount, months_left),
    )
