"""Message pipeline: classify -> extract -> fetch -> analyze -> structured reply.

Hard contract: every message produces exactly one `AssistantReply`. Unrecognized messages come back
with `intent=unknown` so the caller can fall back to open conversation. External failures (store,
classifier, ledger mirror) degrade the reply instead of failing it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from time import monotonic
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lumine.analysis.budget import BudgetRule, evaluate_budget, suggest_budgets
from lumine.analysis.patterns import analyze_patterns, busiest_day, recommend_savings
from lumine.analysis.savings import plan_goal, project_daily_saving, simulate_savings
from lumine.analysis.spending import compare, predict_month_end, summarize
from lumine.app import App
from lumine.intent import dates
from lumine.intent.parser import resolve_category_async
from lumine.intent.rules_parser import RulesParserError, parse_message
from lumine.intent.schema import (
    BudgetAction,
    Category,
    ChallengeKind,
    DateRange,
    DayContext,
    Intent,
    MessageKind,
    MonthContext,
    ParsedQuery,
    SpecificContext,
    TransactionRecord,
)
from lumine.store.base import StoreError
from lumine.store.budgets import GoalRecord

logger = logging.getLogger(__name__)

_HISTORY_LIMIT = 10
_SUGGESTION_MONTHS = 3

# Keeps fire-and-forget mirror tasks referenced until they finish.
_background_tasks: set[asyncio.Task[Any]] = set()


class AssistantReply(BaseModel):
    """Structured, JSON-serializable outcome of one message."""

    model_config = ConfigDict(extra="forbid")

    kind: MessageKind
    intent: Intent
    ok: bool = True
    degraded: bool = False
    note: str | None = None
    parsed: ParsedQuery | None = None
    result: dict[str, Any] = Field(default_factory=dict)


@dataclass
class _Request:
    app: App
    parsed: ParsedQuery
    now: datetime
    degraded: bool = False

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def sender(self) -> str:
        return self.parsed.sender_id


def _dump(model: BaseModel | None) -> Any:
    return model.model_dump(mode="json") if model is not None else None


async def _fetch(
        req: _Request,
        date_range: DateRange | None = None,
        category: Category | None = None,
) -> list[TransactionRecord]:
    """Store query with timeout; failures degrade to an empty list."""

    try:
        return await asyncio.wait_for(
            req.app.store.query(req.sender, date_range, category),
            timeout=req.app.settings.store_timeout_s,
        )
    except (StoreError, TimeoutError) as exc:
        logger.warning("store query failed reason=%s", exc or "timeout")
        req.degraded = True
        return []


def _range_or_month(req: _Request) -> DateRange:
    return req.parsed.date_range or dates.current_month(req.today)


def _record_date(parsed: ParsedQuery, today: date) -> date:
    if isinstance(parsed.time_context, (DayContext, SpecificContext)) and parsed.date_range:
        return parsed.date_range.start_date
    return today


def _log_mirror_result(task: asyncio.Task[Any]) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("ledger mirror failed reason=%s", exc)
    elif task.result() is False:
        logger.warning("ledger mirror rejected record")


def _mirror(req: _Request, record: TransactionRecord) -> None:
    if req.app.mirror is None:
        return
    task = asyncio.create_task(req.app.mirror.append(record))
    _background_tasks.add(task)
    task.add_done_callback(_log_mirror_result)


async def _budget_alerts(req: _Request) -> list[dict[str, Any]]:
    alerts = []
    for rule in await req.app.budgets.budgets_for(req.sender):
        status = await _budget_status(req, rule)
        if status["alert_level"] != "none":
            alerts.append(status)
    return alerts


async def _budget_status(req: _Request, rule: BudgetRule) -> dict[str, Any]:
    period_range = dates.budget_period_range(rule.period, req.today)
    records = await _fetch(req, period_range, rule.category)
    spent = sum(r.amount for r in records)
    return evaluate_budget(rule, spent, period_range, req.today).model_dump(mode="json")


async def _handle_transaction(req: _Request) -> dict[str, Any]:
    parsed = req.parsed
    app = req.app
    description = parsed.raw_text.strip()

    category = await resolve_category_async(
        description,
        classifier=app.classifier,
        timeout_s=app.settings.llm_timeout_s,
        min_confidence=app.settings.llm_min_confidence,
        tables=app.tables,
    )
    record_date = _record_date(parsed, req.today)
    record = TransactionRecord(
        date=record_date,
        time=req.now.time().replace(microsecond=0) if record_date == req.today else None,
        description=description,
        amount=parsed.amount or 0,
        category=category.category,
        sender=req.sender,
    )

    saved = False
    try:
        saved = await asyncio.wait_for(app.store.insert(record), timeout=app.settings.store_timeout_s)
    except (StoreError, TimeoutError) as exc:
        logger.warning("store insert failed reason=%s", exc or "timeout")
        req.degraded = True

    if saved:
        _mirror(req, record)

    return {
        "record": _dump(record),
        "saved": saved,
        "category_source": category.source,
        "category_confidence": category.confidence,
        "budget_alerts": await _budget_alerts(req) if saved else [],
    }


async def _handle_total(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range, req.parsed.category)
    return {"summary": _dump(summarize(records, date_range))}


async def _handle_category(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range, req.parsed.category)
    return {"category": req.parsed.category, "summary": _dump(summarize(records, date_range))}


async def _handle_comparison(req: _Request) -> dict[str, Any]:
    current_range, previous_range = dates.comparison_ranges(req.parsed.comparison_type, req.today)
    current, previous = await asyncio.gather(
        _fetch(req, current_range), _fetch(req, previous_range)
    )
    comparison = compare(summarize(current, current_range), summarize(previous, previous_range))
    return {"comparison": _dump(comparison)}


async def _handle_prediction(req: _Request) -> dict[str, Any]:
    month = dates.current_month(req.today)
    previous_range = dates.previous_month(req.today)
    current, previous = await asyncio.gather(_fetch(req, month), _fetch(req, previous_range))
    prediction = predict_month_end(
        current, today=req.today, previous_total=sum(r.amount for r in previous)
    )
    return {"prediction": _dump(prediction)}


async def _handle_pattern(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range)
    return {"date_range": _dump(date_range), "pattern": _dump(analyze_patterns(records))}


async def _handle_recommendation(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range)
    summary = summarize(records, date_range)
    pattern = analyze_patterns(records)
    return {
        "summary": _dump(summary),
        "recommendations": recommend_savings(summary, pattern, records),
    }


async def _handle_history(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range, req.parsed.category)
    if "terbesar" in req.parsed.raw_text.lower():
        ordered = sorted(records, key=lambda r: r.amount, reverse=True)
    else:
        ordered = list(reversed(records))
    return {
        "date_range": _dump(date_range),
        "count": len(records),
        "transactions": [_dump(r) for r in ordered[:_HISTORY_LIMIT]],
    }


async def _handle_search(req: _Request) -> dict[str, Any]:
    keyword = (req.parsed.search_keyword or "").lower()
    records = await _fetch(req, req.parsed.date_range)
    found = [r for r in records if keyword and keyword in r.description.lower()]
    found.reverse()
    return {
        "keyword": keyword,
        "count": len(found),
        "total": sum(r.amount for r in found),
        "transactions": [_dump(r) for r in found[:_HISTORY_LIMIT]],
    }


async def _handle_busiest_day(req: _Request) -> dict[str, Any]:
    date_range = _range_or_month(req)
    records = await _fetch(req, date_range)
    return {"date_range": _dump(date_range), "busiest_day": _dump(busiest_day(records))}


async def _handle_challenge(req: _Request) -> dict[str, Any]:
    challenge = req.parsed.challenge
    result: dict[str, Any] = {"challenge": _dump(challenge), "starts": req.today.isoformat()}
    if challenge is not None and challenge.kind == ChallengeKind.no_spend_days and challenge.days:
        result["ends"] = (req.today + timedelta(days=challenge.days)).isoformat()
    if challenge is not None and challenge.kind == ChallengeKind.daily_saving and challenge.amount:
        result["monthly_target"] = challenge.amount * 30
    return result


async def _handle_simulation(req: _Request) -> dict[str, Any]:
    simulation = req.parsed.simulation
    if simulation is not None and simulation.monthly_saving:
        projection = simulate_savings(simulation.monthly_saving, months=simulation.months or 12)
        return {"savings": _dump(projection)}

    month = dates.current_month(req.today)
    records = await _fetch(req, month)
    month_total = sum(r.amount for r in records if r.date <= req.today)
    days_remaining = dates.days_remaining_in_month(req.today)

    if simulation is not None and simulation.daily_saving:
        projection = project_daily_saving(
            simulation.daily_saving, days_remaining=days_remaining, month_total=month_total
        )
        return {"daily_saving": _dump(projection)}

    prediction = predict_month_end(records, today=req.today)
    return {
        "prediction": _dump(prediction),
        "days_remaining": days_remaining,
        "suggested_daily_max": round(prediction.predicted_total / 30),
    }


async def _handle_budget(req: _Request) -> dict[str, Any]:
    request = req.parsed.budget
    if request is None:
        raise ValueError("budget intent without budget request")
    book = req.app.budgets

    if request.action == BudgetAction.set and request.amount is not None:
        rule = BudgetRule(
            sender=req.sender, amount=request.amount, period=request.period, category=request.category
        )
        entry = await book.set_budget(rule)
        return {
            "action": request.action,
            "version": entry.version,
            "status": await _budget_status(req, rule),
        }

    if request.action == BudgetAction.delete:
        deleted = await book.delete_budget(req.sender, request.period, request.category)
        return {"action": request.action, "deleted": deleted}

    if request.action == BudgetAction.suggest:
        summaries = []
        anchor = dates.current_month(req.today).start_date
        for offset in range(1, _SUGGESTION_MONTHS + 1):
            start = dates.shift_months(anchor, -offset)
            month_range = dates.to_date_range(
                MonthContext(year=start.year, month=start.month), req.today
            )
            summaries.append(summarize(await _fetch(req, month_range), month_range))
        return {"action": request.action, "suggestion": _dump(suggest_budgets(summaries))}

    rules = await book.budgets_for(req.sender)
    return {
        "action": BudgetAction.status,
        "budgets": [await _budget_status(req, rule) for rule in rules],
    }


async def _handle_goal(req: _Request) -> dict[str, Any]:
    goal = req.parsed.goal
    if goal is None:
        raise ValueError("goal intent without goal request")
    entry = await req.app.budgets.add_goal(GoalRecord(sender=req.sender, goal=goal, created=req.today))
    return {"version": entry.version, "plan": _dump(plan_goal(goal, req.today))}


_HANDLERS: dict[Intent, Callable[[_Request], Awaitable[dict[str, Any]]]] = {
    Intent.transaction: _handle_transaction,
    Intent.budget: _handle_budget,
    Intent.goal: _handle_goal,
    Intent.total: _handle_total,
    Intent.category: _handle_category,
    Intent.comparison: _handle_comparison,
    Intent.prediction: _handle_prediction,
    Intent.pattern: _handle_pattern,
    Intent.recommendation: _handle_recommendation,
    Intent.history: _handle_history,
    Intent.search: _handle_search,
    Intent.hari_paling_boros: _handle_busiest_day,
    Intent.challenge: _handle_challenge,
    Intent.simulation: _handle_simulation,
}


async def handle_message(
        text: str,
        sender: str,
        app: App,
        *,
        now: datetime | None = None,
) -> AssistantReply:
    """Handle one incoming message and return exactly one structured reply."""

    started = monotonic()
    current = now or datetime.now(app.settings.tz)

    # noinspection PyBroadException
    try:
        parsed = parse_message(text, now=current, sender_id=sender, tables=app.tables)
    except RulesParserError as exc:
        latency_ms = int((monotonic() - started) * 1000)
        logger.info("unsupported reason=%s latency_ms=%d", exc, latency_ms)
        return AssistantReply(kind=MessageKind.unknown, intent=Intent.unknown, note="empty")
    except Exception:
        logger.exception("parse failed sender=%s", sender)
        return AssistantReply(
            kind=MessageKind.unknown, intent=Intent.unknown, ok=False, note="internal_error"
        )

    if parsed.is_failure:
        latency_ms = int((monotonic() - started) * 1000)
        logger.info("unsupported reason=unrecognized latency_ms=%d", latency_ms)
        return AssistantReply(
            kind=parsed.kind, intent=parsed.intent, parsed=parsed, note="unrecognized"
        )

    req = _Request(app=app, parsed=parsed, now=current)

    # noinspection PyBroadException
    try:
        result = await _HANDLERS[parsed.intent](req)
    except Exception:
        # Handler boundary: an internal error still yields a reply, without leaking details.
        logger.exception("handler failed intent=%s", parsed.intent)
        return AssistantReply(
            kind=parsed.kind, intent=parsed.intent, parsed=parsed, ok=False, note="internal_error"
        )

    latency_ms = int((monotonic() - started) * 1000)
    logger.info(
        "handled kind=%s intent=%s degraded=%s latency_ms=%d",
        parsed.kind,
        parsed.intent,
        req.degraded,
        latency_ms,
    )
    return AssistantReply(
        kind=parsed.kind,
        intent=parsed.intent,
        parsed=parsed,
        degraded=req.degraded,
        result=result,
    )
