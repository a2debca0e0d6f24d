"""Deterministic SQL builder for the transaction store.

Identifiers (tables, columns) are strictly allowlisted; only values become bound parameters.
Inclusive calendar ranges are turned into half-open `[start, end + 1 day)` bounds, so an inverted
range simply matches no rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from lumine.intent.schema import Category, DateRange, TransactionRecord
from lumine.sql.columns import SELECT_FIELDS, TRANSACTION_COLUMNS, TRANSACTIONS_TABLE


class SQLBuilderError(ValueError):
    """Raised when a store request cannot be converted into deterministic SQL."""


@dataclass(frozen=True)
class BuiltQuery:
    """A parameterized SQL query ready for execution."""

    sql: str
    params: tuple[Any, ...]


def _col(field: str) -> str:
    try:
        return f"t.{TRANSACTION_COLUMNS[field]}"
    except KeyError as exc:
        raise SQLBuilderError(f"Unknown transaction field: {field}") from exc


def inclusive_dates_to_half_open(start: date, end: date) -> tuple[date, date]:
    return start, end + timedelta(days=1)


def _where_and(clauses: list[str]) -> str:
    if not clauses:
        return ""
    return " WHERE " + " AND ".join(clauses)


def _filters(
        sender: str,
        date_range: DateRange | None,
        category: Category | None,
) -> tuple[list[str], list[Any]]:
    if not sender:
        raise SQLBuilderError("sender is required")

    clauses = [f"{_col('sender')} = %s"]
    params: list[Any] = [sender]

    if date_range is not None:
        start, end = inclusive_dates_to_half_open(date_range.start_date, date_range.end_date)
        clauses.append(f"{_col('date')} >= %s AND {_col('date')} < %s")
        params.extend([start, end])

    if category is not None:
        clauses.append(f"{_col('category')} = %s")
        params.append(Category(category).value)

    return clauses, params


def build_select_transactions(
        sender: str,
        date_range: DateRange | None = None,
        category: Category | None = None,
        *,
        limit: int | None = None,
) -> BuiltQuery:
    """SELECT a sender's transactions, oldest first."""

    clauses, params = _filters(sender, date_range, category)
    columns = ", ".join(_col(f) for f in SELECT_FIELDS)
    sql = (
        f"SELECT {columns} FROM {TRANSACTIONS_TABLE} t"
        f"{_where_and(clauses)}"
        f" ORDER BY {_col('date')} ASC, {_col('time')} ASC NULLS FIRST"
    )
    if limit is not None:
        if limit <= 0:
            raise SQLBuilderError("limit must be > 0")
        sql += " LIMIT %s"
        params.append(limit)
    return BuiltQuery(sql=sql, params=tuple(params))


def build_category_totals(sender: str, date_range: DateRange | None = None) -> BuiltQuery:
    """SUM(amount) per category for a sender, largest first."""

    clauses, params = _filters(sender, date_range, None)
    sql = (
        f"SELECT {_col('category')}, COALESCE(SUM({_col('amount')}), 0)::bigint"
        f" FROM {TRANSACTIONS_TABLE} t"
        f"{_where_and(clauses)}"
        f" GROUP BY {_col('category')}"
        " ORDER BY 2 DESC"
    )
    return BuiltQuery(sql=sql, params=tuple(params))


def build_insert_transaction(record: TransactionRecord) -> BuiltQuery:
    columns = ", ".join(TRANSACTION_COLUMNS[f] for f in SELECT_FIELDS)
    placeholders = ", ".join("%s" for _ in SELECT_FIELDS)
    params = (
        record.date,
        record.time,
        record.description,
        record.amount,
        record.category.value,
        record.sender,
    )
    return BuiltQuery(
        sql=f"INSERT INTO {TRANSACTIONS_TABLE} ({columns}) VALUES ({placeholders})",
        params=params,
    )
