"""PostgreSQL-backed transaction store (psycopg3 async pool)."""

from __future__ import annotations

import logging
from typing import Any, LiteralString, cast

import psycopg
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from lumine.db.pool import get_conn
from lumine.intent.schema import Category, DateRange, TransactionRecord
from lumine.sql.builder import (
    BuiltQuery,
    build_category_totals,
    build_insert_transaction,
    build_select_transactions,
)
from lumine.store.base import StoreError

logger = logging.getLogger(__name__)


async def fetch_all(conn: AsyncConnection, query: BuiltQuery) -> list[tuple[Any, ...]]:
    """Execute a parameterized query and return all rows. DB errors are not swallowed."""

    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, query.sql), query.params)
        return list(await cur.fetchall())


def _row_to_record(row: tuple[Any, ...]) -> TransactionRecord:
    tx_date, tx_time, description, amount, category, sender = row
    try:
        parsed_category = Category(category)
    except ValueError:
        parsed_category = Category.lainnya
    return TransactionRecord(
        date=tx_date,
        time=tx_time,
        description=description,
        amount=int(amount),
        category=parsed_category,
        sender=sender,
    )


class PostgresTransactionStore:
    def __init__(self, pool: AsyncConnectionPool, *, limit: int | None = 5000) -> None:
        self.pool = pool
        self.limit = limit

    async def query(
            self,
            sender: str,
            date_range: DateRange | None = None,
            category: Category | None = None,
    ) -> list[TransactionRecord]:
        query = build_select_transactions(sender, date_range, category, limit=self.limit)
        try:
            async with get_conn(self.pool) as conn:
                rows = await fetch_all(conn, query)
        except psycopg.Error as exc:
            raise StoreError(f"transaction query failed: {exc}") from exc
        return [_row_to_record(row) for row in rows]

    async def insert(self, record: TransactionRecord) -> bool:
        query = build_insert_transaction(record)
        try:
            async with get_conn(self.pool) as conn:
                async with conn.cursor() as cur:
                    await cur.execute(cast(LiteralString, query.sql), query.params)
                await conn.commit()
        except psycopg.Error as exc:
            raise StoreError(f"transaction insert failed: {exc}") from exc
        return True

    async def aggregate_by_category(
            self, sender: str, date_range: DateRange | None = None
    ) -> dict[Category, int]:
        query = build_category_totals(sender, date_range)
        try:
            async with get_conn(self.pool) as conn:
                rows = await fetch_all(conn, query)
        except psycopg.Error as exc:
            raise StoreError(f"category aggregation failed: {exc}") from exc

        totals: dict[Category, int] = {}
        for category, amount in rows:
            try:
                key = Category(category)
            except ValueError:
                key = Category.lainnya
            totals[key] = totals.get(key, 0) + int(amount)
        return totals
