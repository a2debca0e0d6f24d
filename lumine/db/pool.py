"""Async Postgres connection pool (psycopg3).

Connections handed out by the pool always run in the assistant's timezone, so `CURRENT_DATE` and
timestamp casts agree with the calendar days stored in `transactions.tx_date`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from dotenv import load_dotenv
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from lumine.db.connection import DEFAULT_TIMEZONE, require_database_url, set_time_zone_sql

POOL_NAME = "lumine"


@dataclass(frozen=True)
class PoolOptions:
    min_size: int = 1
    max_size: int | None = None
    timeout_s: float = 30.0
    timezone: str = DEFAULT_TIMEZONE


def _session_setup(timezone: str):
    statement = set_time_zone_sql(timezone)

    async def configure(conn: AsyncConnection) -> None:
        await conn.execute(statement, prepare=False)
        # Leave the connection idle; the pool rejects connections returned INTRANS.
        await conn.commit()

    return configure


def create_pool(database_url: str | None = None, options: PoolOptions | None = None) -> AsyncConnectionPool:
    """Build an unopened pool; the caller awaits `pool.open()` at startup.

    When `database_url` is omitted it comes from `DATABASE_URL`, with `.env` loaded first.
    """

    opts = options or PoolOptions()
    if database_url is None:
        load_dotenv(".env")
        database_url = require_database_url()

    return AsyncConnectionPool(
        conninfo=database_url,
        min_size=opts.min_size,
        max_size=opts.max_size,
        timeout=opts.timeout_s,
        name=POOL_NAME,
        open=False,
        configure=_session_setup(opts.timezone),
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    async with pool.connection() as conn:
        yield conn


async def ping(pool: AsyncConnectionPool) -> str:
    """Round-trip one query and return the session timezone the pool configured."""

    async with get_conn(pool) as conn:
        cur = await conn.execute("SHOW TimeZone", prepare=False)
        row = await cur.fetchone()
    if row is None:
        raise RuntimeError("SHOW TimeZone returned no row")
    return str(row[0])
