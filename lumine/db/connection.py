"""Shared Postgres connection helpers.

Transaction dates are calendar days in the assistant's local timezone, so every DB session runs in
that timezone too (`APP_TIMEZONE`, default `Asia/Jakarta`).
"""

from __future__ import annotations

import os

import psycopg
from psycopg import sql

DEFAULT_TIMEZONE = "Asia/Jakarta"


def require_database_url() -> str:
    """Read `DATABASE_URL` from the environment or raise a clear error."""

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required (set it in .env or environment)")
    return database_url


def set_time_zone_sql(timezone: str) -> sql.Composed:
    return sql.SQL("SET TIME ZONE {}").format(sql.Literal(timezone))


def connect(database_url: str, *, timezone: str = DEFAULT_TIMEZONE) -> psycopg.Connection:
    """Connect to Postgres with the session timezone set."""

    conn = psycopg.connect(database_url)
    conn.execute(set_time_zone_sql(timezone), prepare=False)
    return conn
