"""Application composition root.

This module wires together configuration, storage, the pattern tables and the optional LLM
category classifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from lumine.config.settings import Settings
from lumine.db.pool import PoolOptions, create_pool, ping
from lumine.intent.llm_classifier import LLMCategoryClassifier, LLMConfig
from lumine.intent.parser import CategoryClassifier
from lumine.intent.tables import PatternTables, default_tables
from lumine.store.base import LedgerMirror, TransactionStore
from lumine.store.budgets import BudgetBook
from lumine.store.memory import InMemoryTransactionStore
from lumine.store.postgres import PostgresTransactionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """Shared application dependencies for the message pipeline."""

    settings: Settings
    store: TransactionStore
    budgets: BudgetBook
    tables: PatternTables
    classifier: CategoryClassifier | None = None
    mirror: LedgerMirror | None = None
    pool: AsyncConnectionPool | None = None

    async def open(self) -> None:
        if self.pool is not None:
            await self.pool.open(wait=True)
            logger.info("db ready timezone=%s", await ping(self.pool))

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()


def create_app(settings: Settings, *, mirror: LedgerMirror | None = None) -> App:
    """Create the application container.

    Note:
        With `DATABASE_URL` set, the returned DB pool is not opened. Call `await app.open()` at
        startup.
    """

    pool: AsyncConnectionPool | None = None
    store: TransactionStore
    if settings.database_url:
        pool = create_pool(
            settings.database_url,
            PoolOptions(max_size=10, timezone=settings.app_timezone),
        )
        store = PostgresTransactionStore(pool)
    else:
        store = InMemoryTransactionStore()

    classifier: CategoryClassifier | None = None
    if settings.llm_enabled and settings.llm_api_key:
        classifier = LLMCategoryClassifier(
            LLMConfig(
                api_key=settings.llm_api_key,
                model=settings.llm_model,
                api_base=settings.llm_api_base,
                timeout_s=settings.llm_timeout_s,
            )
        )

    return App(
        settings=settings,
        store=store,
        budgets=BudgetBook(),
        tables=default_tables(),
        classifier=classifier,
        mirror=mirror,
        pool=pool,
    )
