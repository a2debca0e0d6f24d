"""Storage contracts consumed by the assistant pipeline."""

from __future__ import annotations

from typing import Protocol

from lumine.intent.schema import Category, DateRange, TransactionRecord


class StoreError(RuntimeError):
    """Raised when a storage backend fails (connection, query, constraint)."""


class TransactionStore(Protocol):
    """Transaction persistence. `query` always returns a list, never `None`."""

    async def query(
            self,
            sender: str,
            date_range: DateRange | None = None,
            category: Category | None = None,
    ) -> list[TransactionRecord]: ...

    async def insert(self, record: TransactionRecord) -> bool: ...

    async def aggregate_by_category(
            self, sender: str, date_range: DateRange | None = None
    ) -> dict[Category, int]: ...


class LedgerMirror(Protocol):
    """Secondary, best-effort copy of recorded transactions (e.g. a spreadsheet)."""

    async def append(self, record: TransactionRecord) -> bool: ...
