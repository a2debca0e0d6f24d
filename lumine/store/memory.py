"""In-process transaction store, used when no `DATABASE_URL` is configured and in tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from lumine.analysis.spending import category_totals, filter_records
from lumine.intent.schema import Category, DateRange, TransactionRecord


class InMemoryTransactionStore:
    def __init__(self, records: Iterable[TransactionRecord] = ()) -> None:
        self._records: list[TransactionRecord] = list(records)
        self._lock = asyncio.Lock()

    async def query(
            self,
            sender: str,
            date_range: DateRange | None = None,
            category: Category | None = None,
    ) -> list[TransactionRecord]:
        async with self._lock:
            own = [r for r in self._records if r.sender == sender]
        items = filter_records(own, date_range, category)
        return sorted(items, key=lambda r: (r.date, r.time is not None, r.time))

    async def insert(self, record: TransactionRecord) -> bool:
        async with self._lock:
            self._records.append(record)
        return True

    async def aggregate_by_category(
            self, sender: str, date_range: DateRange | None = None
    ) -> dict[Category, int]:
        return category_totals(await self.query(sender, date_range))
