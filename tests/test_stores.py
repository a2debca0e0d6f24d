"""Tests for the in-memory transaction store."""

from __future__ import annotations

from datetime import date, time

import pytest

from lumine.intent.schema import Category, DateRange, TransactionRecord
from lumine.store.memory import InMemoryTransactionStore


def _tx(day: int, amount: int, sender: str = "u1", at: time | None = None, category: Category = Category.makanan) -> TransactionRecord:
    return TransactionRecord(
        date=date(2025, 6, day), time=at, description="x", amount=amount, category=category, sender=sender
    )


@pytest.mark.asyncio
async def test_query_scopes_sorts_and_filters() -> None:
    store = InMemoryTransactionStore(
        [
            _tx(3, 10, at=time(9)),
            _tx(1, 20),
            _tx(3, 30),
            _tx(2, 40, sender="u2"),
            _tx(5, 50, category=Category.hiburan),
        ]
    )

    records = await store.query("u1")
    assert [r.amount for r in records] == [20, 30, 10, 50]

    june_1_to_3 = DateRange(start_date=date(2025, 6, 1), end_date=date(2025, 6, 3))
    assert [r.amount for r in await store.query("u1", june_1_to_3)] == [20, 30, 10]
    assert [r.amount for r in await store.query("u1", category=Category.hiburan)] == [50]


@pytest.mark.asyncio
async def test_inverted_range_returns_empty_list() -> None:
    store = InMemoryTransactionStore([_tx(3, 10)])
    inverted = DateRange(start_date=date(2025, 6, 30), end_date=date(2025, 6, 1))
    assert await store.query("u1", inverted) == []


@pytest.mark.asyncio
async def test_insert_and_aggregate() -> None:
    store = InMemoryTransactionStore()
    assert await store.insert(_tx(1, 10))
    assert await store.insert(_tx(2, 30, category=Category.hiburan))
    assert await store.aggregate_by_category("u1") == {Category.hiburan: 30, Category.makanan: 10}
    assert await store.query("nobody") == []
