"""Keyed, versioned storage for budget limits and goals.

Every key has its own `asyncio.Lock`, and every write bumps a per-key version. Writers that read,
compute and write back use `compare_and_set` (or `update`) so two concurrent commands for the same
sender and period cannot silently overwrite each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from lumine.analysis.budget import BudgetRule, budget_key
from lumine.intent.schema import BudgetPeriod, Category, GoalRequest
from lumine.store.base import StoreError

logger = logging.getLogger(__name__)

V = TypeVar("V")


class VersionConflictError(StoreError):
    """Raised by `compare_and_set` when the stored version moved on."""


@dataclass(frozen=True)
class Versioned(Generic[V]):
    value: V
    version: int


class KeyedStore(Generic[V]):
    """In-memory keyed store with per-key locking and compare-and-set."""

    def __init__(self) -> None:
        self._items: dict[str, Versioned[V]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def get(self, key: str) -> Versioned[V] | None:
        return self._items.get(key)

    async def set(self, key: str, value: V) -> Versioned[V]:
        async with self._lock(key):
            return self._write(key, value)

    async def delete(self, key: str) -> bool:
        async with self._lock(key):
            return self._items.pop(key, None) is not None

    async def compare_and_set(self, key: str, expected_version: int | None, value: V) -> Versioned[V]:
        """Write only if the stored version equals `expected_version` (`None` = key must be absent).

        Raises:
            VersionConflictError: If another writer got there first.
        """

        async with self._lock(key):
            current = self._items.get(key)
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                raise VersionConflictError(
                    f"version conflict key={key} expected={expected_version} actual={current_version}"
                )
            return self._write(key, value)

    async def update(self, key: str, fn: Callable[[V | None], V]) -> Versioned[V]:
        """Read-modify-write under the key's lock."""

        async with self._lock(key):
            current = self._items.get(key)
            return self._write(key, fn(current.value if current is not None else None))

    async def items(self, prefix: str = "") -> list[tuple[str, Versioned[V]]]:
        return sorted((k, v) for k, v in self._items.items() if k.startswith(prefix))

    def _write(self, key: str, value: V) -> Versioned[V]:
        current = self._items.get(key)
        entry = Versioned(value=value, version=(current.version + 1) if current is not None else 1)
        self._items[key] = entry
        return entry


class GoalRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sender: str
    goal: GoalRequest
    created: date

    @property
    def key(self) -> str:
        return goal_key(self.sender, self.goal.deadline)


def goal_key(sender: str, deadline: date | None) -> str:
    return f"{sender}:goal:{deadline.isoformat() if deadline else 'none'}"


class BudgetBook:
    """Budget and goal definitions per sender."""

    def __init__(
            self,
            budgets: KeyedStore[BudgetRule] | None = None,
            goals: KeyedStore[GoalRecord] | None = None,
    ) -> None:
        self.budgets: KeyedStore[BudgetRule] = budgets or KeyedStore()
        self.goals: KeyedStore[GoalRecord] = goals or KeyedStore()

    async def set_budget(self, rule: BudgetRule) -> Versioned[BudgetRule]:
        entry = await self.budgets.set(rule.key, rule)
        logger.info("budget set key=%s amount=%d version=%d", rule.key, rule.amount, entry.version)
        return entry

    async def get_budget(
            self, sender: str, period: BudgetPeriod, category: Category | None
    ) -> BudgetRule | None:
        entry = await self.budgets.get(budget_key(sender, period, category))
        return entry.value if entry is not None else None

    async def delete_budget(self, sender: str, period: BudgetPeriod, category: Category | None) -> bool:
        return await self.budgets.delete(budget_key(sender, period, category))

    async def budgets_for(self, sender: str) -> list[BudgetRule]:
        return [entry.value for _, entry in await self.budgets.items(f"{sender}:")]

    async def add_goal(self, record: GoalRecord) -> Versioned[GoalRecord]:
        return await self.goals.set(record.key, record)

    async def goals_for(self, sender: str) -> list[GoalRecord]:
        return [entry.value for _, entry in await self.goals.items(f"{sender}:goal:")]
