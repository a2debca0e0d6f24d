"""Allowlisted SQL identifiers.

All table and column names referenced in generated SQL must come from these mappings; no
user-provided identifier should ever be interpolated into SQL.
"""

from __future__ import annotations

TRANSACTIONS_TABLE = "transactions"

# Logical `TransactionRecord` field -> column.
TRANSACTION_COLUMNS: dict[str, str] = {
    "sender": "sender",
    "date": "tx_date",
    "time": "tx_time",
    "description": "description",
    "amount": "amount",
    "category": "category",
}

SELECT_FIELDS: tuple[str, ...] = ("date", "time", "description", "amount", "category", "sender")
