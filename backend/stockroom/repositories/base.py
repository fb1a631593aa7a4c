# Overview: Persistence contract the inventory service needs from a store.

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..ledger.records import ProductRecord, TransactionRecord
from ..ledger.stock_ledger import LedgerResult
from ..services.concurrency import ConcurrencyConflict  # noqa: F401

"""
Repository Invariants (authoritative)

- save() commits the product change and its transaction together or not at all.
- save() on an existing product only commits if the stored version still
  equals expected_version; otherwise it raises ConcurrencyConflict and
  nothing is written.
- Ids are assigned on save; the returned LedgerResult carries them.
- Transactions are never updated; only purge_transactions_before() deletes them.
- list_transactions() is ordered newest first (timestamp desc, id desc).
"""


class Repository(ABC):

    @abstractmethod
    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[ProductRecord]:
        """Return the current product, or None when it does not exist."""

    @abstractmethod
    def list_products(self) -> list[ProductRecord]:
        """All products ordered by brand, then name."""

    @abstractmethod
    def save(self, result: LedgerResult, *, expected_version: Optional[int] = None) -> LedgerResult:
        """Persist a ledger result atomically and return it with ids filled in."""

    @abstractmethod
    def list_transactions(self, *, product_id: Optional[int] = None) -> list[TransactionRecord]:
        """Transaction log, newest first."""

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        ...

    @abstractmethod
    def purge_transactions_before(self, cutoff: datetime) -> int:
        """Delete transactions with timestamp < cutoff; return how many were removed."""

    def rollback(self) -> None:
        """Discard any pending work after a failed attempt."""
