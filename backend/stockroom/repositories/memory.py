# Overview: Dict-backed repository for tests and local tooling.

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..ledger.records import ProductRecord, TransactionRecord
from ..ledger.stock_ledger import ACTION_CREATE, ACTION_DELETE, LedgerResult
from stockroom.time_utils import utcnow
from .base import ConcurrencyConflict, Repository


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory store with the same version semantics as the SQL one.

    A single lock serializes save(), which makes the version check and the
    paired writes atomic.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._products: dict[int, ProductRecord] = {}
        self._transactions: dict[int, TransactionRecord] = {}
        self._next_product_id = 1
        self._next_transaction_id = 1

    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[ProductRecord]:
        with self._lock:
            return self._products.get(product_id)

    def list_products(self) -> list[ProductRecord]:
        with self._lock:
            products = list(self._products.values())
        return sorted(products, key=lambda p: (p.brand, p.name, p.id))

    def save(self, result: LedgerResult, *, expected_version: Optional[int] = None) -> LedgerResult:
        with self._lock:
            now = utcnow()
            product = result.product

            if result.action == ACTION_CREATE:
                product = replace(
                    product,
                    id=self._next_product_id,
                    version=1,
                    created_at=now,
                    updated_at=now,
                )
                self._next_product_id += 1
            else:
                stored = self._products.get(product.id)
                if stored is None:
                    raise ConcurrencyConflict(f"product {product.id} no longer exists")
                if expected_version is not None and stored.version != expected_version:
                    raise ConcurrencyConflict(
                        f"product {product.id} is at version {stored.version}, expected {expected_version}"
                    )
                if result.action != ACTION_DELETE:
                    product = replace(product, version=stored.version + 1, updated_at=now)

            tx = replace(
                result.transaction,
                id=self._next_transaction_id,
                product_id=product.id,
                created_at=now,
            )
            self._next_transaction_id += 1

            if result.action == ACTION_DELETE:
                del self._products[product.id]
            else:
                self._products[product.id] = product
            self._transactions[tx.id] = tx

        return LedgerResult(product=product, transaction=tx, action=result.action)

    def list_transactions(self, *, product_id: Optional[int] = None) -> list[TransactionRecord]:
        with self._lock:
            records = list(self._transactions.values())
        if product_id is not None:
            records = [r for r in records if r.product_id == product_id]
        return sorted(records, key=lambda r: (r.timestamp, r.id), reverse=True)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def purge_transactions_before(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [tx_id for tx_id, tx in self._transactions.items() if tx.timestamp < cutoff]
            for tx_id in doomed:
                del self._transactions[tx_id]
        return len(doomed)

    def add_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Append a pre-built record directly (seeding history for reports/tests)."""
        with self._lock:
            tx = replace(record, id=self._next_transaction_id, created_at=utcnow())
            self._next_transaction_id += 1
            self._transactions[tx.id] = tx
        return tx
