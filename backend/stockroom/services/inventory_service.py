# Overview: Service-layer operations for inventory; load product, run the ledger, persist atomically.

# backend/stockroom/services/inventory_service.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app, has_app_context

from ..ledger import stock_ledger
from ..ledger.errors import ConflictError, LedgerError, NotFoundError
from ..ledger.operations import (
    AddStock,
    CreateProduct,
    DeleteProduct,
    EditProduct,
    RecordSale,
    StockOperation,
    TransferStock,
)
from ..ledger.records import Actor, ProductRecord
from ..ledger.stock_ledger import LedgerResult
from ..repositories import Repository, get_repository
from .concurrency import RETRYABLE_ERRORS, run_with_retry
from stockroom.time_utils import to_utc_z, utcnow
"""
Inventory Service Invariants & Time Semantics (authoritative)

Canonical time handling:
- All internal datetimes are UTC-naive (tzinfo=None).
- Routes normalize ISO-8601 input before calling in here.

Write path:
- Every mutation is: read product (locked) -> stock_ledger -> repository.save
  with expected_version = the version that was read.
- A version mismatch re-runs the whole cycle against fresh state (bounded).
- Ledger errors (validation, insufficient stock) are never retried and
  nothing is persisted when one is raised.
"""

logger = logging.getLogger(__name__)


def _clock_skew() -> timedelta:
    if has_app_context():
        return timedelta(seconds=current_app.config.get("SALE_CLOCK_SKEW_SECONDS", 120))
    return stock_ledger.DEFAULT_CLOCK_SKEW


def execute(
    product_id: Optional[int],
    operation: StockOperation,
    *,
    actor: Actor,
    repository: Repository | None = None,
    now: datetime | None = None,
) -> LedgerResult:
    """
    Apply one ledger operation to one product and persist the result.

    product_id is ignored (and may be None) for CreateProduct.
    """
    repo = repository or get_repository()
    creating = isinstance(operation, CreateProduct)
    skew = _clock_skew()

    def _op():
        current: ProductRecord | None = None
        if not creating:
            current = repo.get_product(product_id, for_update=True)
            if current is None:
                raise NotFoundError("Product not found")

        try:
            result = stock_ledger.apply(
                current,
                operation,
                actor=actor,
                now=now or utcnow(),
                max_clock_skew=skew,
            )
        except LedgerError:
            # Release the row lock taken by the read.
            repo.rollback()
            raise

        return repo.save(result, expected_version=None if current is None else current.version)

    try:
        saved = run_with_retry(_op, rollback=repo.rollback)
    except NotFoundError:
        repo.rollback()
        raise
    except RETRYABLE_ERRORS as exc:
        logger.warning("Giving up on %s for product %s: %s", type(operation).__name__, product_id, exc)
        raise ConflictError("Product was modified by another request; please retry") from exc

    tx = saved.transaction
    logger.info(
        "%s product=%s employee=%s quantity=%s stock=%s backup=%s tx=%s",
        tx.type.value,
        saved.product.id,
        tx.employee_name,
        tx.quantity,
        saved.product.quantity,
        saved.product.backup_quantity,
        tx.id,
    )
    return saved


def create_product(
    *,
    name,
    brand,
    price,
    quantity,
    backup_quantity,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(
        None,
        CreateProduct(
            name=name,
            brand=brand,
            price=price,
            initial_quantity=quantity,
            initial_backup_quantity=backup_quantity,
        ),
        actor=actor,
        repository=repository,
    )


def add_stock(
    product_id: int,
    *,
    add_to_quantity: int | None = None,
    add_to_backup_quantity: int | None = None,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(
        product_id,
        AddStock(add_to_quantity=add_to_quantity, add_to_backup_quantity=add_to_backup_quantity),
        actor=actor,
        repository=repository,
    )


def transfer_stock(
    product_id: int,
    *,
    move_from_backup_to_stock: int | None = None,
    move_from_stock_to_backup: int | None = None,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(
        product_id,
        TransferStock(
            move_from_backup_to_stock=move_from_backup_to_stock,
            move_from_stock_to_backup=move_from_stock_to_backup,
        ),
        actor=actor,
        repository=repository,
    )


def edit_product(
    product_id: int,
    *,
    name,
    brand,
    price,
    quantity,
    backup_quantity,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(
        product_id,
        EditProduct(
            name=name,
            brand=brand,
            price=price,
            quantity=quantity,
            backup_quantity=backup_quantity,
        ),
        actor=actor,
        repository=repository,
    )


def record_sale(
    product_id: int,
    *,
    quantity,
    occurred_at: datetime | None = None,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(
        product_id,
        RecordSale(quantity=quantity, occurred_at=occurred_at),
        actor=actor,
        repository=repository,
    )


def delete_product(
    product_id: int,
    *,
    actor: Actor,
    repository: Repository | None = None,
) -> LedgerResult:
    return execute(product_id, DeleteProduct(), actor=actor, repository=repository)


def get_product(product_id: int, *, repository: Repository | None = None) -> ProductRecord:
    repo = repository or get_repository()
    product = repo.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(*, repository: Repository | None = None) -> list[ProductRecord]:
    repo = repository or get_repository()
    return repo.list_products()


def product_to_dict(product: ProductRecord) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "brand": product.brand,
        "price": str(product.price),
        "quantity": product.quantity,
        "backup_quantity": product.backup_quantity,
        "total_quantity": product.total_quantity,
        "version": product.version,
        "created_at": to_utc_z(product.created_at),
        "updated_at": to_utc_z(product.updated_at),
    }
