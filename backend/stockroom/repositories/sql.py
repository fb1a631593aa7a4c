# Overview: Flask-SQLAlchemy repository; one DB transaction per ledger result.

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..ledger.records import ProductRecord, TransactionRecord
from ..ledger.stock_ledger import ACTION_CREATE, ACTION_DELETE, LedgerResult
from ..models import Product, StockTransaction
from ..services.concurrency import lock_for_update
from .base import ConcurrencyConflict, Repository


class SqlRepository(Repository):
    """
    Repository over the application's db.session.

    Atomicity: the product row change and the transaction row are flushed in
    the same session and committed once. Any failure rolls both back.

    Concurrency: Product.version_id is the version_id_col, so the UPDATE or
    DELETE only matches when nobody committed in between; a miss surfaces as
    StaleDataError and is reported as ConcurrencyConflict.
    """

    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[ProductRecord]:
        query = db.session.query(Product).filter_by(id=product_id)
        if for_update:
            query = lock_for_update(query)
        row = query.first()
        return row.to_record() if row else None

    def list_products(self) -> list[ProductRecord]:
        rows = Product.query.order_by(Product.brand, Product.name, Product.id).all()
        return [row.to_record() for row in rows]

    def save(self, result: LedgerResult, *, expected_version: Optional[int] = None) -> LedgerResult:
        try:
            if result.action == ACTION_CREATE:
                row = Product()
                row.apply_record(result.product)
                db.session.add(row)
                db.session.flush()
                product = row.to_record()
            else:
                row = db.session.get(Product, result.product.id)
                if row is None:
                    raise ConcurrencyConflict(f"product {result.product.id} no longer exists")
                if expected_version is not None and row.version_id != expected_version:
                    raise ConcurrencyConflict(
                        f"product {row.id} is at version {row.version_id}, expected {expected_version}"
                    )
                if result.action == ACTION_DELETE:
                    product = row.to_record()
                    db.session.delete(row)
                else:
                    row.apply_record(result.product)
                    db.session.flush()
                    product = row.to_record()

            tx_row = StockTransaction.from_record(
                replace(result.transaction, product_id=product.id)
            )
            db.session.add(tx_row)
            db.session.flush()
            tx = tx_row.to_record()

            db.session.commit()
        except StaleDataError as exc:
            db.session.rollback()
            raise ConcurrencyConflict(str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise

        return LedgerResult(product=product, transaction=tx, action=result.action)

    def list_transactions(self, *, product_id: Optional[int] = None) -> list[TransactionRecord]:
        q = StockTransaction.query
        if product_id is not None:
            q = q.filter(StockTransaction.product_id == product_id)
        q = q.order_by(StockTransaction.timestamp.desc(), StockTransaction.id.desc())
        return [row.to_record() for row in q.all()]

    def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        row = db.session.get(StockTransaction, transaction_id)
        return row.to_record() if row else None

    def purge_transactions_before(self, cutoff: datetime) -> int:
        deleted = db.session.query(StockTransaction).filter(
            StockTransaction.timestamp < cutoff
        ).delete(synchronize_session=False)
        db.session.commit()
        return deleted

    def add_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Append a pre-built record directly (seeding history for reports/tests)."""
        row = StockTransaction.from_record(record)
        db.session.add(row)
        db.session.commit()
        return row.to_record()

    def rollback(self) -> None:
        db.session.rollback()
