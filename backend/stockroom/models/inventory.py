from __future__ import annotations

from ..extensions import db
from ..ledger.records import ProductRecord, TransactionRecord, TransactionType
from stockroom.time_utils import utcnow


class Product(db.Model):
    """
    Catalog item with its two stock pools.

    quantity is primary (front-of-house) stock; backup_quantity is reserve
    stock. Both are mutated only through the stock ledger.

    CONCURRENCY:
    version_id is the mapper's version_id_col. Every UPDATE/DELETE is issued
    as "... WHERE id = ? AND version_id = ?", so a write computed from a stale
    read raises StaleDataError instead of silently overwriting stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.CheckConstraint("backup_quantity >= 0", name="backup_quantity_non_negative"),
        db.Index("ix_products_brand_name", "brand", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    backup_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} brand={self.brand!r} name={self.name!r}>"

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            name=self.name,
            brand=self.brand,
            price=self.price,
            quantity=self.quantity,
            backup_quantity=self.backup_quantity,
            version=self.version_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply_record(self, record: ProductRecord) -> None:
        self.name = record.name
        self.brand = record.brand
        self.price = record.price
        self.quantity = record.quantity
        self.backup_quantity = record.backup_quantity


class StockTransaction(db.Model):
    """
    Append-only audit log of catalog and stock mutations.

    product_id and employee_id are not foreign keys: deleting a
    product or user orphans its history instead of cascading, and readers
    fall back to the snapshot fields ("Unknown Product" / "Deleted User").
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_product_timestamp", "product_id", "timestamp"),
        db.Index("ix_transactions_employee_timestamp", "employee_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=True, index=True)

    employee_id = db.Column(db.Integer, nullable=True)
    employee_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=True)

    previous_data = db.Column(db.JSON, nullable=True)
    new_data = db.Column(db.JSON, nullable=True)

    # Post-operation stock (required on SALE)
    remaining_quantity = db.Column(db.Integer, nullable=True)
    backup_quantity = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=False, default="")

    # Business time of the operation; sales may be backdated
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<StockTransaction id={self.id} type={self.type} product_id={self.product_id}>"

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "StockTransaction":
        return cls(
            type=record.type.value,
            product_id=record.product_id,
            employee_id=record.employee_id,
            employee_name=record.employee_name,
            quantity=record.quantity,
            previous_data=record.previous_data,
            new_data=record.new_data,
            remaining_quantity=record.remaining_quantity,
            backup_quantity=record.backup_quantity,
            notes=record.notes,
            timestamp=record.timestamp,
        )

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            id=self.id,
            type=TransactionType(self.type),
            product_id=self.product_id,
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            quantity=self.quantity,
            previous_data=self.previous_data,
            new_data=self.new_data,
            remaining_quantity=self.remaining_quantity,
            backup_quantity=self.backup_quantity,
            notes=self.notes or "",
            timestamp=self.timestamp,
            created_at=self.created_at,
        )
