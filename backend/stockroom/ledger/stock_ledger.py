# Overview: Pure stock-accounting rules; maps (current product, operation) to (next product, audit record).

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from .errors import InsufficientStockError, NotFoundError, ValidationError
from .operations import (
    AddStock,
    CreateProduct,
    DeleteProduct,
    EditProduct,
    RecordSale,
    StockOperation,
    TransferStock,
)
from .records import SNAPSHOT_FIELDS, Actor, ProductRecord, TransactionRecord, TransactionType

"""
Stock Ledger Invariants (authoritative)

- quantity >= 0 and backup_quantity >= 0 for every product state returned.
- Every successful call returns exactly one TransactionRecord whose snapshots
  equal the product state immediately before and after the call.
- Sales deduct from primary stock first; only the remainder comes from backup.
- Add changes total stock by +added, transfer by 0, sale by -sold.
- Nothing here touches storage or the clock: "now" is always passed in.
  The repository assigns ids and versions when it persists a result.
- notes is derived display text; no logic reads it back.
"""

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"

MAX_TEXT_LENGTH = 255
MAX_PRICE = Decimal("99999999.99")
PRICE_QUANTUM = Decimal("0.01")
DEFAULT_CLOCK_SKEW = timedelta(minutes=2)

_FIELD_LABELS = {
    "name": "Name",
    "brand": "Brand",
    "price": "Price",
    "quantity": "Stock",
    "backup_quantity": "Backup",
}


@dataclass(frozen=True)
class LedgerResult:
    """Next product state plus the transaction to append, committed together."""
    product: ProductRecord
    transaction: TransactionRecord
    action: str


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _require_text(value, field_name: str) -> str:
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{field_name} cannot be blank")
    if len(stripped) > MAX_TEXT_LENGTH:
        raise ValidationError(f"{field_name} exceeds max length {MAX_TEXT_LENGTH}")
    return stripped


def _require_price(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("price is required")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("price must be a number")
    if not price.is_finite():
        raise ValidationError("price must be a finite number")
    if price < 0:
        raise ValidationError("price must be >= 0")
    if price > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE}")
    if price != price.quantize(PRICE_QUANTUM):
        raise ValidationError("price cannot have more than 2 decimal places")
    return price.quantize(PRICE_QUANTUM)


def _require_count(value, field_name: str, *, positive: bool = False) -> int:
    # bool is an int subclass; reject it explicitly
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    if positive and value <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    if value < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return value


def _check_invariant(product: ProductRecord) -> ProductRecord:
    if product.quantity < 0 or product.backup_quantity < 0:
        # Unreachable when the operations validate their inputs.
        raise ValidationError("stock quantities cannot be negative")
    return product


def _arrow(before, after) -> str:
    return f"{before} → {after}"


def _stock_notes(before: ProductRecord, after: ProductRecord, *, stock: bool = True, backup: bool = True) -> str:
    parts = []
    if stock:
        parts.append(f"Stock: {_arrow(before.quantity, after.quantity)}")
    if backup:
        parts.append(f"Backup: {_arrow(before.backup_quantity, after.backup_quantity)}")
    return ", ".join(parts)


def _stock_snapshot(product: ProductRecord) -> dict:
    return product.snapshot(("quantity", "backup_quantity"))


def _transaction(
    tx_type: TransactionType,
    product: ProductRecord,
    actor: Actor,
    timestamp: datetime,
    **fields,
) -> TransactionRecord:
    return TransactionRecord(
        type=tx_type,
        product_id=product.id,
        employee_id=actor.id,
        employee_name=actor.name,
        timestamp=timestamp,
        **fields,
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_product(
    name,
    brand,
    price,
    initial_quantity,
    initial_backup_quantity,
    *,
    actor: Actor,
    now: datetime,
) -> LedgerResult:
    """Build a new product and its NEW record. The repository assigns id and version."""
    product = ProductRecord(
        id=None,
        name=_require_text(name, "name"),
        brand=_require_text(brand, "brand"),
        price=_require_price(price),
        quantity=_require_count(initial_quantity, "quantity"),
        backup_quantity=_require_count(initial_backup_quantity, "backup_quantity"),
    )

    tx = _transaction(
        TransactionType.NEW,
        product,
        actor,
        now,
        quantity=product.quantity,
        new_data=product.snapshot(),
        remaining_quantity=product.quantity,
        backup_quantity=product.backup_quantity,
        notes=f"Initial stock: {product.quantity} units, Backup: {product.backup_quantity} units",
    )
    return LedgerResult(product=_check_invariant(product), transaction=tx, action=ACTION_CREATE)


def add_stock(
    current: ProductRecord,
    add_to_quantity: Optional[int] = None,
    add_to_backup_quantity: Optional[int] = None,
    *,
    actor: Actor,
    now: datetime,
) -> LedgerResult:
    """Additive restock of either or both pools."""
    if add_to_quantity is None and add_to_backup_quantity is None:
        raise ValidationError("At least one quantity field is required")

    stock_delta = 0 if add_to_quantity is None else _require_count(add_to_quantity, "add_to_quantity")
    backup_delta = (
        0 if add_to_backup_quantity is None
        else _require_count(add_to_backup_quantity, "add_to_backup_quantity")
    )

    updated = current.with_stock(
        current.quantity + stock_delta,
        current.backup_quantity + backup_delta,
    )

    tx = _transaction(
        TransactionType.ADD,
        current,
        actor,
        now,
        quantity=stock_delta + backup_delta,
        previous_data=_stock_snapshot(current),
        new_data=_stock_snapshot(updated),
        remaining_quantity=updated.quantity,
        backup_quantity=updated.backup_quantity,
        notes=_stock_notes(
            current,
            updated,
            stock=add_to_quantity is not None,
            backup=add_to_backup_quantity is not None,
        ),
    )
    return LedgerResult(product=_check_invariant(updated), transaction=tx, action=ACTION_UPDATE)


def transfer_stock(
    current: ProductRecord,
    move_from_backup_to_stock: Optional[int] = None,
    move_from_stock_to_backup: Optional[int] = None,
    *,
    actor: Actor,
    now: datetime,
) -> LedgerResult:
    """Move units between the two pools, exactly one direction per call."""
    if (move_from_backup_to_stock is None) == (move_from_stock_to_backup is None):
        raise ValidationError("Exactly one transfer direction is required")

    if move_from_backup_to_stock is not None:
        amount = _require_count(move_from_backup_to_stock, "move_from_backup_to_stock", positive=True)
        if amount > current.backup_quantity:
            raise InsufficientStockError("backup")
        updated = current.with_stock(current.quantity + amount, current.backup_quantity - amount)
        direction = "from backup to stock"
    else:
        amount = _require_count(move_from_stock_to_backup, "move_from_stock_to_backup", positive=True)
        if amount > current.quantity:
            raise InsufficientStockError("stock")
        updated = current.with_stock(current.quantity - amount, current.backup_quantity + amount)
        direction = "from stock to backup"

    tx = _transaction(
        TransactionType.TRANSFER,
        current,
        actor,
        now,
        quantity=amount,
        previous_data=_stock_snapshot(current),
        new_data=_stock_snapshot(updated),
        remaining_quantity=updated.quantity,
        backup_quantity=updated.backup_quantity,
        notes=f"Transferred {amount} units {direction}. ({_stock_notes(current, updated)})",
    )
    return LedgerResult(product=_check_invariant(updated), transaction=tx, action=ACTION_UPDATE)


def edit_product(
    current: ProductRecord,
    name,
    brand,
    price,
    quantity,
    backup_quantity,
    *,
    actor: Actor,
    now: datetime,
) -> LedgerResult:
    """Full field replacement for catalog corrections."""
    updated = replace(
        current,
        name=_require_text(name, "name"),
        brand=_require_text(brand, "brand"),
        price=_require_price(price),
        quantity=_require_count(quantity, "quantity"),
        backup_quantity=_require_count(backup_quantity, "backup_quantity"),
    )

    changed = [f for f in SNAPSHOT_FIELDS if getattr(current, f) != getattr(updated, f)]
    previous = current.snapshot(changed)
    new = updated.snapshot(changed)
    notes = ", ".join(
        f"{_FIELD_LABELS[f]}: {_arrow(previous[f], new[f])}" for f in changed
    ) or "No changes"

    tx = _transaction(
        TransactionType.EDIT,
        current,
        actor,
        now,
        previous_data=previous,
        new_data=new,
        notes=notes,
    )
    return LedgerResult(product=_check_invariant(updated), transaction=tx, action=ACTION_UPDATE)


def record_sale(
    current: ProductRecord,
    sale_quantity,
    *,
    actor: Actor,
    now: datetime,
    occurred_at: Optional[datetime] = None,
    max_clock_skew: timedelta = DEFAULT_CLOCK_SKEW,
) -> LedgerResult:
    """
    Sell from primary stock first, then from backup.

    occurred_at may backdate the sale; anything later than now plus the
    allowed clock skew is rejected.
    """
    sale_quantity = _require_count(sale_quantity, "quantity", positive=True)

    if occurred_at is not None and occurred_at > now + max_clock_skew:
        raise ValidationError("occurred_at cannot be in the future")

    if sale_quantity > current.total_quantity:
        raise InsufficientStockError("total")

    from_stock = min(sale_quantity, current.quantity)
    from_backup = sale_quantity - from_stock
    updated = current.with_stock(
        current.quantity - from_stock,
        current.backup_quantity - from_backup,
    )

    notes = f"Sold {sale_quantity} units"
    if from_backup:
        notes += f" ({from_backup} from backup stock)"

    tx = _transaction(
        TransactionType.SALE,
        current,
        actor,
        occurred_at or now,
        quantity=sale_quantity,
        previous_data=_stock_snapshot(current),
        new_data=_stock_snapshot(updated),
        remaining_quantity=updated.quantity,
        backup_quantity=updated.backup_quantity,
        notes=notes,
    )
    return LedgerResult(product=_check_invariant(updated), transaction=tx, action=ACTION_UPDATE)


def delete_product(current: ProductRecord, *, actor: Actor, now: datetime) -> LedgerResult:
    """Archive the product's last-known state; the repository removes it."""
    tx = _transaction(
        TransactionType.DELETE,
        current,
        actor,
        now,
        previous_data=current.snapshot(),
        notes=(
            f"Deleted: {current.brand}: {current.name} "
            f"(Stock: {current.quantity}, Backup: {current.backup_quantity})"
        ),
    )
    return LedgerResult(product=current, transaction=tx, action=ACTION_DELETE)


def apply(
    current: Optional[ProductRecord],
    operation: StockOperation,
    *,
    actor: Actor,
    now: datetime,
    max_clock_skew: timedelta = DEFAULT_CLOCK_SKEW,
) -> LedgerResult:
    """Dispatch a StockOperation to the matching ledger function."""
    if isinstance(operation, CreateProduct):
        if current is not None:
            raise ValidationError("CreateProduct does not take an existing product")
        return create_product(
            operation.name,
            operation.brand,
            operation.price,
            operation.initial_quantity,
            operation.initial_backup_quantity,
            actor=actor,
            now=now,
        )

    if current is None:
        raise NotFoundError("Product not found")

    if isinstance(operation, AddStock):
        return add_stock(
            current,
            operation.add_to_quantity,
            operation.add_to_backup_quantity,
            actor=actor,
            now=now,
        )
    if isinstance(operation, TransferStock):
        return transfer_stock(
            current,
            operation.move_from_backup_to_stock,
            operation.move_from_stock_to_backup,
            actor=actor,
            now=now,
        )
    if isinstance(operation, EditProduct):
        return edit_product(
            current,
            operation.name,
            operation.brand,
            operation.price,
            operation.quantity,
            operation.backup_quantity,
            actor=actor,
            now=now,
        )
    if isinstance(operation, RecordSale):
        return record_sale(
            current,
            operation.quantity,
            actor=actor,
            now=now,
            occurred_at=operation.occurred_at,
            max_clock_skew=max_clock_skew,
        )
    if isinstance(operation, DeleteProduct):
        return delete_product(current, actor=actor, now=now)

    raise ValidationError(f"Unsupported operation: {type(operation).__name__}")
