from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


class TransactionType(str, enum.Enum):
    NEW = "NEW"
    ADD = "ADD"
    EDIT = "EDIT"
    DELETE = "DELETE"
    TRANSFER = "TRANSFER"
    SALE = "SALE"


# Fields a product snapshot may carry, in display order.
SNAPSHOT_FIELDS = ("name", "brand", "price", "quantity", "backup_quantity")


@dataclass(frozen=True)
class Actor:
    """The employee performing an operation."""
    id: Optional[int]
    name: str


@dataclass(frozen=True)
class ProductRecord:
    """
    Current stock state of one catalog item.

    id is None until the repository has stored the record.
    version is the optimistic-lock counter maintained by the repository.
    """
    id: Optional[int]
    name: str
    brand: str
    price: Decimal
    quantity: int
    backup_quantity: int
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_quantity(self) -> int:
        return self.quantity + self.backup_quantity

    @property
    def display_name(self) -> str:
        return f"{self.brand} - {self.name}"

    def snapshot(self, fields=SNAPSHOT_FIELDS) -> dict:
        """JSON-safe copy of the given fields (price as a string)."""
        data: dict[str, Any] = {}
        for key in fields:
            value = getattr(self, key)
            data[key] = str(value) if isinstance(value, Decimal) else value
        return data

    def with_stock(self, quantity: int, backup_quantity: int) -> "ProductRecord":
        return replace(self, quantity=quantity, backup_quantity=backup_quantity)


@dataclass(frozen=True)
class TransactionRecord:
    """
    Immutable audit-log entry.

    previous_data/new_data hold snapshots of the fields that changed;
    notes is a derived summary for display only.
    """
    type: TransactionType
    product_id: Optional[int]
    employee_id: Optional[int]
    employee_name: Optional[str]
    timestamp: datetime
    quantity: Optional[int] = None
    previous_data: Optional[dict] = None
    new_data: Optional[dict] = None
    remaining_quantity: Optional[int] = None
    backup_quantity: Optional[int] = None
    notes: str = ""
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def snapshot_value(self, key: str):
        """Look a field up in new_data first, then previous_data."""
        for data in (self.new_data, self.previous_data):
            if data and key in data:
                return data[key]
        return None
