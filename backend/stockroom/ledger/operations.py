"""
Explicit request types for every stock ledger operation.

Each operation carries only the fields it needs; callers pick the operation
instead of setting mode flags on a shared payload.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union


@dataclass(frozen=True)
class CreateProduct:
    name: str
    brand: str
    price: Decimal
    initial_quantity: int
    initial_backup_quantity: int


@dataclass(frozen=True)
class AddStock:
    add_to_quantity: Optional[int] = None
    add_to_backup_quantity: Optional[int] = None


@dataclass(frozen=True)
class TransferStock:
    move_from_backup_to_stock: Optional[int] = None
    move_from_stock_to_backup: Optional[int] = None


@dataclass(frozen=True)
class EditProduct:
    name: str
    brand: str
    price: Decimal
    quantity: int
    backup_quantity: int


@dataclass(frozen=True)
class RecordSale:
    quantity: int
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeleteProduct:
    pass


StockOperation = Union[CreateProduct, AddStock, TransferStock, EditProduct, RecordSale, DeleteProduct]
