# Overview: Read-side helpers over the transaction log: filtering, day grouping, brand summaries, reports.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ..ledger.errors import ValidationError
from ..ledger.records import ProductRecord, TransactionRecord, TransactionType
from stockroom.time_utils import to_utc_z

"""
Time semantics:
- Timestamps are UTC-naive; date and time filters are interpreted in UTC.
- The date/time window is inclusive at both ends.

Everything here is a pure function over records that were already fetched;
none of it touches the database.
"""

UNKNOWN_PRODUCT = "Unknown Product"
DELETED_USER = "Deleted User"


@dataclass(frozen=True)
class TransactionFilter:
    """
    Criteria for filter_transactions(). All set criteria must match.

    Empty types / employee_names mean "no restriction".
    The window runs from start_date@start_time to end_date@end_time.
    """
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: time = time.min
    end_time: time = time.max
    types: Sequence[TransactionType] = ()
    employee_names: Sequence[str] = ()
    brand: Optional[str] = None
    product: Optional[str] = None
    product_id: Optional[int] = None

    def window(self) -> tuple[Optional[datetime], Optional[datetime]]:
        start = datetime.combine(self.start_date, self.start_time) if self.start_date else None
        end = datetime.combine(self.end_date, self.end_time) if self.end_date else None
        if start and end and start > end:
            raise ValidationError("start of range must not be after end of range")
        return start, end


@dataclass(frozen=True)
class DayGroup:
    day: date
    records: list[TransactionRecord] = field(default_factory=list)


@dataclass
class BrandSummary:
    product_count: int = 0
    total_stock_remaining: int = 0
    total_sold_in_period: int = 0

    def to_dict(self) -> dict:
        return {
            "product_count": self.product_count,
            "total_stock_remaining": self.total_stock_remaining,
            "total_sold_in_period": self.total_sold_in_period,
        }


def _archived_product(record: TransactionRecord) -> Optional[ProductRecord]:
    data = record.previous_data or {}
    if not data.get("name") or not data.get("brand"):
        return None
    return ProductRecord(
        id=record.product_id,
        name=data["name"],
        brand=data["brand"],
        price=Decimal(str(data.get("price", "0"))),
        quantity=data.get("quantity", 0),
        backup_quantity=data.get("backup_quantity", 0),
    )


def product_directory(
    inventory: Iterable[ProductRecord],
    records: Iterable[TransactionRecord],
) -> dict[int, ProductRecord]:
    """
    Products by id for display and matching: the live catalog, plus deleted
    products rebuilt from their DELETE record's last-known state.

    Pass the whole log, not a filtered slice, so a product's sales resolve
    even when its DELETE record falls outside the filter.
    """
    directory: dict[int, ProductRecord] = {}
    for record in records:
        if record.type != TransactionType.DELETE or record.product_id is None:
            continue
        archived = _archived_product(record)
        if archived is not None:
            # Newest first, so the most recent deletion wins.
            directory.setdefault(record.product_id, archived)
    for product in inventory:
        directory[product.id] = product
    return directory


def resolve_product(
    record: TransactionRecord,
    products: Optional[Mapping[int, ProductRecord]] = None,
) -> Optional[tuple[str, str]]:
    """
    (brand, name) for the record's product.

    Looks the id up in products (see product_directory); falls back to the
    record's own snapshot. None when neither is available.
    """
    if products and record.product_id in products:
        product = products[record.product_id]
        return product.brand, product.name
    brand = record.snapshot_value("brand")
    name = record.snapshot_value("name")
    if brand and name:
        return brand, name
    return None


def display_product_name(
    record: TransactionRecord,
    products: Optional[Mapping[int, ProductRecord]] = None,
) -> str:
    resolved = resolve_product(record, products)
    if resolved is None:
        return UNKNOWN_PRODUCT
    return f"{resolved[0]} - {resolved[1]}"


def display_employee_name(
    record: TransactionRecord,
    users: Optional[Mapping[int, str]] = None,
) -> str:
    if users and record.employee_id in users:
        return users[record.employee_id]
    return record.employee_name or DELETED_USER


def filter_transactions(
    records: Iterable[TransactionRecord],
    criteria: TransactionFilter,
    products: Optional[Mapping[int, ProductRecord]] = None,
    users: Optional[Mapping[int, str]] = None,
) -> list[TransactionRecord]:
    """
    Records matching every criterion, in their original order.

    Employee names match the name display_employee_name() shows, so a
    renamed user is found under the current name.
    """
    start, end = criteria.window()
    types = {TransactionType(t) for t in criteria.types}
    employees = set(criteria.employee_names)

    matched = []
    for record in records:
        if start is not None and record.timestamp < start:
            continue
        if end is not None and record.timestamp > end:
            continue
        if types and record.type not in types:
            continue
        if employees and display_employee_name(record, users) not in employees:
            continue
        if criteria.product_id is not None and record.product_id != criteria.product_id:
            continue
        if criteria.brand or criteria.product:
            resolved = resolve_product(record, products)
            if resolved is None:
                continue
            brand, name = resolved
            if criteria.brand and brand != criteria.brand:
                continue
            if criteria.product and name != criteria.product:
                continue
        matched.append(record)
    return matched


def group_by_calendar_day(records: Sequence[TransactionRecord]) -> list[DayGroup]:
    """
    Split newest-first records into per-day groups.

    Input must already be sorted by timestamp descending; order within a
    day is kept as given.
    """
    groups: list[DayGroup] = []
    previous: Optional[TransactionRecord] = None
    for record in records:
        if previous is not None and record.timestamp > previous.timestamp:
            raise ValidationError("records must be sorted by timestamp, newest first")
        day = record.timestamp.date()
        if not groups or groups[-1].day != day:
            groups.append(DayGroup(day=day, records=[]))
        groups[-1].records.append(record)
        previous = record
    return groups


def aggregate_by_brand(
    records: Iterable[TransactionRecord],
    inventory: Iterable[ProductRecord],
    products: Optional[Mapping[int, ProductRecord]] = None,
) -> dict[str, BrandSummary]:
    """
    Per-brand product count, remaining stock and units sold.

    Every brand in the inventory appears, even with nothing sold. Only the
    inventory counts toward product_count and stock; products (typically a
    product_directory) attributes sales of deleted products to their brand.
    """
    summaries: dict[str, BrandSummary] = {}
    products = dict(products or {})
    for product in inventory:
        products[product.id] = product
        summary = summaries.setdefault(product.brand, BrandSummary())
        summary.product_count += 1
        summary.total_stock_remaining += product.total_quantity

    for record in records:
        if record.type != TransactionType.SALE:
            continue
        resolved = resolve_product(record, products)
        if resolved is None:
            continue
        summary = summaries.setdefault(resolved[0], BrandSummary())
        summary.total_sold_in_period += record.quantity or 0

    return dict(sorted(summaries.items()))


def _ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def daily_sales_report(
    records: Iterable[TransactionRecord],
    day: date,
    products: Optional[Mapping[int, ProductRecord]] = None,
) -> str:
    """
    Plain-text list of one day's sales, oldest first.

        Sale (19th Oct, Monday):
        09:15 AM - Acme - Widget - 3
    """
    sales = sorted(
        (r for r in records if r.type == TransactionType.SALE and r.timestamp.date() == day),
        key=lambda r: (r.timestamp, r.id or 0),
    )

    lines = [f"Sale ({_ordinal(day.day)} {day.strftime('%b')}, {day.strftime('%A')}):"]
    if not sales:
        lines.append("No sales recorded for this date.")
    for sale in sales:
        lines.append(
            f"{sale.timestamp.strftime('%I:%M %p')} - {display_product_name(sale, products)} - {sale.quantity}"
        )
    return "\n".join(lines) + "\n"


def transaction_to_dict(
    record: TransactionRecord,
    products: Optional[Mapping[int, ProductRecord]] = None,
    users: Optional[Mapping[int, str]] = None,
) -> dict:
    return {
        "id": record.id,
        "type": record.type.value,
        "product_id": record.product_id,
        "product_name": display_product_name(record, products),
        "employee_id": record.employee_id,
        "employee_name": display_employee_name(record, users),
        "quantity": record.quantity,
        "previous_data": record.previous_data,
        "new_data": record.new_data,
        "remaining_quantity": record.remaining_quantity,
        "backup_quantity": record.backup_quantity,
        "notes": record.notes,
        "timestamp": to_utc_z(record.timestamp),
        "created_at": to_utc_z(record.created_at),
    }
