from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from .ledger.errors import ValidationError
from stockroom.time_utils import normalize_datetime, parse_iso_datetime


def coerce_int(value: Any, key: str) -> int | None:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings; rejects bools, floats, decimals and
    scientific notation.
    """
    if value is None:
        return None
    # bool is an int subclass
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_decimal(value: Any, key: str) -> Decimal | None:
    """Numbers or numeric strings -> Decimal; range checks are left to the ledger."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
        if not result.is_finite():
            raise ValidationError(f"{key} must be a finite number")
        return result
    raise ValidationError(f"{key} must be a number")


def coerce_datetime(value: Any, key: str) -> datetime | None:
    """ISO-8601 strings (naive = UTC) -> UTC-naive datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return normalize_datetime(value)
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def coerce_text(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def coerce_secret(value: Any, key: str) -> str | None:
    """Like coerce_text but keeps surrounding whitespace (passwords)."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def coerce_bool(value: Any, key: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false")
    return value


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Allowlist for one request body.

    - fields: accepted keys and the coercion applied to each
    - required: keys that must be present and non-null
    - one_of: groups where at least one key must be present
    """
    fields: dict[str, Callable[[Any, str], Any]]
    required: frozenset[str] = frozenset()
    one_of: tuple[frozenset[str], ...] = field(default_factory=tuple)


def validate_payload(payload: Any, policy: PayloadPolicy) -> dict:
    """
    Validates + normalizes incoming JSON against the policy.

    Unknown keys are rejected rather than ignored. Returns only the keys that
    were present, coerced.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    missing = sorted(f for f in policy.required if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned = {k: policy.fields[k](raw, k) for k, raw in payload.items()}

    for group in policy.one_of:
        if all(cleaned.get(k) is None for k in group):
            raise ValidationError(f"One of {', '.join(sorted(group))} is required")

    return cleaned


PRODUCT_FIELDS = {
    "name": coerce_text,
    "brand": coerce_text,
    "price": coerce_decimal,
    "quantity": coerce_int,
    "backup_quantity": coerce_int,
}

PRODUCT_CREATE_POLICY = PayloadPolicy(
    fields=PRODUCT_FIELDS,
    required=frozenset(PRODUCT_FIELDS),
)

# Edits are full replacements of the editable fields.
PRODUCT_EDIT_POLICY = PayloadPolicy(
    fields=PRODUCT_FIELDS,
    required=frozenset(PRODUCT_FIELDS),
)

ADD_STOCK_POLICY = PayloadPolicy(
    fields={"add_to_quantity": coerce_int, "add_to_backup_quantity": coerce_int},
    one_of=(frozenset({"add_to_quantity", "add_to_backup_quantity"}),),
)

TRANSFER_STOCK_POLICY = PayloadPolicy(
    fields={"move_from_backup_to_stock": coerce_int, "move_from_stock_to_backup": coerce_int},
    one_of=(frozenset({"move_from_backup_to_stock", "move_from_stock_to_backup"}),),
)

SALE_POLICY = PayloadPolicy(
    fields={
        "product_id": coerce_int,
        "quantity": coerce_int,
        "occurred_at": coerce_datetime,
        # Alias kept for clients that send the sale's date under "date"
        "date": coerce_datetime,
    },
    required=frozenset({"product_id", "quantity"}),
)

PURGE_POLICY = PayloadPolicy(
    fields={"password": coerce_secret},
    required=frozenset({"password"}),
)

LOGIN_POLICY = PayloadPolicy(
    fields={"username": coerce_text, "password": coerce_secret},
    required=frozenset({"username", "password"}),
)

USER_CREATE_POLICY = PayloadPolicy(
    fields={"username": coerce_text, "name": coerce_text, "password": coerce_secret, "role": coerce_text},
    required=frozenset({"username", "name", "password"}),
)

USER_UPDATE_POLICY = PayloadPolicy(
    fields={"name": coerce_text, "password": coerce_secret, "role": coerce_text, "is_active": coerce_bool},
)
