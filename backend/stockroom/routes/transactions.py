# backend/stockroom/routes/transactions.py
"""
Transaction log routes: filtered listing, reports and retention purge.

Query parameters accepted by the listing and the brand report:
- start_date, end_date: YYYY-MM-DD (inclusive, UTC)
- start_time, end_time: HH:MM[:SS], applied to start_date / end_date
- type: repeatable or comma separated (SALE, NEW, ADD, EDIT, DELETE, TRANSFER)
- employee: repeatable or comma separated employee display names
- brand, product: exact match on the product's brand / name
- product_id
- group_by=day (listing only): newest-first per-day groups
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth
from ..ledger.errors import LedgerError, NotFoundError, ValidationError
from ..ledger.records import TransactionType
from ..repositories import get_repository
from ..services import auth_service, inventory_service, maintenance_service
from ..services.transaction_query import (
    TransactionFilter,
    aggregate_by_brand,
    daily_sales_report,
    filter_transactions,
    group_by_calendar_day,
    product_directory,
    transaction_to_dict,
)
from ..validation import PURGE_POLICY, coerce_int, validate_payload
from stockroom.time_utils import parse_clock_time, parse_iso_date
from . import error_response

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _multi_arg(name: str) -> list[str]:
    values = []
    for raw in request.args.getlist(name):
        values.extend(part.strip() for part in raw.split(",") if part.strip())
    return values


def _parse_filter() -> TransactionFilter:
    args = request.args
    try:
        start_date = parse_iso_date(args.get("start_date"))
        end_date = parse_iso_date(args.get("end_date"))
    except ValueError:
        raise ValidationError("start_date and end_date must be YYYY-MM-DD")
    try:
        start_time = parse_clock_time(args.get("start_time"))
        end_time = parse_clock_time(args.get("end_time"))
    except ValueError:
        raise ValidationError("start_time and end_time must be HH:MM or HH:MM:SS")

    types = []
    for raw in _multi_arg("type"):
        try:
            types.append(TransactionType(raw.upper()))
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {raw}")

    criteria = {
        "start_date": start_date,
        "end_date": end_date,
        "types": tuple(types),
        "employee_names": tuple(_multi_arg("employee")),
        "brand": args.get("brand") or None,
        "product": args.get("product") or None,
        "product_id": coerce_int(args.get("product_id"), "product_id"),
    }
    if start_time is not None:
        criteria["start_time"] = start_time
    if end_time is not None:
        criteria["end_time"] = end_time
    return TransactionFilter(**criteria)


def _directory(log) -> dict:
    return product_directory(inventory_service.list_products(), log)


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    try:
        criteria = _parse_filter()
        group_by = request.args.get("group_by")
        if group_by not in (None, "", "day"):
            raise ValidationError("group_by must be 'day'")

        log = get_repository().list_transactions()
        products = _directory(log)
        users = auth_service.user_names()
        records = filter_transactions(log, criteria, products, users)

        if group_by == "day":
            groups = group_by_calendar_day(records)
            return {
                "groups": [
                    {
                        "date": group.day.isoformat(),
                        "transactions": [transaction_to_dict(r, products, users) for r in group.records],
                    }
                    for group in groups
                ]
            }, 200
    except LedgerError as e:
        return error_response(e)

    return {
        "count": len(records),
        "transactions": [transaction_to_dict(r, products, users) for r in records],
    }, 200


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    record = get_repository().get_transaction(transaction_id)
    if record is None:
        return error_response(NotFoundError("Transaction not found"))
    products = _directory(get_repository().list_transactions(product_id=record.product_id))
    return {"transaction": transaction_to_dict(record, products, auth_service.user_names())}, 200


@transactions_bp.get("/reports/brands")
@require_auth
def brand_report_route():
    """Per-brand product count, remaining stock and units sold within the filter."""
    try:
        criteria = _parse_filter()
        inventory = inventory_service.list_products()
        log = get_repository().list_transactions()
        products = product_directory(inventory, log)
        records = filter_transactions(log, criteria, products, auth_service.user_names())
        summaries = aggregate_by_brand(records, inventory, products)
    except LedgerError as e:
        return error_response(e)

    return {"brands": {brand: summary.to_dict() for brand, summary in summaries.items()}}, 200


@transactions_bp.get("/reports/daily-sales")
@require_auth
def daily_sales_route():
    """Plain-text sales list for one day (?date=YYYY-MM-DD)."""
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return {"error": "date must be YYYY-MM-DD"}, 400
    if day is None:
        return {"error": "date is required"}, 400

    log = get_repository().list_transactions()
    report = daily_sales_report(log, day, _directory(log))
    return {"date": day.isoformat(), "report": report}, 200


@transactions_bp.delete("/older-than/<int:days>")
@require_auth
@require_admin
def purge_transactions_route(days: int):
    """
    Delete log entries older than <days> days. Product stock is unaffected.

    The admin must re-enter their password in the JSON body.
    """
    try:
        data = validate_payload(request.get_json(silent=True), PURGE_POLICY)
    except LedgerError as e:
        return error_response(e)

    if not auth_service.verify_password(data["password"], g.current_user.password_hash):
        return {"error": "Invalid password"}, 403

    try:
        deleted = maintenance_service.purge_transactions_older_than(days)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Transaction purge failed")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("User %s purged %s transactions older than %s days", g.current_user.username, deleted, days)
    return {"deleted": deleted, "days": days}, 200
