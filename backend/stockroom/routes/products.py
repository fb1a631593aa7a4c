# backend/stockroom/routes/products.py
"""
Product catalog and stock routes.

SECURITY: All routes require authentication.
- Reading the catalog and recording sales: any active user
- Creating, editing, restocking, transferring and deleting: admin only

Every mutation goes through inventory_service and returns the resulting
product together with the transaction it appended.

Time semantics:
- Sale dates accept ISO-8601 with Z/offsets; naive values are taken as UTC.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth
from ..ledger.errors import LedgerError
from ..services import inventory_service
from ..services.auth_service import actor_for
from ..services.inventory_service import product_to_dict
from ..services.transaction_query import transaction_to_dict
from ..validation import (
    ADD_STOCK_POLICY,
    PRODUCT_CREATE_POLICY,
    PRODUCT_EDIT_POLICY,
    SALE_POLICY,
    TRANSFER_STOCK_POLICY,
    validate_payload,
)
from . import error_response

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _result_response(result, status: int = 200):
    return {
        "product": product_to_dict(result.product),
        "transaction": transaction_to_dict(result.transaction, {result.product.id: result.product}),
    }, status


def _internal_error(what: str):
    current_app.logger.exception("Unexpected error while %s", what)
    return {"error": "Internal server error"}, 500


@products_bp.get("")
@require_auth
def list_products_route():
    products = inventory_service.list_products()
    return {"products": [product_to_dict(p) for p in products]}, 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = inventory_service.get_product(product_id)
    except LedgerError as e:
        return error_response(e)
    return {"product": product_to_dict(product)}, 200


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    try:
        data = validate_payload(request.get_json(silent=True), PRODUCT_CREATE_POLICY)
        result = inventory_service.create_product(
            name=data["name"],
            brand=data["brand"],
            price=data["price"],
            quantity=data["quantity"],
            backup_quantity=data["backup_quantity"],
            actor=actor_for(g.current_user),
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("creating product")

    return _result_response(result, 201)


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def edit_product_route(product_id: int):
    try:
        data = validate_payload(request.get_json(silent=True), PRODUCT_EDIT_POLICY)
        result = inventory_service.edit_product(
            product_id,
            name=data["name"],
            brand=data["brand"],
            price=data["price"],
            quantity=data["quantity"],
            backup_quantity=data["backup_quantity"],
            actor=actor_for(g.current_user),
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("editing product")

    return _result_response(result)


@products_bp.put("/<int:product_id>/stock")
@require_auth
@require_admin
def add_stock_route(product_id: int):
    """Receive new units into stock and/or backup."""
    try:
        data = validate_payload(request.get_json(silent=True), ADD_STOCK_POLICY)
        result = inventory_service.add_stock(
            product_id,
            add_to_quantity=data.get("add_to_quantity"),
            add_to_backup_quantity=data.get("add_to_backup_quantity"),
            actor=actor_for(g.current_user),
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("adding stock")

    return _result_response(result)


@products_bp.put("/<int:product_id>/stock/transfer")
@require_auth
@require_admin
def transfer_stock_route(product_id: int):
    """Move units between stock and backup; the total does not change."""
    try:
        data = validate_payload(request.get_json(silent=True), TRANSFER_STOCK_POLICY)
        result = inventory_service.transfer_stock(
            product_id,
            move_from_backup_to_stock=data.get("move_from_backup_to_stock"),
            move_from_stock_to_backup=data.get("move_from_stock_to_backup"),
            actor=actor_for(g.current_user),
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("transferring stock")

    return _result_response(result)


@products_bp.post("/sale")
@require_auth
def record_sale_route():
    """
    Record a sale. Units come from stock first, then backup.

    Body: {"product_id", "quantity", optional "occurred_at" (or "date")}
    """
    try:
        data = validate_payload(request.get_json(silent=True), SALE_POLICY)
        occurred_at = data.get("occurred_at") or data.get("date")
        result = inventory_service.record_sale(
            data["product_id"],
            quantity=data["quantity"],
            occurred_at=occurred_at,
            actor=actor_for(g.current_user),
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("recording sale")

    return _result_response(result, 201)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Delete a product. Its past transactions stay in the log."""
    try:
        result = inventory_service.delete_product(product_id, actor=actor_for(g.current_user))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return _internal_error("deleting product")

    return {
        "message": "Product deleted",
        "transaction": transaction_to_dict(result.transaction, {result.product.id: result.product}),
    }, 200
