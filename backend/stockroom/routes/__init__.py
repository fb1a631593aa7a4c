from __future__ import annotations

from ..ledger.errors import ConflictError, InsufficientStockError, LedgerError, NotFoundError


def error_response(exc: LedgerError):
    """Map a service/ledger error to its {"error": msg}, status pair."""
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, ConflictError):
        return {"error": str(exc)}, 409
    if isinstance(exc, InsufficientStockError):
        return {"error": str(exc), "scope": exc.scope}, 400
    return {"error": str(exc)}, 400
