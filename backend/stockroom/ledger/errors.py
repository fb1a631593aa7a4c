# Overview: Typed errors raised by the stock ledger and the layers around it.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for deterministic, caller-caused ledger failures."""


class ValidationError(LedgerError, ValueError):
    """400-level input problem (missing field, bad quantity, negative price)."""


class InsufficientStockError(LedgerError):
    """
    400-level stock shortfall.

    scope is one of "stock", "backup" or "total" and selects the message.
    """

    MESSAGES = {
        "stock": "Cannot swap more than available stock quantity",
        "backup": "Cannot swap more than available backup quantity",
        "total": "Not enough total stock available",
    }

    def __init__(self, scope: str, message: str | None = None):
        if scope not in self.MESSAGES:
            raise ValueError(f"unknown stock scope: {scope}")
        self.scope = scope
        super().__init__(message or self.MESSAGES[scope])


class NotFoundError(LedgerError):
    """404-level: the targeted record cannot be resolved."""


class ConflictError(LedgerError):
    """409-level business conflict (duplicate username, retries exhausted)."""
