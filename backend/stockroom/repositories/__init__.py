from __future__ import annotations

from flask import current_app

from .base import ConcurrencyConflict, Repository
from .memory import InMemoryRepository
from .sql import SqlRepository

EXTENSION_KEY = "stockroom.repository"


def init_repository(app, repository: Repository | None = None) -> Repository:
    """Attach the repository the services use; SQL unless one is supplied."""
    repository = repository or SqlRepository()
    app.extensions[EXTENSION_KEY] = repository
    return repository


def get_repository() -> Repository:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    'Repository', 'ConcurrencyConflict', 'InMemoryRepository', 'SqlRepository',
    'init_repository', 'get_repository',
]
