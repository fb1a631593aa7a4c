"""
Repository tests, run against both the in-memory and the SQL implementation.

Verifies:
- ids and versions are assigned on save
- a stale expected_version raises ConcurrencyConflict and writes nothing
- product change and transaction land together
- deletes keep the history
- purge removes only records older than the cutoff
"""

from datetime import timedelta

import pytest

from stockroom.ledger import TransactionType, add_stock, create_product, delete_product, record_sale
from stockroom.repositories import ConcurrencyConflict, InMemoryRepository, SqlRepository

from conftest import ACTOR, NOW


@pytest.fixture(params=["memory", "sql"])
def repo(request):
    if request.param == "sql":
        request.getfixturevalue("db_session")
        return SqlRepository()
    return InMemoryRepository()


def _create(repo, quantity=10, backup=5, name="Widget"):
    return repo.save(create_product(name, "Acme", "9.99", quantity, backup, actor=ACTOR, now=NOW))


def test_create_assigns_ids_and_version(repo):
    saved = _create(repo)

    assert saved.product.id is not None
    assert saved.product.version == 1
    assert saved.transaction.id is not None
    assert saved.transaction.product_id == saved.product.id
    assert repo.get_product(saved.product.id) == saved.product


def test_update_bumps_version(repo):
    created = _create(repo)
    result = record_sale(created.product, 3, actor=ACTOR, now=NOW)

    saved = repo.save(result, expected_version=created.product.version)

    assert saved.product.version == 2
    stored = repo.get_product(created.product.id)
    assert (stored.quantity, stored.backup_quantity) == (7, 5)


def test_stale_version_is_rejected_and_nothing_written(repo):
    created = _create(repo)
    first = record_sale(created.product, 3, actor=ACTOR, now=NOW)
    second = record_sale(created.product, 4, actor=ACTOR, now=NOW)

    repo.save(first, expected_version=1)
    with pytest.raises(ConcurrencyConflict):
        repo.save(second, expected_version=1)

    stored = repo.get_product(created.product.id)
    assert stored.quantity == 7
    assert [t.type for t in repo.list_transactions()] == [TransactionType.SALE, TransactionType.NEW]


def test_delete_keeps_history(repo):
    created = _create(repo)
    repo.save(delete_product(created.product, actor=ACTOR, now=NOW), expected_version=1)

    assert repo.get_product(created.product.id) is None
    history = repo.list_transactions(product_id=created.product.id)
    assert [t.type for t in history] == [TransactionType.DELETE, TransactionType.NEW]
    assert history[0].previous_data["name"] == "Widget"


def test_list_products_sorted_by_brand_then_name(repo):
    _create(repo, name="Zeta")
    _create(repo, name="Alpha")
    assert [p.name for p in repo.list_products()] == ["Alpha", "Zeta"]


def test_transactions_newest_first(repo):
    created = _create(repo)
    later = add_stock(created.product, 1, None, actor=ACTOR, now=NOW + timedelta(hours=1))
    saved = repo.save(later, expected_version=1)

    log = repo.list_transactions()
    assert [t.id for t in log] == [saved.transaction.id, created.transaction.id]
    assert repo.get_transaction(saved.transaction.id).quantity == 1
    assert repo.get_transaction(9999) is None


def test_purge_removes_only_older_records(repo):
    created = _create(repo, quantity=100)
    product = created.product
    version = product.version
    for days_ago in (1, 8, 30):
        result = record_sale(product, 1, actor=ACTOR, now=NOW, occurred_at=NOW - timedelta(days=days_ago))
        saved = repo.save(result, expected_version=version)
        product, version = saved.product, saved.product.version

    deleted = repo.purge_transactions_before(NOW - timedelta(days=7))

    assert deleted == 2
    remaining = repo.list_transactions()
    assert [t.timestamp for t in remaining] == [NOW, NOW - timedelta(days=1)]
    assert repo.get_product(product.id).quantity == 97
