"""
CLI command tests (flask users / flask maintenance).
"""

from datetime import timedelta

from stockroom.ledger import TransactionRecord, TransactionType
from stockroom.models import User
from stockroom.repositories import SqlRepository
from stockroom.time_utils import utcnow


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "erin",
        "--name", "Erin",
        "--password", "Password123!",
        "--role", "admin",
    ])
    assert result.exit_code == 0, result.output
    assert "Created user: erin" in result.output
    assert db_session.query(User).filter_by(username="erin").one().role == "admin"

    listing = runner.invoke(args=["users", "list"])
    assert "erin" in listing.output


def test_users_create_duplicate_fails(app, admin_user):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "admin", "--name", "Again", "--password", "Password123!",
    ])
    assert result.exit_code != 0
    assert "Username already exists" in result.output


def test_purge_transactions(app, db_session):
    repo = SqlRepository()
    for days_ago in (1, 8, 30):
        repo.add_transaction(TransactionRecord(
            type=TransactionType.SALE,
            product_id=1,
            employee_id=1,
            employee_name="Alice",
            timestamp=utcnow() - timedelta(days=days_ago),
            quantity=1,
        ))

    result = app.test_cli_runner().invoke(args=["maintenance", "purge-transactions", "--days", "7", "--yes"])

    assert result.exit_code == 0, result.output
    assert "Deleted 2 transactions" in result.output
    assert len(repo.list_transactions()) == 1


def test_purge_rejects_zero_days(app, db_session):
    result = app.test_cli_runner().invoke(args=["maintenance", "purge-transactions", "--days", "0", "--yes"])
    assert result.exit_code != 0
    assert "days must be at least 1" in result.output
