"""
HTTP tests for the transaction log, reports and the retention purge.
"""

from datetime import timedelta

from stockroom.ledger import TransactionRecord, TransactionType
from stockroom.repositories import SqlRepository
from stockroom.time_utils import utcnow

from conftest import ADMIN_PASSWORD


def _create(client, headers, name="Widget", brand="Acme", quantity=10, backup=5):
    resp = client.post(
        "/api/products",
        json={"name": name, "brand": brand, "price": "1.00", "quantity": quantity, "backup_quantity": backup},
        headers=headers,
    )
    return resp.json["product"]


def _sell(client, headers, product_id, quantity, when=None):
    body = {"product_id": product_id, "quantity": quantity}
    if when is not None:
        body["occurred_at"] = when.isoformat() + "Z"
    resp = client.post("/api/products/sale", json=body, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["transaction"]


def test_list_newest_first(client, admin_headers):
    product = _create(client, admin_headers)
    _sell(client, admin_headers, product["id"], 2)

    resp = client.get("/api/transactions", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["count"] == 2
    assert [t["type"] for t in resp.json["transactions"]] == ["SALE", "NEW"]


def test_filter_by_type_and_employee(client, admin_headers, user_headers):
    product = _create(client, admin_headers)
    _sell(client, user_headers, product["id"], 1)
    _sell(client, admin_headers, product["id"], 1)

    resp = client.get(
        "/api/transactions",
        query_string={"type": "sale", "employee": "Bob Cashier"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert [t["employee_name"] for t in resp.json["transactions"]] == ["Bob Cashier"]

    resp = client.get("/api/transactions?type=SALE,NEW", headers=admin_headers)
    assert resp.json["count"] == 3


def test_filter_by_brand(client, admin_headers):
    _create(client, admin_headers, name="Widget", brand="Acme")
    _create(client, admin_headers, name="Gadget", brand="Globex")

    resp = client.get("/api/transactions?brand=Globex", headers=admin_headers)
    assert [t["product_name"] for t in resp.json["transactions"]] == ["Globex - Gadget"]


def test_bad_filters_rejected(client, admin_headers):
    assert client.get("/api/transactions?type=REFUND", headers=admin_headers).status_code == 400
    assert client.get("/api/transactions?start_date=19-10-2026", headers=admin_headers).status_code == 400
    assert client.get("/api/transactions?group_by=week", headers=admin_headers).status_code == 400


def test_group_by_day(client, admin_headers):
    product = _create(client, admin_headers)
    now = utcnow().replace(microsecond=0)
    _sell(client, admin_headers, product["id"], 1, now - timedelta(days=2))

    resp = client.get("/api/transactions?group_by=day", headers=admin_headers)
    groups = resp.json["groups"]
    assert [g["date"] for g in groups] == [now.date().isoformat(), (now - timedelta(days=2)).date().isoformat()]
    assert [t["type"] for t in groups[1]["transactions"]] == ["SALE"]


def test_single_transaction(client, admin_headers):
    product = _create(client, admin_headers)
    tx = _sell(client, admin_headers, product["id"], 3)

    resp = client.get(f"/api/transactions/{tx['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["transaction"]["quantity"] == 3
    assert client.get("/api/transactions/9999", headers=admin_headers).status_code == 404


def test_deleted_user_fallback(client, admin_headers, db_session):
    SqlRepository().add_transaction(TransactionRecord(
        type=TransactionType.SALE,
        product_id=123,
        employee_id=4242,
        employee_name=None,
        timestamp=utcnow(),
        quantity=1,
    ))

    tx = client.get("/api/transactions", headers=admin_headers).json["transactions"][0]
    assert tx["employee_name"] == "Deleted User"
    assert tx["product_name"] == "Unknown Product"


def test_sales_of_deleted_product_stay_attributed(client, admin_headers):
    widget = _create(client, admin_headers, name="Widget", brand="Acme")
    _sell(client, admin_headers, widget["id"], 3)
    assert client.delete(f"/api/products/{widget['id']}", headers=admin_headers).status_code == 200

    sales = client.get("/api/transactions?type=SALE&brand=Acme", headers=admin_headers).json["transactions"]
    assert [t["product_name"] for t in sales] == ["Acme - Widget"]

    brands = client.get("/api/transactions/reports/brands", headers=admin_headers).json["brands"]
    assert brands == {"Acme": {"product_count": 0, "total_stock_remaining": 0, "total_sold_in_period": 3}}

    today = utcnow().date().isoformat()
    report = client.get(f"/api/transactions/reports/daily-sales?date={today}", headers=admin_headers).json["report"]
    assert " - Acme - Widget - 3\n" in report


def test_employee_filter_follows_rename(client, admin_headers, user_headers, regular_user):
    product = _create(client, admin_headers)
    _sell(client, user_headers, product["id"], 1)

    resp = client.put(f"/api/auth/users/{regular_user.id}", json={"name": "Robert"}, headers=admin_headers)
    assert resp.status_code == 200

    found = client.get("/api/transactions", query_string={"employee": "Robert"}, headers=admin_headers).json
    assert found["count"] == 1
    assert found["transactions"][0]["employee_name"] == "Robert"


def test_brand_report(client, admin_headers):
    widget = _create(client, admin_headers, name="Widget", brand="Acme", quantity=10, backup=5)
    _create(client, admin_headers, name="Gadget", brand="Globex", quantity=3, backup=0)
    _sell(client, admin_headers, widget["id"], 4)

    resp = client.get("/api/transactions/reports/brands", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["brands"] == {
        "Acme": {"product_count": 1, "total_stock_remaining": 11, "total_sold_in_period": 4},
        "Globex": {"product_count": 1, "total_stock_remaining": 3, "total_sold_in_period": 0},
    }


def test_daily_sales_report(client, admin_headers):
    widget = _create(client, admin_headers)
    when = utcnow().replace(hour=9, minute=15, second=0, microsecond=0) - timedelta(days=1)
    _sell(client, admin_headers, widget["id"], 3, when)

    resp = client.get(f"/api/transactions/reports/daily-sales?date={when.date().isoformat()}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["report"].endswith("09:15 AM - Acme - Widget - 3\n")

    assert client.get("/api/transactions/reports/daily-sales", headers=admin_headers).status_code == 400


class TestPurge:

    def _seed_history(self, client, headers):
        product = _create(client, headers, quantity=100)
        now = utcnow()
        for days_ago in (1, 8, 30):
            _sell(client, headers, product["id"], 1, now - timedelta(days=days_ago))
        return product

    def test_purge_older_than(self, client, admin_headers):
        product = self._seed_history(client, admin_headers)

        resp = client.delete(
            "/api/transactions/older-than/7",
            json={"password": ADMIN_PASSWORD},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["deleted"] == 2
        remaining = client.get("/api/transactions?type=SALE", headers=admin_headers).json
        assert remaining["count"] == 1
        # Stock is not restored by purging history
        assert client.get(f"/api/products/{product['id']}", headers=admin_headers).json["product"]["quantity"] == 97

    def test_wrong_password(self, client, admin_headers):
        self._seed_history(client, admin_headers)
        resp = client.delete(
            "/api/transactions/older-than/7",
            json={"password": "Wrong123!"},
            headers=admin_headers,
        )
        assert resp.status_code == 403
        assert client.get("/api/transactions", headers=admin_headers).json["count"] == 4

    def test_password_required(self, client, admin_headers):
        resp = client.delete("/api/transactions/older-than/7", headers=admin_headers)
        assert resp.status_code == 400

    def test_days_beyond_calendar_deletes_nothing(self, client, admin_headers):
        self._seed_history(client, admin_headers)
        resp = client.delete(
            "/api/transactions/older-than/1000000",
            json={"password": ADMIN_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["deleted"] == 0
        assert client.get("/api/transactions", headers=admin_headers).json["count"] == 4

    def test_zero_days_rejected(self, client, admin_headers):
        resp = client.delete(
            "/api/transactions/older-than/0",
            json={"password": ADMIN_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 400
