"""
Transaction log reporting tests: filters, day grouping, brand summaries
and the daily sales text.
"""

from datetime import date, datetime, time, timedelta

import pytest

from stockroom.ledger import (
    TransactionRecord,
    TransactionType,
    ValidationError,
    delete_product,
    record_sale,
)
from stockroom.services.transaction_query import (
    DELETED_USER,
    UNKNOWN_PRODUCT,
    TransactionFilter,
    aggregate_by_brand,
    daily_sales_report,
    display_employee_name,
    display_product_name,
    filter_transactions,
    group_by_calendar_day,
    product_directory,
    transaction_to_dict,
)

from conftest import ACTOR, NOW, make_product


def tx(tx_type, timestamp, *, product_id=1, employee="Alice", quantity=1, tx_id=None):
    return TransactionRecord(
        id=tx_id,
        type=tx_type,
        product_id=product_id,
        employee_id=1 if employee == "Alice" else 2,
        employee_name=employee,
        timestamp=timestamp,
        quantity=quantity,
    )


WIDGET = make_product(10, 5, id=1, name="Widget", brand="Acme")
GADGET = make_product(3, 0, id=2, name="Gadget", brand="Globex")
CATALOG = {1: WIDGET, 2: GADGET}


def sold_then_deleted():
    """Ledger records for a product that sold 4 units and was then deleted, newest first."""
    gizmo = make_product(10, 0, id=99, name="Gizmo", brand="Initech")
    sale = record_sale(gizmo, 4, actor=ACTOR, now=NOW)
    deleted = delete_product(sale.product, actor=ACTOR, now=NOW + timedelta(hours=1))
    return [deleted.transaction, sale.transaction]


@pytest.fixture
def log():
    """Newest first, as the repository returns it."""
    return [
        tx(TransactionType.SALE, datetime(2026, 10, 19, 15, 30), product_id=2, employee="Bob", quantity=2, tx_id=6),
        tx(TransactionType.SALE, datetime(2026, 10, 19, 9, 15), quantity=3, tx_id=5),
        tx(TransactionType.ADD, datetime(2026, 10, 18, 23, 59, 59), quantity=10, tx_id=4),
        tx(TransactionType.SALE, datetime(2026, 10, 18, 8, 0), employee="Bob", quantity=1, tx_id=3),
        tx(TransactionType.NEW, datetime(2026, 10, 17, 12, 0), quantity=10, tx_id=2),
        tx(TransactionType.NEW, datetime(2026, 10, 17, 11, 0), product_id=2, quantity=3, tx_id=1),
    ]


class TestFilterTransactions:

    def test_empty_filter_returns_everything_in_order(self, log):
        assert filter_transactions(log, TransactionFilter(), CATALOG) == log

    def test_date_range_is_inclusive(self, log):
        result = filter_transactions(
            log,
            TransactionFilter(start_date=date(2026, 10, 18), end_date=date(2026, 10, 18)),
            CATALOG,
        )
        assert [r.id for r in result] == [4, 3]

    def test_time_window_applies_to_range_edges(self, log):
        criteria = TransactionFilter(
            start_date=date(2026, 10, 18),
            start_time=time(9, 0),
            end_date=date(2026, 10, 19),
            end_time=time(9, 15),
        )
        assert [r.id for r in filter_transactions(log, criteria, CATALOG)] == [5, 4]

    def test_reversed_range_is_rejected(self, log):
        with pytest.raises(ValidationError):
            filter_transactions(
                log,
                TransactionFilter(start_date=date(2026, 10, 19), end_date=date(2026, 10, 18)),
            )

    def test_type_and_employee_filters(self, log):
        criteria = TransactionFilter(types=(TransactionType.SALE,), employee_names=("Bob",))
        assert [r.id for r in filter_transactions(log, criteria, CATALOG)] == [6, 3]

    def test_brand_and_product_match_catalog_names(self, log):
        assert [r.id for r in filter_transactions(log, TransactionFilter(brand="Globex"), CATALOG)] == [6, 1]
        assert [r.id for r in filter_transactions(log, TransactionFilter(product="Widget"), CATALOG)] == [5, 4, 3, 2]
        assert filter_transactions(log, TransactionFilter(brand="Acme", product="Gadget"), CATALOG) == []

    def test_deleted_product_sales_match_by_brand(self):
        history = sold_then_deleted()
        directory = product_directory([WIDGET, GADGET], history)

        assert filter_transactions(history, TransactionFilter(brand="Initech"), directory) == history
        sales = filter_transactions(history, TransactionFilter(types=(TransactionType.SALE,), product="Gizmo"), directory)
        assert [r.type for r in sales] == [TransactionType.SALE]

    def test_unresolvable_product_never_matches_brand(self):
        orphan = tx(TransactionType.SALE, datetime(2026, 10, 19), product_id=99)
        assert filter_transactions([orphan], TransactionFilter(brand="Initech"), CATALOG) == []

    def test_employee_filter_uses_current_user_name(self, log):
        users = {1: "Alice Renamed", 2: "Bob"}

        renamed = filter_transactions(log, TransactionFilter(employee_names=("Alice Renamed",)), CATALOG, users)
        assert [r.id for r in renamed] == [5, 4, 2, 1]
        assert filter_transactions(log, TransactionFilter(employee_names=("Alice",)), CATALOG, users) == []

    def test_product_id_filter(self, log):
        assert [r.id for r in filter_transactions(log, TransactionFilter(product_id=2), CATALOG)] == [6, 1]


class TestGroupByCalendarDay:

    def test_groups_newest_day_first(self, log):
        groups = group_by_calendar_day(log)

        assert [g.day for g in groups] == [date(2026, 10, 19), date(2026, 10, 18), date(2026, 10, 17)]
        assert [r.id for r in groups[0].records] == [6, 5]
        assert [r.id for r in groups[1].records] == [4, 3]
        assert [r.id for r in groups[2].records] == [2, 1]

    def test_empty_input(self):
        assert group_by_calendar_day([]) == []

    def test_unsorted_input_is_rejected(self, log):
        with pytest.raises(ValidationError):
            group_by_calendar_day(list(reversed(log)))


class TestAggregateByBrand:

    def test_counts_stock_and_sales(self, log):
        summaries = aggregate_by_brand(log, [WIDGET, GADGET])

        assert list(summaries) == ["Acme", "Globex"]
        assert summaries["Acme"].to_dict() == {
            "product_count": 1,
            "total_stock_remaining": 15,
            "total_sold_in_period": 4,
        }
        assert summaries["Globex"].to_dict() == {
            "product_count": 1,
            "total_stock_remaining": 3,
            "total_sold_in_period": 2,
        }

    def test_brand_without_sales_still_listed(self):
        summaries = aggregate_by_brand([], [WIDGET])
        assert summaries["Acme"].total_sold_in_period == 0
        assert summaries["Acme"].product_count == 1

    def test_sales_of_deleted_products_keep_their_brand(self):
        history = sold_then_deleted()
        sales = [r for r in history if r.type == TransactionType.SALE]

        summaries = aggregate_by_brand(sales, [WIDGET], product_directory([WIDGET], history))

        assert summaries["Initech"].to_dict() == {
            "product_count": 0,
            "total_stock_remaining": 0,
            "total_sold_in_period": 4,
        }
        assert summaries["Acme"].product_count == 1


class TestDailySalesReport:

    def test_lists_sales_oldest_first(self, log):
        report = daily_sales_report(log, date(2026, 10, 19), CATALOG)

        assert report == (
            "Sale (19th Oct, Monday):\n"
            "09:15 AM - Acme - Widget - 3\n"
            "03:30 PM - Globex - Gadget - 2\n"
        )

    def test_day_without_sales(self, log):
        report = daily_sales_report(log, date(2026, 10, 17), CATALOG)
        assert report == "Sale (17th Oct, Saturday):\nNo sales recorded for this date.\n"

    @pytest.mark.parametrize(
        "day,heading",
        [
            (date(2026, 10, 1), "Sale (1st Oct, Thursday):"),
            (date(2026, 10, 2), "Sale (2nd Oct, Friday):"),
            (date(2026, 10, 3), "Sale (3rd Oct, Saturday):"),
            (date(2026, 10, 11), "Sale (11th Oct, Sunday):"),
            (date(2026, 10, 22), "Sale (22nd Oct, Thursday):"),
        ],
    )
    def test_ordinal_headings(self, day, heading):
        assert daily_sales_report([], day).splitlines()[0] == heading

    def test_unknown_product_in_report(self):
        sale = tx(TransactionType.SALE, datetime(2026, 10, 19, 10, 0), product_id=42, quantity=1)
        assert "10:00 AM - Unknown Product - 1" in daily_sales_report([sale], date(2026, 10, 19), CATALOG)


class TestDisplayNames:

    def test_fallbacks(self):
        record = TransactionRecord(
            type=TransactionType.SALE,
            product_id=42,
            employee_id=7,
            employee_name=None,
            timestamp=datetime(2026, 10, 19),
        )
        assert display_product_name(record, CATALOG) == UNKNOWN_PRODUCT
        assert display_employee_name(record, {}) == DELETED_USER

    def test_live_user_name_wins(self):
        record = tx(TransactionType.SALE, datetime(2026, 10, 19))
        assert display_employee_name(record, {1: "Alice Renamed"}) == "Alice Renamed"
        assert display_employee_name(record) == "Alice"

    def test_transaction_to_dict(self):
        record = tx(TransactionType.SALE, datetime(2026, 10, 19, 9, 15), quantity=3, tx_id=5)
        data = transaction_to_dict(record, CATALOG, {1: "Alice"})

        assert data["type"] == "SALE"
        assert data["product_name"] == "Acme - Widget"
        assert data["employee_name"] == "Alice"
        assert data["timestamp"] == "2026-10-19T09:15:00Z"


class TestProductDirectory:

    def test_deleted_product_rebuilt_from_delete_record(self):
        history = sold_then_deleted()
        directory = product_directory([WIDGET], history)

        assert directory[1] is WIDGET
        assert (directory[99].brand, directory[99].name) == ("Initech", "Gizmo")
        assert display_product_name(history[1], directory) == "Initech - Gizmo"
        assert daily_sales_report(history, NOW.date(), directory).endswith("12:00 PM - Initech - Gizmo - 4\n")

    def test_live_product_wins_over_archived_state(self):
        history = sold_then_deleted()
        relisted = make_product(1, 0, id=99, name="Gizmo II", brand="Initech")

        assert product_directory([relisted], history)[99] is relisted
