from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from orderdesk.domain.filters import OrderFilter, filter_orders, group_by_supplier, primary_supplier
from orderdesk.domain.lines import LineItem
from orderdesk.models.order import OrderStatus

TODAY = date(2024, 5, 15)  # a Wednesday

CATALOG = {
    "P1": SimpleNamespace(id="P1", supplier="Acme Foods"),
    "P3": SimpleNamespace(id="P3", supplier="Sweet Co"),
}


def order(order_id, customer="Corner Grocers", status=OrderStatus.PENDING, order_date=TODAY,
          expected=None, items=()):
    return SimpleNamespace(
        id=order_id,
        customer_name=customer,
        status=status,
        order_date=order_date,
        expected_delivery_date=expected,
        order_items=[item.to_dict() for item in items],
    )


def test_newest_first_and_status_filter():
    orders = [
        order("ORD001", order_date=date(2024, 5, 1)),
        order("ORD002", order_date=date(2024, 5, 14), status=OrderStatus.DELIVERED),
        order("ORD003", order_date=date(2024, 5, 10)),
    ]
    assert [o.id for o in filter_orders(orders, OrderFilter(), TODAY)] == ["ORD002", "ORD003", "ORD001"]
    delivered = filter_orders(orders, OrderFilter(status="Delivered"), TODAY)
    assert [o.id for o in delivered] == ["ORD002"]


def test_search_matches_id_or_customer_case_insensitively():
    orders = [order("ORD001", customer="Corner Grocers"), order("ORD002", customer="Hilltop Mart")]
    assert [o.id for o in filter_orders(orders, OrderFilter(search="hilltop"), TODAY)] == ["ORD002"]
    assert [o.id for o in filter_orders(orders, OrderFilter(search="ord001"), TODAY)] == ["ORD001"]


def test_delivery_date_prefers_expected_date():
    orders = [
        order("ORD001", order_date=date(2024, 5, 1), expected=date(2024, 5, 20)),
        order("ORD002", order_date=date(2024, 5, 20)),
        order("ORD003", order_date=date(2024, 5, 20), expected=date(2024, 5, 21)),
    ]
    found = filter_orders(orders, OrderFilter(delivery_date=date(2024, 5, 20)), TODAY)
    assert sorted(o.id for o in found) == ["ORD001", "ORD002"]


def test_week_runs_sunday_to_saturday():
    orders = [
        order("ORD001", order_date=date(2024, 5, 11)),  # Saturday before
        order("ORD002", order_date=date(2024, 5, 12)),  # Sunday
        order("ORD003", order_date=date(2024, 5, 18)),  # Saturday
        order("ORD004", order_date=date(2024, 5, 19)),  # next Sunday
    ]
    found = filter_orders(orders, OrderFilter(date_range="this_week"), TODAY)
    assert sorted(o.id for o in found) == ["ORD002", "ORD003"]


def test_today_and_month_ranges():
    orders = [order("ORD001", order_date=TODAY), order("ORD002", order_date=date(2024, 5, 31)),
              order("ORD003", order_date=date(2024, 6, 1))]
    assert [o.id for o in filter_orders(orders, OrderFilter(date_range="today"), TODAY)] == ["ORD001"]
    month = filter_orders(orders, OrderFilter(date_range="this_month"), TODAY)
    assert sorted(o.id for o in month) == ["ORD001", "ORD002"]


def test_supplier_restriction_uses_active_lines():
    orders = [
        order("ORD001", items=[LineItem("P1", 1, Decimal("100"))]),
        order("ORD002", items=[LineItem("P3", 1, Decimal("250"))]),
    ]
    found = filter_orders(orders, OrderFilter(), TODAY, suppliers=["Acme Foods"], catalog=CATALOG)
    assert [o.id for o in found] == ["ORD001"]


def test_primary_supplier_is_highest_value_line():
    mixed = order("ORD001", items=[LineItem("P1", 3, Decimal("100")), LineItem("P3", 1, Decimal("250"))])
    assert primary_supplier(mixed, CATALOG) == "Acme Foods"

    groups = group_by_supplier([mixed, order("ORD002")], CATALOG)
    assert list(groups) == ["Acme Foods", "Unassigned"]
    assert [o.id for o in groups["Unassigned"]] == ["ORD002"]
