from decimal import Decimal
from itertools import product as combinations
from types import SimpleNamespace

from orderdesk.domain.lines import LineItem, OrderDraft, aggregate, order_total

CATALOG = {
    "P1": SimpleNamespace(id="P1", price=Decimal("100"), stock=10),
    "P2": SimpleNamespace(id="P2", price=Decimal("50"), stock=0),
    "P3": SimpleNamespace(id="P3", price=Decimal("250"), stock=3),
}


def warehouse(product):
    return product.stock


def empty_draft():
    return OrderDraft(catalog=CATALOG, stock_of=warehouse)


def test_single_discounted_line():
    """5 x 100 at 10% off with stock 10 totals 450."""
    totals = aggregate({"P1": 5}, {"P1": Decimal("100")}, {"P1": 10}, set(), CATALOG, warehouse)
    assert totals.total == Decimal("450")
    assert totals.in_stock_count == 5
    assert totals.held_count == 0


def test_held_line_contributes_nothing_to_total():
    totals = aggregate({"P1": 5}, {"P1": Decimal("100")}, {"P1": 10}, {"P1"}, CATALOG, warehouse)
    assert totals.total == Decimal("0")
    assert totals.in_stock_count == 0
    assert totals.held_count == 5


def test_out_of_stock_line_counts_as_held():
    totals = aggregate({"P1": 1, "P2": 2}, {}, {}, set(), CATALOG, warehouse)
    assert totals.total == Decimal("100")
    assert totals.in_stock_count == 1
    assert totals.held_count == 2


def test_zero_and_negative_quantities_are_excluded():
    totals = aggregate({"P1": 0, "P3": -2}, {}, {}, set(), CATALOG, warehouse)
    assert totals.total == Decimal("0")
    assert totals.in_stock_count == 0
    assert totals.held_count == 0


def test_price_falls_back_to_catalogue():
    totals = aggregate({"P3": 2}, {}, {}, set(), CATALOG, warehouse)
    assert totals.total == Decimal("500")


def test_total_matches_active_subtotals_for_mixed_inputs():
    """The aggregate total equals the sum over the lines the draft keeps active."""
    for qty1, qty3, discount, hold_p1 in combinations((0, 3, 10), (1, 3), (0, 12.5, 100), (False, True)):
        draft = empty_draft()
        if hold_p1:
            draft = draft.toggle_hold("P1")
        draft = (draft.with_discount("P1", discount).with_quantity("P1", qty1)
                 .with_quantity("P2", 4).with_quantity("P3", qty3))
        active, held = draft.partition()
        assert draft.totals().total == order_total(active)
        assert all(item.product_id != "P2" for item in active)
        assert draft.totals().held_count == sum(item.quantity for item in held)


def test_active_quantity_is_clamped_to_stock():
    draft = empty_draft().with_quantity("P1", 50)
    assert draft.quantities["P1"] == 10
    assert draft.max_quantity("P1") == 10


def test_clearing_quantity_removes_line():
    draft = empty_draft().with_quantity("P1", 3).with_quantity("P1", -1)
    assert "P1" not in draft.quantities
    assert draft.partition() == ([], [])


def test_held_line_may_exceed_stock_until_released():
    draft = empty_draft().toggle_hold("P1").with_quantity("P1", 50)
    assert draft.quantities["P1"] == 50
    assert draft.max_quantity("P1") is None

    released = draft.toggle_hold("P1")
    assert released.quantities["P1"] == 10
    # the previous draft is untouched
    assert draft.quantities["P1"] == 50


def test_out_of_stock_product_is_not_clamped_and_goes_to_backorder():
    draft = empty_draft().with_quantity("P2", 7)
    active, held = draft.partition()
    assert active == []
    assert held == [LineItem(product_id="P2", quantity=7, price=Decimal("50"), discount=Decimal("0"))]


def test_discount_and_price_are_clamped():
    draft = empty_draft().with_discount("P1", 150).with_price("P3", -10)
    assert draft.discounts["P1"] == Decimal("100")
    assert draft.prices["P3"] == Decimal("0")
    assert empty_draft().with_discount("P1", -5).discounts["P1"] == Decimal("0")


def test_partition_keeps_price_override_and_discount():
    draft = (empty_draft().with_price("P1", "90.50").with_discount("P1", 10)
             .with_quantity("P1", 2).with_quantity("P3", 1))
    active, held = draft.partition()
    assert held == []
    assert active[0] == LineItem("P1", 2, Decimal("90.50"), Decimal("10"))
    assert active[1].price == Decimal("250")
    assert active[0].to_dict() == {"product_id": "P1", "quantity": 2, "price": "90.50", "discount": 10.0}


def test_from_items_restores_hold_state():
    active = [LineItem("P1", 2, Decimal("100"))]
    held = [LineItem("P3", 9, Decimal("250"), Decimal("5"))]
    draft = OrderDraft.from_items(active, held, CATALOG, warehouse)
    assert draft.held == frozenset({"P3"})
    assert draft.quantities == {"P1": 2, "P3": 9}
    assert draft.partition() == (active, held)
