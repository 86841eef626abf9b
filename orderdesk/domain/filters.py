"""
Order list filtering and supplier grouping.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..utils.date_utils import DateUtils
from .lines import LineItem

UNASSIGNED_SUPPLIER = "Unassigned"


@dataclass(frozen=True)
class OrderFilter:
    status: Optional[str] = None
    search: Optional[str] = None
    delivery_date: Optional[date] = None
    date_range: str = "all"


def delivery_day(order: Any) -> date:
    return order.expected_delivery_date or order.order_date


def _active_lines(order: Any) -> List[LineItem]:
    return [LineItem.from_dict(item) for item in order.order_items or []]


def visible_to_suppliers(order: Any, suppliers: Optional[Sequence[str]],
                         catalog: Mapping[str, Any]) -> bool:
    """``suppliers=None`` means the actor sees everything."""
    if suppliers is None:
        return True
    allowed = set(suppliers)
    for item in _active_lines(order):
        product = catalog.get(item.product_id)
        if product is not None and product.supplier in allowed:
            return True
    return False


def matches(order: Any, criteria: OrderFilter, today: date) -> bool:
    if criteria.status and criteria.status.lower() != "all":
        if order.status.value.lower() != criteria.status.lower():
            return False

    if criteria.search:
        term = criteria.search.strip().lower()
        if term and term not in order.id.lower() and term not in (order.customer_name or "").lower():
            return False

    if criteria.delivery_date and delivery_day(order) != criteria.delivery_date:
        return False

    bounds = DateUtils.range_for(criteria.date_range or "all", today)
    if bounds is not None:
        start, end = bounds
        if not start <= delivery_day(order) <= end:
            return False

    return True


def filter_orders(orders: Iterable[Any], criteria: OrderFilter, today: date,
                  suppliers: Optional[Sequence[str]] = None,
                  catalog: Optional[Mapping[str, Any]] = None) -> List[Any]:
    """Apply the list filters and return orders newest order date first."""
    catalog = catalog or {}
    selected = [
        order for order in orders
        if visible_to_suppliers(order, suppliers, catalog) and matches(order, criteria, today)
    ]
    return sorted(selected, key=lambda order: (order.order_date, order.id), reverse=True)


def primary_supplier(order: Any, catalog: Mapping[str, Any]) -> str:
    """Supplier of the line with the largest ``price x quantity``."""
    best_value = 0
    best_supplier = UNASSIGNED_SUPPLIER
    for item in _active_lines(order):
        product = catalog.get(item.product_id)
        if product is None:
            continue
        value = item.price * item.quantity
        if value > best_value:
            best_value = value
            best_supplier = product.supplier or UNASSIGNED_SUPPLIER
    return best_supplier


def group_by_supplier(orders: Iterable[Any], catalog: Mapping[str, Any]) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = OrderedDict()
    for order in orders:
        groups.setdefault(primary_supplier(order, catalog), []).append(order)
    return groups
