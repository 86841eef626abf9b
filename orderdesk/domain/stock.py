"""
Effective stock resolution.

Drivers sell from the day's vehicle allocation; every other role sells
from warehouse stock. Nothing here is cached: allocations and stock change
underneath a session, so callers resolve again on every request.
"""
from datetime import date
from typing import Any, Callable, Iterable, Optional

from ..models.user import UserRole

StockLookup = Callable[[Any], int]


def find_allocation(allocations: Iterable[Any], driver_id: str, day: date) -> Optional[Any]:
    """Return the allocation for ``driver_id`` on ``day`` if there is one."""
    for allocation in allocations:
        if allocation.driver_id == driver_id and allocation.date == day:
            return allocation
    return None


def allocated_quantity(allocation: Optional[Any], product_id: str) -> int:
    if allocation is None:
        return 0
    for entry in allocation.allocated_items or []:
        if entry.get("product_id") == product_id:
            return max(0, int(entry.get("quantity") or 0))
    return 0


def effective_stock(role: UserRole, user_id: str, product: Any,
                    allocations: Iterable[Any], today: date) -> int:
    """Quantity of ``product`` available to the acting user."""
    if role == UserRole.DRIVER:
        allocation = find_allocation(allocations, user_id, today)
        return allocated_quantity(allocation, product.id)
    return max(0, int(product.stock or 0))


def make_stock_lookup(role: UserRole, user_id: str,
                      allocations: Iterable[Any], today: date) -> StockLookup:
    """Bind the actor and day so aggregation code only passes the product."""
    allocations = list(allocations)

    def lookup(product: Any) -> int:
        return effective_stock(role, user_id, product, allocations, today)

    return lookup
