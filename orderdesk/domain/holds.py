"""
Hold/unhold transitions between an order's active and backordered lines.

Invalid transitions leave the lines untouched and return them as-is.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from .lines import LineItem, order_total


@dataclass(frozen=True)
class OrderLines:
    active: Tuple[LineItem, ...] = ()
    held: Tuple[LineItem, ...] = ()

    @property
    def total(self) -> Decimal:
        return order_total(self.active)

    def find_active(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self.active if item.product_id == product_id), None)

    def find_held(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self.held if item.product_id == product_id), None)

    @classmethod
    def from_order(cls, order: Any) -> "OrderLines":
        return cls(
            active=tuple(LineItem.from_dict(item) for item in order.order_items or []),
            held=tuple(LineItem.from_dict(item) for item in order.backordered_items or []),
        )


def hold(lines: OrderLines, product_id: str) -> OrderLines:
    """Move an active line to the held list unchanged."""
    item = lines.find_active(product_id)
    if item is None:
        return lines
    return OrderLines(
        active=tuple(i for i in lines.active if i.product_id != product_id),
        held=lines.held + (item,),
    )


def unhold(lines: OrderLines, product_id: str, stock: int) -> OrderLines:
    """Move a held line back to the active list if there is stock for it."""
    item = lines.find_held(product_id)
    if item is None or stock <= 0:
        return lines
    return OrderLines(
        active=lines.active + (item,),
        held=tuple(i for i in lines.held if i.product_id != product_id),
    )
