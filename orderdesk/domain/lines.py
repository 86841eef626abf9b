"""
Order line aggregation.

A line contributes ``price x quantity x (1 - discount / 100)`` to the order
total unless it is held. A line is held when the user put it on hold or
when the actor has no stock of the product at all; held lines only count
towards the backordered quantity.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .stock import StockLookup

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def money(value: Any) -> Decimal:
    """Round to cents the way amounts are stored."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def clamp_discount(value: Any) -> Decimal:
    return min(HUNDRED, max(ZERO, to_decimal(value)))


def clamp_price(value: Any) -> Decimal:
    return max(ZERO, to_decimal(value))


def line_subtotal(price: Any, quantity: int, discount: Any = 0) -> Decimal:
    price = to_decimal(price)
    discount = to_decimal(discount)
    return price * quantity * (1 - discount / HUNDRED)


@dataclass(frozen=True)
class LineItem:
    """A persisted order line."""
    product_id: str
    quantity: int
    price: Decimal
    discount: Decimal = ZERO

    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.price, self.quantity, self.discount)

    def to_dict(self) -> Dict[str, Any]:
        # JSON columns cannot hold Decimal
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": str(self.price),
            "discount": float(self.discount),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineItem":
        return cls(
            product_id=str(data["product_id"]),
            quantity=int(data.get("quantity") or 0),
            price=to_decimal(data.get("price")),
            discount=to_decimal(data.get("discount") or 0),
        )


def order_total(items: Iterable[LineItem]) -> Decimal:
    """Sum of line subtotals. Callers pass the active lines only."""
    return sum((item.subtotal for item in items), ZERO)


@dataclass(frozen=True)
class LineTotals:
    total: Decimal
    in_stock_count: int
    held_count: int


def aggregate(quantities: Mapping[str, int],
              prices: Mapping[str, Any],
              discounts: Mapping[str, Any],
              held: Iterable[str],
              catalog: Mapping[str, Any],
              stock_of: StockLookup) -> LineTotals:
    """Fold per-product inputs into the order total and line counts.

    ``prices`` falls back to the catalogue price and ``discounts`` to 0.
    Products missing from ``catalog`` are ignored.
    """
    held = set(held)
    total = ZERO
    in_stock_count = 0
    held_count = 0

    for product_id, quantity in quantities.items():
        if quantity <= 0:
            continue
        product = catalog.get(product_id)
        if product is None:
            continue

        if product_id in held or stock_of(product) == 0:
            held_count += quantity
            continue

        price = prices.get(product_id, product.price)
        total += line_subtotal(price, quantity, discounts.get(product_id, 0))
        in_stock_count += quantity

    return LineTotals(total=total, in_stock_count=in_stock_count, held_count=held_count)


@dataclass(frozen=True)
class OrderDraft:
    """Immutable editing state for an order's lines.

    Every transition returns a new draft; the catalogue and stock lookup
    travel with it so quantity clamping always sees current stock.
    """
    catalog: Mapping[str, Any]
    stock_of: StockLookup
    quantities: Dict[str, int] = field(default_factory=dict)
    prices: Dict[str, Decimal] = field(default_factory=dict)
    discounts: Dict[str, Decimal] = field(default_factory=dict)
    held: FrozenSet[str] = frozenset()

    def _stock(self, product_id: str) -> int:
        product = self.catalog.get(product_id)
        return self.stock_of(product) if product is not None else 0

    def is_held(self, product_id: str) -> bool:
        return product_id in self.held or self._stock(product_id) == 0

    def max_quantity(self, product_id: str) -> Optional[int]:
        """Upper bound for the line, ``None`` meaning unbounded."""
        if self.is_held(product_id):
            return None
        return self._stock(product_id)

    def with_quantity(self, product_id: str, requested: int) -> "OrderDraft":
        quantity = max(0, int(requested))
        limit = self.max_quantity(product_id)
        if limit is not None:
            quantity = min(quantity, limit)

        quantities = dict(self.quantities)
        if quantity > 0:
            quantities[product_id] = quantity
        else:
            quantities.pop(product_id, None)
        return replace(self, quantities=quantities)

    def with_price(self, product_id: str, price: Any) -> "OrderDraft":
        prices = dict(self.prices)
        prices[product_id] = clamp_price(price)
        return replace(self, prices=prices)

    def with_discount(self, product_id: str, discount: Any) -> "OrderDraft":
        discounts = dict(self.discounts)
        discounts[product_id] = clamp_discount(discount)
        return replace(self, discounts=discounts)

    def toggle_hold(self, product_id: str) -> "OrderDraft":
        if product_id in self.held:
            draft = replace(self, held=self.held - {product_id})
            # back on the active side the line must fit current stock again
            current = draft.quantities.get(product_id)
            if current is not None:
                draft = draft.with_quantity(product_id, current)
            return draft
        return replace(self, held=self.held | {product_id})

    def totals(self) -> LineTotals:
        return aggregate(self.quantities, self.prices, self.discounts,
                         self.held, self.catalog, self.stock_of)

    def price_of(self, product_id: str) -> Decimal:
        if product_id in self.prices:
            return self.prices[product_id]
        return to_decimal(self.catalog[product_id].price)

    def partition(self) -> Tuple[List[LineItem], List[LineItem]]:
        """Split into ``(active, held)`` line items ready to persist."""
        active: List[LineItem] = []
        held: List[LineItem] = []
        for product_id, quantity in self.quantities.items():
            if quantity <= 0 or product_id not in self.catalog:
                continue
            item = LineItem(
                product_id=product_id,
                quantity=quantity,
                price=self.price_of(product_id),
                discount=self.discounts.get(product_id, ZERO),
            )
            (held if self.is_held(product_id) else active).append(item)
        return active, held

    @classmethod
    def from_items(cls, active: Iterable[LineItem], held: Iterable[LineItem],
                   catalog: Mapping[str, Any], stock_of: StockLookup) -> "OrderDraft":
        """Rebuild editing state from persisted lines without re-clamping."""
        quantities: Dict[str, int] = {}
        prices: Dict[str, Decimal] = {}
        discounts: Dict[str, Decimal] = {}
        held_ids = set()
        for is_held, items in ((False, active), (True, held)):
            for item in items:
                quantities[item.product_id] = item.quantity
                prices[item.product_id] = item.price
                discounts[item.product_id] = item.discount
                if is_held:
                    held_ids.add(item.product_id)
        return cls(catalog=catalog, stock_of=stock_of, quantities=quantities,
                   prices=prices, discounts=discounts, held=frozenset(held_ids))
