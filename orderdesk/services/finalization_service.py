"""
Delivery finalization.

Validation (non-empty order, enough effective stock for every active line)
happens before any write. The writes that follow each commit on their own,
so they run as a saga: every step registers how to undo itself before it
runs, and a failed write unwinds the completed steps in reverse order.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_audit_event, log_inventory_event, log_sales_record
from ..core.exceptions import (
    EmptyOrderError, InsufficientStockError, PartialFailureWarning, PersistenceError
)
from ..domain.holds import OrderLines
from ..domain.lines import LineItem
from ..domain.stock import make_stock_lookup
from ..models.allocation import DriverAllocation
from ..models.order import Order
from ..models.product import Product
from ..models.user import User, UserRole
from ..repositories.allocation_repo import AllocationRepository, allocation_repository
from ..repositories.customer_repo import CustomerRepository, customer_repository
from ..repositories.order_repo import OrderRepository, order_repository
from ..repositories.product_repo import ProductRepository, product_repository
from ..utils.date_utils import DateUtils

logger = get_logger(__name__)


class FinalizationSaga:
    """Runs write steps and undoes completed ones when a later write fails."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        self.steps: List[Dict[str, Any]] = []

    def step(self, name: str, action: Callable[[], Any], compensation: Callable[[], Any]) -> Any:
        entry = {"name": name, "undo": compensation, "done": False}
        self.steps.append(entry)
        try:
            result = action()
        except PersistenceError as error:
            # the failed write itself was rolled back with its session
            logger.error(f"Finalize {self.order_id}: step '{name}' failed, compensating")
            self._compensate(name, error)
        entry["done"] = True
        return result

    def _compensate(self, failed_step: str, error: PersistenceError):
        inconsistent = []
        for entry in reversed(self.steps):
            if not entry["done"]:
                continue
            try:
                entry["undo"]()
            except Exception as undo_error:
                logger.error(f"Finalize {self.order_id}: could not undo '{entry['name']}': {undo_error}")
                inconsistent.append(entry["name"])

        if inconsistent:
            raise PartialFailureWarning(self.order_id, failed_step, inconsistent) from error
        raise error


@dataclass
class FinalizationResult:
    order: Order
    already_delivered: bool
    sold: int
    skipped_products: List[str] = field(default_factory=list)


def remaining_allocation(allocated_items: List[Dict[str, Any]],
                         delivered: Dict[str, int]) -> List[Dict[str, Any]]:
    """Subtract delivered quantities, flooring at 0 and dropping empty entries."""
    remaining = []
    for entry in allocated_items or []:
        quantity = int(entry.get("quantity") or 0) - delivered.get(entry.get("product_id"), 0)
        if quantity > 0:
            remaining.append({**entry, "quantity": quantity})
    return remaining


class FinalizationService:
    def __init__(
        self,
        db: Session,
        orders: OrderRepository = order_repository,
        products: ProductRepository = product_repository,
        allocations: AllocationRepository = allocation_repository,
        customers: CustomerRepository = customer_repository
    ):
        self.db = db
        self.orders = orders
        self.products = products
        self.allocations = allocations
        self.customers = customers

    def finalize(self, actor: User, order_id: str) -> FinalizationResult:
        order = self.orders.get_or_404(self.db, order_id)
        lines = OrderLines.from_order(order)
        if not lines.active:
            raise EmptyOrderError(order.id)

        today = DateUtils.business_today()
        allocation = None
        if actor.role == UserRole.DRIVER:
            allocation = self.allocations.get_for_driver(self.db, actor.id, today)

        already_delivered = order.is_delivered
        catalog = self.products.get_many(self.db, [item.product_id for item in lines.active])
        if not already_delivered:
            self._check_stock(actor, lines.active, catalog, allocation, today)

        delivered: Dict[str, int] = {}
        for item in lines.active:
            delivered[item.product_id] = delivered.get(item.product_id, 0) + item.quantity
        sold = sum(delivered.values())

        saga = FinalizationSaga(order.id)
        previous_status, previous_sold = order.status, order.sold

        saga.step(
            "mark order delivered",
            lambda: self.orders.mark_delivered(self.db, order, sold),
            lambda: self.orders.set_delivery(self.db, order, previous_status, previous_sold)
        )

        if allocation is not None and not already_delivered:
            self._update_allocation(saga, allocation, delivered, sold)

        skipped: List[str] = []
        if not already_delivered:
            skipped = self._deduct_stock(saga, order, lines.active, catalog)

        self._refresh_customer(saga, order)

        log_audit_event("order_finalized", actor.id, order.id, amount=order.total_amount,
                        details=f"sold {sold}" + (" (already delivered)" if already_delivered else ""))
        if not already_delivered:
            log_sales_record(order.id, str(order.total_amount))

        return FinalizationResult(order=order, already_delivered=already_delivered,
                                  sold=sold, skipped_products=skipped)

    def _check_stock(self, actor: User, items: List[LineItem], catalog: Dict[str, Product],
                     allocation: Optional[DriverAllocation], today) -> None:
        stock_of = make_stock_lookup(actor.role, actor.id, [allocation] if allocation else [], today)
        for item in items:
            product = catalog.get(item.product_id)
            available = stock_of(product) if product is not None else 0
            if available < item.quantity:
                raise InsufficientStockError(
                    item.product_id, item.quantity, available,
                    product_name=product.name if product is not None else None
                )

    def _update_allocation(self, saga: FinalizationSaga, allocation: DriverAllocation,
                           delivered: Dict[str, int], sold: int) -> None:
        previous_items = list(allocation.allocated_items or [])
        previous_total = allocation.sales_total or 0
        saga.step(
            "update driver allocation",
            lambda: self.allocations.record_delivery(
                self.db, allocation, remaining_allocation(previous_items, delivered), previous_total + sold
            ),
            lambda: self.allocations.record_delivery(self.db, allocation, previous_items, previous_total)
        )

    def _deduct_stock(self, saga: FinalizationSaga, order: Order, items: List[LineItem],
                      catalog: Dict[str, Product]) -> List[str]:
        skipped = []
        for item in items:
            product = catalog.get(item.product_id)
            if product is None or (product.stock or 0) < item.quantity:
                logger.warning(
                    f"Finalize {order.id}: warehouse stock for {item.product_id} is "
                    f"{product.stock if product else 0}, below {item.quantity}; deduction skipped"
                )
                skipped.append(item.product_id)
                continue

            saga.step(
                f"deduct stock {item.product_id}",
                lambda item=item: self.products.adjust_stock(self.db, item.product_id, -item.quantity),
                lambda item=item: self.products.adjust_stock(self.db, item.product_id, item.quantity)
            )
            log_inventory_event(order.id, item.product_id, item.quantity, product.stock)
        return skipped

    def _refresh_customer(self, saga: FinalizationSaga, order: Order) -> None:
        customer = self.customers.get(self.db, order.customer_id)
        if customer is None:
            logger.warning(f"Finalize {order.id}: customer {order.customer_id} not found, totals not updated")
            return

        previous_spent = customer.total_spent or Decimal("0")
        previous_outstanding = customer.outstanding_balance or Decimal("0")
        saga.step(
            "update customer totals",
            lambda: self.customers.refresh_totals(
                self.db, customer, self.orders.delivered_for_customer(self.db, customer.id)
            ),
            lambda: self.customers.set_totals(self.db, customer, previous_spent, previous_outstanding)
        )
