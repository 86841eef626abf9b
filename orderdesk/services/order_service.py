from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_audit_event
from ..core.exceptions import EmptyOrderError, ValidationError
from ..core.permissions import accessible_suppliers, can_view_outstanding, is_manager_view
from ..domain.balances import BalanceState
from ..domain.filters import OrderFilter, filter_orders, group_by_supplier
from ..domain.holds import OrderLines, hold, unhold
from ..domain.lines import LineItem, LineTotals, OrderDraft, money
from ..domain.stock import StockLookup, make_stock_lookup
from ..models.customer import Customer
from ..models.order import Order, OrderStatus
from ..models.product import Product
from ..models.user import User, UserRole
from ..repositories.allocation_repo import AllocationRepository, allocation_repository
from ..repositories.customer_repo import CustomerRepository, customer_repository
from ..repositories.order_repo import OrderRepository, order_repository
from ..repositories.product_repo import ProductRepository, product_repository
from ..schemas.order import OrderCreate, OrderLineIn, OrderUpdate
from ..utils.date_utils import DateUtils

logger = get_logger(__name__)


class StockContext:
    """Resolves effective stock for one actor on the current business day."""

    def __init__(self, db: Session, allocations: AllocationRepository = allocation_repository):
        self.db = db
        self.allocations = allocations

    def lookup_for(self, actor: User, today: Optional[date] = None) -> StockLookup:
        today = today or DateUtils.business_today()
        records = []
        if actor.role == UserRole.DRIVER:
            allocation = self.allocations.get_for_driver(self.db, actor.id, today)
            if allocation is not None:
                records.append(allocation)
        return make_stock_lookup(actor.role, actor.id, records, today)


class OrderService:
    def __init__(
        self,
        db: Session,
        orders: OrderRepository = order_repository,
        products: ProductRepository = product_repository,
        customers: CustomerRepository = customer_repository,
        allocations: AllocationRepository = allocation_repository
    ):
        self.db = db
        self.orders = orders
        self.products = products
        self.customers = customers
        self.stock = StockContext(db, allocations)

    # Queries

    def get_order(self, order_id: str) -> Order:
        return self.orders.get_or_404(self.db, order_id)

    def list_orders(self, actor: User, criteria: OrderFilter,
                    catalog: Optional[Mapping[str, Product]] = None) -> List[Order]:
        if catalog is None:
            catalog = self._catalog()
        return filter_orders(
            self.orders.list_orders(self.db),
            criteria,
            DateUtils.business_today(),
            suppliers=accessible_suppliers(actor),
            catalog=catalog
        )

    def orders_by_supplier(self, actor: User, criteria: OrderFilter,
                           catalog: Optional[Mapping[str, Product]] = None) -> Dict[str, List[Order]]:
        if catalog is None:
            catalog = self._catalog()
        return group_by_supplier(self.list_orders(actor, criteria, catalog), catalog)

    def list_views(self, actor: User, criteria: OrderFilter) -> List[Dict[str, Any]]:
        """Views of every order the actor may see, built from one catalogue read."""
        catalog = self._catalog()
        return [self.build_view(actor, order, catalog) for order in self.list_orders(actor, criteria, catalog)]

    def supplier_views(self, actor: User, criteria: OrderFilter) -> Dict[str, List[Dict[str, Any]]]:
        catalog = self._catalog()
        return {
            supplier: [self.build_view(actor, order, catalog) for order in orders]
            for supplier, orders in self.orders_by_supplier(actor, criteria, catalog).items()
        }

    def product_picker(self, actor: User, search: Optional[str] = None) -> List[Tuple[Product, int]]:
        """Catalogue visible to the actor with each product's effective stock."""
        stock_of = self.stock.lookup_for(actor)
        products = self.products.search(self.db, search_term=search, suppliers=accessible_suppliers(actor))
        return [(product, stock_of(product)) for product in products]

    def preview(self, actor: User, lines: List[OrderLineIn], customer_id: Optional[str] = None) -> LineTotals:
        """Totals for a draft without saving anything."""
        customer = self.customers.get(self.db, customer_id) if customer_id else None
        defaults = self._customer_discounts(customer, lines)
        return self._build_draft(actor, lines, defaults).totals()

    def build_view(self, actor: User, order: Order,
                   catalog: Optional[Mapping[str, Product]] = None) -> Dict[str, Any]:
        """Read-only view model of an order for the acting user."""
        lines = OrderLines.from_order(order)
        if catalog is None:
            catalog = self.products.get_many(
                self.db, [item.product_id for item in lines.active + lines.held]
            )

        total = money(lines.total)
        balances = BalanceState.from_order(order)
        view = {
            "id": order.id,
            "customer_id": order.customer_id,
            "customer_name": order.customer_name,
            "order_date": order.order_date,
            "expected_delivery_date": order.expected_delivery_date,
            "status": order.status.value,
            "notes": order.notes,
            "payment_method": order.payment_method,
            "items": [self._line_view(item, catalog) for item in lines.active],
            "backordered_items": [self._line_view(item, catalog) for item in lines.held],
            "total": total,
            "item_count": sum(item.quantity for item in lines.active),
            "backordered_count": sum(item.quantity for item in lines.held),
            "amount_paid": money(balances.amount_paid),
            "cheque_balance": money(balances.cheque_balance),
            "credit_balance": money(balances.credit_balance),
            "outstanding_balance": None,
            "sold": order.sold or 0,
            "assigned_user_id": order.assigned_user_id,
            "assigned_user_name": None,
        }
        if can_view_outstanding(actor.role):
            view["outstanding_balance"] = money(balances.outstanding)
        if is_manager_view(actor.role) and order.assigned_user is not None:
            view["assigned_user_name"] = order.assigned_user.name
        return view

    def get_view(self, actor: User, order_id: str) -> Dict[str, Any]:
        return self.build_view(actor, self.get_order(order_id))

    # Commands

    def create_order(self, actor: User, payload: OrderCreate) -> Order:
        customer = self._require_customer(payload.customer_id)
        draft = self._build_draft(actor, payload.items, self._customer_discounts(customer, payload.items))
        active, held = draft.partition()
        if not active:
            raise EmptyOrderError()

        total = money(sum((item.subtotal for item in active), Decimal("0")))
        order_id = self.orders.next_order_id(self.db)
        order = self.orders.create(self.db, obj_in={
            "id": order_id,
            "customer_id": customer.id,
            "customer_name": customer.name,
            "assigned_user_id": actor.id,
            "order_items": [item.to_dict() for item in active],
            "backordered_items": [item.to_dict() for item in held],
            "payment_method": payload.payment_method,
            "notes": payload.notes,
            "order_date": payload.expected_delivery_date or DateUtils.business_today(),
            "expected_delivery_date": payload.expected_delivery_date,
            "total_amount": total,
            "status": OrderStatus.PENDING,
            "cheque_balance": Decimal("0"),
            "credit_balance": Decimal("0"),
            "sold": 0,
        })

        log_audit_event("order_created", actor.id, order.id, amount=total,
                        details=f"{len(active)} active, {len(held)} held")
        return order

    def update_order(self, actor: User, order_id: str, payload: OrderUpdate) -> Order:
        order = self.get_order(order_id)

        customer_id = payload.customer_id or order.customer_id
        customer = self._require_customer(customer_id)

        # lines without an explicit discount keep what they had; new lines get the customer's default
        existing = OrderLines.from_order(order)
        defaults = self._customer_discounts(customer, payload.items)
        defaults.update({item.product_id: item.discount for item in existing.active + existing.held})
        draft = self._build_draft(actor, payload.items, defaults)
        active, held = draft.partition()
        if not active and not held:
            raise EmptyOrderError(order.id)

        total = money(sum((item.subtotal for item in active), Decimal("0")))
        order = self.orders.update(self.db, db_obj=order, obj_in={
            "customer_id": customer.id,
            "customer_name": customer.name,
            "order_items": [item.to_dict() for item in active],
            "backordered_items": [item.to_dict() for item in held],
            "payment_method": payload.payment_method,
            "notes": payload.notes,
            "order_date": payload.expected_delivery_date or order.order_date,
            "expected_delivery_date": payload.expected_delivery_date,
            "total_amount": total,
        })

        log_audit_event("order_updated", actor.id, order.id, amount=total)
        return order

    def delete_order(self, actor: User, order_id: str) -> None:
        total = self.get_order(order_id).total_amount
        self.orders.delete(self.db, id=order_id)
        log_audit_event("order_deleted", actor.id, order_id, amount=total)

    def hold_item(self, actor: User, order_id: str, product_id: str) -> Order:
        order = self.get_order(order_id)
        lines = OrderLines.from_order(order)
        moved = hold(lines, product_id)
        if moved is lines:
            logger.info(f"Hold ignored: {product_id} is not an active line of order {order_id}")
            return order
        return self._save_lines(actor, order, moved, "item_held", product_id)

    def unhold_item(self, actor: User, order_id: str, product_id: str) -> Order:
        order = self.get_order(order_id)
        lines = OrderLines.from_order(order)
        product = self.products.get(self.db, product_id)
        available = self.stock.lookup_for(actor)(product) if product is not None else 0
        moved = unhold(lines, product_id, available)
        if moved is lines:
            logger.info(
                f"Unhold ignored: {product_id} on order {order_id} is not held or has no stock ({available})"
            )
            return order
        return self._save_lines(actor, order, moved, "item_unheld", product_id)

    # Helpers

    def _catalog(self) -> Dict[str, Product]:
        return {product.id: product for product in self.products.get_all(self.db)}

    def _require_customer(self, customer_id: Optional[str]) -> Customer:
        if not customer_id:
            raise ValidationError("Please select a customer", field="customer_id")
        customer = self.customers.get(self.db, customer_id)
        if customer is None:
            raise ValidationError(f"Unknown customer '{customer_id}'", field="customer_id")
        return customer

    @staticmethod
    def _customer_discounts(customer: Optional[Customer], lines: List[OrderLineIn]) -> Dict[str, Any]:
        if customer is None:
            return {}
        return {line.product_id: customer.default_discount(line.product_id) for line in lines}

    def _build_draft(self, actor: User, lines: List[OrderLineIn],
                     default_discounts: Mapping[str, Any]) -> OrderDraft:
        catalog = self.products.get_many(self.db, [line.product_id for line in lines])
        unknown = sorted({line.product_id for line in lines} - set(catalog))
        if unknown:
            raise ValidationError(f"Unknown product(s): {', '.join(unknown)}", field="items")

        draft = OrderDraft(catalog=catalog, stock_of=self.stock.lookup_for(actor))
        for line in lines:
            product_id = line.product_id
            if line.held and product_id not in draft.held:
                draft = draft.toggle_hold(product_id)
            if line.price is not None:
                draft = draft.with_price(product_id, line.price)
            discount = line.discount if line.discount is not None else default_discounts.get(product_id, 0)
            draft = draft.with_discount(product_id, discount)
            draft = draft.with_quantity(product_id, line.quantity)
        return draft

    def _save_lines(self, actor: User, order: Order, lines: OrderLines, action: str, product_id: str) -> Order:
        total = money(lines.total)
        order = self.orders.save_lines(
            self.db,
            order,
            [item.to_dict() for item in lines.active],
            [item.to_dict() for item in lines.held],
            total
        )
        log_audit_event(action, actor.id, order.id, amount=total, details=f"product {product_id}")
        return order

    @staticmethod
    def _line_view(item: LineItem, catalog: Mapping[str, Product]) -> Dict[str, Any]:
        product = catalog.get(item.product_id)
        return {
            "product_id": item.product_id,
            "name": product.name if product else item.product_id,
            "image_url": product.image_url if product else None,
            "quantity": item.quantity,
            "price": money(item.price),
            "discount": item.discount,
            "subtotal": money(item.subtotal),
        }
