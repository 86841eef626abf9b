import re
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from ..config.settings import get_settings
from ..models.order import Order, OrderStatus
from .base import CRUDBase, commit_or_raise

settings = get_settings()


def format_order_id(number: int, prefix: str = None) -> str:
    return f"{prefix or settings.ORDER_ID_PREFIX}{number:03d}"


class OrderRepository(CRUDBase[Order, Any, Any]):
    def __init__(self):
        super().__init__(Order)

    def next_order_id(self, db: Session) -> str:
        """One past the largest numeric suffix among existing ids."""
        prefix = settings.ORDER_ID_PREFIX
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for (order_id,) in db.query(self.model.id).filter(self.model.id.like(f"{prefix}%")):
            match = pattern.match(order_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return format_order_id(highest + 1, prefix)

    def list_orders(self, db: Session) -> List[Order]:
        return db.query(self.model).order_by(self.model.order_date.desc(), self.model.id.desc()).all()

    def delivered_for_customer(self, db: Session, customer_id: str) -> List[Order]:
        return (
            db.query(self.model)
            .filter(self.model.customer_id == customer_id, self.model.status == OrderStatus.DELIVERED)
            .all()
        )

    def save_lines(self, db: Session, order: Order, order_items: List[Dict[str, Any]],
                   backordered_items: List[Dict[str, Any]], total_amount) -> Order:
        order.order_items = list(order_items)
        order.backordered_items = list(backordered_items)
        order.total_amount = total_amount
        db.add(order)
        commit_or_raise(db, f"update items for order {order.id}")
        db.refresh(order)
        return order

    def set_delivery(self, db: Session, order: Order, status: OrderStatus, sold: Optional[int]) -> Order:
        """Write status and sold quantity; used to deliver and to undo delivery."""
        order.status = status
        order.sold = sold or 0
        db.add(order)
        commit_or_raise(db, f"update status for order {order.id}")
        db.refresh(order)
        return order

    def mark_delivered(self, db: Session, order: Order, sold: int) -> Order:
        return self.set_delivery(db, order, OrderStatus.DELIVERED, sold)


order_repository = OrderRepository()
