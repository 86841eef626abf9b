from decimal import Decimal
from typing import Any, Dict, Iterable
from sqlalchemy.orm import Session

from ..models.customer import Customer
from ..models.order import Order
from .base import CRUDBase, commit_or_raise


class CustomerRepository(CRUDBase[Customer, Any, Any]):
    def __init__(self):
        super().__init__(Customer)

    def set_totals(self, db: Session, customer: Customer, total_spent: Decimal,
                   outstanding_balance: Decimal) -> Customer:
        customer.total_spent = total_spent
        customer.outstanding_balance = outstanding_balance
        db.add(customer)
        commit_or_raise(db, f"update totals for customer {customer.id}")
        db.refresh(customer)
        return customer

    def refresh_totals(self, db: Session, customer: Customer,
                       delivered_orders: Iterable[Order]) -> Dict[str, Decimal]:
        """Recompute aggregates from delivered orders; returns the previous values."""
        previous = {
            "total_spent": customer.total_spent or Decimal("0"),
            "outstanding_balance": customer.outstanding_balance or Decimal("0"),
        }
        total_spent = Decimal("0")
        outstanding = Decimal("0")
        for order in delivered_orders:
            total_spent += order.total_amount or Decimal("0")
            outstanding += (order.cheque_balance or Decimal("0")) + (order.credit_balance or Decimal("0"))

        self.set_totals(db, customer, total_spent, outstanding)
        return previous


customer_repository = CustomerRepository()
