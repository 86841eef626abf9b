"""
Customer model with the default discount schedule and derived balances.
"""
from decimal import Decimal
from typing import Dict
from sqlalchemy import Column, String, Numeric, JSON

from .base import Base, TimestampMixin, SerializerMixin


class Customer(Base, TimestampMixin, SerializerMixin):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    location = Column(String(255), nullable=True)

    # {product_id: discount percent} applied to new order lines
    discounts = Column(JSON, nullable=False, default=dict)

    # Derived from delivered orders at finalization
    total_spent = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    outstanding_balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    def default_discount(self, product_id: str) -> float:
        schedule: Dict[str, float] = self.discounts or {}
        return float(schedule.get(product_id, 0) or 0)
