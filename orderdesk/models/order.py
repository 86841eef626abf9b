"""
Sales order model. Line collections are stored as JSON arrays of
{product_id, quantity, price, discount}.
"""
import enum
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Numeric, Date, Text, Enum, JSON, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, SerializerMixin


class OrderStatus(enum.Enum):
    """Order lifecycle status."""
    PENDING = "Pending"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Order(Base, TimestampMixin, SerializerMixin):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    assigned_user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    order_items = Column(JSON, nullable=False, default=list)
    backordered_items = Column(JSON, nullable=False, default=list)

    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    order_date = Column(Date, nullable=False, index=True)
    expected_delivery_date = Column(Date, nullable=True, index=True)

    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    cheque_balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    credit_balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    sold = Column(Integer, nullable=False, default=0)

    customer = relationship("Customer")
    assigned_user = relationship("User")
    collections = relationship(
        "Collection",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def is_delivered(self) -> bool:
        return self.status == OrderStatus.DELIVERED
