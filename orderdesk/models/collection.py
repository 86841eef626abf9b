"""
Pending collection records raised when an order carries cheque or credit balance.
"""
import enum
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, SerializerMixin


class CollectionType(enum.Enum):
    CHEQUE = "cheque"
    CREDIT = "credit"


class Collection(Base, SerializerMixin):
    __tablename__ = "collections"
    __table_args__ = (
        UniqueConstraint("order_id", "collection_type", name="uq_collection_order_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    collection_type = Column(Enum(CollectionType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    status = Column(String(20), nullable=False, default="pending")
    collected_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="collections")
