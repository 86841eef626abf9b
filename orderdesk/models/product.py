"""
Product catalogue model with warehouse stock.
"""
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Numeric, CheckConstraint

from .base import Base, TimestampMixin, SerializerMixin


class Product(Base, TimestampMixin, SerializerMixin):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    sku = Column(String(100), nullable=True, unique=True)
    supplier = Column(String(255), nullable=True, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
