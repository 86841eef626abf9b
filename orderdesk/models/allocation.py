"""
Driver allocation model: stock loaded onto a driver's vehicle for one day.
"""
from sqlalchemy import Column, Integer, String, Date, JSON, ForeignKey, UniqueConstraint

from .base import Base, TimestampMixin, SerializerMixin


class DriverAllocation(Base, TimestampMixin, SerializerMixin):
    __tablename__ = "driver_allocations"
    __table_args__ = (
        UniqueConstraint("driver_id", "date", name="uq_driver_allocation_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # [{"product_id": ..., "quantity": ...}]
    allocated_items = Column(JSON, nullable=False, default=list)

    # Delivered quantity count for the day
    sales_total = Column(Integer, nullable=False, default=0)
