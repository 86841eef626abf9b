from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from ..models.allocation import DriverAllocation
from .base import CRUDBase, commit_or_raise


class AllocationRepository(CRUDBase[DriverAllocation, Any, Any]):
    def __init__(self):
        super().__init__(DriverAllocation)

    def get_for_driver(self, db: Session, driver_id: str, day: date) -> Optional[DriverAllocation]:
        return (
            db.query(self.model)
            .filter(self.model.driver_id == driver_id, self.model.date == day)
            .first()
        )

    def record_delivery(self, db: Session, allocation: DriverAllocation,
                        allocated_items: List[Dict[str, Any]], sales_total: int) -> DriverAllocation:
        """Store the remaining allocation and running sales total."""
        allocation.allocated_items = list(allocated_items)
        allocation.sales_total = sales_total
        db.add(allocation)
        commit_or_raise(db, f"update driver allocation {allocation.id}")
        db.refresh(allocation)
        return allocation


allocation_repository = AllocationRepository()
