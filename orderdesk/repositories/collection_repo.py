from decimal import Decimal
from typing import Any, Optional
from sqlalchemy.orm import Session

from ..models.collection import Collection, CollectionType
from .base import CRUDBase, commit_or_raise


class CollectionRepository(CRUDBase[Collection, Any, Any]):
    def __init__(self):
        super().__init__(Collection)

    def get_by_key(self, db: Session, order_id: str, collection_type: CollectionType) -> Optional[Collection]:
        return (
            db.query(self.model)
            .filter(self.model.order_id == order_id, self.model.collection_type == collection_type)
            .first()
        )

    def upsert(self, db: Session, *, order_id: str, collection_type: CollectionType,
               customer_id: str, amount: Decimal, collected_by: Optional[str]) -> Collection:
        """Insert or update the pending record keyed by (order_id, collection_type)."""
        record = self.get_by_key(db, order_id, collection_type)
        if record is None:
            record = self.model(
                order_id=order_id,
                collection_type=collection_type,
                customer_id=customer_id
            )
        record.amount = amount
        record.status = "pending"
        record.collected_by = collected_by
        db.add(record)
        commit_or_raise(db, f"upsert {collection_type.value} collection for order {order_id}")
        db.refresh(record)
        return record


collection_repository = CollectionRepository()
