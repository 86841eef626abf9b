from typing import Any, List, Optional, Sequence
from sqlalchemy.orm import Session
from sqlalchemy import or_

from ..models.product import Product
from .base import CRUDBase, commit_or_raise


class ProductRepository(CRUDBase[Product, Any, Any]):
    def __init__(self):
        super().__init__(Product)

    def search(self, db: Session, *, search_term: Optional[str] = None,
               suppliers: Optional[Sequence[str]] = None) -> List[Product]:
        """Catalogue filtered by supplier and a name/category/SKU search"""
        query = db.query(self.model)

        if suppliers is not None:
            query = query.filter(self.model.supplier.in_(list(suppliers)))

        if search_term and search_term.strip():
            pattern = f"%{search_term.strip()}%"
            query = query.filter(or_(
                self.model.name.ilike(pattern),
                self.model.category.ilike(pattern),
                self.model.sku.ilike(pattern)
            ))

        return query.order_by(self.model.name).all()

    def adjust_stock(self, db: Session, product_id: str, delta: int) -> Product:
        """Add ``delta`` (negative to deduct) to warehouse stock."""
        product = self.get_or_404(db, product_id)
        product.stock = (product.stock or 0) + delta
        db.add(product)
        commit_or_raise(db, f"adjust stock for product {product_id}")
        db.refresh(product)
        return product


product_repository = ProductRepository()
