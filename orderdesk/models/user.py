"""
User model for the staff who work the Orders page.
"""
import enum
from sqlalchemy import Column, String, Boolean, Enum, JSON

from .base import Base, TimestampMixin, SerializerMixin


class UserRole(enum.Enum):
    """User roles enumeration."""
    ADMIN = "admin"
    MANAGER = "manager"
    SALES = "sales"
    DRIVER = "driver"


class User(Base, TimestampMixin, SerializerMixin):
    """Staff account. Login is handled elsewhere; this is the acting user record."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.SALES)

    # Supplier names a sales rep is restricted to; empty means unrestricted
    assigned_supplier_names = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, default=True, nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    def to_dict(self):
        data = super().to_dict()
        data["role"] = self.role.value if self.role else None
        return data
