"""
Role permissions for the Orders page.

Each permission is a pure function of the role so it can be checked
without a request or a database.
"""
from typing import Any, Callable, Dict, List, Optional

from ..models.user import UserRole

Permission = Callable[[UserRole], bool]


def can_edit(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.MANAGER, UserRole.SALES, UserRole.DRIVER)


def can_delete(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.MANAGER)


def can_print_bill(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.MANAGER, UserRole.DRIVER)


def can_mark_delivered(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.MANAGER, UserRole.DRIVER)


def is_manager_view(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.MANAGER)


def can_view_outstanding(role: UserRole) -> bool:
    return role != UserRole.DRIVER


PERMISSIONS: Dict[str, Permission] = {
    "edit": can_edit,
    "delete": can_delete,
    "print_bill": can_print_bill,
    "mark_delivered": can_mark_delivered,
}


def accessible_suppliers(user: Any) -> Optional[List[str]]:
    """Supplier names a sales rep is limited to, ``None`` for unrestricted."""
    if user.role == UserRole.SALES and user.assigned_supplier_names:
        return list(user.assigned_supplier_names)
    return None


def permissions_for(role: UserRole) -> Dict[str, bool]:
    flags = {name: check(role) for name, check in PERMISSIONS.items()}
    flags["manager_view"] = is_manager_view(role)
    flags["view_outstanding"] = can_view_outstanding(role)
    return flags
