from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Callable, Optional

from ..config.database import get_db
from ..config.logging import get_logger
from ..models.user import User
from ..core.security import get_current_user_from_token
from ..core.exceptions import UnauthorizedError, ForbiddenError
from ..core.permissions import Permission

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_current_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    """Get current authenticated user."""
    if credentials is None:
        raise UnauthorizedError()

    user_id = get_current_user_from_token(credentials.credentials)
    if not user_id:
        raise UnauthorizedError("Invalid authentication credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise UnauthorizedError("User account is disabled")

    return user


def require_permission(check: Permission, action: str) -> Callable[..., User]:
    """Dependency factory rejecting users whose role fails ``check``."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not check(current_user.role):
            logger.warning(
                f"Permission denied: {current_user.id} ({current_user.role.value}) tried to {action}"
            )
            raise ForbiddenError(f"Your role is not allowed to {action}")
        return current_user

    return dependency
