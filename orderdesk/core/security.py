from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import jwt

from ..config.settings import get_settings
from ..config.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ALGORITHM = settings.JWT_ALGORITHM
SECRET_KEY = settings.JWT_SECRET_KEY
ACCESS_TOKEN_EXPIRE_SECONDS = settings.JWT_ACCESS_TOKEN_EXPIRES


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token.

    Sessions are issued by the login service; this is kept for service
    accounts and tests that need a token for a known user id.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(seconds=ACCESS_TOKEN_EXPIRE_SECONDS))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode JWT token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("SECURITY: TOKEN_EXPIRED - JWT token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"SECURITY: INVALID_TOKEN - Invalid JWT token: {str(e)}")
        return None


def get_current_user_from_token(token: str) -> Optional[str]:
    """Extract user ID from token."""
    payload = verify_token(token)
    if payload and payload.get("type") == "access":
        return payload.get("sub")
    return None
