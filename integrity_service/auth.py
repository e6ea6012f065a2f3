"""Admin authentication with signed bearer tokens."""
import hmac
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import config
from schemas import AdminProfile

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


def authenticate_admin(username: str, password: str, app_config=None) -> bool:
    """Check credentials against the configured admin account."""
    app_config = app_config or config
    # compare_digest needs both sides as bytes for non-ASCII input
    return (
        hmac.compare_digest(username.encode(), app_config.ADMIN_USERNAME.encode())
        and hmac.compare_digest(password.encode(), app_config.ADMIN_PASSWORD.encode())
    )


def admin_profile(app_config=None) -> AdminProfile:
    app_config = app_config or config
    return AdminProfile(
        username=app_config.ADMIN_USERNAME,
        role=ADMIN_ROLE,
        organization=app_config.ADMIN_ORGANIZATION
    )


def create_admin_token(app_config=None, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for the admin account.

    Args:
        app_config: Config instance (process-wide config by default)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    app_config = app_config or config
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=app_config.ADMIN_TOKEN_EXPIRE_MINUTES))

    claims = {
        "sub": app_config.ADMIN_USERNAME,
        "role": ADMIN_ROLE,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, app_config.SECRET_KEY, algorithm=ALGORITHM)


def decode_admin_token(token: str, app_config=None) -> dict:
    """Verify and decode an admin token.

    Raises:
        JWTError: If the token is invalid, expired or not an admin access token
    """
    app_config = app_config or config
    payload = jwt.decode(token, app_config.SECRET_KEY, algorithms=[ALGORITHM])
    if payload.get("type") != "access" or payload.get("role") != ADMIN_ROLE:
        raise JWTError("Not an admin access token")
    return payload


async def verify_admin_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """FastAPI dependency guarding admin endpoints."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_admin_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
