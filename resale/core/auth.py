"""Bearer-token identity for buyer and seller calls.

Tokens are issued by the upstream identity platform; this service only checks
the signature and reads the subject (the user id).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from fastapi import Header
from jose import JWTError, jwt

from resale.config import settings
from resale.core.exceptions import UnauthorizedError


def create_user_token(user_id: str, email: str, expire_hours: int = 24) -> str:
    """Create a user JWT (type=user). Used by local tooling and tests."""
    expire = datetime.now(timezone.utc) + timedelta(hours=expire_hours)
    payload = {
        "sub": user_id,
        "email": email,
        "type": "user",
        "jti": str(uuid.uuid4()),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    """Extract user_id from Authorization: Bearer <token>."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError("Authorization header must be: Bearer <token>")
    try:
        payload = jwt.decode(parts[1], settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise UnauthorizedError(f"Invalid token: {exc}") from exc
    if payload.get("type") != "user":
        raise UnauthorizedError("Not a user token")
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Token missing subject")
    return user_id
