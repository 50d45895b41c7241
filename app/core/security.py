"""Bearer token handling.

Sessions are issued by the auth provider; this module only verifies the
signed token and turns its claims into a :class:`Principal`.
"""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.permissions import Principal, Role


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token (used by scripts and tests)."""
    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        if payload.get("type") != token_type:
            raise UnauthorizedError("Invalid token type")
        return payload
    except JWTError as e:
        raise UnauthorizedError(f"Token validation failed: {str(e)}")


def principal_from_token(token: str) -> Principal:
    """Decode a token into the principal it was issued for."""
    payload = verify_token(token, token_type="access")
    try:
        return Principal(id=uuid.UUID(payload["sub"]), role=Role(payload["role"]))
    except (KeyError, ValueError):
        raise UnauthorizedError("Invalid token payload")


def create_principal_token(principal_id: uuid.UUID, role: Role) -> str:
    """Create an access token carrying the principal claims."""
    return create_access_token({"sub": str(principal_id), "role": role.value})
