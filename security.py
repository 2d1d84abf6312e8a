"""
Bearer credential helpers
Signed JWTs carrying the user id (`sub`) and role
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from config import settings
from models import ActorRole


class InvalidTokenError(Exception):
    """Credential could not be verified"""


def create_access_token(
    user_id: int,
    role: ActorRole,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Issue a signed token for an actor (tooling and tests)"""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": str(user_id),
        "role": ActorRole(role).value,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> tuple[int, ActorRole]:
    """
    Verify a token and return (user_id, role)

    Raises:
        InvalidTokenError: signature, expiry or claims are invalid
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role is None:
        raise InvalidTokenError("Token is missing subject or role")

    try:
        return int(subject), ActorRole(role)
    except ValueError as e:
        raise InvalidTokenError("Token carries an unknown subject or role") from e
