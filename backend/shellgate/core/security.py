"""
Caller identity for WebSocket connections

Tokens are issued by the login layer; here they are only verified.
"""
from dataclasses import dataclass
from typing import Optional
from jose import JWTError, jwt
from loguru import logger


@dataclass(frozen=True)
class CallerContext:
    """Proven identity of the user behind a connection"""
    user_id: str
    email: Optional[str] = None


def verify_access_token(token: str, secret_key: str, algorithm: str) -> Optional[CallerContext]:
    """Decode a JWT access token, returning None if it is invalid or expired"""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    return CallerContext(user_id=str(user_id), email=payload.get("email"))
