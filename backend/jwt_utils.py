from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # pyjwt

import config

ALGORITHM = "HS256"


def create_user_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=ALGORITHM)


def decode_user_id(token: str) -> int:
    """ID uživatele z tokenu; neplatný nebo expirovaný token -> jwt.InvalidTokenError."""
    payload = jwt.decode(token, config.JWT_SECRET, algorithms=[ALGORITHM], options={"require": ["exp"]})
    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise jwt.InvalidTokenError("user_id claim missing")
    return user_id
