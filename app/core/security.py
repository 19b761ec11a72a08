from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt

from app.core.config import settings

ALGORITHM = "HS256"


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a bearer token carrying ``user_id``.

    Issuance belongs to the identity provider; this exists for tooling and tests.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"user_id": user_id, "exp": int(expire.timestamp())}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
