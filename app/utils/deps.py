from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from app.core.clock import Clock, system_clock
from app.core.constants import FINGERPRINT_COOKIE, FINGERPRINT_HEADER
from app.core.database import SessionLocal
from app.core.security import decode_access_token
from app.schemas.user import UserContext

# Guests call without a token, so a missing header is not an error
http_bearer = HTTPBearer(auto_error=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_clock() -> Clock:
    return system_clock

def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None

def get_current_user_with_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> UserContext:
    user_id = None
    if credentials is not None:
        try:
            payload = decode_access_token(credentials.credentials)
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            )
        user_id = payload.get("user_id")
        if not isinstance(user_id, int):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload",
            )

    fingerprint = request.headers.get(FINGERPRINT_HEADER) or request.cookies.get(FINGERPRINT_COOKIE)
    return UserContext(user_id=user_id, fingerprint=fingerprint or None, client_ip=_client_ip(request))

def get_authenticated_user_context(
    context: UserContext = Depends(get_current_user_with_context)
) -> UserContext:
    if not context.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return context
