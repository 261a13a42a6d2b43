"""JWT session tokens for the journal API."""

from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from zeninvest.config import settings
from zeninvest.models.user import User
from zeninvest.plan_store import PersistenceError

security = HTTPBearer()

ALGORITHM = "HS256"


class LoginRequest(BaseModel):
    display_name: str


class SessionResponse(BaseModel):
    user: User | None = None
    access_token: str | None = None
    token_type: str = "bearer"


def create_token(user_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expiry_hours)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def verify_token(token: str) -> str | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
        return payload.get("sub")
    except JWTError:
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    from zeninvest.api.main import app_state

    user_id = verify_token(credentials.credentials)
    try:
        user = await app_state["sessions"].get_user(user_id) if user_id else None
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user
