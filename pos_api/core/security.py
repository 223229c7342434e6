from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from pos_api.core.config import settings

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


def create_device_token(institution_id: int, branch_id: Optional[int] = None, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = {
        "sub": str(institution_id),
        "branch_id": branch_id,
        "kind": "device",
        "iat": int(datetime.now(tz=timezone.utc).timestamp()),
    }
    expire = datetime.now(tz=timezone.utc) + (expires_delta or timedelta(minutes=settings.DEVICE_TOKEN_EXPIRES_MIN))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from e


def get_device_binding(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    """resolve the bound institution/branch from a device bearer token."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing device token")
    payload = decode_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub or payload.get("kind") != "device":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return {"institution_id": int(sub), "branch_id": payload.get("branch_id")}
