# utils/tokenJWT.py
from jose import jwt, JWTError, ExpiredSignatureError
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import settings
from schemas.user import TokenData

# Authorization scheme; missing credentials are reported by get_current_user itself
bearer_scheme = HTTPBearer(auto_error=False)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

# Turn a bearer token into the identity it carries; the claims are trusted as-is
def decode_access_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized("Invalid token")

    user_id = payload.get("id") or payload.get("sub")
    # Ensure the identity is present in the token payload
    if user_id is None:
        raise _unauthorized("Invalid token")
    return TokenData(id=user_id, username=payload.get("username", ""), role=payload.get("role", "customer"))

# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenData:
    if credentials is None:
        raise _unauthorized("Authentication token required")
    return decode_access_token(credentials.credentials)

# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: TokenData = Depends(get_current_user)):
        if allowed_roles and current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Admin privileges required." if allowed_roles == ("admin",) else "Forbidden"
            )
        return current_user
    return _checker

admin_required = role_required("admin")
