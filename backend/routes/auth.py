# backend/routes/auth.py
import hmac
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from storage import JsonStore, get_store
from schemas.user import UserLogin, LoginResponse, MeResponse, TokenData
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


# Authenticate user and issue JWT token
@router.post("/login", response_model=LoginResponse)
def login(payload: UserLogin, store: JsonStore = Depends(get_store)):
    with store.transaction() as tx:
        users = tx.read("users")

    # Passwords are stored in plaintext; compare in constant time at least
    db_user = next(
        (u for u in users
         if u.username == payload.username and hmac.compare_digest(u.password.encode(), payload.password.encode())),
        None,
    )
    if db_user is None:
        logger.warning(f"Failed login for {payload.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    identity = TokenData(id=db_user.id, username=db_user.username, role=db_user.role)
    access_token = create_access_token(data={"sub": db_user.id, **identity.model_dump()})
    logger.info(f"User {db_user.username} logged in")

    return LoginResponse(token=access_token, user=identity)


# Retrieve current authenticated user details
@router.get("/me", response_model=MeResponse)
def me(current_user: TokenData = Depends(get_current_user)):
    return MeResponse(user=current_user)
