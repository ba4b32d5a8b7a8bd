# auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models import UserDB, Token, UserLogin
from constants.roles import ADMIN

logger = logging.getLogger(__name__)

# ======================================================
# JWT CONFIG
# ======================================================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password.strip())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password.strip(), hashed_password)


# ======================================================
# JWT CREATION / DECODING
# ======================================================

def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Sign a session token; claims are sub, user_id and role."""
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    # override tokens share the signing key but never identify a session
    if payload.get("sub") is None or payload.get("user_id") is None:
        return None
    return payload


# ======================================================
# LOGIN
# ======================================================

async def authenticate_user(username: str, password: str, db: AsyncSession) -> Optional[UserDB]:
    result = await db.execute(select(UserDB).where(UserDB.username == username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def login_for_access_token(form_data: UserLogin, db: AsyncSession) -> Token:
    user = await authenticate_user(form_data.username, form_data.password, db)

    if not user or not user.is_active:
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    user.last_login = datetime.now()
    await db.commit()

    logger.info(f"User {user.username} logged in ({user.role_name})")
    return Token(access_token=create_access_token({
        "sub": user.username,
        "user_id": user.id,
        "role": user.role_name,
    }))


# ======================================================
# CURRENT USER (DEPENDENCY)
# ======================================================

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> UserDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    result = await db.execute(select(UserDB).where(UserDB.id == payload["user_id"]))
    user = result.scalar_one_or_none()

    # deactivated accounts lose access even with a live token
    if user is None or not user.is_active:
        raise credentials_exception

    return user


# ======================================================
# ROLE CHECKS
# ======================================================

async def admin_required(current_user: UserDB = Depends(get_current_user)) -> UserDB:
    if current_user.role_name != ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def require_roles(*allowed_roles: str):
    """Dependency factory: pass only users whose role is one of `allowed_roles`."""
    async def role_checker(current_user: UserDB = Depends(get_current_user)) -> UserDB:
        if current_user.role_name not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {current_user.role_name} is not allowed to perform this action"
            )
        return current_user

    return role_checker
