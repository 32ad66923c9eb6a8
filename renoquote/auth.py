"""
Admin authentication: JWT tokens and password hashing.

Libraries: python-jose[cryptography] for JWT, passlib[bcrypt] for passwords.
The public funnel (lead submission, chat, visualizer) is unauthenticated;
everything under the admin dashboard depends on get_current_user.
"""

import hashlib
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from . import models

logger = logging.getLogger("renoquote.auth")

# --- Password hashing ---

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# --- JWT tokens ---

security = HTTPBearer(auto_error=False)


def _get_jwt_secret() -> str:
    """Get JWT secret, failing loudly if not configured."""
    secret = settings.JWT_SECRET
    if not secret:
        logger.error("JWT_SECRET is empty, refusing to issue or verify tokens")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT_SECRET not configured: set it in environment variables",
        )
    return secret


def create_access_token(user_id: int) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: int) -> str:
    """Long-lived refresh token. Raw token returned; only its hash is stored."""
    expire = datetime.utcnow() + timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)
    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "refresh",
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises HTTPException on failure."""
    try:
        return jwt.decode(token, _get_jwt_secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def store_refresh_token(db: Session, user_id: int, token: str) -> models.AuthToken:
    expire = datetime.utcnow() + timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)
    db_token = models.AuthToken(
        user_id=user_id,
        token_hash=hash_token(token),
        token_type="refresh",
        expires_at=expire,
    )
    db.add(db_token)
    db.commit()
    return db_token


def user_from_access_token(token: str, db: Session) -> models.User:
    """Resolve an active admin from a raw access token. Raises 401 otherwise."""
    payload = decode_token(token)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type: use an access token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(models.User).filter(models.User.id == int(user_id)).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# --- FastAPI dependencies ---

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> models.User:
    """Extracts and validates the Bearer JWT, returns the admin User."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_from_access_token(credentials.credentials, db)


def get_current_user_or_token_param(
    token: Optional[str] = None,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> models.User:
    """
    Bearer header OR ?token= query param.

    Direct download links (window.open on the PDF) can't set headers, so the
    access token may ride in the query string instead.
    """
    if credentials is not None:
        return user_from_access_token(credentials.credentials, db)
    if token:
        return user_from_access_token(token, db)
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required. Pass a Bearer token or ?token= parameter.",
    )
