"""
Admin auth endpoints: register, login, refresh, me.

Only the admin dashboard authenticates. Customers never log in: lead
submission, chat and the visualizer are public.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from .. import models
from ..auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    hash_password,
    hash_token,
    security,
    store_refresh_token,
    user_from_access_token,
    verify_password,
)
from ..database import get_db

logger = logging.getLogger("renoquote.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


# --- Request schemas ---

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


def _user_to_response(user: models.User) -> dict:
    """Convert User model to response dict: never expose password_hash."""
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _issue_tokens(user: models.User, db: Session) -> dict:
    """Create access + refresh tokens for a user. Stores refresh token hash in DB."""
    access_token = create_access_token(user.id)
    refresh_token = create_refresh_token(user.id)
    store_refresh_token(db, user.id, refresh_token)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user_id": user.id,
    }


# --- Endpoints ---

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
):
    """
    Create an admin account.

    Open only while no admin exists (first-run bootstrap). After that an
    existing admin must be signed in to add another.
    """
    if db.query(models.User).first() is not None:
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Only a signed-in admin can create another admin account",
            )
        creator = user_from_access_token(credentials.credentials, db)
        logger.info("Admin %s is adding an account", creator.id)

    email = request.email.lower()
    if db.query(models.User).filter(models.User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Account with this email already exists",
        )

    user = models.User(
        email=email,
        password_hash=hash_password(request.password),
        full_name=request.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin account created: user_id=%s", user.id)

    tokens = _issue_tokens(user, db)
    return {**tokens, "user": _user_to_response(user)}


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with email + password. Returns access + refresh tokens."""
    user = db.query(models.User).filter(models.User.email == request.email.lower()).first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled",
        )

    tokens = _issue_tokens(user, db)
    return {**tokens, "user": _user_to_response(user)}


@router.post("/refresh")
def refresh(request: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a valid refresh token for a new access token."""
    payload = decode_token(request.refresh_token)

    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type: expected refresh token",
        )

    db_token = db.query(models.AuthToken).filter(
        models.AuthToken.token_hash == hash_token(request.refresh_token),
        models.AuthToken.token_type == "refresh",
    ).first()

    if not db_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found: it may have been revoked",
        )
    if db_token.expires_at < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired",
        )

    user = db.query(models.User).filter(models.User.id == int(payload["sub"])).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    # Refresh token is reused; only the access token rotates
    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
        "user_id": user.id,
    }


@router.get("/me")
def me(current_user: models.User = Depends(get_current_user)):
    """Return the current admin's profile."""
    return _user_to_response(current_user)
