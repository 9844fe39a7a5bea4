"""Authentication routes."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session as DbSession

from api.config import ACCESS_TOKEN_EXPIRE_MINUTES
from api.database import get_db
from api.dependencies.auth import get_current_user, security
from api.models.auth import (
    MessageResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from api.models.db.user import User
from api.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(db: DbSession, user_id: int) -> TokenResponse:
    return TokenResponse(
        access_token=auth_service.issue_token(db, user_id),
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: UserRegister,
    db: Annotated[DbSession, Depends(get_db)],
) -> User:
    """Register a new account; emails in ADMIN_EMAILS become administrators."""
    taken = auth_service.find_conflict(db, data.username, data.email)
    if taken:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{taken} already registered",
        )
    return auth_service.create_user(
        db, data.username, data.email, data.password, display_name=data.display_name
    )


@router.post("/login", response_model=TokenResponse)
def login(
    data: UserLogin,
    db: Annotated[DbSession, Depends(get_db)],
) -> TokenResponse:
    """Login with username or email."""
    user = auth_service.authenticate_user(db, data.username, data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is inactive",
        )
    return _token_response(db, user.id)


@router.post("/logout", response_model=MessageResponse)
def logout(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """End the login session behind the current token."""
    if credentials is None:
        return MessageResponse(message="Already logged out")

    claims = auth_service.verify_token(credentials.credentials)
    if claims and claims.get("jti"):
        auth_service.invalidate_session(db, claims["jti"])
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    return current_user


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TokenResponse:
    """Swap a valid token for a fresh one; the old session is closed."""
    user = auth_service.resolve_token(db, credentials.credentials) if credentials else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = auth_service.verify_token(credentials.credentials) or {}
    if claims.get("jti"):
        auth_service.invalidate_session(db, claims["jti"])
    return _token_response(db, user.id)
