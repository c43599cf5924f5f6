"""
Authentication API routes.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.auth import (
    USERNAME_PATTERN,
    LoginRequest,
    PasswordChangeRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UsernameAvailabilityResponse,
    UserResponse,
)
from core.security.password import password_hasher
from core.security.tokens import TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User, UserStatus
from services.site_routing import is_reserved_username

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _get_cookie_kwargs(settings_obj) -> dict:
    """Cookie flags: Secure + SameSite=None when deployed, Lax on localhost."""
    is_local = any(h in settings_obj.frontend_url for h in ("localhost", "127.0.0.1", "0.0.0.0"))
    cross_site = settings_obj.is_production or not is_local
    kwargs = dict(
        httponly=True,
        secure=cross_site,
        samesite="none" if cross_site else "lax",
        path="/",
    )
    if settings_obj.cookie_domain:
        kwargs["domain"] = settings_obj.cookie_domain
    return kwargs


def _set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> None:
    kwargs = _get_cookie_kwargs(settings)
    response.set_cookie(
        ACCESS_COOKIE, access_token, max_age=token_service.access_token_ttl, **kwargs
    )
    response.set_cookie(
        REFRESH_COOKIE, refresh_token, max_age=token_service.refresh_token_ttl, **kwargs
    )


def _clear_auth_cookies(response: JSONResponse) -> None:
    kwargs = _get_cookie_kwargs(settings)
    response.delete_cookie(ACCESS_COOKIE, **kwargs)
    response.delete_cookie(REFRESH_COOKIE, **kwargs)


def _token_response(user: User) -> JSONResponse:
    """Issue a token pair in the JSON body and as HttpOnly cookies."""
    access_token, refresh_token = token_service.create_token_pair(
        user_id=user.id,
        username=user.username,
    )
    response = JSONResponse(
        content=TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=token_service.access_token_ttl,
        ).model_dump()
    )
    _set_auth_cookies(response, access_token, refresh_token)
    return response


def _issued_before_password_change(issued_at: Optional[datetime], user: User) -> bool:
    if not issued_at or not user.password_changed_at:
        return False
    changed = user.password_changed_at
    if changed.tzinfo is None:
        changed = changed.replace(tzinfo=timezone.utc)
    return issued_at < changed


router = APIRouter(prefix="/auth", tags=["Authentication"])

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
    refresh_token_expire_days=settings.jwt_refresh_token_expire_days,
)


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Checks the Authorization header first (Bearer token), then falls back
    to the HttpOnly access_token cookie set at login.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip() or None

    if not token:
        token = request.cookies.get(ACCESS_COOKIE)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = token_service.verify_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    if _issued_before_password_change(payload.iat, user):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalidated due to password change",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = user.id
    return user


async def username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(
        select(func.count()).select_from(User).where(User.username == username.lower())
    )
    return result.scalar_one() > 0


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
async def register(
    request: Request,
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Register a new account. The username becomes the site address.
    """
    if is_reserved_username(register_data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This username is reserved",
        )

    email = register_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )

    if await username_taken(db, register_data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This username is already taken",
        )

    user = User(
        email=email,
        username=register_data.username,
        display_name=register_data.display_name,
        password_hash=password_hasher.hash(register_data.password),
        status=UserStatus.ACTIVE.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("Registered user %s", user.username, extra={"user_id": user.id})
    return user


@router.post("/login", response_model=TokenResponse)
@limiter.limit(get_rate_limit("login"))
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Authenticate user and return access tokens.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if user is None:
        # Equalize timing with the known-account path
        password_hasher.burn(login_data.password)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not password_hasher.verify(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.status == UserStatus.SUSPENDED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been suspended",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    if password_hasher.needs_rehash(user.password_hash):
        user.password_hash = password_hasher.hash(login_data.password)

    user.last_login = datetime.now(timezone.utc)
    user.login_count += 1
    await db.commit()

    logger.info("User logged in", extra={"user_id": user.id, "username": user.username})
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(get_rate_limit("login"))
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Exchange a refresh token for a new token pair.

    The refresh token is read from the HttpOnly cookie first, then from the
    request body.
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if not token and body is not None:
        token = body.refresh_token

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    payload = token_service.verify_refresh_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    if _issued_before_password_change(payload.iat, user):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalidated due to password change. Please log in again.",
        )

    return _token_response(user)


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(request: Request) -> JSONResponse:
    """
    Clear the auth cookies.

    Tokens are stateless, so API clients must discard theirs; a password
    change invalidates everything issued before it.
    """
    response = JSONResponse(content={"message": "Logged out successfully"})
    _clear_auth_cookies(response)
    return response


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    return current_user


@router.post("/change-password", status_code=status.HTTP_200_OK)
@limiter.limit(get_rate_limit("login"))
async def change_password(
    request: Request,
    body: PasswordChangeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Change the signed-in user's password.

    Every token issued before the change stops working.
    """
    if not password_hasher.verify(body.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.password_hash = password_hasher.hash(body.new_password)
    current_user.password_changed_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Password changed", extra={"user_id": current_user.id})
    return {"message": "Password has been changed successfully"}


@router.get("/username-available", response_model=UsernameAvailabilityResponse)
async def username_available(
    username: str = Query(..., min_length=1, max_length=50),
    db: AsyncSession = Depends(get_db),
) -> UsernameAvailabilityResponse:
    """
    Check whether a username can be registered.
    """
    valid = bool(USERNAME_PATTERN.match(username)) and not is_reserved_username(username)
    available = valid and not await username_taken(db, username)
    return UsernameAvailabilityResponse(
        username=username.lower(),
        valid=valid,
        available=available,
    )
