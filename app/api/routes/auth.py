"""Authentication routes: registration, login and profile."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UnauthorizedError, ValidationError
from app.core.security import create_access_token, hash_password, verify_password
from app.database import get_db
from app.dependencies import get_current_user
from app.models import Role, User
from app.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RegisterRequest,
    UserResponse,
)
from app.services.audit import record_audit
from app.services.users import find_user_by_contact

router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer account",
)
async def register(
    payload: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    if await find_user_by_contact(db, payload.email, payload.phone):
        raise ValidationError("User already exists")

    user = User(
        email=payload.email,
        phone=payload.phone,
        password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=Role.CUSTOMER,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered customer {user.id}")
    await record_audit(db, user.id, "USER_REGISTER", "User", user.id, request=request)

    return AuthResponse(
        message="Registration successful",
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse, summary="Log in with email or phone")
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await find_user_by_contact(db, payload.email, payload.phone)

    if user is None or not user.is_active or not verify_password(payload.password, user.password):
        raise UnauthorizedError("Invalid credentials")

    await record_audit(db, user.id, "USER_LOGIN", "User", user.id, request=request)

    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    changes = payload.model_dump(exclude_unset=True)

    for key in ("email", "phone"):
        value = changes.get(key)
        if value and value != getattr(user, key):
            other = await find_user_by_contact(db, **{key: value})
            if other is not None and other.id != user.id:
                raise ValidationError(f"{key.capitalize()} already in use")

    for key, value in changes.items():
        setattr(user, key, value)
    if not user.email and not user.phone:
        raise ValidationError("Email or phone is required")

    await db.commit()
    await db.refresh(user)
    await record_audit(
        db, user.id, "UPDATE_PROFILE", "User", user.id, details={"fields": list(changes)}, request=request
    )
    return UserResponse.model_validate(user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    if not verify_password(payload.current_password, user.password):
        raise UnauthorizedError("Current password is incorrect")

    user.password = hash_password(payload.new_password)
    await db.commit()
    await record_audit(db, user.id, "CHANGE_PASSWORD", "User", user.id, request=request)
    return MessageResponse(message="Password changed successfully")
