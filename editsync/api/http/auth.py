from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from editsync.core.db import get_db
from editsync.domains.identity.schemas import (
    AuthResponse, MessageResponse, PasswordReset, PasswordResetRequest,
    UserCreate, UserLogin, UserSummary
)
from editsync.domains.identity.services import IdentityService
from editsync.infrastructure.mail import Notifier, get_notifier

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Регистрация нового пользователя"""
    identity_service = IdentityService(db, notifier)
    user, token = await identity_service.register_user(user_data)
    return AuthResponse(token=token, user=UserSummary.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Вход пользователя"""
    identity_service = IdentityService(db)
    user, token = await identity_service.login_user(login_data)
    return AuthResponse(token=token, user=UserSummary.model_validate(user))


@router.post("/request-reset", response_model=MessageResponse)
async def request_reset(
    reset_request: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Запрос письма для сброса пароля"""
    identity_service = IdentityService(db, notifier)
    await identity_service.request_password_reset(reset_request.email)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    reset_data: PasswordReset,
    db: AsyncSession = Depends(get_db)
):
    identity_service = IdentityService(db)
    await identity_service.reset_password(reset_data.token, reset_data.password)
    return MessageResponse(message="Password has been reset")
