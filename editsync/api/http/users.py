from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from editsync.core.auth import get_current_user
from editsync.core.db import get_db
from editsync.domains.identity.entities import User
from editsync.domains.identity.schemas import (
    MessageResponse, UserResponse, UserSummary, UserUpdate
)
from editsync.domains.identity.services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Профиль текущего пользователя"""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Обновление имени и email"""
    identity_service = IdentityService(db)
    user = await identity_service.update_user_profile(current_user, update_data)
    return UserResponse.model_validate(user)


@router.delete("/me", response_model=MessageResponse)
async def delete_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление аккаунта"""
    identity_service = IdentityService(db)
    await identity_service.delete_user(current_user)
    return MessageResponse(message="User deleted successfully")


@router.get("/search", response_model=List[UserSummary])
async def search_users(
    query: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Поиск пользователей по имени или email"""
    identity_service = IdentityService(db)
    users = await identity_service.search_users(current_user, query)
    return [UserSummary.model_validate(user) for user in users]


@router.get("/{user_uuid}", response_model=UserResponse)
async def get_user(
    user_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Получение информации о пользователе"""
    identity_service = IdentityService(db)
    user = await identity_service.get_user_by_uuid(user_uuid)
    return UserResponse.model_validate(user)
