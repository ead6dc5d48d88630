from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from editsync.core.auth import get_current_user
from editsync.core.db import get_db
from editsync.domains.documents.schemas import (
    GrantResolution, ShareGrantCreate, ShareGrantResponse, ShareGrantUpdate
)
from editsync.domains.documents.services import ShareGrantService
from editsync.domains.identity.entities import User

router = APIRouter(prefix="/documents/{document_uuid}/grant", tags=["sharing"])


@router.post("", response_model=ShareGrantResponse, status_code=status.HTTP_201_CREATED)
async def create_grant(
    document_uuid: uuid.UUID,
    grant_data: ShareGrantCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Создание настроек доступа по ссылке"""
    grant_service = ShareGrantService(db)
    grant = await grant_service.create_grant(current_user, document_uuid, grant_data)
    return ShareGrantResponse.model_validate(grant)


@router.get("", response_model=ShareGrantResponse)
async def get_grant(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    grant_service = ShareGrantService(db)
    grant = await grant_service.get_grant(current_user, document_uuid)
    return ShareGrantResponse.model_validate(grant)


@router.patch("", response_model=ShareGrantResponse)
async def update_grant(
    document_uuid: uuid.UUID,
    grant_data: ShareGrantUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Замена списка пользователей или срока действия"""
    grant_service = ShareGrantService(db)
    grant = await grant_service.update_grant(current_user, document_uuid, grant_data)
    return ShareGrantResponse.model_validate(grant)


@router.get("/resolve", response_model=GrantResolution)
async def resolve_grant(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Разрешение текущего пользователя по ссылке"""
    grant_service = ShareGrantService(db)
    permission = await grant_service.resolve_permission(current_user, document_uuid)
    return GrantResolution(document_id=document_uuid, permission=permission)
