from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from editsync.core.auth import get_current_user
from editsync.core.db import get_db
from editsync.domains.documents.schemas import (
    CollaboratorsUpdate, DocumentCreate, DocumentResponse, DocumentUpdate,
    InviteRequest, InviteResponse, ShareEmailRequest, ShareEmailResponse,
    SharedUserResponse
)
from editsync.domains.documents.services import DocumentService
from editsync.domains.identity.entities import User
from editsync.infrastructure.mail import Notifier, get_notifier

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/import", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def import_document(
    file: Optional[UploadFile] = File(None),
    file_type: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Импорт документа из md или txt файла"""
    document_service = DocumentService(db)

    filename, raw = None, b""
    if file is not None:
        filename = file.filename
        raw = await file.read()

    document = await document_service.import_document(current_user, filename, raw, file_type)
    return DocumentResponse.model_validate(document)


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Документы пользователя, сначала недавно измененные"""
    document_service = DocumentService(db)
    documents = await document_service.list_documents(current_user)
    return [DocumentResponse.model_validate(document) for document in documents]


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Создание нового документа"""
    document_service = DocumentService(db)
    document = await document_service.create_document(current_user, document_data)
    return DocumentResponse.model_validate(document)


@router.get("/{document_uuid}", response_model=DocumentResponse)
async def get_document(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Получение документа по UUID"""
    document_service = DocumentService(db)
    document = await document_service.get_document(current_user, document_uuid)
    return DocumentResponse.model_validate(document)


@router.put("/{document_uuid}", response_model=DocumentResponse)
async def update_document(
    document_uuid: uuid.UUID,
    update_data: DocumentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Обновление документа"""
    document_service = DocumentService(db)
    document = await document_service.update_document(current_user, document_uuid, update_data)
    return DocumentResponse.model_validate(document)


@router.delete("/{document_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление документа"""
    document_service = DocumentService(db)
    await document_service.delete_document(current_user, document_uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_uuid}/duplicate", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_document(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Копия документа для текущего пользователя"""
    document_service = DocumentService(db)
    document = await document_service.duplicate_document(current_user, document_uuid)
    return DocumentResponse.model_validate(document)


@router.post("/{document_uuid}/share", response_model=DocumentResponse)
async def set_collaborators(
    document_uuid: uuid.UUID,
    collaborators: CollaboratorsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Замена списка соавторов"""
    document_service = DocumentService(db)
    document = await document_service.set_collaborators(
        current_user, document_uuid, collaborators.collaborator_ids
    )
    return DocumentResponse.model_validate(document)


@router.patch("/{document_uuid}/public", response_model=DocumentResponse)
async def toggle_public(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    document_service = DocumentService(db)
    document = await document_service.toggle_public(current_user, document_uuid)
    return DocumentResponse.model_validate(document)


@router.get("/{document_uuid}/users", response_model=List[SharedUserResponse])
async def list_shared_users(
    document_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Владелец и соавторы документа"""
    document_service = DocumentService(db)
    return await document_service.list_shared_users(current_user, document_uuid)


@router.post("/{document_uuid}/invite", response_model=InviteResponse)
async def invite_user(
    document_uuid: uuid.UUID,
    invite: InviteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Приглашение пользователя по email"""
    document_service = DocumentService(db)
    return await document_service.invite_user(
        current_user, document_uuid, invite.email, invite.permission
    )


@router.post("/{document_uuid}/share-email", response_model=ShareEmailResponse)
async def share_by_email(
    document_uuid: uuid.UUID,
    share_request: ShareEmailRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Письмо со ссылкой на документ"""
    document_service = DocumentService(db, notifier)
    await document_service.share_by_email(
        current_user,
        document_uuid,
        share_request.email,
        share_request.permission,
        share_request.message
    )
    return ShareEmailResponse()


@router.delete("/{document_uuid}/users/{user_uuid}", response_model=DocumentResponse)
async def remove_collaborator(
    document_uuid: uuid.UUID,
    user_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление соавтора из документа"""
    document_service = DocumentService(db)
    document = await document_service.remove_collaborator(current_user, document_uuid, user_uuid)
    return DocumentResponse.model_validate(document)
