import logging
import os
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from editsync.core.clock import utcnow
from editsync.core.errors import (
    Conflict, DeliveryFailure, Forbidden, NotFound, Unauthenticated,
    UnsupportedKind, ValidationError
)
from editsync.db.repositories.document_repository import DocumentRepository, ShareGrantRepository
from editsync.db.repositories.user_repository import UserRepository
from editsync.domains.documents import access
from editsync.domains.documents.entities import (
    Document, FileKind, IMPORTABLE_KINDS, Permission, ShareGrant, SharedUser
)
from editsync.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, InviteResponse, SharedUserResponse,
    ShareGrantCreate, ShareGrantUpdate, SharedUserEntry
)
from editsync.domains.identity.entities import User
from editsync.infrastructure.mail import templates
from editsync.infrastructure.mail.notifier import Notifier

logger = logging.getLogger(__name__)


def _require_identity(user: Optional[User]) -> User:
    if user is None:
        raise Unauthenticated("User not authenticated")
    return user


class DocumentService:
    """Сервис для работы с документами и их соавторами.

    Ответ "не найден" и "нет доступа" на чтение и изменение документа
    совпадают (404), причина сохраняется в NotFound.reason.
    Управление соавторами для тех, кто видит документ, но не владеет им,
    возвращает 403.
    """

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.notifier = notifier
        self.document_repository = DocumentRepository(session)
        self.user_repository = UserRepository(session)

    async def create_document(self, user: Optional[User], document_data: DocumentCreate) -> Document:
        """Создание нового документа"""
        user = _require_identity(user)
        document = Document.create_document(
            title=document_data.title,
            owner_id=user.uuid,
            content=document_data.content,
            file_type=document_data.file_type
        )
        return await self.document_repository.create(document)

    async def import_document(
        self,
        user: Optional[User],
        filename: Optional[str],
        raw: bytes,
        declared_kind: Optional[str]
    ) -> Document:
        """Создание документа из загруженного md/txt файла"""
        user = _require_identity(user)
        if not filename:
            raise ValidationError("No file uploaded")

        kind = FileKind.parse(declared_kind)
        if kind not in IMPORTABLE_KINDS:
            raise UnsupportedKind()

        title = os.path.splitext(os.path.basename(filename))[0].strip() or filename

        document = Document.create_document(
            title=title,
            owner_id=user.uuid,
            content=raw.decode("utf-8", errors="replace"),
            file_type=kind
        )
        return await self.document_repository.create(document)

    async def list_documents(self, user: Optional[User]) -> List[Document]:
        """Документы пользователя и документы, где он соавтор"""
        user = _require_identity(user)
        return await self.document_repository.get_for_user(user.uuid)

    async def get_document(self, user: Optional[User], document_uuid: uuid.UUID) -> Document:
        """Получение документа с проверкой права на чтение"""
        user = _require_identity(user)
        document = await self.document_repository.get_by_uuid(document_uuid)

        if not document:
            raise NotFound()
        if not access.can_view(document, user.uuid):
            raise NotFound(reason="forbidden")
        return document

    async def update_document(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        update_data: DocumentUpdate
    ) -> Document:
        """Обновление заголовка, содержимого и типа файла"""
        document = await self.get_document(user, document_uuid)
        if not access.can_edit(document, user.uuid):
            raise NotFound(reason="forbidden")

        updated = document.with_changes(
            title=update_data.title,
            content=update_data.content,
            file_type=FileKind.parse(update_data.file_type)
        )
        return await self.document_repository.save(updated)

    async def delete_document(self, user: Optional[User], document_uuid: uuid.UUID) -> None:
        """Удаление документа, только владелец"""
        document = await self.get_document(user, document_uuid)
        if not access.can_delete(document, user.uuid):
            raise NotFound(reason="forbidden")

        await self.document_repository.delete(document.uuid)
        logger.info(f"Document {document.uuid} deleted by {user.uuid}")

    async def duplicate_document(self, user: Optional[User], document_uuid: uuid.UUID) -> Document:
        """Копия документа, владельцем становится текущий пользователь"""
        document = await self.get_document(user, document_uuid)
        return await self.document_repository.create(document.duplicate_for(user.uuid))

    async def set_collaborators(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        collaborator_ids: Iterable[uuid.UUID]
    ) -> Document:
        """Полная замена списка соавторов"""
        document = await self.get_managed_document(user, document_uuid)

        requested = set(collaborator_ids)
        known = {u.uuid for u in await self.user_repository.get_many(requested)}
        unknown = requested - known
        if unknown:
            raise ValidationError(f"Unknown user id: {sorted(map(str, unknown))[0]}")

        updated = document.with_collaborators(())
        for collaborator_id in requested:
            updated = access.add_collaborator(updated, collaborator_id)
        return await self.document_repository.save(updated)

    async def toggle_public(self, user: Optional[User], document_uuid: uuid.UUID) -> Document:
        document = await self.get_managed_document(user, document_uuid)
        return await self.document_repository.save(document.with_public(not document.is_public))

    async def list_shared_users(self, user: Optional[User], document_uuid: uuid.UUID) -> List[SharedUserResponse]:
        """Владелец и соавторы документа с ролями"""
        document = await self.get_document(user, document_uuid)

        users = await self.user_repository.get_many({document.owner_id} | document.collaborators)
        # владелец первым, дальше по email
        users.sort(key=lambda u: (u.uuid != document.owner_id, u.email))

        return [
            SharedUserResponse(
                id=shared.uuid,
                email=shared.email,
                name=shared.name,
                permission="owner" if access.is_owner(document, shared.uuid) else "collaborator",
                avatar=shared.display_initial
            )
            for shared in users
        ]

    async def invite_user(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        email: str,
        permission: Permission
    ) -> InviteResponse:
        """Приглашение по email: пользователь находится или создается и становится соавтором"""
        document = await self.get_managed_document(user, document_uuid)

        invitee = await self.user_repository.get_by_email(email)
        if invitee is None:
            # при сбое следующей записи созданный пользователь остается
            invitee = await self.user_repository.create(User.create_placeholder(email))
            logger.info(f"Created placeholder user {invitee.uuid} for invite")

        updated = access.add_collaborator(document, invitee.uuid)
        if updated is not document:
            await self.document_repository.save(updated)

        return InviteResponse(
            id=invitee.uuid,
            email=invitee.email,
            permission=permission,
            avatar=invitee.display_initial
        )

    async def remove_collaborator(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        target_id: uuid.UUID
    ) -> Document:
        document = await self.get_managed_document(user, document_uuid)
        updated = access.remove_collaborator(document, target_id)
        return await self.document_repository.save(updated)

    async def share_by_email(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        email: str,
        permission: Permission,
        message: Optional[str] = None
    ) -> None:
        """Отправка письма о документе, состояние документа не меняется"""
        document = await self.get_managed_document(user, document_uuid)
        if self.notifier is None:
            raise DeliveryFailure()

        template = templates.share_email(
            document.title,
            user.name or user.email,
            permission.value,
            message
        )
        await self.notifier.send(email, template.subject, template.html)
        logger.info(f"Share email for document {document.uuid} sent")

    async def get_managed_document(self, user: Optional[User], document_uuid: uuid.UUID) -> Document:
        """Документ, которым пользователь может управлять"""
        document = await self.get_document(user, document_uuid)
        if not access.can_manage_collaborators(document, user.uuid):
            raise Forbidden("Only the document owner can manage collaborators")
        return document


class ShareGrantService:
    """Сервис для доступа по ссылке (ShareGrant)"""

    def __init__(self, session: AsyncSession):
        self.document_service = DocumentService(session)
        self.grant_repository = ShareGrantRepository(session)
        self.user_repository = UserRepository(session)

    async def create_grant(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        grant_data: ShareGrantCreate
    ) -> ShareGrant:
        document = await self.document_service.get_managed_document(user, document_uuid)
        if await self.grant_repository.get_by_document(document.uuid):
            raise Conflict("Share settings already exist for this document")

        grant = ShareGrant(
            uuid=uuid.uuid4(),
            document_id=document.uuid,
            owner_id=document.owner_id,
            is_public=grant_data.is_public,
            permission=grant_data.permission,
            allow_comments=grant_data.allow_comments,
            expires_at=grant_data.expires_at,
            shared_users=await self._resolve_entries(grant_data.shared_users)
        )
        return await self.grant_repository.create(grant)

    async def get_grant(self, user: Optional[User], document_uuid: uuid.UUID) -> ShareGrant:
        document = await self.document_service.get_managed_document(user, document_uuid)
        grant = await self.grant_repository.get_by_document(document.uuid)
        if not grant:
            raise NotFound("Share settings not found")
        return grant

    async def update_grant(
        self,
        user: Optional[User],
        document_uuid: uuid.UUID,
        grant_data: ShareGrantUpdate
    ) -> ShareGrant:
        """Замена списка пользователей и/или срока действия"""
        grant = await self.get_grant(user, document_uuid)

        if grant_data.shared_users is not None:
            grant = grant.with_shared_users(await self._resolve_entries(grant_data.shared_users))
        if "expires_at" in grant_data.model_fields_set:
            grant = grant.with_expiry(grant_data.expires_at)

        return await self.grant_repository.save(grant)

    async def resolve_permission(self, user: Optional[User], document_uuid: uuid.UUID) -> Permission:
        """Разрешение текущего пользователя по ShareGrant"""
        user = _require_identity(user)
        grant = await self.grant_repository.get_by_document(document_uuid)
        permission = None
        if grant is not None:
            permission = access.resolve_grant_permission(grant, user.uuid, user.email, utcnow())
        if permission is None:
            raise NotFound("No share found for this document")
        return permission

    async def _resolve_entries(self, entries: List[SharedUserEntry]) -> List[SharedUser]:
        shared = {}
        for entry in entries:
            email = entry.email.lower()
            existing = await self.user_repository.get_by_email(email)
            shared[email] = SharedUser(
                email=email,
                permission=entry.permission,
                user_id=existing.uuid if existing else None
            )
        return list(shared.values())
