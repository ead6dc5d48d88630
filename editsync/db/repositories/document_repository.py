from collections import defaultdict
from typing import Dict, Optional, List, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, insert, or_
import uuid

from editsync.core.clock import ensure_utc
from editsync.db.models.document import Document as DocumentModel, document_collaborators
from editsync.db.models.share import ShareGrant as ShareGrantModel, ShareGrantUser as ShareGrantUserModel
from editsync.domains.documents.entities import (
    Document, FileKind, Permission, ShareGrant, SharedUser
)


class DocumentRepository:
    """Репозиторий для работы с документами.

    Документ сохраняется целиком: строка таблицы и набор соавторов
    заменяются текущим состоянием сущности.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, document: Document) -> Document:
        """Создание нового документа"""
        db_document = DocumentModel(
            uuid=document.uuid,
            title=document.title,
            content=document.content,
            file_type=document.file_type.value,
            owner_id=document.owner_id,
            is_public=document.is_public,
            last_modified=document.last_modified,
            created_at=document.created_at
        )
        self.session.add(db_document)
        await self.session.flush()
        await self._replace_collaborators(document.uuid, document.collaborators)
        await self.session.commit()

        return await self.get_by_uuid(document.uuid)

    async def get_by_uuid(self, document_uuid: uuid.UUID) -> Optional[Document]:
        """Получение документа по UUID"""
        result = await self.session.execute(
            select(DocumentModel)
            .where(DocumentModel.uuid == document_uuid)
            .execution_options(populate_existing=True)
        )
        db_document = result.scalar_one_or_none()
        if not db_document:
            return None

        collaborators = await self._load_collaborators([db_document.uuid])
        return self._to_domain(db_document, collaborators[db_document.uuid])

    async def get_for_user(self, user_id: uuid.UUID) -> List[Document]:
        """Документы, где пользователь владелец или соавтор, новые изменения первыми"""
        shared_ids = select(document_collaborators.c.document_id).where(
            document_collaborators.c.user_id == user_id
        )
        result = await self.session.execute(
            select(DocumentModel)
            .where(or_(DocumentModel.owner_id == user_id, DocumentModel.uuid.in_(shared_ids)))
            .order_by(DocumentModel.last_modified.desc())
        )
        db_documents = result.scalars().all()

        collaborators = await self._load_collaborators([doc.uuid for doc in db_documents])
        return [self._to_domain(doc, collaborators[doc.uuid]) for doc in db_documents]

    async def save(self, document: Document) -> Document:
        """Замена сохраненного состояния документа"""
        await self.session.execute(
            update(DocumentModel)
            .where(DocumentModel.uuid == document.uuid)
            .values(
                title=document.title,
                content=document.content,
                file_type=document.file_type.value,
                is_public=document.is_public,
                last_modified=document.last_modified
            )
        )
        await self._replace_collaborators(document.uuid, document.collaborators)
        await self.session.commit()

        return await self.get_by_uuid(document.uuid)

    async def delete(self, document_uuid: uuid.UUID) -> bool:
        """Удаление документа вместе с соавторами и ShareGrant"""
        await self.session.execute(
            delete(document_collaborators).where(document_collaborators.c.document_id == document_uuid)
        )
        await ShareGrantRepository(self.session).delete_for_document(document_uuid, commit=False)
        result = await self.session.execute(delete(DocumentModel).where(DocumentModel.uuid == document_uuid))
        await self.session.commit()
        return result.rowcount > 0

    async def delete_for_user(self, user_id: uuid.UUID) -> int:
        """Очистка данных удаляемого пользователя: его документы и участие в чужих"""
        result = await self.session.execute(
            select(DocumentModel.uuid).where(DocumentModel.owner_id == user_id)
        )
        owned = result.scalars().all()
        for document_uuid in owned:
            await self.session.execute(
                delete(document_collaborators).where(document_collaborators.c.document_id == document_uuid)
            )
            await ShareGrantRepository(self.session).delete_for_document(document_uuid, commit=False)
        await self.session.execute(
            delete(document_collaborators).where(document_collaborators.c.user_id == user_id)
        )
        await self.session.execute(delete(DocumentModel).where(DocumentModel.owner_id == user_id))
        await self.session.commit()
        return len(owned)

    async def _replace_collaborators(self, document_uuid: uuid.UUID, collaborators: Set[uuid.UUID]) -> None:
        await self.session.execute(
            delete(document_collaborators).where(document_collaborators.c.document_id == document_uuid)
        )
        if collaborators:
            await self.session.execute(
                insert(document_collaborators),
                [{"document_id": document_uuid, "user_id": user_id} for user_id in collaborators]
            )

    async def _load_collaborators(self, document_uuids: List[uuid.UUID]) -> Dict[uuid.UUID, Set[uuid.UUID]]:
        collaborators: Dict[uuid.UUID, Set[uuid.UUID]] = defaultdict(set)
        if not document_uuids:
            return collaborators

        result = await self.session.execute(
            select(document_collaborators.c.document_id, document_collaborators.c.user_id)
            .where(document_collaborators.c.document_id.in_(document_uuids))
        )
        for document_id, user_id in result.all():
            collaborators[document_id].add(user_id)
        return collaborators

    def _to_domain(self, db_document: DocumentModel, collaborators: Set[uuid.UUID]) -> Document:
        """Преобразование модели БД в доменную сущность"""
        return Document(
            uuid=db_document.uuid,
            title=db_document.title,
            owner_id=db_document.owner_id,
            content=db_document.content or "",
            file_type=FileKind.parse(db_document.file_type) or FileKind.MARKDOWN,
            collaborators=frozenset(collaborators),
            is_public=db_document.is_public,
            last_modified=ensure_utc(db_document.last_modified),
            created_at=ensure_utc(db_document.created_at)
        )


class ShareGrantRepository:
    """Репозиторий для ShareGrant (один на документ)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, grant: ShareGrant) -> ShareGrant:
        self.session.add(ShareGrantModel(
            uuid=grant.uuid,
            document_id=grant.document_id,
            owner_id=grant.owner_id,
            is_public=grant.is_public,
            permission=grant.permission.value,
            allow_comments=grant.allow_comments,
            expires_at=grant.expires_at,
            created_at=grant.created_at,
            updated_at=grant.updated_at
        ))
        await self.session.flush()
        await self._replace_shared_users(grant)
        await self.session.commit()
        return await self.get_by_document(grant.document_id)

    async def get_by_document(self, document_uuid: uuid.UUID) -> Optional[ShareGrant]:
        result = await self.session.execute(
            select(ShareGrantModel)
            .where(ShareGrantModel.document_id == document_uuid)
            .execution_options(populate_existing=True)
        )
        db_grant = result.scalar_one_or_none()
        if not db_grant:
            return None

        users = await self.session.execute(
            select(ShareGrantUserModel)
            .where(ShareGrantUserModel.grant_id == db_grant.uuid)
            .order_by(ShareGrantUserModel.email)
        )
        return self._to_domain(db_grant, users.scalars().all())

    async def save(self, grant: ShareGrant) -> ShareGrant:
        """Сохранение списка доступа и срока действия"""
        await self.session.execute(
            update(ShareGrantModel)
            .where(ShareGrantModel.uuid == grant.uuid)
            .values(expires_at=grant.expires_at, updated_at=grant.updated_at)
        )
        await self._replace_shared_users(grant)
        await self.session.commit()
        return await self.get_by_document(grant.document_id)

    async def delete_for_document(self, document_uuid: uuid.UUID, commit: bool = True) -> None:
        grant_ids = select(ShareGrantModel.uuid).where(ShareGrantModel.document_id == document_uuid)
        await self.session.execute(
            delete(ShareGrantUserModel).where(ShareGrantUserModel.grant_id.in_(grant_ids))
        )
        await self.session.execute(
            delete(ShareGrantModel).where(ShareGrantModel.document_id == document_uuid)
        )
        if commit:
            await self.session.commit()

    async def _replace_shared_users(self, grant: ShareGrant) -> None:
        await self.session.execute(
            delete(ShareGrantUserModel).where(ShareGrantUserModel.grant_id == grant.uuid)
        )
        for shared in grant.shared_users:
            self.session.add(ShareGrantUserModel(
                grant_id=grant.uuid,
                user_id=shared.user_id,
                email=shared.email,
                permission=shared.permission.value
            ))
        await self.session.flush()

    def _to_domain(self, db_grant: ShareGrantModel, db_users: List[ShareGrantUserModel]) -> ShareGrant:
        return ShareGrant(
            uuid=db_grant.uuid,
            document_id=db_grant.document_id,
            owner_id=db_grant.owner_id,
            is_public=db_grant.is_public,
            permission=Permission(db_grant.permission),
            allow_comments=db_grant.allow_comments,
            expires_at=ensure_utc(db_grant.expires_at),
            shared_users=tuple(
                SharedUser(email=user.email, permission=Permission(user.permission), user_id=user.user_id)
                for user in db_users
            ),
            created_at=ensure_utc(db_grant.created_at),
            updated_at=ensure_utc(db_grant.updated_at)
        )
