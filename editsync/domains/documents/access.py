"""Правила доступа к документам.

Чистые функции без I/O. Все операции чтения и изменения документов
в DocumentService проходят через них.

- владелец: чтение, редактирование, управление соавторами, удаление;
- соавтор: чтение и редактирование;
- публичный документ: только чтение для любого пользователя.
"""
import uuid
from datetime import datetime
from typing import Optional

from editsync.core.errors import Forbidden, InvalidOperation, NotFound
from editsync.domains.documents.entities import Document, Permission, ShareGrant


def is_owner(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return user_id is not None and document.owner_id == user_id


def is_collaborator(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return user_id is not None and user_id in document.collaborators


def can_view(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return document.is_public or can_edit(document, user_id)


def can_edit(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return is_owner(document, user_id) or is_collaborator(document, user_id)


def can_manage_collaborators(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return is_owner(document, user_id)


def can_delete(document: Document, user_id: Optional[uuid.UUID]) -> bool:
    return is_owner(document, user_id)


def add_collaborator(document: Document, user_id: uuid.UUID) -> Document:
    """Добавление соавтора, повторное добавление ничего не меняет"""
    if is_owner(document, user_id):
        raise InvalidOperation("The document owner cannot be a collaborator")
    if user_id in document.collaborators:
        return document
    return document.with_collaborators(document.collaborators | {user_id})


def remove_collaborator(document: Document, user_id: uuid.UUID) -> Document:
    """Удаление соавтора"""
    if is_owner(document, user_id):
        raise Forbidden("Cannot remove the document owner")
    if user_id not in document.collaborators:
        raise NotFound("User is not a collaborator of this document")
    return document.with_collaborators(document.collaborators - {user_id})


def resolve_grant_permission(
    grant: ShareGrant,
    user_id: uuid.UUID,
    email: str,
    now: datetime
) -> Optional[Permission]:
    """Разрешение пользователя по ShareGrant или None"""
    if grant.is_expired(now):
        return None

    email = email.lower()
    for shared in grant.shared_users:
        if shared.user_id == user_id or shared.email.lower() == email:
            return shared.permission

    if grant.is_public:
        return grant.permission
    return None
