import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from editsync.core.clock import utcnow


class FileKind(str, Enum):
    """Тип файла документа"""
    MARKDOWN = "md"
    PLAIN = "txt"
    RICH = "docx"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FileKind"]:
        if not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


IMPORTABLE_KINDS = frozenset({FileKind.MARKDOWN, FileKind.PLAIN})


class Permission(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    COMMENT = "comment"


@dataclass(frozen=True)
class Document:
    """Сущность документа.

    Неизменяемая: каждое изменение возвращает новый экземпляр,
    который репозиторий сохраняет целиком.
    """
    uuid: uuid.UUID
    title: str
    owner_id: uuid.UUID
    content: str = ""
    file_type: FileKind = FileKind.MARKDOWN
    collaborators: FrozenSet[uuid.UUID] = frozenset()
    is_public: bool = False
    last_modified: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create_document(
        cls,
        title: str,
        owner_id: uuid.UUID,
        content: str = "",
        file_type: FileKind = FileKind.MARKDOWN
    ) -> "Document":
        """Создание нового приватного документа"""
        return cls(
            uuid=uuid.uuid4(),
            title=title,
            owner_id=owner_id,
            content=content,
            file_type=file_type
        )

    def with_changes(
        self,
        title: Optional[str] = None,
        content: Optional[str] = None,
        file_type: Optional[FileKind] = None
    ) -> "Document":
        """Пустые значения не перезаписывают текущие"""
        return replace(
            self,
            title=title or self.title,
            content=content or self.content,
            file_type=file_type or self.file_type,
            last_modified=utcnow()
        )

    def with_collaborators(self, collaborators: Iterable[uuid.UUID]) -> "Document":
        return replace(self, collaborators=frozenset(collaborators))

    def with_public(self, is_public: bool) -> "Document":
        return replace(self, is_public=is_public)

    def duplicate_for(self, owner_id: uuid.UUID) -> "Document":
        """Копия документа с новым владельцем и без соавторов"""
        return Document.create_document(
            title=f"{self.title} (Copy)",
            owner_id=owner_id,
            content=self.content,
            file_type=self.file_type
        )


@dataclass(frozen=True)
class SharedUser:
    """Запись о доступе по ссылке для пользователя или email"""
    email: str
    permission: Permission = Permission.VIEW
    user_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class ShareGrant:
    """Доступ к документу по ссылке или приглашению, отдельно от соавторов"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    owner_id: uuid.UUID
    is_public: bool = False
    permission: Permission = Permission.VIEW
    allow_comments: bool = True
    expires_at: Optional[datetime] = None
    shared_users: Tuple[SharedUser, ...] = ()
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def with_shared_users(self, shared_users: Iterable[SharedUser]) -> "ShareGrant":
        return replace(self, shared_users=tuple(shared_users), updated_at=utcnow())

    def with_expiry(self, expires_at: Optional[datetime]) -> "ShareGrant":
        return replace(self, expires_at=expires_at, updated_at=utcnow())
