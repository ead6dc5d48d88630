from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime

from editsync.core.clock import ensure_utc
from editsync.domains.documents.entities import FileKind, Permission


class DocumentCreate(BaseModel):
    """Схема для создания документа"""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(default="", max_length=1000000)
    file_type: FileKind = FileKind.MARKDOWN

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class DocumentUpdate(BaseModel):
    """Схема для обновления документа, отсутствующие поля не меняются"""
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, max_length=1000000)
    # неизвестный тип файла игнорируется
    file_type: Optional[str] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        return v.strip() if v else v


class DocumentResponse(BaseModel):
    """Схема для ответа с данными документа"""
    id: uuid.UUID = Field(validation_alias=AliasChoices("id", "uuid"))
    title: str
    content: str
    file_type: FileKind
    owner_id: uuid.UUID
    collaborators: List[uuid.UUID]
    is_public: bool
    last_modified: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator('collaborators', mode='before')
    @classmethod
    def sort_collaborators(cls, v):
        return sorted(v, key=str)


class CollaboratorsUpdate(BaseModel):
    """Полная замена списка соавторов"""
    collaborator_ids: List[uuid.UUID] = Field(
        validation_alias=AliasChoices("collaborator_ids", "collaboratorIds")
    )


class SharedUserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    permission: str
    avatar: str


class InviteRequest(BaseModel):
    email: EmailStr
    permission: Permission = Permission.EDIT


class InviteResponse(BaseModel):
    id: uuid.UUID
    email: str
    permission: Permission
    avatar: str


class ShareEmailRequest(BaseModel):
    email: EmailStr
    permission: Permission = Permission.VIEW
    message: Optional[str] = Field(None, max_length=2000)


class ShareEmailResponse(BaseModel):
    success: bool = True
    message: str = "Share email sent successfully"


class SharedUserEntry(BaseModel):
    email: EmailStr
    permission: Permission = Permission.VIEW

    model_config = ConfigDict(from_attributes=True)


class ShareGrantCreate(BaseModel):
    is_public: bool = False
    permission: Permission = Permission.VIEW
    allow_comments: bool = True
    expires_at: Optional[datetime] = None
    shared_users: List[SharedUserEntry] = []

    @field_validator('expires_at')
    @classmethod
    def normalize_expiry(cls, v):
        return ensure_utc(v)


class ShareGrantUpdate(BaseModel):
    """Меняются только список пользователей и срок действия"""
    shared_users: Optional[List[SharedUserEntry]] = None
    expires_at: Optional[datetime] = None

    @field_validator('expires_at')
    @classmethod
    def normalize_expiry(cls, v):
        return ensure_utc(v)


class SharedUserGrantResponse(BaseModel):
    email: str
    permission: Permission
    user_id: Optional[uuid.UUID] = None

    model_config = ConfigDict(from_attributes=True)


class ShareGrantResponse(BaseModel):
    id: uuid.UUID = Field(validation_alias=AliasChoices("id", "uuid"))
    document_id: uuid.UUID
    owner_id: uuid.UUID
    is_public: bool
    permission: Permission
    allow_comments: bool
    expires_at: Optional[datetime]
    shared_users: List[SharedUserGrantResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GrantResolution(BaseModel):
    document_id: uuid.UUID
    permission: Permission
