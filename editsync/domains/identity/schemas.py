from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import uuid


class UserCreate(BaseModel):
    """Схема для регистрации пользователя"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if len(v.strip()) < 2:
            raise ValueError('Name must be at least 2 characters long')
        return v.strip()


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Схема для обновления профиля"""
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Name must be at least 2 characters long')
        return v.strip() if v else v

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: uuid.UUID = Field(validation_alias=AliasChoices("id", "uuid"))
    email: str
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Краткие данные пользователя для поиска"""
    id: uuid.UUID = Field(validation_alias=AliasChoices("id", "uuid"))
    email: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Токен и пользователь после регистрации или входа"""
    token: str
    token_type: str = "bearer"
    user: UserSummary


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class MessageResponse(BaseModel):
    message: str
