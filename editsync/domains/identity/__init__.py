from editsync.domains.identity.entities import User
from editsync.domains.identity.schemas import (
    UserCreate, UserLogin, UserUpdate, UserResponse, UserSummary,
    AuthResponse, PasswordResetRequest, PasswordReset, MessageResponse
)

__all__ = [
    "User",
    "UserCreate", "UserLogin", "UserUpdate", "UserResponse", "UserSummary",
    "AuthResponse", "PasswordResetRequest", "PasswordReset", "MessageResponse"
]
