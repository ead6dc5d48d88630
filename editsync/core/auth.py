import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from editsync.core.db import get_db
from editsync.core.errors import Unauthenticated
from editsync.core.security import verify_token
from editsync.db.repositories.user_repository import UserRepository
from editsync.domains.identity.entities import User

# без auto_error отсутствующий заголовок дает 401, а не 403
bearer_scheme = HTTPBearer(auto_error=False)


class AuthGate:
    """Проверка токена и загрузка пользователя"""

    def __init__(self, session: AsyncSession):
        self.user_repository = UserRepository(session)

    async def resolve(self, credential: Optional[str]) -> User:
        if not credential:
            raise Unauthenticated()

        payload = verify_token(credential)
        if not payload:
            raise Unauthenticated("Invalid token")

        try:
            user_uuid = uuid.UUID(str(payload.get("sub")))
        except ValueError:
            raise Unauthenticated("Invalid token")

        user = await self.user_repository.get_by_uuid(user_uuid)
        if not user:
            raise Unauthenticated("User not found")
        return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Зависимость для получения текущего пользователя"""
    token = credentials.credentials if credentials else None
    return await AuthGate(db).resolve(token)
