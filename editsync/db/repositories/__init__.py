from editsync.db.repositories.user_repository import UserRepository
from editsync.db.repositories.document_repository import DocumentRepository, ShareGrantRepository

__all__ = [
    "UserRepository",
    "DocumentRepository",
    "ShareGrantRepository"
]
