from editsync.db.models.user import User
from editsync.db.models.document import Document, document_collaborators
from editsync.db.models.share import ShareGrant, ShareGrantUser

__all__ = [
    "User",
    "Document",
    "document_collaborators",
    "ShareGrant",
    "ShareGrantUser"
]
