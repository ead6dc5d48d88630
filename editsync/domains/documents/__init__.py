from editsync.domains.documents.entities import (
    Document, FileKind, Permission, ShareGrant, SharedUser, IMPORTABLE_KINDS
)

__all__ = [
    "Document", "FileKind", "Permission", "ShareGrant", "SharedUser", "IMPORTABLE_KINDS"
]
