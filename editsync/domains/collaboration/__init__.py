from editsync.domains.collaboration.entities import RealtimeSession, SessionClosed
from editsync.domains.collaboration.registry import SessionRegistry
from editsync.domains.collaboration.relay import ChangeRelay, DOCUMENT_UPDATE

__all__ = [
    "RealtimeSession", "SessionClosed", "SessionRegistry", "ChangeRelay", "DOCUMENT_UPDATE"
]
