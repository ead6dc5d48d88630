import logging
from typing import Any, Callable, Optional

from editsync.domains.collaboration.entities import RealtimeSession, SessionClosed
from editsync.domains.collaboration.registry import SessionRegistry

logger = logging.getLogger(__name__)

DOCUMENT_UPDATE = "document-update"


class ChangeRelay:
    """Рассылка изменений документа участникам комнаты.

    Содержимое изменений не разбирается и не сохраняется.
    Ошибка доставки одному получателю только логируется.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def relay_change(
        self,
        sender_session_id: str,
        room_id: str,
        payload: Any,
        allowed: Optional[Callable[[RealtimeSession], bool]] = None
    ) -> int:
        """Рассылка всем в комнате кроме отправителя, возвращает число получателей.

        Получатели, не прошедшие проверку allowed, удаляются из комнаты.
        """
        message = {"type": DOCUMENT_UPDATE, "data": payload}
        delivered = 0

        for session_id in self.registry.members_of(room_id):
            if session_id == sender_session_id:
                continue

            session = self.registry.get(session_id)
            if session is None:
                continue

            if allowed is not None and not allowed(session):
                logger.info(f"Session {session_id} lost access to document {room_id}")
                self.registry.leave(session_id, room_id)
                continue

            try:
                session.deliver(message)
                delivered += 1
            except SessionClosed:
                logger.warning(f"Session {session_id} is closed, dropping it from every document")
                self.registry.on_disconnect(session_id)
            except Exception as e:
                logger.warning(f"Relay to session {session_id} in document {room_id} failed: {e}")

        return delivered
