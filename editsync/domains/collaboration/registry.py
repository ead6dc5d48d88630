import logging
from typing import Dict, Optional, Set

from editsync.domains.collaboration.entities import RealtimeSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Реестр realtime сессий и комнат документов.

    Создается при старте приложения и передается обработчикам явно.
    Все изменения выполняются в одном event loop, блокировки не нужны.
    Права на документ здесь не проверяются, это делает вызывающий код.
    """

    def __init__(self):
        # {room_id: {session_id}}
        self._rooms: Dict[str, Set[str]] = {}
        # {session_id: {room_id}}
        self._session_rooms: Dict[str, Set[str]] = {}
        self._sessions: Dict[str, RealtimeSession] = {}

    def register(self, session: RealtimeSession) -> None:
        self._sessions[session.session_id] = session
        self._session_rooms.setdefault(session.session_id, set())

    def get(self, session_id: str) -> Optional[RealtimeSession]:
        return self._sessions.get(session_id)

    def join(self, session_id: str, room_id: str) -> None:
        """Добавление сессии в комнату, повторный вызов ничего не меняет"""
        self._rooms.setdefault(room_id, set()).add(session_id)
        self._session_rooms.setdefault(session_id, set()).add(room_id)
        logger.info(f"Session {session_id} joined document {room_id}")

    def leave(self, session_id: str, room_id: str) -> None:
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(session_id)
            if not members:
                del self._rooms[room_id]

        rooms = self._session_rooms.get(session_id)
        if rooms is not None:
            rooms.discard(room_id)
        logger.info(f"Session {session_id} left document {room_id}")

    def on_disconnect(self, session_id: str) -> Set[str]:
        """Удаление сессии из всех комнат, возвращает комнаты, из которых она вышла"""
        rooms = self._session_rooms.pop(session_id, set())
        for room_id in rooms:
            members = self._rooms.get(room_id)
            if members is None:
                continue
            members.discard(session_id)
            if not members:
                del self._rooms[room_id]

        self._sessions.pop(session_id, None)
        logger.info(f"Session {session_id} disconnected, left {len(rooms)} rooms")
        return rooms

    def members_of(self, room_id: str) -> Set[str]:
        return set(self._rooms.get(room_id, ()))

    def rooms_of(self, session_id: str) -> Set[str]:
        return set(self._session_rooms.get(session_id, ()))

    def __len__(self):
        return len(self._sessions)
