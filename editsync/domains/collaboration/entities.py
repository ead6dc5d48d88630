import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from editsync.core.config import settings
from editsync.domains.identity.entities import User

logger = logging.getLogger(__name__)


class SessionClosed(Exception):
    """Сессия закрыта, сообщения больше не принимаются"""


class RealtimeSession:
    """Realtime соединение клиента.

    Исходящие сообщения складываются в очередь, а отдельная задача-писатель
    отправляет их в сокет по порядку. Отправитель никогда не ждет получателя.
    Если клиент не успевает читать и очередь заполнена, сессия закрывается.
    """

    def __init__(self, websocket: Any, user: Optional[User] = None, max_pending: Optional[int] = None):
        self.session_id = str(uuid.uuid4())
        self.websocket = websocket
        self.user = user
        if max_pending is None:
            max_pending = settings.realtime_queue_size
        self.queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue(maxsize=max_pending)
        self.closed = False

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        return self.user.uuid if self.user else None

    def deliver(self, message: Dict[str, Any]) -> None:
        """Постановка сообщения в очередь без ожидания"""
        if self.closed:
            raise SessionClosed(self.session_id)
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Session {self.session_id} has {self.queue.qsize()} undelivered messages, closing"
            )
            self.closed = True
            self._stop_writer(discard=True)
            raise SessionClosed(self.session_id)

    async def run_writer(self) -> None:
        """Отправка сообщений из очереди до закрытия сессии"""
        while True:
            message = await self.queue.get()
            if message is None:
                break
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to deliver to session {self.session_id}: {e}")
                self.closed = True
                break

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._stop_writer(discard=self.queue.full())

    def _stop_writer(self, discard: bool) -> None:
        if discard:
            while not self.queue.empty():
                self.queue.get_nowait()
        self.queue.put_nowait(None)

    def __repr__(self):
        return f"<RealtimeSession(session_id={self.session_id}, user_id={self.user_id})>"
