from fastapi import APIRouter, Query, WebSocket, status
from typing import Any, Optional
import asyncio
import contextlib
import json
import logging
import uuid

from editsync.core.auth import AuthGate
from editsync.core.config import settings
from editsync.core.db import SessionLocal
from editsync.core.errors import NotFound, Unauthenticated
from editsync.db.repositories.document_repository import DocumentRepository
from editsync.domains.collaboration import ChangeRelay, RealtimeSession, SessionClosed, SessionRegistry
from editsync.domains.documents import access
from editsync.domains.documents.entities import Document
from editsync.domains.documents.services import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter()


class SyncHandler:
    """Обработка событий одного realtime соединения"""

    def __init__(self, session: RealtimeSession, registry: SessionRegistry, relay: ChangeRelay):
        self.session = session
        self.registry = registry
        self.relay = relay

    async def handle(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            self.send_error(None, "Malformed message")
            return

        if not isinstance(message, dict):
            self.send_error(None, "Malformed message")
            return

        event = message.get("type")
        data = message.get("data")

        if event == "join-document":
            await self.join(data)
        elif event == "leave-document":
            room_id = self.room_id(data)
            if room_id is None:
                self.send_error(event, "Document ID is required")
                return
            self.registry.leave(self.session.session_id, room_id)
        elif event == "document-change":
            await self.change(data)
        elif event == "ping":
            self.session.deliver({"type": "pong"})
        else:
            self.send_error(event, "Unknown event type")

    async def join(self, data: Any) -> None:
        room_id = self.room_id(data)
        if room_id is None:
            self.send_error("join-document", "Document ID is required")
            return

        if settings.realtime_require_auth:
            try:
                await self.authorize_view(room_id)
            except NotFound as e:
                logger.info(f"Session {self.session.session_id} denied join to {room_id} ({e.reason})")
                self.send_error("join-document", e.message)
                return

        self.registry.join(self.session.session_id, room_id)

    async def authorize_view(self, room_id: str) -> None:
        try:
            document_uuid = uuid.UUID(room_id)
        except ValueError:
            raise NotFound()

        async with SessionLocal() as db:
            await DocumentService(db).get_document(self.session.user, document_uuid)

    async def change(self, data: Any) -> None:
        if not isinstance(data, dict):
            self.send_error("document-change", "Malformed message")
            return

        room_id = self.room_id(data.get("documentId"))
        if room_id is None:
            self.send_error("document-change", "Document ID is required")
            return

        if not settings.realtime_require_auth:
            self.relay.relay_change(self.session.session_id, room_id, data.get("changes"))
            return

        if room_id not in self.registry.rooms_of(self.session.session_id):
            self.send_error("document-change", "Join the document before sending changes")
            return

        # права могли измениться после входа в комнату
        document = await self.load_document(room_id)
        if document is None or not access.can_view(document, self.session.user_id):
            self.registry.leave(self.session.session_id, room_id)
            self.send_error("document-change", "Document not found")
            return
        if not access.can_edit(document, self.session.user_id):
            self.send_error("document-change", "You do not have permission to edit this document")
            return

        self.relay.relay_change(
            self.session.session_id,
            room_id,
            data.get("changes"),
            allowed=lambda recipient: access.can_view(document, recipient.user_id)
        )

    async def load_document(self, room_id: str) -> Optional[Document]:
        async with SessionLocal() as db:
            return await DocumentRepository(db).get_by_uuid(uuid.UUID(room_id))

    def room_id(self, value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value.strip():
            return None
        value = value.strip()
        if settings.realtime_require_auth:
            # одна комната на документ независимо от записи UUID
            with contextlib.suppress(ValueError):
                return str(uuid.UUID(value))
        return value

    def send_error(self, event: Optional[str], message: str) -> None:
        self.session.deliver({"type": "error", "data": {"event": event, "message": message}})


async def authenticate(token: Optional[str]):
    async with SessionLocal() as db:
        return await AuthGate(db).resolve(token)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """WebSocket эндпоинт для совместного редактирования"""
    registry: SessionRegistry = websocket.app.state.session_registry
    relay: ChangeRelay = websocket.app.state.change_relay

    user = None
    if token or settings.realtime_require_auth:
        try:
            user = await authenticate(token)
        except Unauthenticated as e:
            if settings.realtime_require_auth:
                logger.info(f"WebSocket rejected: {e.message}")
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return
            logger.debug(f"Anonymous WebSocket connection: {e.message}")

    await websocket.accept()

    session = RealtimeSession(websocket, user)
    registry.register(session)
    writer = asyncio.create_task(session.run_writer())
    handler = SyncHandler(session, registry, relay)
    logger.info(f"WebSocket accepted: session {session.session_id}, user {session.user_id}")

    try:
        while not session.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                # бинарные кадры не поддерживаются
                handler.send_error(None, "Malformed message")
                continue
            await handler.handle(raw)
    except SessionClosed:
        logger.info(f"Session {session.session_id} closed while handling a message")
    finally:
        registry.on_disconnect(session.session_id)
        session.close()
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
