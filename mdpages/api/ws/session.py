from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Dict, Optional
import asyncio
import json
import logging
import uuid

from mdpages.core.config import settings
from mdpages.domains.rendering.services import RenderPipeline, registry
from mdpages.domains.session.schemas import (
    EditData, RejectedMessage, SessionSnapshot, ShareUrlMessage, StateMessage,
    WebSocketMessage
)
from mdpages.domains.session.services import MarkdownSession
from mdpages.domains.sharing.services import SHARE_PARAM

logger = logging.getLogger(__name__)

router = APIRouter()

# Сообщений в очереди на отправку одному клиенту
OUTBOX_LIMIT = 64


class SessionConnection:
    """Связка WebSocket соединения и сессии страницы"""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=OUTBOX_LIMIT)
        self.session = MarkdownSession(RenderPipeline(registry), listener=self.push_state)
        self._sender: Optional[asyncio.Task] = None

    def push_state(self, snapshot: SessionSnapshot) -> None:
        self.send(StateMessage(data=snapshot.model_dump(mode="json")))

    def send(self, message: WebSocketMessage) -> None:
        if self.outbox.full():
            # Клиент не успевает читать: выбрасывается самое старое сообщение
            dropped = self.outbox.get_nowait()
            logger.warning(
                f"Outbox of session {self.session.uuid} is full, dropping '{dropped.type}' message"
            )
        self.outbox.put_nowait(message)

    def reject(self, reason: str) -> None:
        self.send(RejectedMessage(data={"reason": reason}))

    def origin(self) -> str:
        if settings.public_origin:
            return settings.public_origin
        base = str(self.websocket.base_url)
        return "http" + base[2:] if base.startswith("ws") else base

    def start_sending(self) -> None:
        self._sender = asyncio.create_task(self._send_loop())

    async def stop_sending(self) -> None:
        if self._sender is not None:
            self._sender.cancel()
            await asyncio.gather(self._sender, return_exceptions=True)

    async def _send_loop(self) -> None:
        while True:
            message = await self.outbox.get()
            await self.websocket.send_text(message.model_dump_json())


class SessionManager:
    def __init__(self):
        # Активные сессии: {session_id: connection}
        self.active_connections: Dict[uuid.UUID, SessionConnection] = {}

    async def connect(self, websocket: WebSocket, token: Optional[str]) -> SessionConnection:
        """Подключение страницы и запуск ее сессии"""
        await websocket.accept()
        connection = SessionConnection(websocket)
        self.active_connections[connection.session.uuid] = connection
        connection.start_sending()
        logger.info(f"WebSocket accepted for session {connection.session.uuid}")

        await connection.session.start(token)
        return connection

    async def disconnect(self, connection: SessionConnection) -> None:
        """Отключение страницы; сессия закрывается вместе с соединением"""
        session = connection.session
        self.active_connections.pop(session.uuid, None)
        await session.close()
        await connection.stop_sending()
        logger.info(f"Session {session.uuid} disconnected")

    async def handle_message(self, connection: SessionConnection, raw: str) -> None:
        """Обработка сообщения клиента"""
        session = connection.session
        message = WebSocketMessage.model_validate(json.loads(raw))

        if message.type == "edit":
            # Обработка правки текста
            edit = EditData.model_validate(message.data)
            if session.edit(edit.content) is None:
                connection.reject(f"editing is not available in {session.mode.value} mode")

        elif message.type == "share":
            url = session.share_url(connection.origin())
            if url is None:
                connection.reject(f"sharing is not available in {session.mode.value} mode")
            else:
                connection.send(ShareUrlMessage(data={"url": url}))

        elif message.type == "ping":
            # Ответ на ping для поддержания соединения
            connection.send(WebSocketMessage(type="pong"))

        else:
            connection.reject(f"unknown message type '{message.type}'")


manager = SessionManager()


@router.websocket("/ws/session")
async def session_endpoint(websocket: WebSocket):
    """WebSocket эндпоинт одной страницы"""
    token = websocket.query_params.get(SHARE_PARAM)
    connection = await manager.connect(websocket, token)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                await manager.handle_message(connection, data)
            except Exception as e:
                # Ошибка вне конвейера рендера тоже переводит сессию в ERROR
                connection.session.reporter.report(e)

    except WebSocketDisconnect:
        await manager.disconnect(connection)

    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        await manager.disconnect(connection)
